"""Test HeatOverlaySession wiring: input → registry → render → frame listeners.

Test cases:
    - test_initial_render_is_blank()
    - test_click_adds_point_and_renders()
    - test_click_again_removes_point()
    - test_ignored_click_does_not_render()
    - test_tap_gesture_commits()
    - test_drag_preview_does_not_run_pipeline()
    - test_drag_release_commits_once()
    - test_long_press_commits_nothing()
    - test_toggle_simple_mode()
    - test_resize_rerenders_and_cancels_gesture()
    - test_invalid_resize_blank_frame()
    - test_load_points_and_clear()
    - test_set_config_updates_interaction_params()
    - test_frame_listener_unsubscribe()

Run:
    pytest tests/test_session.py -v
"""

import numpy as np
import pytest

from src.heatmap_engine.compositor import RenderMode
from src.heatmap_engine.points import Point
from src.interaction.gestures import Phase, PointerEvent
from src.interaction.registry import ChangeKind
from src.interaction.session import HeatOverlaySession
from src.utils.validators import HeatmapConfigV1


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def session():
    return HeatOverlaySession(HeatmapConfigV1(), 200, 150)


@pytest.fixture
def frames(session):
    seen = []
    session.on_frame(seen.append)
    return seen


# ============================================================================
# CLICKS
# ============================================================================

def test_initial_render_is_blank(session):
    assert session.render_count == 1
    assert session.last_result.mode == RenderMode.BLANK
    assert session.surface.overlay is not None
    assert session.size == (200, 150)


def test_click_adds_point_and_renders(session, frames):
    kind = session.click(100, 75)
    assert kind == ChangeKind.ADDED
    assert session.points == (Point(50, 50),)
    assert session.render_count == 2
    assert len(frames) == 1
    assert frames[0].mode == RenderMode.HEATMAP
    assert session.surface.overlay is frames[0].overlay


def test_click_again_removes_point(session, frames):
    session.click(100, 75)
    kind = session.click(105, 75)
    assert kind == ChangeKind.REMOVED
    assert session.points == ()
    assert frames[-1].mode == RenderMode.BLANK


def test_ignored_click_does_not_render(session, frames):
    kind = session.click(500, 75)
    assert kind == ChangeKind.IGNORED
    assert session.render_count == 1
    assert frames == []


# ============================================================================
# GESTURES
# ============================================================================

def test_tap_gesture_commits(session):
    session.handle_event(PointerEvent(40, 30, Phase.START, 0))
    out = session.handle_event(PointerEvent(40, 30, Phase.END, 100))
    assert out.commit == (40, 30)
    assert session.points == (Point(20, 20),)


def test_drag_preview_does_not_run_pipeline(session, frames):
    session.handle_event(PointerEvent(40, 30, Phase.START, 0))
    session.handle_event(PointerEvent(80, 60, Phase.MOVE, 50))
    session.handle_event(PointerEvent(120, 90, Phase.MOVE, 100))

    assert session.render_count == 1
    assert session.preview == (120, 90)
    assert session.points == ()
    # Preview frames reached listeners and the surface
    assert len(frames) == 2
    assert frames[-1].overlay[90, 120, 3] > 0
    assert session.surface.overlay is frames[-1].overlay


def test_drag_release_commits_once(session, frames):
    session.handle_event(PointerEvent(40, 30, Phase.START, 0))
    session.handle_event(PointerEvent(120, 90, Phase.MOVE, 100))
    session.handle_event(PointerEvent(100, 75, Phase.END, 800))

    assert session.points == (Point(50, 50),)
    assert session.preview is None
    assert session.render_count == 2
    assert frames[-1].mode == RenderMode.HEATMAP


def test_drag_release_onto_duplicate_clears_preview(session, frames):
    session.set_config(session.config.model_copy(update={'hit_radius': 3}))
    session.click(100, 75)
    session.handle_event(PointerEvent(10, 10, Phase.START, 0))
    session.handle_event(PointerEvent(60, 40, Phase.MOVE, 100))
    renders = session.render_count
    # Release outside hit radius but within dedup distance of (50, 50)
    session.handle_event(PointerEvent(96, 72, Phase.END, 700))
    assert session.points == (Point(50, 50),)
    assert session.render_count == renders
    assert session.preview is None
    expected = session.compositor.render(session.points, 200, 150)
    np.testing.assert_array_equal(frames[-1].overlay, expected.overlay)


def test_long_press_commits_nothing(session):
    session.handle_event(PointerEvent(40, 30, Phase.START, 0))
    session.handle_event(PointerEvent(40, 30, Phase.END, 1000))
    assert session.points == ()


def test_release_outside_cancels(session):
    session.handle_event(PointerEvent(40, 30, Phase.START, 0))
    session.handle_event(PointerEvent(80, 60, Phase.MOVE, 50))
    session.handle_event(PointerEvent(400, 60, Phase.END, 100))
    assert session.points == ()
    assert session.preview is None


# ============================================================================
# STATE CHANGES
# ============================================================================

def test_toggle_simple_mode(session):
    session.click(100, 75)
    result = session.toggle_simple_mode()
    assert session.config.simple_mode
    assert result.mode == RenderMode.SIMPLE
    assert result.overlay[75, 100, 3] == 204

    result = session.toggle_simple_mode()
    assert not session.config.simple_mode
    assert result.mode == RenderMode.HEATMAP
    assert session.points == (Point(50, 50),)


def test_resize_rerenders_and_cancels_gesture(session):
    session.click(100, 75)
    session.handle_event(PointerEvent(10, 10, Phase.START, 0))
    result = session.resize(400, 300)
    assert result.overlay.shape == (300, 400, 4)
    assert session.size == (400, 300)
    assert not session.tracker.active
    # Points are normalized, so they survive the resize
    assert session.points == (Point(50, 50),)


def test_invalid_resize_blank_frame(session, frames):
    result = session.resize(0, 100)
    assert result.mode == RenderMode.BLANK
    assert session.size == (200, 150)
    assert frames[-1] is result


def test_set_background(session):
    bg = np.full((150, 200, 3), 90, dtype=np.uint8)
    result = session.set_background(bg)
    assert result.composite is not None
    assert (result.composite == 90).all()


def test_load_points_and_clear(session, frames):
    session.load_points([(10, 10), (90, 90)])
    assert len(session.points) == 2
    assert frames[-1].point_count == 2
    session.clear()
    assert session.points == ()
    assert frames[-1].mode == RenderMode.BLANK


def test_set_config_updates_interaction_params(session):
    cfg = session.config.model_copy(update={'hit_radius': 5, 'max_points': 1, 'tap_max_ms': 50})
    session.set_config(cfg)
    assert session.registry.hit_radius == 5
    assert session.registry.max_points == 1
    assert session.tracker.tap_max_ms == 50
    session.click(20, 20)
    assert session.click(180, 140) == ChangeKind.IGNORED


def test_frame_listener_unsubscribe(session):
    seen = []
    unsubscribe = session.on_frame(seen.append)
    session.click(100, 75)
    unsubscribe()
    session.click(20, 20)
    assert len(seen) == 1


def test_close_detaches_registry(session):
    session.close()
    before = session.render_count
    session.registry.commit(100, 75, 200, 150)
    assert session.render_count == before
