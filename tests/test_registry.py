"""Test the point registry: commit resolution, notifications, preview.

Test cases:
    - test_point_id_and_bounds()
    - test_valid_points_skips_unusable()
    - test_add_normalizes_tap()
    - test_tap_twice_round_trips()
    - test_hit_removes_exactly_one_point()
    - test_first_match_wins_in_insertion_order()
    - test_outside_surface_ignored()
    - test_dedup_distance_ignored()
    - test_dedup_is_strict()
    - test_max_points_ignored()
    - test_id_collision_is_noop()
    - test_points_replaced_wholesale()
    - test_subscribers_notified_on_changes_only()
    - test_unsubscribe()
    - test_preview_never_committed()
    - test_replace_and_clear()

Run:
    pytest tests/test_registry.py -v
"""

import pytest

from src.heatmap_engine.points import Point, as_points, valid_points
from src.interaction.registry import ChangeKind, PointRegistry
from src.utils.validators import HeatmapConfigV1

W, H = 800, 600


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def registry():
    return PointRegistry(hit_radius=30, dedup_distance=5)


@pytest.fixture
def events(registry):
    seen = []
    registry.subscribe(lambda points, kind: seen.append((points, kind)))
    return seen


# ============================================================================
# POINT TYPE
# ============================================================================

def test_point_id_and_bounds():
    p = Point(13, 17)
    assert p.id == "13-17"
    assert p == Point(13, 17)
    with pytest.raises(ValueError):
        Point(101, 0)
    with pytest.raises(ValueError):
        Point(0, -1)


def test_valid_points_skips_unusable():
    pts = valid_points([(1, 2), (150, 20), None, Point(3, 3)])
    assert [p.id for p in pts] == ["1-2", "3-3"]


def test_as_points_coerces():
    class XY:
        x, y = 4, 5

    pts = as_points([(1, 2), Point(3, 3), XY()])
    assert [p.id for p in pts] == ["1-2", "3-3", "4-5"]


# ============================================================================
# COMMIT RESOLUTION
# ============================================================================

def test_add_normalizes_tap(registry):
    points, kind = registry.commit(100, 100, W, H)
    assert kind == ChangeKind.ADDED
    assert points == (Point(13, 17),)
    assert registry.points[0].id == "13-17"


def test_tap_twice_round_trips(registry):
    registry.commit(400, 300, W, H)
    before = len(registry)
    registry.commit(200, 200, W, H)
    assert len(registry) == before + 1
    _, kind = registry.commit(200, 200, W, H)
    assert kind == ChangeKind.REMOVED
    assert len(registry) == before


def test_hit_removes_exactly_one_point(registry):
    for x, y in [(100, 100), (400, 300), (700, 500)]:
        registry.commit(x, y, W, H)
    others = (registry.points[0], registry.points[2])

    # (50, 50) → (400, 300); 20 px away
    points, kind = registry.commit(412, 316, W, H)
    assert kind == ChangeKind.REMOVED
    assert points == others


def test_hit_radius_boundary(registry):
    registry.commit(400, 300, W, H)
    # Exactly 30 px away still hits
    _, kind = registry.commit(430, 300, W, H)
    assert kind == ChangeKind.REMOVED


def test_first_match_wins_in_insertion_order():
    registry = PointRegistry(hit_radius=10, dedup_distance=0)
    registry.commit(400, 300, W, H)   # (50, 50) → device (400, 300)
    registry.commit(416, 300, W, H)   # (52, 50) → device (416, 300)
    assert len(registry) == 2
    registry.hit_radius = 30
    points, kind = registry.commit(408, 300, W, H)
    assert kind == ChangeKind.REMOVED
    assert points == (Point(52, 50),)


@pytest.mark.parametrize("x,y", [(-1, 10), (10, -0.5), (801, 10), (10, 600.1)])
def test_outside_surface_ignored(registry, x, y):
    points, kind = registry.commit(x, y, W, H)
    assert kind == ChangeKind.IGNORED
    assert points == ()


def test_surface_edges_accepted(registry):
    _, kind = registry.commit(800, 600, W, H)
    assert kind == ChangeKind.ADDED
    assert registry.points == (Point(100, 100),)


def test_invalid_surface_ignored(registry):
    _, kind = registry.commit(0, 0, 0, 600)
    assert kind == ChangeKind.IGNORED


def test_dedup_distance_ignored():
    registry = PointRegistry(hit_radius=5, dedup_distance=5)
    registry.commit(400, 300, W, H)           # (50, 50)
    # 24 px right → (53, 50): outside hit radius, 3 units away
    points, kind = registry.commit(424, 300, W, H)
    assert kind == ChangeKind.IGNORED
    assert points == (Point(50, 50),)


def test_dedup_is_strict():
    registry = PointRegistry(hit_radius=5, dedup_distance=5)
    registry.commit(400, 300, W, H)           # (50, 50)
    # 40 px right → (55, 50): exactly 5 units, not closer than 5
    _, kind = registry.commit(440, 300, W, H)
    assert kind == ChangeKind.ADDED


def test_max_points_ignored():
    registry = PointRegistry(max_points=2)
    registry.commit(100, 100, W, H)
    registry.commit(400, 300, W, H)
    points, kind = registry.commit(700, 500, W, H)
    assert kind == ChangeKind.IGNORED
    assert len(points) == 2
    # Removal still works at the limit
    _, kind = registry.commit(100, 100, W, H)
    assert kind == ChangeKind.REMOVED


def test_id_collision_is_noop():
    registry = PointRegistry(hit_radius=0.5, dedup_distance=0)
    registry.commit(400, 300, W, H)
    # Different device position, same normalized cell (50, 50)
    points, kind = registry.commit(402, 301, W, H)
    assert kind == ChangeKind.IGNORED
    assert points == (Point(50, 50),)


def test_points_replaced_wholesale(registry):
    first, _ = registry.commit(100, 100, W, H)
    second, _ = registry.commit(700, 500, W, H)
    assert first is not second
    assert first == (Point(13, 17),)
    assert isinstance(second, tuple)


# ============================================================================
# NOTIFICATIONS
# ============================================================================

def test_subscribers_notified_on_changes_only(registry, events):
    registry.commit(100, 100, W, H)
    registry.commit(110, 100, W, H)    # removes
    registry.commit(-5, 0, W, H)       # ignored
    kinds = [kind for _, kind in events]
    assert kinds == [ChangeKind.ADDED, ChangeKind.REMOVED]
    assert events[0][0] == (Point(13, 17),)
    assert events[1][0] == ()


def test_unsubscribe(registry):
    seen = []
    unsubscribe = registry.subscribe(lambda p, k: seen.append(k))
    registry.commit(100, 100, W, H)
    unsubscribe()
    unsubscribe()
    registry.commit(700, 500, W, H)
    assert seen == [ChangeKind.ADDED]


def test_failing_listener_does_not_block_others(registry, events):
    def broken(points, kind):
        raise RuntimeError("listener failed")

    registry.subscribe(broken)
    points, kind = registry.commit(100, 100, W, H)
    assert kind == ChangeKind.ADDED
    assert registry.points == points
    assert len(events) == 1


def test_replace_and_clear(registry, events):
    pts = registry.replace([(10, 10), (20, 20), (10, 10)])
    assert [p.id for p in pts] == ["10-10", "20-20"]
    registry.clear()
    assert registry.points == ()
    assert [k for _, k in events] == [ChangeKind.ADDED, ChangeKind.CLEARED]


def test_replace_respects_max_points():
    registry = PointRegistry(max_points=1)
    assert registry.replace([(1, 1), (50, 50)]) == (Point(1, 1),)


# ============================================================================
# PREVIEW
# ============================================================================

def test_preview_never_committed(registry, events):
    registry.set_preview(200, 150)
    assert registry.preview == (200, 150)
    assert registry.points == ()
    registry.clear_preview()
    assert registry.preview is None
    assert events == []


def test_clear_drops_preview(registry):
    registry.set_preview(1, 1)
    registry.clear()
    assert registry.preview is None


def test_from_config():
    cfg = HeatmapConfigV1(hit_radius=12, dedup_distance=2, max_points=7)
    registry = PointRegistry.from_config(cfg)
    assert (registry.hit_radius, registry.dedup_distance, registry.max_points) == (12, 2, 7)
