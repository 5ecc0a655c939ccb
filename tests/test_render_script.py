"""Test the render_heatmap.py CLI end to end.

Test cases:
    - test_render_demo_points()
    - test_render_with_background_and_container()
    - test_simple_override()
    - test_missing_points_file_returns_error()
    - test_non_positive_size_returns_error()
    - test_surface_context_scoped_to_render()

Run:
    pytest tests/test_render_script.py -v
"""

import importlib.util
import logging
import sys

import numpy as np
import pytest

from src.utils import fs, logging_config, validators

SCRIPT = validators.PROJECT_ROOT / "scripts" / "render_heatmap.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("render_heatmap", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module
    root = logging.getLogger()
    for h in list(logging_config._installed_handlers):
        root.removeHandler(h)
        h.close()
    logging_config._installed_handlers = []
    logging_config.pop_context()


def _run(script, monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["render_heatmap.py", *map(str, args)])
    return script.main()


def test_render_demo_points(script, monkeypatch, tmp_path):
    assert _run(script, monkeypatch, "--output_dir", tmp_path, "--size", 160, 120) == 0

    overlay = fs.load_image(tmp_path / "overlay.png", mode="RGBA")
    assert overlay.shape == (120, 160, 4)
    assert overlay[..., 3].max() > 0
    assert not (tmp_path / "composite.png").exists()

    meta = fs.load_yaml(tmp_path / "metadata.yaml")
    assert meta['mode'] == "heatmap"
    assert meta['surface'] == [160, 120]
    assert meta['point_count'] == len(validators.load_points_file(script.DEFAULT_POINTS).points)


def test_render_with_background_and_container(script, monkeypatch, tmp_path):
    bg_path = tmp_path / "bg.png"
    fs.atomic_save_image(np.full((50, 100, 3), 200, dtype=np.uint8), bg_path)
    out = tmp_path / "out"

    code = _run(script, monkeypatch, "--background", bg_path, "--container", 300, 300,
                "--output_dir", out)
    assert code == 0
    composite = fs.load_image(out / "composite.png")
    # 2:1 background fitted into 300×300 → 300×150
    assert composite.shape == (150, 300, 3)


def test_simple_override(script, monkeypatch, tmp_path):
    pts = tmp_path / "pts.yaml"
    fs.atomic_yaml_dump({'schema': 'points.v1', 'points': [{'x': 50, 'y': 50}]}, pts)
    assert _run(script, monkeypatch, "--points", pts, "--simple", "--size", 100, 100,
                "--output_dir", tmp_path) == 0
    meta = fs.load_yaml(tmp_path / "metadata.yaml")
    assert meta['mode'] == "simple"
    overlay = fs.load_image(tmp_path / "overlay.png", mode="RGBA")
    assert tuple(overlay[50, 50]) == (255, 0, 0, 204)


def test_missing_points_file_returns_error(script, monkeypatch, tmp_path):
    assert _run(script, monkeypatch, "--points", tmp_path / "nope.yaml", "--output_dir", tmp_path) == 1


def test_bad_preset_returns_error(script, monkeypatch, tmp_path):
    assert _run(script, monkeypatch, "--preset", "plasma", "--output_dir", tmp_path) == 1


@pytest.mark.parametrize("w,h", [(0, 0), (100, 0), (-5, 50)])
def test_non_positive_size_returns_error(script, monkeypatch, tmp_path, w, h):
    assert _run(script, monkeypatch, "--size", w, h, "--output_dir", tmp_path) == 1
    assert not (tmp_path / "overlay.png").exists()


def test_surface_context_scoped_to_render(script, monkeypatch, tmp_path):
    seen = {}
    original = script.Compositor.render

    def spy(self, *args, **kwargs):
        seen.update(logging_config.get_context())
        return original(self, *args, **kwargs)

    monkeypatch.setattr(script.Compositor, "render", spy)
    assert _run(script, monkeypatch, "--size", 160, 120, "--output_dir", tmp_path) == 0
    assert seen['surface'] == "160x120"
    assert 'surface' not in logging_config.get_context()
    # metadata.yaml goes through the text writer
    assert (tmp_path / "metadata.yaml").read_text(encoding='utf-8').startswith("mode: heatmap")
