"""Test colour parsing, gradient presets and alpha conversions.

Tests for src.utils.color:
    - parse_color notations (hex, hex+alpha, rgb(), rgba(), sequences)
    - Color range validation
    - Gradient presets (stop counts, endpoint colours)
    - stops_to_arrays ordering
    - premultiply / unpremultiply roundtrip

Test cases:
    - test_parse_hex()
    - test_parse_rgba_string()
    - test_parse_sequence()
    - test_parse_rejects_garbage()
    - test_color_range_validation()
    - test_presets_shapes()
    - test_unknown_preset()
    - test_stops_to_arrays_sorts()
    - test_premultiply_roundtrip()

Run:
    pytest tests/test_color.py -v
"""

import numpy as np
import pytest

from src.utils.color import (
    GRADIENT_PRESETS,
    Color,
    GradientStop,
    get_preset,
    parse_color,
    premultiply,
    stops_to_arrays,
    unpremultiply,
)


# ============================================================================
# PARSING
# ============================================================================

def test_parse_hex():
    assert parse_color('#ff0000') == Color(255, 0, 0, 1.0)
    assert parse_color('00ff00') == Color(0, 255, 0, 1.0)
    c = parse_color('#0000ff80')
    assert (c.r, c.g, c.b) == (0, 0, 255)
    assert c.a == pytest.approx(128 / 255)


def test_parse_rgba_string():
    assert parse_color('rgba(255, 0, 0, 0.8)') == Color(255, 0, 0, 0.8)
    assert parse_color('rgb(10,20,30)') == Color(10, 20, 30, 1.0)


def test_parse_sequence():
    assert parse_color([1, 2, 3]) == Color(1, 2, 3)
    assert parse_color((1, 2, 3, 0.5)) == Color(1, 2, 3, 0.5)


def test_parse_passthrough():
    c = Color(4, 5, 6, 0.25)
    assert parse_color(c) is c


@pytest.mark.parametrize("bad", ['red', '#12345', 'rgba(1,2)', [1, 2], [1, 2, 3, 4, 5]])
def test_parse_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_color(bad)


def test_color_range_validation():
    with pytest.raises(ValueError):
        Color(256, 0, 0)
    with pytest.raises(ValueError):
        Color(0, -1, 0)
    with pytest.raises(ValueError):
        Color(0, 0, 0, 1.5)


def test_as_rgba8():
    assert Color(255, 0, 0, 0.8).as_rgba8() == (255, 0, 0, 204)
    assert Color(1, 2, 3).as_rgba8() == (1, 2, 3, 255)


# ============================================================================
# PRESETS
# ============================================================================

def test_presets_shapes():
    assert len(GRADIENT_PRESETS['classic']) == 5
    assert len(GRADIENT_PRESETS['deckgl']) == 4
    assert len(GRADIENT_PRESETS['fire']) == 2

    classic = GRADIENT_PRESETS['classic']
    assert classic[0].color == Color(0, 0, 255)
    assert classic[-1].color == Color(255, 0, 0)

    deckgl = GRADIENT_PRESETS['deckgl']
    assert deckgl[0].color.a == 0.0
    assert deckgl[1].color == Color(0, 0, 255)

    for name, stops in GRADIENT_PRESETS.items():
        thresholds = [s.threshold for s in stops]
        assert thresholds == sorted(thresholds), name
        assert thresholds[0] == 0.0 and thresholds[-1] == 1.0, name


def test_get_preset_returns_copy():
    stops = get_preset('fire')
    stops.append(GradientStop(0.5, Color(0, 0, 0)))
    assert len(get_preset('fire')) == 2


def test_unknown_preset():
    with pytest.raises(ValueError, match="Unknown gradient preset"):
        get_preset('plasma')


def test_stops_to_arrays_sorts():
    stops = [
        GradientStop(1.0, Color(255, 0, 0, 0.5)),
        GradientStop(0.0, Color(0, 0, 255)),
    ]
    thresholds, rgb, alpha = stops_to_arrays(stops)
    np.testing.assert_array_equal(thresholds, [0.0, 1.0])
    np.testing.assert_array_equal(rgb, [[0, 0, 255], [255, 0, 0]])
    np.testing.assert_array_equal(alpha, [1.0, 0.5])


def test_stops_to_arrays_empty():
    with pytest.raises(ValueError):
        stops_to_arrays([])


# ============================================================================
# ALPHA CONVERSIONS
# ============================================================================

def test_premultiply_roundtrip():
    rng = np.random.default_rng(3)
    rgba = rng.uniform(0.0, 1.0, size=(8, 8, 4)).astype(np.float32)
    rgba[..., 3] = np.clip(rgba[..., 3], 0.1, 1.0)
    back = unpremultiply(premultiply(rgba))
    np.testing.assert_allclose(back, rgba, atol=1e-6)


def test_unpremultiply_zero_alpha_is_black():
    rgba = np.array([[[0.3, 0.2, 0.1, 0.0]]], dtype=np.float32)
    out = unpremultiply(rgba)
    np.testing.assert_array_equal(out[0, 0], [0.0, 0.0, 0.0, 0.0])


def test_premultiply_does_not_mutate():
    rgba = np.full((2, 2, 4), 0.5, dtype=np.float32)
    premultiply(rgba)
    assert np.all(rgba == 0.5)
