import numpy as np
import pytest

from statbar.colors import ColorMatcher, as_rgb, color_distance, distance_mask, normalize_metric
from statbar.raster import OUT_OF_BOUNDS


def test_color_distance_metrics():
    assert color_distance((0, 0, 0), (1, 2, 3)) == 6
    assert color_distance((0, 0, 0), (1, 2, 3), "euclidean") == 14
    assert color_distance((1, 2, 3), (0, 0, 0)) == color_distance((0, 0, 0), (1, 2, 3))


def test_manhattan_tolerance_is_inclusive():
    assert ColorMatcher(6).matches((0, 0, 0), (1, 2, 3))
    assert not ColorMatcher(5).matches((0, 0, 0), (1, 2, 3))


def test_euclidean_tolerance_is_strict():
    assert not ColorMatcher(5, "euclidean").matches((0, 0, 0), (3, 4, 0))
    assert ColorMatcher(5.01, "euclidean").matches((0, 0, 0), (3, 4, 0))


def test_identical_colors_always_match():
    for metric in ("manhattan", "euclidean"):
        assert ColorMatcher(0.5, metric).matches((10, 20, 30), (10, 20, 30))


def test_out_of_bounds_never_matches():
    assert not ColorMatcher(1000).matches(OUT_OF_BOUNDS, (0, 0, 0))
    assert not ColorMatcher(1000).matches(None, (0, 0, 0))


def test_metric_aliases_and_rejects_unknown():
    assert normalize_metric("L1") == "manhattan"
    assert normalize_metric("euclidean-squared") == "euclidean"
    with pytest.raises(ValueError):
        normalize_metric("chebyshev")


def test_negative_tolerance_rejected():
    with pytest.raises(ValueError):
        ColorMatcher(-1)


def test_mask_and_any_match():
    px = np.zeros((2, 3, 3), dtype=np.uint8)
    px[1, 2] = (200, 200, 200)
    m = ColorMatcher(10).mask(px, (200, 200, 200))
    assert m.shape == (2, 3)
    assert m.sum() == 1
    assert ColorMatcher(10).any_match(px, (200, 200, 200))
    assert not ColorMatcher(10).any_match(px[:0], (200, 200, 200))


def test_distance_mask_ignores_alpha():
    px = np.array([[[10, 10, 10, 0]]], dtype=np.uint8)
    assert distance_mask(px, (10, 10, 10)).tolist() == [[0]]


def test_as_rgb():
    assert as_rgb([1, 2, 3, 255]) == (1, 2, 3)
    assert as_rgb(np.array([4.4, 5.6, 6])) == (4, 6, 6)
    with pytest.raises(ValueError):
        as_rgb([300, 0, 0])
    with pytest.raises(ValueError):
        as_rgb([1, 2])
