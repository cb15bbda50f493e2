from typing import Sequence, Tuple, Union

import numpy as np


RgbTuple = Tuple[int, int, int]


def normalize_metric(metric: str) -> str:
    m = str(metric or "").strip().lower()
    if m in ("manhattan", "l1"):
        return "manhattan"
    if m in ("euclidean", "euclidean-squared", "euclidean_squared", "l2"):
        return "euclidean"
    raise ValueError('metric must be one of: "manhattan", "euclidean" (got {!r})'.format(metric))


def as_rgb(value: Union[Sequence[int], np.ndarray]) -> RgbTuple:
    """Coerce a list/tuple/array of 3+ channel values into an (r, g, b) tuple of ints in [0, 255]."""
    if value is None or len(value) < 3:
        raise ValueError("color must have at least 3 channels: {!r}".format(value))
    out = []
    for v in list(value)[:3]:
        iv = int(round(float(v)))
        if iv < 0 or iv > 255:
            raise ValueError("color channel out of range [0, 255]: {!r}".format(value))
        out.append(iv)
    return (out[0], out[1], out[2])


def color_distance(a: RgbTuple, b: RgbTuple, metric: str = "manhattan") -> float:
    """
    Raw distance between two colors.

    manhattan: |dr| + |dg| + |db|
    euclidean: dr^2 + dg^2 + db^2 (squared, no sqrt)
    """
    m = normalize_metric(metric)
    dr = int(a[0]) - int(b[0])
    dg = int(a[1]) - int(b[1])
    db = int(a[2]) - int(b[2])
    if m == "manhattan":
        return float(abs(dr) + abs(dg) + abs(db))
    return float(dr * dr + dg * dg + db * db)


def distance_mask(pixels: np.ndarray, ref: RgbTuple, metric: str = "manhattan") -> np.ndarray:
    """Per-pixel distance of an (..., 3|4) uint8 array to `ref`, in the metric's units."""
    m = normalize_metric(metric)
    diff = pixels[..., :3].astype(np.int32) - np.asarray(ref[:3], dtype=np.int32)
    if m == "manhattan":
        return np.abs(diff).sum(axis=-1)
    return (diff * diff).sum(axis=-1)


class ColorMatcher(object):
    """
    "Close enough" test between a sampled color and a reference color.

    Manhattan matches when the summed channel difference is <= tolerance.
    Euclidean matches when the squared distance is < tolerance^2.
    Anything that is not a color (e.g. the OUT_OF_BOUNDS sentinel) never matches.
    """

    def __init__(self, tolerance: float, metric: str = "manhattan") -> None:
        tol = float(tolerance)
        if not np.isfinite(tol) or tol < 0:
            raise ValueError("tolerance must be a non-negative number")
        self.tolerance = tol
        self.metric = normalize_metric(metric)

    def __repr__(self) -> str:
        return "ColorMatcher(tolerance={:g}, metric={!r})".format(self.tolerance, self.metric)

    def _accept(self, dist):
        if self.metric == "manhattan":
            return dist <= self.tolerance
        return dist < self.tolerance * self.tolerance

    def matches(self, color: object, ref: RgbTuple) -> bool:
        if not isinstance(color, tuple) or len(color) < 3:
            return False
        return bool(self._accept(color_distance(color, ref, self.metric)))

    def mask(self, pixels: np.ndarray, ref: RgbTuple) -> np.ndarray:
        """Boolean mask (shape pixels.shape[:-1]) of pixels matching `ref`."""
        if pixels.size == 0:
            return np.zeros(pixels.shape[:-1], dtype=bool)
        return self._accept(distance_mask(pixels, ref, self.metric))

    def any_match(self, pixels: np.ndarray, ref: RgbTuple) -> bool:
        return bool(self.mask(pixels, ref).any())
