import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple, Union

import numpy as np
from PIL import Image

from statbar.colors import RgbTuple


class _OutOfBounds(object):
    def __repr__(self) -> str:
        return "OUT_OF_BOUNDS"

    def __bool__(self) -> bool:
        return False


# Returned by get_color for coordinates outside the raster; never matches any color.
OUT_OF_BOUNDS = _OutOfBounds()


@dataclass(frozen=True)
class RasterBuffer:
    """
    Read-only view over decoded pixels: uint8 array of shape (height, width, 3|4), origin top-left.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        arr = self.pixels
        if not isinstance(arr, np.ndarray):
            raise TypeError("pixels must be a numpy.ndarray")
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError("pixels must have shape (height, width, 3|4), got {}".format(arr.shape))
        if arr.shape[0] <= 0 or arr.shape[1] <= 0:
            raise ValueError("raster must be non-empty")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        else:
            arr = arr.copy()
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)

    @classmethod
    def from_image(cls, image: Image.Image) -> "RasterBuffer":
        if not isinstance(image, Image.Image):
            raise TypeError("image must be a PIL.Image.Image")
        return cls(np.asarray(image.convert("RGB"), dtype=np.uint8))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def band(self, x0: int, x1: int, y0: int, y1: int) -> np.ndarray:
        """
        Pixels of the half-open rectangle [x0, x1) x [y0, y1), clipped to the raster.

        Out-of-range parts are dropped, so the result may be empty (shape (0, 0, C) or similar).
        """
        cx0 = max(0, int(x0))
        cx1 = min(self.width, int(x1))
        cy0 = max(0, int(y0))
        cy1 = min(self.height, int(y1))
        if cx1 <= cx0 or cy1 <= cy0:
            return self.pixels[0:0, 0:0, :]
        return self.pixels[cy0:cy1, cx0:cx1, :]

    def column(self, x: int, y0: int, y1: int) -> np.ndarray:
        """In-bounds pixels of column x for rows [y0, y1); shape (n, C)."""
        return self.band(x, x + 1, y0, y1).reshape(-1, self.pixels.shape[2])

    def row(self, y: int, x0: int, x1: int) -> np.ndarray:
        """In-bounds pixels of row y for columns [x0, x1); shape (n, C)."""
        return self.band(x0, x1, y, y + 1).reshape(-1, self.pixels.shape[2])


def get_color(buffer: RasterBuffer, x: float, y: float) -> Union[RgbTuple, _OutOfBounds]:
    """Color at (floor(x), floor(y)), or OUT_OF_BOUNDS outside the raster."""
    fx = math.floor(x)
    fy = math.floor(y)
    if fx < 0 or fx >= buffer.width or fy < 0 or fy >= buffer.height:
        return OUT_OF_BOUNDS
    px = buffer.pixels[fy, fx]
    return (int(px[0]), int(px[1]), int(px[2]))


def first_hit(candidates: Iterable[int], predicate: Callable[[int], bool]) -> Optional[int]:
    """First coordinate in `candidates` for which `predicate` holds, or None."""
    for c in candidates:
        if predicate(c):
            return int(c)
    return None
