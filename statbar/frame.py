import logging
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from statbar.colors import ColorMatcher
from statbar.errors import FrameNotDetected
from statbar.profile import CalibrationProfile
from statbar.raster import RasterBuffer, first_hit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameBounds:
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return int(self.right - self.left)

    @property
    def height(self) -> int:
        return int(self.bottom - self.top)

    def x_at(self, ratio: float) -> int:
        return int(self.left + int(self.width * float(ratio)))

    def y_at(self, ratio: float) -> int:
        return int(self.top + int(self.height * float(ratio)))

    def to_dict(self) -> Dict[str, int]:
        return {"left": self.left, "top": self.top, "right": self.right, "bottom": self.bottom}


def frame_predicate(profile: CalibrationProfile) -> Callable[[np.ndarray], bool]:
    """
    Returns a test over a strip of pixels: True if any pixel belongs to the panel edge.

    border mode: a pixel matches border_color.
    background mode: a pixel stops matching the general background color.
    """
    if profile.frame_mode == "border":
        matcher = ColorMatcher(profile.border_tolerance, profile.metric)
        ref = profile.border_color
        return lambda px: px.size > 0 and matcher.any_match(px, ref)

    matcher = ColorMatcher(profile.background_tolerance, profile.metric)
    ref = profile.background_color
    return lambda px: px.size > 0 and bool((~matcher.mask(px, ref)).any())


def locate_frame(buffer: RasterBuffer, profile: CalibrationProfile) -> FrameBounds:
    """
    Find the panel bounding box by scanning inward from each image edge.

    A column/row counts as the edge as soon as one pixel in the scanned band qualifies.
    The right edge is only searched near the image's right side; when it is missing there,
    it is assumed at left + width * assumed_width_ratio.
    """
    W, H = buffer.width, buffer.height
    is_edge = frame_predicate(profile)

    band_y0 = int(H * profile.frame_scan_band[0])
    band_y1 = int(H * profile.frame_scan_band[1])

    left = first_hit(range(0, W), lambda x: is_edge(buffer.column(x, band_y0, band_y1)))
    if left is None:
        raise FrameNotDetected("Could not detect the left edge of the UI frame")

    right_stop = int(W * profile.right_scan_start_ratio)
    right = first_hit(range(W - 1, right_stop - 1, -1), lambda x: is_edge(buffer.column(x, band_y0, band_y1)))
    if right is None:
        right = min(left + int(W * profile.assumed_width_ratio), W - 1)
        logger.warning(
            "Right edge of the UI frame not found in x>=%d; assuming right=%d (assumed_width_ratio=%.3f)",
            right_stop,
            right,
            profile.assumed_width_ratio,
        )

    top = first_hit(range(0, H), lambda y: is_edge(buffer.row(y, left, right)))
    bottom = first_hit(range(H - 1, -1, -1), lambda y: is_edge(buffer.row(y, left, right)))

    if top is None or bottom is None or left >= right or top >= bottom:
        raise FrameNotDetected(
            "Could not detect the UI frame (left={}, top={}, right={}, bottom={})".format(left, top, right, bottom)
        )

    frame = FrameBounds(left=int(left), top=int(top), right=int(right), bottom=int(bottom))
    logger.debug("UI frame: %s", frame.to_dict())
    return frame
