import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from statbar.colors import ColorMatcher
from statbar.errors import AxisCalibrationFailed
from statbar.frame import FrameBounds
from statbar.profile import CalibrationProfile
from statbar.raster import RasterBuffer, first_hit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AxisCalibration:
    """Shared horizontal scale: zero_x is 0%, full_x is 100%. Sources are "line", "track" or "ratio"."""

    zero_x: int
    full_x: int
    zero_source: str = "line"
    full_source: str = "line"

    @property
    def length(self) -> int:
        return int(self.full_x - self.zero_x)

    def to_dict(self) -> Dict[str, Union[int, str]]:
        return {
            "zero_x": self.zero_x,
            "full_x": self.full_x,
            "zero_source": self.zero_source,
            "full_source": self.full_source,
        }


def representative_row(frame: FrameBounds, profile: CalibrationProfile) -> int:
    """Row halfway between the first two bars' expected rows (the gap between them)."""
    bars = profile.bars
    return (frame.y_at(bars[0].vertical_ratio) + frame.y_at(bars[1].vertical_ratio)) // 2


def find_zero_line(buffer: RasterBuffer, frame: FrameBounds, profile: CalibrationProfile) -> Optional[int]:
    """Right-to-left scan around the representative row for the left border line of the bars."""
    matcher = ColorMatcher(profile.zero_line_tolerance, profile.metric)
    y = representative_row(frame, profile)
    r = profile.bar_scan_y_range
    x_start = frame.x_at(profile.zero_line_scan_x[1])
    x_stop = frame.x_at(profile.zero_line_scan_x[0])
    return first_hit(
        range(x_start, x_stop - 1, -1),
        lambda x: matcher.any_match(buffer.column(x, y - r, y + r + 1), profile.zero_line_color),
    )


def find_full_line(buffer: RasterBuffer, frame: FrameBounds, profile: CalibrationProfile) -> Optional[int]:
    """Right-to-left scan for the 100% line inside the configured window."""
    matcher = ColorMatcher(profile.full_line_tolerance, profile.metric)
    x_start = frame.x_at(profile.full_line_scan_x[1])
    x_stop = frame.x_at(profile.full_line_scan_x[0])
    y0 = frame.y_at(profile.full_line_scan_y[0])
    y1 = frame.y_at(profile.full_line_scan_y[1])
    return first_hit(
        range(x_start, x_stop - 1, -1),
        lambda x: matcher.any_match(buffer.column(x, y0, y1 + 1), profile.full_line_color),
    )


def find_track_end(
    buffer: RasterBuffer, frame: FrameBounds, profile: CalibrationProfile, zero_x: int
) -> Optional[int]:
    """
    Walk right from zero_x along the first bar's row while the columns still show the track
    (or the bar's own fill); the last such column is the end of the rail.
    """
    track = ColorMatcher(profile.track_tolerance, profile.metric)
    fill = ColorMatcher(profile.fill_tolerance, profile.metric)
    bar = profile.bars[0]
    y = frame.y_at(bar.vertical_ratio)
    r = profile.bar_scan_y_range
    x_end = frame.x_at(profile.full_line_scan_x[1])

    last: Optional[int] = None
    for x in range(int(zero_x) + 1, x_end + 1):
        col = buffer.column(x, y - r, y + r + 1)
        if col.size == 0:
            break
        if not (track.any_match(col, profile.track_color) or fill.any_match(col, bar.fill_color)):
            break
        last = x
    return last


def ratio_axis(frame: FrameBounds, profile: CalibrationProfile) -> AxisCalibration:
    return AxisCalibration(
        zero_x=frame.x_at(profile.rail_start_ratio),
        full_x=frame.x_at(profile.rail_end_ratio),
        zero_source="ratio",
        full_source="ratio",
    )


def calibrate_axis(buffer: RasterBuffer, frame: FrameBounds, profile: CalibrationProfile) -> AxisCalibration:
    """
    Determine zero_x / full_x. Color-line detection first (unless axis_strategy="ratio"),
    falling back per side to the frame ratios. Raises AxisCalibrationFailed unless full_x > zero_x.
    """
    if profile.axis_strategy == "ratio":
        axis = ratio_axis(frame, profile)
    else:
        fallback = ratio_axis(frame, profile)

        zero_x = find_zero_line(buffer, frame, profile)
        zero_source = "line"
        if zero_x is None:
            logger.warning(
                "Zero line not detected; using rail_start_ratio=%.3f (x=%d)", profile.rail_start_ratio, fallback.zero_x
            )
            zero_x = fallback.zero_x
            zero_source = "ratio"

        if profile.full_line_mode == "track":
            full_x = find_track_end(buffer, frame, profile, zero_x)
            full_source = "track"
        else:
            full_x = find_full_line(buffer, frame, profile)
            full_source = "line"
        if full_x is None or full_x <= zero_x:
            logger.warning(
                "100%% line not detected (got %s); using rail_end_ratio=%.3f (x=%d)",
                full_x,
                profile.rail_end_ratio,
                fallback.full_x,
            )
            full_x = fallback.full_x
            full_source = "ratio"

        axis = AxisCalibration(zero_x=int(zero_x), full_x=int(full_x), zero_source=zero_source, full_source=full_source)

    if axis.full_x <= axis.zero_x:
        raise AxisCalibrationFailed(
            "Axis calibration failed: full_x={} is not right of zero_x={}".format(axis.full_x, axis.zero_x),
            zero_x=axis.zero_x,
            full_x=axis.full_x,
        )
    logger.debug("Axis: %s", axis.to_dict())
    return axis
