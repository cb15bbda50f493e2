import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from statbar.axis import AxisCalibration
from statbar.colors import ColorMatcher, RgbTuple, color_distance
from statbar.errors import BarRowsUndetermined
from statbar.frame import FrameBounds
from statbar.profile import CalibrationProfile
from statbar.raster import RasterBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarRow:
    name: str
    y: int
    source: str = "color"

    def to_dict(self) -> Dict[str, Union[int, str]]:
        return {"name": self.name, "y": self.y, "source": self.source}


@dataclass(frozen=True)
class BarMeasurement:
    name: str
    y: int
    edge_x: Optional[int]
    percentage: Optional[int]

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "y": self.y, "edge_x": self.edge_x, "percentage": self.percentage}


@dataclass
class _RowCandidate:
    first_y: int
    last_y: int
    # Best squared distance per bar name over the candidate's matched rows.
    distances: Dict[str, float] = field(default_factory=dict)

    @property
    def y(self) -> int:
        return (self.first_y + self.last_y) // 2


def _row_average(buffer: RasterBuffer, y: int, x0: int, x1: int) -> Optional[RgbTuple]:
    px = buffer.row(y, x0, x1)
    if px.size == 0:
        return None
    mean = px[:, :3].astype(np.float64).mean(axis=0)
    return (int(round(mean[0])), int(round(mean[1])), int(round(mean[2])))


def _collect_row_candidates(
    buffer: RasterBuffer, frame: FrameBounds, axis: AxisCalibration, profile: CalibrationProfile
) -> List[_RowCandidate]:
    limit = float(profile.row_match_distance) ** 2
    x0 = axis.zero_x + profile.row_sample_offset
    x1 = x0 + profile.row_sample_width
    y_start = frame.y_at(profile.row_scan_y[0])
    y_end = frame.y_at(profile.row_scan_y[1])

    candidates: List[_RowCandidate] = []
    for y in range(y_start, y_end + 1):
        avg = _row_average(buffer, y, x0, x1)
        if avg is None:
            continue
        dists = {}
        for bar in profile.bars:
            d = color_distance(avg, bar.fill_color, "euclidean")
            if d < limit:
                dists[bar.name] = d
        if not dists:
            continue

        cur = candidates[-1] if candidates else None
        if cur is not None and y - cur.first_y < profile.min_row_separation:
            # Same bar: its anti-aliased edge rows or body.
            cur.last_y = y
            for name, d in dists.items():
                if name not in cur.distances or d < cur.distances[name]:
                    cur.distances[name] = d
            continue
        candidates.append(_RowCandidate(first_y=y, last_y=y, distances=dists))
    return candidates


def _assign_rows(candidates: List[_RowCandidate], profile: CalibrationProfile) -> Dict[str, int]:
    """Greedy nearest-available matching: each bar and each candidate is used at most once."""
    pairs: List[Tuple[float, int, int, str]] = []
    order = {name: i for i, name in enumerate(profile.bar_names)}
    for ci, cand in enumerate(candidates):
        for name, d in cand.distances.items():
            pairs.append((d, ci, order[name], name))
    pairs.sort()

    assigned: Dict[str, int] = {}
    used: set = set()
    for _d, ci, _bi, name in pairs:
        if name in assigned or ci in used:
            continue
        assigned[name] = candidates[ci].y
        used.add(ci)
    return assigned


def locate_bars_by_ratio(frame: FrameBounds, profile: CalibrationProfile) -> List[BarRow]:
    return [BarRow(name=b.name, y=frame.y_at(b.vertical_ratio), source="ratio") for b in profile.bars]


def locate_bars(
    buffer: RasterBuffer, frame: FrameBounds, axis: AxisCalibration, profile: CalibrationProfile
) -> List[BarRow]:
    """
    Assign a row to every bar, in profile order.

    row_strategy="color": rows are found by averaging a short window just right of zero_x and
    matching it against the bars' fill colors (squared Euclidean distance). Raises
    BarRowsUndetermined when not every bar gets a row.
    row_strategy="ratio": fixed vertical ratios of the frame, independent of pixel content.
    """
    if profile.row_strategy == "ratio":
        rows = locate_bars_by_ratio(frame, profile)
        logger.debug("Bar rows (ratio): %s", [r.to_dict() for r in rows])
        return rows

    candidates = _collect_row_candidates(buffer, frame, axis, profile)
    assigned = _assign_rows(candidates, profile)
    logger.debug(
        "Row candidates: %s; assigned: %s",
        [(c.first_y, c.last_y, sorted(c.distances)) for c in candidates],
        assigned,
    )
    if len(assigned) < len(profile.bars):
        missing = [n for n in profile.bar_names if n not in assigned]
        logger.warning("Bar rows not found for: %s", ", ".join(missing))
        raise BarRowsUndetermined(found=len(assigned), total=len(profile.bars))
    return [BarRow(name=name, y=int(assigned[name]), source="color") for name in profile.bar_names]


def compute_percentage(edge_x: int, axis: AxisCalibration, profile: CalibrationProfile) -> int:
    """
    Map a right edge to a percentage of the calibrated axis, applying the profile's offset,
    rounding mode and clamping. The result is always an int in [0, 100].
    """
    if axis.full_x <= axis.zero_x:
        raise ValueError("axis must satisfy full_x > zero_x")
    pct = (float(edge_x) - float(axis.zero_x)) / float(axis.full_x - axis.zero_x) * 100.0

    if profile.offset_stage == "before_clamp":
        pct = min(100.0, max(0.0, pct + profile.percentage_offset))
    else:
        pct = min(100.0, max(0.0, pct)) + profile.percentage_offset

    if profile.rounding == "ceil":
        value = math.ceil(pct)
    elif profile.rounding == "floor":
        value = math.floor(pct)
    else:
        value = math.floor(pct + 0.5)
    return int(min(100, max(0, value)))


def find_bar_edge(
    buffer: RasterBuffer, y: int, axis: AxisCalibration, fill_color: RgbTuple, profile: CalibrationProfile
) -> Tuple[Optional[int], bool]:
    """
    Rightmost filled column of the bar on row y, scanning from zero_x + 1.

    Returns (edge_x, sampled): edge_x is None when no column was filled; sampled is False when
    every sampled pixel was outside the raster.
    """
    matcher = ColorMatcher(profile.fill_tolerance, profile.metric)
    r = profile.bar_scan_y_range
    x_end = axis.full_x + profile.scan_margin

    edge: Optional[int] = None
    gap = 0
    sampled = False
    for x in range(axis.zero_x + 1, x_end + 1):
        col = buffer.column(x, y - r, y + r + 1)
        if col.size == 0:
            if edge is not None:
                gap += 1
                if gap > profile.gap_tolerance:
                    break
            continue
        sampled = True
        if matcher.any_match(col, fill_color) or matcher.any_match(col, profile.edge_color):
            edge = x
            gap = 0
        elif edge is not None:
            gap += 1
            if gap > profile.gap_tolerance:
                break
    return edge, sampled


def measure_bar(
    buffer: RasterBuffer, row: BarRow, axis: AxisCalibration, fill_color: RgbTuple, profile: CalibrationProfile
) -> BarMeasurement:
    edge, sampled = find_bar_edge(buffer, row.y, axis, fill_color, profile)
    if not sampled:
        logger.warning("Bar %s: row y=%d has no pixels inside the image; percentage undetermined", row.name, row.y)
        return BarMeasurement(name=row.name, y=row.y, edge_x=None, percentage=None)
    if edge is None:
        logger.debug("Bar %s: no filled pixels right of zero_x=%d", row.name, axis.zero_x)
        return BarMeasurement(name=row.name, y=row.y, edge_x=int(axis.zero_x), percentage=0)
    pct = compute_percentage(edge, axis, profile)
    logger.debug("Bar %s: y=%d edge_x=%d zero_x=%d full_x=%d -> %d%%", row.name, row.y, edge, axis.zero_x, axis.full_x, pct)
    return BarMeasurement(name=row.name, y=row.y, edge_x=int(edge), percentage=pct)
