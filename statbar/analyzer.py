import json
import logging
import os
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional

from PIL import Image

from statbar.axis import AxisCalibration, calibrate_axis
from statbar.bars import BarMeasurement, BarRow, locate_bars, measure_bar
from statbar.errors import AnalysisError
from statbar.frame import FrameBounds, locate_frame
from statbar.profile import CalibrationProfile, default_profile, profile_to_dict
from statbar.raster import RasterBuffer

logger = logging.getLogger(__name__)

UNDETERMINED_TEXT = "N/A"


class AnalysisResult(Mapping):
    """
    Read-only mapping bar name -> percentage (int 0..100, or None when undetermined),
    in the profile's bar order. Also carries the geometry it was computed from.
    """

    def __init__(
        self,
        measurements: List[BarMeasurement],
        frame: FrameBounds,
        axis: AxisCalibration,
        rows: List[BarRow],
    ) -> None:
        self._values: Dict[str, Optional[int]] = {m.name: m.percentage for m in measurements}
        if len(self._values) != len(measurements):
            raise ValueError("duplicate bar names in measurements")
        self.measurements = list(measurements)
        self.frame = frame
        self.axis = axis
        self.rows = list(rows)

    def __getitem__(self, name: str) -> Optional[int]:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return "AnalysisResult({!r})".format(self._values)

    def to_lines(self, labels: Optional[Dict[str, str]] = None) -> List[str]:
        lines = []
        for name, pct in self._values.items():
            shown = (labels or {}).get(name, name)
            value = UNDETERMINED_TEXT if pct is None else "{}%".format(int(pct))
            lines.append("{}: {}".format(shown, value))
        return lines

    def to_text(self, labels: Optional[Dict[str, str]] = None) -> str:
        """Newline-joined plain text, suitable for copying."""
        return "\n".join(self.to_lines(labels))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "values": dict(self._values),
            "frame": self.frame.to_dict(),
            "axis": self.axis.to_dict(),
            "rows": [r.to_dict() for r in self.rows],
            "measurements": [m.to_dict() for m in self.measurements],
        }


def _write_debug(debug_dir: str, payload: Dict[str, Any]) -> None:
    os.makedirs(debug_dir, exist_ok=True)
    path = os.path.join(debug_dir, "analysis_debug.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    logger.debug("Wrote %s", path)


def analyze(
    buffer: RasterBuffer,
    profile: Optional[CalibrationProfile] = None,
    *,
    debug_dir: Optional[str] = None,
) -> AnalysisResult:
    """
    One full pass over a raster: frame -> axis -> bar rows -> per-bar measurement.

    Frame, axis and row failures raise AnalysisError subclasses and produce no partial result.
    With `debug_dir`, the intermediate geometry (or the error) is written to analysis_debug.json.
    """
    if not isinstance(buffer, RasterBuffer):
        raise TypeError("buffer must be a RasterBuffer")
    profile = profile or default_profile()

    debug: Dict[str, Any] = {
        "image_size": [buffer.width, buffer.height],
        "profile": profile_to_dict(profile),
    }
    try:
        frame = locate_frame(buffer, profile)
        debug["frame"] = frame.to_dict()

        axis = calibrate_axis(buffer, frame, profile)
        debug["axis"] = axis.to_dict()

        rows = locate_bars(buffer, frame, axis, profile)
        debug["rows"] = [r.to_dict() for r in rows]

        measurements = [measure_bar(buffer, row, axis, profile.bar(row.name).fill_color, profile) for row in rows]
        debug["measurements"] = [m.to_dict() for m in measurements]
    except AnalysisError as e:
        debug["error"] = {"type": type(e).__name__, "message": str(e), "hint": e.hint}
        if debug_dir:
            _write_debug(debug_dir, debug)
        raise

    result = AnalysisResult(measurements, frame=frame, axis=axis, rows=rows)
    debug["values"] = dict(result)
    if debug_dir:
        _write_debug(debug_dir, debug)
    logger.info("Analysis result: %s", dict(result))
    return result


def analyze_image(
    image: Image.Image,
    profile: Optional[CalibrationProfile] = None,
    *,
    debug_dir: Optional[str] = None,
) -> AnalysisResult:
    return analyze(RasterBuffer.from_image(image), profile, debug_dir=debug_dir)
