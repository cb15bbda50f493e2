import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from statbar.colors import RgbTuple, normalize_metric, as_rgb

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "STATBAR_PROFILE"

FRAME_MODES = ("border", "background")
AXIS_STRATEGIES = ("color", "ratio")
FULL_LINE_MODES = ("line", "track")
ROW_STRATEGIES = ("color", "ratio")
OFFSET_STAGES = ("before_clamp", "after_clamp")
ROUNDING_MODES = ("round", "ceil", "floor")

BAR_COUNT = 6


def _maybe_load_dotenv() -> Optional[str]:
    """Best-effort `.env` loader so STATBAR_PROFILE can live next to the screenshots.

    Returns the resolved `.env` path if loaded.
    """

    try:
        from dotenv import find_dotenv, load_dotenv  # type: ignore
    except Exception:
        return None

    dotenv_path = find_dotenv(usecwd=True) or find_dotenv()
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)
        return str(dotenv_path)
    return None


@dataclass(frozen=True)
class BarSpec:
    name: str
    fill_color: RgbTuple
    vertical_ratio: float
    label: str = ""

    def __post_init__(self) -> None:
        name = str(self.name or "").strip()
        if not name:
            raise ValueError("bar name must be non-empty")
        ratio = float(self.vertical_ratio)
        if not (0.0 <= ratio <= 1.0):
            raise ValueError("vertical_ratio must be in [0, 1] for bar {!r}".format(name))
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "fill_color", as_rgb(self.fill_color))
        object.__setattr__(self, "vertical_ratio", ratio)
        object.__setattr__(self, "label", str(self.label or name))


DEFAULT_BARS: Tuple[BarSpec, ...] = (
    BarSpec("HP", (252, 227, 126), 0.085, "HP"),
    BarSpec("ATK", (214, 107, 135), 0.251, "攻撃"),
    BarSpec("MATK", (85, 134, 200), 0.417, "魔攻"),
    BarSpec("DEF", (237, 170, 118), 0.583, "防御"),
    BarSpec("MDEF", (140, 210, 236), 0.749, "魔防"),
    BarSpec("SPD", (113, 252, 211), 0.915, "敏捷"),
)

_COLOR_FIELDS = (
    "border_color",
    "background_color",
    "zero_line_color",
    "full_line_color",
    "track_color",
    "edge_color",
)
_RANGE_FIELDS = (
    "frame_scan_band",
    "zero_line_scan_x",
    "full_line_scan_x",
    "full_line_scan_y",
    "row_scan_y",
)
_TOLERANCE_FIELDS = (
    "border_tolerance",
    "background_tolerance",
    "zero_line_tolerance",
    "full_line_tolerance",
    "track_tolerance",
    "fill_tolerance",
    "row_match_distance",
)


def _check_choice(name: str, value: str, choices: Tuple[str, ...]) -> str:
    v = str(value or "").strip().lower()
    if v not in choices:
        raise ValueError("{} must be one of: {} (got {!r})".format(name, ", ".join(choices), value))
    return v


def _as_range(name: str, value: Any) -> Tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("{} must be a pair [start, end]".format(name))
    a, b = float(value[0]), float(value[1])
    if not (0.0 <= a <= b <= 1.0):
        raise ValueError("{} must satisfy 0 <= start <= end <= 1 (got {!r})".format(name, value))
    return (a, b)


@dataclass(frozen=True)
class CalibrationProfile:
    """
    Everything tuned to one UI skin: reference colors, tolerances, ratios and strategy choices.

    Ratios are relative to the detected frame (x to its width, y to its height), except
    frame_scan_band / right_scan_start_ratio / assumed_width_ratio which are relative to the image.
    """

    bars: Tuple[BarSpec, ...] = DEFAULT_BARS
    metric: str = "manhattan"

    # Frame
    frame_mode: str = "border"
    border_color: RgbTuple = (185, 185, 185)
    border_tolerance: float = 250
    background_color: RgbTuple = (79, 60, 31)
    background_tolerance: float = 60
    frame_scan_band: Tuple[float, float] = (0.1, 0.9)
    right_scan_start_ratio: float = 0.85
    assumed_width_ratio: float = 0.7

    # Axis
    axis_strategy: str = "color"
    zero_line_color: RgbTuple = (255, 255, 255)
    zero_line_tolerance: float = 250
    zero_line_scan_x: Tuple[float, float] = (0.05, 0.5)
    full_line_mode: str = "line"
    full_line_color: RgbTuple = (255, 255, 255)
    full_line_tolerance: float = 200
    full_line_scan_x: Tuple[float, float] = (0.5, 0.84)
    full_line_scan_y: Tuple[float, float] = (0.16, 0.5)
    track_color: RgbTuple = (69, 52, 26)
    track_tolerance: float = 60
    rail_start_ratio: float = 0.05
    rail_end_ratio: float = 0.77

    # Rows
    row_strategy: str = "ratio"
    row_scan_y: Tuple[float, float] = (0.0, 1.0)
    row_sample_offset: int = 2
    row_sample_width: int = 12
    row_match_distance: float = 50
    min_row_separation: int = 20

    # Measurement
    edge_color: RgbTuple = (255, 255, 255)
    fill_tolerance: float = 70
    bar_scan_y_range: int = 3
    gap_tolerance: int = 2
    scan_margin: int = 0
    percentage_offset: float = -0.5
    offset_stage: str = "after_clamp"
    rounding: str = "ceil"

    def __post_init__(self) -> None:
        bars = tuple(self.bars)
        if len(bars) != BAR_COUNT:
            raise ValueError("profile must define exactly {} bars (got {})".format(BAR_COUNT, len(bars)))
        names = [b.name for b in bars]
        if len(set(names)) != len(names):
            raise ValueError("bar names must be unique: {}".format(names))
        object.__setattr__(self, "bars", bars)

        object.__setattr__(self, "metric", normalize_metric(self.metric))
        object.__setattr__(self, "frame_mode", _check_choice("frame_mode", self.frame_mode, FRAME_MODES))
        object.__setattr__(self, "axis_strategy", _check_choice("axis_strategy", self.axis_strategy, AXIS_STRATEGIES))
        object.__setattr__(self, "full_line_mode", _check_choice("full_line_mode", self.full_line_mode, FULL_LINE_MODES))
        object.__setattr__(self, "row_strategy", _check_choice("row_strategy", self.row_strategy, ROW_STRATEGIES))
        object.__setattr__(self, "offset_stage", _check_choice("offset_stage", self.offset_stage, OFFSET_STAGES))
        object.__setattr__(self, "rounding", _check_choice("rounding", self.rounding, ROUNDING_MODES))

        for name in _COLOR_FIELDS:
            object.__setattr__(self, name, as_rgb(getattr(self, name)))
        for name in _RANGE_FIELDS:
            object.__setattr__(self, name, _as_range(name, getattr(self, name)))
        for name in _TOLERANCE_FIELDS:
            v = float(getattr(self, name))
            if v < 0:
                raise ValueError("{} must be non-negative".format(name))
            object.__setattr__(self, name, v)

        for name in ("right_scan_start_ratio", "assumed_width_ratio", "rail_start_ratio", "rail_end_ratio"):
            v = float(getattr(self, name))
            if not (0.0 <= v <= 1.0):
                raise ValueError("{} must be in [0, 1]".format(name))
            object.__setattr__(self, name, v)
        if self.rail_end_ratio <= self.rail_start_ratio:
            raise ValueError("rail_end_ratio must be greater than rail_start_ratio")

        for name in ("row_sample_offset", "min_row_separation", "bar_scan_y_range", "gap_tolerance", "scan_margin"):
            v = int(getattr(self, name))
            if v < 0:
                raise ValueError("{} must be non-negative".format(name))
            object.__setattr__(self, name, v)
        if int(self.row_sample_width) <= 0:
            raise ValueError("row_sample_width must be positive")
        object.__setattr__(self, "row_sample_width", int(self.row_sample_width))
        object.__setattr__(self, "percentage_offset", float(self.percentage_offset))

    @property
    def bar_names(self) -> List[str]:
        return [b.name for b in self.bars]

    def bar(self, name: str) -> BarSpec:
        for b in self.bars:
            if b.name == name:
                return b
        raise KeyError(name)

    def replace(self, **changes: Any) -> "CalibrationProfile":
        return dataclasses.replace(self, **changes)


DEFAULT_PROFILE = CalibrationProfile()


def profile_to_dict(profile: CalibrationProfile) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in dataclasses.fields(profile):
        v = getattr(profile, f.name)
        if f.name == "bars":
            out["bars"] = [
                {
                    "name": b.name,
                    "label": b.label,
                    "fill_color": list(b.fill_color),
                    "vertical_ratio": b.vertical_ratio,
                }
                for b in v
            ]
        elif isinstance(v, tuple):
            out[f.name] = list(v)
        else:
            out[f.name] = v
    return out


def _parse_bars(raw: Any) -> Tuple[BarSpec, ...]:
    if not isinstance(raw, list):
        raise ValueError("bars must be a list of objects")
    out: List[BarSpec] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValueError("each bar must be an object with name/fill_color/vertical_ratio")
        out.append(
            BarSpec(
                name=str(item.get("name", "") or ""),
                fill_color=item.get("fill_color"),
                vertical_ratio=float(item.get("vertical_ratio", -1.0)),
                label=str(item.get("label", "") or ""),
            )
        )
    return tuple(out)


def profile_from_dict(obj: Dict[str, Any], base: Optional[CalibrationProfile] = None) -> CalibrationProfile:
    """
    Build a profile from a JSON-like dict. Missing keys keep the values of `base`
    (the default profile when omitted); unknown keys are rejected.
    """
    if not isinstance(obj, dict):
        raise ValueError("profile JSON must be an object")
    base = base or DEFAULT_PROFILE
    known = {f.name for f in dataclasses.fields(CalibrationProfile)}
    unknown = sorted(k for k in obj.keys() if k not in known)
    if unknown:
        raise ValueError("Unknown profile keys: {}".format(unknown))

    changes: Dict[str, Any] = {}
    for k, v in obj.items():
        if k == "bars":
            changes["bars"] = _parse_bars(v)
        elif isinstance(v, list):
            changes[k] = tuple(v)
        else:
            changes[k] = v
    return dataclasses.replace(base, **changes)


def load_profile(path: str, base: Optional[CalibrationProfile] = None) -> CalibrationProfile:
    with open(path, "r", encoding="utf-8") as f:
        obj = json.load(f)
    profile = profile_from_dict(obj, base=base)
    logger.debug("Loaded calibration profile from %s", path)
    return profile


def save_profile(profile: CalibrationProfile, path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(profile_to_dict(profile), f, ensure_ascii=False, indent=2)


def default_profile() -> CalibrationProfile:
    """The profile named by STATBAR_PROFILE (also read from a `.env` file), else the built-in skin."""
    _maybe_load_dotenv()
    path = str(os.environ.get(PROFILE_ENV_VAR) or "").strip()
    if not path:
        return DEFAULT_PROFILE
    return load_profile(path)

