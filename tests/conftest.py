"""Shared fixtures: a hand-built minimal panel and the synthetic demo panel."""
import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from statbar.profile import DEFAULT_BARS, DEFAULT_PROFILE, PROFILE_ENV_VAR, BarSpec, CalibrationProfile  # noqa: E402
from statbar.raster import RasterBuffer  # noqa: E402
from statbar_tools.tools import render_demo_raster  # noqa: E402

SCENARIO_BG = (74, 55, 32)
SCENARIO_LINE = (255, 255, 241)
HP_FILL = (252, 227, 126)

# Demo panel geometry under the default profile (640x400, panel at (40, 30, 600, 370)).
DEMO_FRAME = (40, 30, 600, 370)
DEMO_ZERO_X = 68
DEMO_FULL_X = 471
DEMO_ROWS = [58, 115, 171, 228, 284, 341]

MIXED_VALUES = {"HP": 80, "ATK": 55, "MATK": 30, "DEF": 65, "MDEF": 45, "SPD": 100}


def make_scenario_pixels(hp_end: int = 100) -> np.ndarray:
    """
    200x100 background with a vertical line at x=20 (rows 10..90) and the HP bar
    filled on row 15 from x=21 to hp_end inclusive.
    """
    arr = np.zeros((100, 200, 3), dtype=np.uint8)
    arr[:, :] = SCENARIO_BG
    arr[10:91, 20] = SCENARIO_LINE
    if hp_end > 20:
        arr[15, 21 : hp_end + 1] = HP_FILL
    return arr


@pytest.fixture(autouse=True)
def _no_profile_env(monkeypatch):
    monkeypatch.delenv(PROFILE_ENV_VAR, raising=False)


@pytest.fixture
def default_profile():
    return DEFAULT_PROFILE


@pytest.fixture
def scenario_profile():
    """Profile for the minimal panel: frame right edge assumed, 100% found from the track end."""
    ratios = (0.0625, 0.25, 0.4, 0.55, 0.7, 0.85)
    bars = tuple(BarSpec(b.name, b.fill_color, r, b.label) for b, r in zip(DEFAULT_BARS, ratios))
    return CalibrationProfile(
        bars=bars,
        border_color=SCENARIO_LINE,
        border_tolerance=60,
        assumed_width_ratio=0.8,
        zero_line_color=SCENARIO_LINE,
        zero_line_tolerance=60,
        zero_line_scan_x=(0.0, 0.5),
        full_line_mode="track",
        full_line_scan_x=(0.5, 1.0),
        track_color=SCENARIO_BG,
        track_tolerance=30,
        rail_start_ratio=0.0,
        rail_end_ratio=1.0,
        row_strategy="ratio",
        percentage_offset=0.0,
        rounding="round",
    )


@pytest.fixture
def scenario_raster():
    return RasterBuffer(make_scenario_pixels())


@pytest.fixture
def demo_raster():
    return render_demo_raster(MIXED_VALUES)


@pytest.fixture
def demo_png(tmp_path):
    from statbar_tools.tools import render_demo_panel

    path = tmp_path / "panel.png"
    render_demo_panel(MIXED_VALUES).save(str(path))
    return str(path)
