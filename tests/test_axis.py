import numpy as np
import pytest

from statbar.axis import AxisCalibration, calibrate_axis, representative_row
from statbar.errors import AxisCalibrationFailed
from statbar.frame import FrameBounds, locate_frame
from statbar.raster import RasterBuffer

from conftest import DEMO_FULL_X, DEMO_ZERO_X


def _axis(raster, profile):
    return calibrate_axis(raster, locate_frame(raster, profile), profile)


def test_lines_on_demo(demo_raster, default_profile):
    axis = _axis(demo_raster, default_profile)
    assert (axis.zero_x, axis.full_x) == (DEMO_ZERO_X, DEMO_FULL_X)
    assert (axis.zero_source, axis.full_source) == ("line", "line")
    assert axis.length == DEMO_FULL_X - DEMO_ZERO_X


def test_ratio_strategy(demo_raster, default_profile):
    axis = _axis(demo_raster, default_profile.replace(axis_strategy="ratio"))
    assert (axis.zero_x, axis.full_x) == (DEMO_ZERO_X, DEMO_FULL_X)
    assert (axis.zero_source, axis.full_source) == ("ratio", "ratio")


def test_track_mode_on_demo(demo_raster, default_profile):
    axis = _axis(demo_raster, default_profile.replace(full_line_mode="track"))
    assert axis.full_x == DEMO_FULL_X
    assert axis.full_source == "track"


def test_track_mode_on_minimal_panel(scenario_raster, scenario_profile):
    axis = _axis(scenario_raster, scenario_profile)
    assert (axis.zero_x, axis.full_x) == (20, 180)
    assert (axis.zero_source, axis.full_source) == ("line", "track")


def test_missing_lines_fall_back_to_ratios(demo_raster, default_profile):
    profile = default_profile.replace(
        zero_line_color=(0, 255, 0),
        zero_line_tolerance=10,
        full_line_color=(0, 255, 0),
        full_line_tolerance=10,
    )
    axis = _axis(demo_raster, profile)
    assert (axis.zero_x, axis.full_x) == (DEMO_ZERO_X, DEMO_FULL_X)
    assert (axis.zero_source, axis.full_source) == ("ratio", "ratio")


def test_representative_row_between_first_bars(default_profile):
    frame = FrameBounds(left=40, top=30, right=600, bottom=370)
    assert representative_row(frame, default_profile) == (58 + 115) // 2


def test_degenerate_frame_fails(default_profile):
    arr = np.zeros((40, 40, 3), dtype=np.uint8)
    arr[2:38, 10:12] = default_profile.border_color
    profile = default_profile.replace(right_scan_start_ratio=0.0, axis_strategy="ratio")
    raster = RasterBuffer(arr)
    frame = locate_frame(raster, profile)
    assert (frame.left, frame.right) == (10, 11)
    with pytest.raises(AxisCalibrationFailed) as exc:
        calibrate_axis(raster, frame, profile)
    assert exc.value.full_x <= exc.value.zero_x


def test_axis_to_dict():
    assert AxisCalibration(1, 2, "line", "track").to_dict() == {
        "zero_x": 1,
        "full_x": 2,
        "zero_source": "line",
        "full_source": "track",
    }
