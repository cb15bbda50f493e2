import dataclasses
import json

import pytest

from statbar.profile import (
    DEFAULT_BARS,
    DEFAULT_PROFILE,
    PROFILE_ENV_VAR,
    BarSpec,
    CalibrationProfile,
    default_profile,
    load_profile,
    profile_from_dict,
    profile_to_dict,
    save_profile,
)


def test_default_bars_and_labels():
    assert DEFAULT_PROFILE.bar_names == ["HP", "ATK", "MATK", "DEF", "MDEF", "SPD"]
    assert DEFAULT_PROFILE.bar("ATK").label == "攻撃"
    assert DEFAULT_PROFILE.bar("SPD").fill_color == (113, 252, 211)
    with pytest.raises(KeyError):
        DEFAULT_PROFILE.bar("LUCK")


def test_json_round_trip(tmp_path):
    path = tmp_path / "skins" / "default.json"
    save_profile(DEFAULT_PROFILE, str(path))
    assert load_profile(str(path)) == DEFAULT_PROFILE

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    assert raw["border_color"] == [185, 185, 185]
    assert raw["bars"][1]["label"] == "攻撃"


def test_partial_override_keeps_defaults():
    p = profile_from_dict({"rounding": "floor", "border_color": [1, 2, 3], "metric": "l2"})
    assert p.rounding == "floor"
    assert p.border_color == (1, 2, 3)
    assert p.metric == "euclidean"
    assert p.fill_tolerance == DEFAULT_PROFILE.fill_tolerance
    assert p.bars == DEFAULT_PROFILE.bars


def test_override_on_custom_base():
    base = DEFAULT_PROFILE.replace(row_strategy="color")
    p = profile_from_dict({"gap_tolerance": 5}, base=base)
    assert p.row_strategy == "color"
    assert p.gap_tolerance == 5


def test_custom_bars_from_dict():
    raw = profile_to_dict(DEFAULT_PROFILE)["bars"]
    raw[0] = {"name": "HP", "fill_color": [1, 2, 3], "vertical_ratio": 0.5}
    p = profile_from_dict({"bars": raw})
    assert p.bar_names == DEFAULT_PROFILE.bar_names
    assert p.bar("HP").fill_color == (1, 2, 3)
    assert p.bar("HP").label == "HP"
    assert p.bar("ATK").label == "攻撃"


@pytest.mark.parametrize(
    "obj",
    [
        {"unknown_key": 1},
        {"rounding": "up"},
        {"frame_mode": "edges"},
        {"rail_start_ratio": 0.8, "rail_end_ratio": 0.5},
        {"border_color": [300, 0, 0]},
        {"zero_line_scan_x": [0.6, 0.2]},
        {"fill_tolerance": -1},
        {"row_sample_width": 0},
        {"bars": []},
        {"bars": [{"name": "HP", "fill_color": [1, 2, 3], "vertical_ratio": 1.5}]},
    ],
)
def test_invalid_profiles_rejected(obj):
    with pytest.raises(ValueError):
        profile_from_dict(obj)


def test_duplicate_bar_names_rejected():
    bar = BarSpec("HP", (1, 2, 3), 0.5)
    with pytest.raises(ValueError):
        CalibrationProfile(bars=DEFAULT_BARS[:5] + (bar,))


@pytest.mark.parametrize("count", [1, 3, 5])
def test_bar_count_must_be_six(count):
    with pytest.raises(ValueError, match="exactly 6 bars"):
        CalibrationProfile(bars=DEFAULT_BARS[:count])
    with pytest.raises(ValueError):
        profile_from_dict({"bars": profile_to_dict(DEFAULT_PROFILE)["bars"][:count]})


def test_seven_bars_rejected():
    extra = BarSpec("LUCK", (1, 2, 3), 0.99)
    with pytest.raises(ValueError):
        CalibrationProfile(bars=DEFAULT_BARS + (extra,))


def test_profile_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_PROFILE.rounding = "floor"


def test_default_profile_reads_env(tmp_path, monkeypatch):
    assert default_profile() == DEFAULT_PROFILE

    path = tmp_path / "skin.json"
    path.write_text(json.dumps({"gap_tolerance": 7}), encoding="utf-8")
    monkeypatch.setenv(PROFILE_ENV_VAR, str(path))
    assert default_profile().gap_tolerance == 7


def test_profile_to_dict_is_json_serializable():
    d = profile_to_dict(DEFAULT_PROFILE)
    json.dumps(d, ensure_ascii=False)
    assert d["percentage_offset"] == -0.5
    assert d["rounding"] == "ceil"
