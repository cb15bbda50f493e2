import pytest
from PIL import Image

from statbar.analyzer import analyze
from statbar.raster import RasterBuffer
from statbar_tools.tools import (
    draw_preview,
    format_results,
    load_image,
    load_raster,
    render_demo_panel,
    sample_color,
    save_preview,
)

from conftest import MIXED_VALUES


def test_load_image_formats(tmp_path, demo_png):
    img = load_image(demo_png)
    assert img.mode == "RGB"
    assert img.size == (640, 400)

    jpg = tmp_path / "panel.jpg"
    Image.open(demo_png).convert("RGB").save(str(jpg), quality=95)
    assert load_image(str(jpg)).size == (640, 400)

    gif = tmp_path / "panel.gif"
    Image.open(demo_png).save(str(gif))
    with pytest.raises(ValueError):
        load_image(str(gif))

    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "missing.png"))


def test_load_image_max_side(demo_png):
    assert load_image(demo_png, max_side=320).size == (320, 200)
    assert load_image(demo_png, max_side=2000).size == (640, 400)
    assert load_raster(demo_png).size == (640, 400)


def test_sample_color(demo_raster, default_profile):
    assert sample_color(demo_raster, 0, 0) == default_profile.background_color
    assert sample_color(demo_raster, 40, 100) == default_profile.border_color
    assert sample_color(demo_raster, -1, 0) is None
    assert sample_color(demo_raster, 640, 0) is None


def test_format_results_with_labels(demo_raster, default_profile):
    result = analyze(demo_raster, default_profile)
    text = format_results(result, default_profile, use_labels=True)
    assert text.splitlines() == ["HP: 80%", "攻撃: 55%", "魔攻: 30%", "防御: 65%", "魔防: 45%", "敏捷: 100%"]
    assert format_results(result).splitlines()[1] == "ATK: 55%"


def test_preview(tmp_path, default_profile):
    img = render_demo_panel(MIXED_VALUES)
    result = analyze(RasterBuffer.from_image(img), default_profile)
    vis = draw_preview(img, result=result)
    assert vis.size == img.size
    assert vis.getpixel((result.axis.zero_x, 200)) == (255, 255, 0)

    path = tmp_path / "out" / "preview.png"
    save_preview(vis, str(path))
    assert path.exists()


def test_demo_panel_uses_profile_layout(default_profile):
    img = render_demo_panel({"HP": 100})
    assert img.getpixel((100, 58)) == default_profile.bar("HP").fill_color
    assert img.getpixel((100, 115)) == default_profile.track_color
