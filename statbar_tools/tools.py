import os
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageOps

from statbar.analyzer import AnalysisResult
from statbar.axis import AxisCalibration
from statbar.bars import BarRow
from statbar.colors import RgbTuple
from statbar.frame import FrameBounds
from statbar.profile import DEFAULT_PROFILE, CalibrationProfile
from statbar.raster import OUT_OF_BOUNDS, RasterBuffer, get_color


BboxXyxy = Tuple[int, int, int, int]

SUPPORTED_FORMATS = ("JPEG", "PNG", "WEBP")


def _resize_max_side(img: Image.Image, max_side: Optional[int]) -> Image.Image:
    if not max_side or max_side <= 0:
        return img
    w, h = img.size
    m = max(w, h)
    if m <= max_side:
        return img
    scale = float(max_side) / float(m)
    nw = max(1, int(round(w * scale)))
    nh = max(1, int(round(h * scale)))
    return img.resize((nw, nh), resample=Image.BICUBIC)


def load_image(path: str, max_side: Optional[int] = None) -> Image.Image:
    """
    Open a screenshot (JPEG / PNG / WebP), apply EXIF orientation, convert to RGB and
    optionally downscale so the longest side is at most `max_side`.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(path)
    with Image.open(path) as im:
        fmt = str(im.format or "").upper()
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(
                "Unsupported image format {!r} for {} (supported: JPEG, PNG, WebP)".format(im.format, path)
            )
        img = ImageOps.exif_transpose(im).convert("RGB")
    return _resize_max_side(img, max_side)


def load_raster(path: str, max_side: Optional[int] = None) -> RasterBuffer:
    return RasterBuffer.from_image(load_image(path, max_side=max_side))


def sample_color(buffer: RasterBuffer, x: float, y: float) -> Optional[RgbTuple]:
    """Pixel color at (x, y) or None outside the image (eyedropper for building profiles)."""
    c = get_color(buffer, x, y)
    if c is OUT_OF_BOUNDS:
        return None
    return c  # type: ignore[return-value]


def result_labels(profile: CalibrationProfile) -> Dict[str, str]:
    return {b.name: b.label for b in profile.bars}


def format_results(
    result: AnalysisResult, profile: Optional[CalibrationProfile] = None, use_labels: bool = False
) -> str:
    """Plain text lines "<name>: <pct>%", optionally with the profile's display labels."""
    labels = result_labels(profile or DEFAULT_PROFILE) if use_labels else None
    return result.to_text(labels)


def draw_preview(
    image: Image.Image,
    frame: Optional[FrameBounds] = None,
    axis: Optional[AxisCalibration] = None,
    rows: Sequence[BarRow] = (),
    result: Optional[AnalysisResult] = None,
) -> Image.Image:
    """
    Overlay of the detected geometry: frame (red box), zero_x (yellow line),
    bar rows (gray), each bar's right edge (red tick) and full_x (green tick).
    """
    vis = image.convert("RGB")
    draw = ImageDraw.Draw(vis)
    if result is not None:
        frame = frame or result.frame
        axis = axis or result.axis
        rows = rows or result.rows

    if frame is not None:
        draw.rectangle([frame.left, frame.top, frame.right, frame.bottom], outline=(255, 0, 0), width=2)
    if axis is not None:
        y0 = frame.top if frame is not None else 0
        y1 = frame.bottom if frame is not None else vis.size[1] - 1
        draw.line([(axis.zero_x, y0), (axis.zero_x, y1)], fill=(255, 255, 0), width=2)

    for row in rows:
        if axis is not None:
            draw.line([(axis.zero_x, row.y), (axis.full_x, row.y)], fill=(150, 150, 150), width=1)
            draw.line([(axis.full_x, row.y - 10), (axis.full_x, row.y + 10)], fill=(0, 255, 0), width=2)
        else:
            draw.line([(0, row.y), (vis.size[0] - 1, row.y)], fill=(150, 150, 150), width=1)

    if result is not None:
        for m in result.measurements:
            if m.edge_x is None:
                continue
            draw.line([(m.edge_x, m.y - 5), (m.edge_x, m.y + 5)], fill=(255, 0, 0), width=2)
    return vis


def save_preview(image: Image.Image, path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    image.convert("RGB").save(path)


def render_demo_panel(
    values: Dict[str, float],
    profile: Optional[CalibrationProfile] = None,
    size: Tuple[int, int] = (640, 400),
    frame_xyxy: BboxXyxy = (40, 30, 600, 370),
    bar_half_height: int = 6,
    panel_rgb: RgbTuple = (30, 30, 45),
    outside_rgb: Optional[RgbTuple] = None,
) -> Image.Image:
    """
    Synthetic stat-panel screenshot laid out from a profile: bordered panel, white zero line,
    white 100% line visible between bars, and each bar's track filled to values[name] percent.
    Bars missing from `values` are drawn empty. The area outside the panel uses the profile's
    general background color, so both frame modes find the same panel.
    """
    profile = profile or DEFAULT_PROFILE
    W, H = size
    img = Image.new("RGB", (W, H), tuple(outside_rgb or profile.background_color))
    draw = ImageDraw.Draw(img)

    x0, y0, x1, y1 = frame_xyxy
    draw.rectangle([x0, y0, x1, y1], fill=tuple(panel_rgb), outline=profile.border_color, width=2)
    frame = FrameBounds(left=x0, top=y0, right=x1, bottom=y1)

    zero_x = frame.x_at(profile.rail_start_ratio)
    full_x = frame.x_at(profile.rail_end_ratio)
    line_top = frame.y_at(0.02)
    line_bottom = frame.y_at(0.98)
    draw.line([(full_x, line_top), (full_x, line_bottom)], fill=profile.full_line_color, width=1)

    length = full_x - zero_x
    for bar in profile.bars:
        y = frame.y_at(bar.vertical_ratio)
        top, bottom = y - bar_half_height, y + bar_half_height
        draw.rectangle([zero_x + 1, top, full_x, bottom], fill=profile.track_color)
        pct = float(values.get(bar.name, 0.0))
        pct = min(100.0, max(0.0, pct))
        x_end = zero_x + int(round(pct / 100.0 * length))
        if x_end > zero_x:
            draw.rectangle([zero_x + 1, top, x_end, bottom], fill=bar.fill_color)

    draw.line([(zero_x, line_top), (zero_x, line_bottom)], fill=profile.zero_line_color, width=1)
    return img


def render_demo_raster(values: Dict[str, float], profile: Optional[CalibrationProfile] = None, **kwargs) -> RasterBuffer:
    return RasterBuffer(np.asarray(render_demo_panel(values, profile, **kwargs), dtype=np.uint8))
