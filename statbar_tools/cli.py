import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from PIL import Image

from statbar.analyzer import analyze
from statbar.axis import calibrate_axis
from statbar.bars import locate_bars
from statbar.errors import AnalysisError
from statbar.frame import locate_frame
from statbar.profile import (
    AXIS_STRATEGIES,
    ROW_STRATEGIES,
    CalibrationProfile,
    default_profile,
    load_profile,
    profile_to_dict,
)
from statbar.raster import RasterBuffer

from .tools import draw_preview, format_results, load_image, result_labels, sample_color, save_preview


def _configure_logging(level: Optional[str]) -> None:
    name = str(level or os.environ.get("STATBAR_LOG_LEVEL") or "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_profile(args: argparse.Namespace) -> CalibrationProfile:
    path = getattr(args, "profile", None)
    profile = load_profile(path) if path else default_profile()
    changes: Dict[str, Any] = {}
    if getattr(args, "row_strategy", None):
        changes["row_strategy"] = str(args.row_strategy)
    if getattr(args, "axis_strategy", None):
        changes["axis_strategy"] = str(args.axis_strategy)
    return profile.replace(**changes) if changes else profile


def _write_json(path: Optional[str], payload: Dict[str, Any]) -> None:
    if not path:
        return
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def _emit(args: argparse.Namespace, payload: Dict[str, Any]) -> None:
    _write_json(getattr(args, "output", None), payload)
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _fail(args: argparse.Namespace, tool: str, error: AnalysisError) -> None:
    payload = {
        "tool": tool,
        "image": getattr(args, "image", None),
        "error": type(error).__name__,
        "message": error.user_message(),
    }
    if getattr(args, "text", False):
        _write_json(getattr(args, "output", None), payload)
        print("Error: {}".format(payload["message"]))
    else:
        _emit(args, payload)
    raise SystemExit(2)


def _open(args: argparse.Namespace) -> Image.Image:
    try:
        return load_image(args.image, max_side=getattr(args, "max_side", None))
    except (OSError, ValueError) as e:
        raise SystemExit("Failed to load image {}: {}".format(args.image, e))


def _add_common(p: argparse.ArgumentParser, image: bool = True) -> None:
    if image:
        p.add_argument("--image", required=True, help="Input screenshot path (JPEG, PNG or WebP).")
        p.add_argument(
            "--max-side",
            type=int,
            default=None,
            help="Optional downscale so the longest image side is at most this many pixels.",
        )
    p.add_argument("--profile", default=None, help="Calibration profile JSON (default: $STATBAR_PROFILE or built-in).")
    p.add_argument("--output", default=None, help="Optional output JSON path.")


def _add_strategies(p: argparse.ArgumentParser) -> None:
    p.add_argument("--row-strategy", default=None, choices=list(ROW_STRATEGIES), help="Override the profile's row strategy.")
    p.add_argument(
        "--axis-strategy", default=None, choices=list(AXIS_STRATEGIES), help="Override the profile's axis strategy."
    )


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="statbar-tools")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $STATBAR_LOG_LEVEL or WARNING).")
    sub = parser.add_subparsers(dest="command")

    p_an = sub.add_parser("analyze", help="Measure all six stat bars and print their percentages.")
    _add_common(p_an)
    _add_strategies(p_an)
    p_an.add_argument("--text", action="store_true", help='Print plain "<name>: <pct>%%" lines instead of JSON.')
    p_an.add_argument("--labels", action="store_true", help="Use the profile's display labels in text output.")
    p_an.add_argument("--preview", default=None, help="Optional preview image path with the detected geometry drawn.")
    p_an.add_argument("--debug-dir", default=None, help="Optional directory for analysis_debug.json.")

    p_frame = sub.add_parser("locate_frame", help="Detect the UI panel bounds.")
    _add_common(p_frame)
    p_frame.add_argument("--preview", default=None, help="Optional preview image path.")

    p_axis = sub.add_parser("calibrate_axis", help="Detect the shared zero_x / full_x of the bars.")
    _add_common(p_axis)
    p_axis.add_argument(
        "--axis-strategy", default=None, choices=list(AXIS_STRATEGIES), help="Override the profile's axis strategy."
    )
    p_axis.add_argument("--preview", default=None, help="Optional preview image path.")

    p_rows = sub.add_parser("locate_bars", help="Detect the row of every bar.")
    _add_common(p_rows)
    _add_strategies(p_rows)
    p_rows.add_argument("--preview", default=None, help="Optional preview image path.")

    p_px = sub.add_parser("sample_color", help="Read the RGB color of one pixel (for building profiles).")
    _add_common(p_px)
    p_px.add_argument("--x", required=True, type=float, help="Pixel x coordinate.")
    p_px.add_argument("--y", required=True, type=float, help="Pixel y coordinate.")

    p_prof = sub.add_parser("dump_profile", help="Print the effective calibration profile as JSON.")
    _add_common(p_prof, image=False)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        raise SystemExit(1)

    if args.command == "dump_profile":
        try:
            profile = _resolve_profile(args)
        except (OSError, ValueError) as e:
            raise SystemExit("Invalid profile: {}".format(e))
        _emit(args, profile_to_dict(profile))
        return

    try:
        profile = _resolve_profile(args)
    except (OSError, ValueError) as e:
        raise SystemExit("Invalid profile: {}".format(e))
    img = _open(args)
    raster = RasterBuffer.from_image(img)

    if args.command == "analyze":
        try:
            result = analyze(raster, profile, debug_dir=getattr(args, "debug_dir", None))
        except AnalysisError as e:
            _fail(args, "analyze", e)
            return

        if getattr(args, "preview", None):
            save_preview(draw_preview(img, result=result), args.preview)

        payload = {
            "tool": "analyze",
            "image": args.image,
            "image_size": [raster.width, raster.height],
            "values": dict(result),
            "lines": result.to_lines(result_labels(profile) if args.labels else None),
            "frame": result.frame.to_dict(),
            "axis": result.axis.to_dict(),
            "rows": [r.to_dict() for r in result.rows],
        }
        _write_json(getattr(args, "output", None), payload)
        if args.text:
            print(format_results(result, profile, use_labels=bool(args.labels)))
        else:
            print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if args.command == "locate_frame":
        try:
            frame = locate_frame(raster, profile)
        except AnalysisError as e:
            _fail(args, "locate_frame", e)
            return
        if getattr(args, "preview", None):
            save_preview(draw_preview(img, frame=frame), args.preview)
        _emit(args, {"tool": "locate_frame", "image": args.image, "frame": frame.to_dict()})
        return

    if args.command == "calibrate_axis":
        try:
            frame = locate_frame(raster, profile)
            axis = calibrate_axis(raster, frame, profile)
        except AnalysisError as e:
            _fail(args, "calibrate_axis", e)
            return
        if getattr(args, "preview", None):
            save_preview(draw_preview(img, frame=frame, axis=axis), args.preview)
        _emit(
            args,
            {"tool": "calibrate_axis", "image": args.image, "frame": frame.to_dict(), "axis": axis.to_dict()},
        )
        return

    if args.command == "locate_bars":
        try:
            frame = locate_frame(raster, profile)
            axis = calibrate_axis(raster, frame, profile)
            rows = locate_bars(raster, frame, axis, profile)
        except AnalysisError as e:
            _fail(args, "locate_bars", e)
            return
        if getattr(args, "preview", None):
            save_preview(draw_preview(img, frame=frame, axis=axis, rows=rows), args.preview)
        _emit(
            args,
            {
                "tool": "locate_bars",
                "image": args.image,
                "frame": frame.to_dict(),
                "axis": axis.to_dict(),
                "rows": [r.to_dict() for r in rows],
            },
        )
        return

    if args.command == "sample_color":
        rgb = sample_color(raster, args.x, args.y)
        _emit(
            args,
            {
                "tool": "sample_color",
                "image": args.image,
                "x": float(args.x),
                "y": float(args.y),
                "rgb": list(rgb) if rgb is not None else None,
            },
        )
        return

    raise SystemExit("Unknown command: {}".format(args.command))


if __name__ == "__main__":
    main()
