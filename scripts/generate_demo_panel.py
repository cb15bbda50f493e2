import argparse
import os
import sys
from typing import Dict

_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from statbar.profile import default_profile, load_profile  # noqa: E402
from statbar_tools.tools import render_demo_panel  # noqa: E402


def _parse_values(raw: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for part in str(raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise SystemExit("Invalid --values item (expected NAME=PCT): {!r}".format(part))
        name, value = part.split("=", 1)
        out[name.strip()] = float(value)
    return out


def main():
    ap = argparse.ArgumentParser(description="Render a synthetic stat-panel screenshot.")
    ap.add_argument("--output", required=True, help="Output PNG path")
    ap.add_argument(
        "--values",
        default="HP=80,ATK=55,MATK=30,DEF=65,MDEF=45,SPD=100",
        help="Comma-separated NAME=PCT pairs (default: a mixed panel).",
    )
    ap.add_argument("--profile", default=None, help="Calibration profile JSON used for the layout.")
    ap.add_argument("--width", type=int, default=640)
    ap.add_argument("--height", type=int, default=400)
    args = ap.parse_args()

    profile = load_profile(args.profile) if args.profile else default_profile()
    W, H = int(args.width), int(args.height)
    # Panel inset mirrors the default 640x400 layout.
    frame = (int(W * 0.0625), int(H * 0.075), int(W * 0.9375), int(H * 0.925))
    img = render_demo_panel(_parse_values(args.values), profile, size=(W, H), frame_xyxy=frame)

    os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
    img.save(args.output)
    print(args.output)


if __name__ == "__main__":
    main()
