import argparse
import json
import os
import sys
import time
from typing import Any, Dict, List, Set

_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from statbar.analyzer import analyze  # noqa: E402
from statbar.errors import AnalysisError  # noqa: E402
from statbar.profile import default_profile, load_profile  # noqa: E402
from statbar_tools.tools import load_raster  # noqa: E402

try:
    from tqdm import tqdm  # type: ignore
except Exception:
    tqdm = None  # type: ignore[assignment]

_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")


def _iter_images(root: str) -> List[str]:
    out: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if name.lower().endswith(_EXTENSIONS):
                out.append(os.path.join(dirpath, name))
    return sorted(out)


def _load_done(path: str) -> Set[str]:
    done: Set[str] = set()
    if not os.path.exists(path):
        return done
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            obj = json.loads(line)
            # Rows that failed are retried on --resume.
            if isinstance(obj, dict) and obj.get("image_path") and not obj.get("error"):
                done.add(str(obj["image_path"]))
    return done


def _append_jsonl(path: str, obj: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(obj, ensure_ascii=False) + "\n")


def main():
    ap = argparse.ArgumentParser(description="Analyze every screenshot under a directory into JSONL.")
    ap.add_argument("--images", required=True, help="Directory of screenshots (searched recursively).")
    ap.add_argument("--out", required=True, help="Output JSONL path (one row per image).")
    ap.add_argument("--profile", default=None, help="Calibration profile JSON.")
    ap.add_argument("--max-side", type=int, default=0, help="Optional downscale of the longest side (0=off).")
    ap.add_argument("--resume", action="store_true", help="Skip images already present in --out without error.")
    ap.add_argument(
        "--progress",
        default="auto",
        choices=["auto", "tqdm", "print", "none"],
        help='Progress display. "auto" uses tqdm if installed (default).',
    )
    args = ap.parse_args()

    profile = load_profile(args.profile) if args.profile else default_profile()
    paths = _iter_images(args.images)
    done: Set[str] = _load_done(args.out) if args.resume else set()

    use_tqdm = False
    if str(args.progress) == "tqdm":
        if tqdm is None:
            raise SystemExit("tqdm is not installed. Install it with: pip install tqdm")
        use_tqdm = True
    elif str(args.progress) == "auto":
        use_tqdm = tqdm is not None
    use_print = (str(args.progress) == "print") or (str(args.progress) == "auto" and not use_tqdm)

    iterator = paths
    pbar = None
    if use_tqdm:
        pbar = tqdm(paths, total=len(paths), unit="img")  # type: ignore[misc]
        iterator = pbar  # type: ignore[assignment]

    n_skip = 0
    n_error = 0
    for i, path in enumerate(iterator):
        if path in done:
            n_skip += 1
            continue

        t0 = time.time()
        row: Dict[str, Any] = {"image_path": path}
        try:
            raster = load_raster(path, max_side=int(args.max_side) or None)
            result = analyze(raster, profile)
            row["values"] = dict(result)
            row["axis"] = result.axis.to_dict()
        except AnalysisError as e:
            row["error"] = type(e).__name__
            row["message"] = e.user_message()
            n_error += 1
        except (OSError, ValueError) as e:
            row["error"] = type(e).__name__
            row["message"] = str(e)
            n_error += 1
        row["elapsed_sec"] = float(time.time() - t0)
        _append_jsonl(args.out, row)

        if pbar is not None:
            pbar.set_postfix({"skip": n_skip, "err": n_error}, refresh=False)
        elif use_print:
            print("[{}/{}] {} -> {}".format(i + 1, len(paths), os.path.basename(path), row.get("values", row.get("error"))))

    print("Done. total={}, skipped={}, errors={}, out={}".format(len(paths), n_skip, n_error, args.out))


if __name__ == "__main__":
    main()
