import argparse
import sys

from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fishtrack.config import FISH_EXPORTS_DIR, FISH_INFO_FILE, OUTPUTS_DIR  # noqa: E402
from fishtrack.utils.logging import run_metadata, write_json  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Record interpreter, package versions and input availability.")
    parser.add_argument("--exports-dir", type=Path, default=FISH_EXPORTS_DIR)
    parser.add_argument("--fish-info", type=Path, default=FISH_INFO_FILE)
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    args = parser.parse_args()

    exports_dir = args.exports_dir
    fish_dirs = sorted(p.name for p in exports_dir.iterdir() if p.is_dir()) if exports_dir.is_dir() else []
    info = run_metadata(
        fish_info_exists=args.fish_info.exists(),
        exports_dir_exists=exports_dir.is_dir(),
        n_fish_dirs=len(fish_dirs),
    )
    out_path = args.outdir / "logs" / "environment_check.json"
    write_json(out_path, info)
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
