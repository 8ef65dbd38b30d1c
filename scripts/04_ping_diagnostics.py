import argparse
import sys
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fishtrack.config import ANALYSIS_FILE, OUTPUTS_DIR  # noqa: E402
from fishtrack.data.validate import assert_required_columns  # noqa: E402
from fishtrack.diagnostics import assign_quadrant, fish_ids, fish_pings, quadrant_summary  # noqa: E402
from fishtrack.reporting.figures import (  # noqa: E402
    plot_axis_angles,
    plot_axis_distances,
    plot_quadrant_densities,
)
from fishtrack.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402

REQUIRED_COLUMNS = [
    "fishNum",
    "Angle_minor_axis",
    "Angle_major_axis",
    "Distance_minor_axis",
    "Distance_major_axis",
    "TS_mean",
    "aspectAngle",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Per-fish ping diagnostics: beam quadrants, TS and aspect angle.")
    parser.add_argument("--input", type=Path, default=ANALYSIS_FILE, help="Analysis table (parquet).")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--fish", nargs="*", default=None, help="Fish ids to plot (default: all).")
    args = parser.parse_args()
    configure_logging()

    if not args.input.exists():
        raise SystemExit(f"Analysis table not found: {args.input}. Run scripts/01_build_dataset.py first.")

    df = pd.read_parquet(args.input)
    try:
        assert_required_columns(df, REQUIRED_COLUMNS)
    except ValueError as exc:
        raise SystemExit(str(exc))

    trackdat = assign_quadrant(df)
    available = fish_ids(trackdat)
    selected = args.fish or available
    unknown = sorted(set(selected) - set(available))
    if unknown:
        raise SystemExit(f"Unknown fish ids: {unknown}")

    diag_dir = args.outdir / "figures" / "diagnostics"
    tables_dir = args.outdir / "tables"
    tables_dir.mkdir(parents=True, exist_ok=True)

    summaries = []
    for fish_id in selected:
        pings = fish_pings(trackdat, fish_id)
        summary = quadrant_summary(trackdat, fish_id)
        summary.insert(0, "fishNum", fish_id)
        summaries.append(summary)

        plot_axis_distances(pings, fish_id, diag_dir / f"{fish_id}_axis_distances.png")
        plot_axis_angles(pings, fish_id, diag_dir / f"{fish_id}_axis_angles.png")
        plot_quadrant_densities(pings, "TS_mean", fish_id, diag_dir / f"{fish_id}_ts_by_quadrant.png")
        plot_quadrant_densities(pings, "aspectAngle", fish_id, diag_dir / f"{fish_id}_aspect_by_quadrant.png")

    quad_path = tables_dir / "quadrant_summary.csv"
    pd.concat(summaries, ignore_index=True).to_csv(quad_path, index=False)
    write_json(
        args.outdir / "logs" / "diagnostics_run_metadata.json",
        run_metadata(input_parquet=str(args.input), fish=list(selected)),
    )

    print(f"Wrote {quad_path}")
    print(f"Wrote diagnostics figures to {diag_dir}/")


if __name__ == "__main__":
    main()
