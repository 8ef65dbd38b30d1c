import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import argparse  # noqa: E402
import hashlib  # noqa: E402
import logging  # noqa: E402

import pandas as pd  # noqa: E402

from fishtrack.config import (  # noqa: E402
    FISH_EXPORTS_DIR,
    FISH_INFO_FILE,
    OUTPUTS_DIR,
    PROCESSED_DIR,
    TS_COMPENSATION_MAX_DB,
)
from fishtrack.data.build import apply_compensation_filter, build_master_table  # noqa: E402
from fishtrack.data.coding import frequency_columns, summarize_missingness  # noqa: E402
from fishtrack.data.compensation import (  # noqa: E402
    accepted_pings,
    compensation_differences,
    compensation_summary,
)
from fishtrack.data.ingest import list_fish_ids, read_fish_info, read_freq_response  # noqa: E402
from fishtrack.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402

logger = logging.getLogger("build_dataset")


def _sha256_df(df: pd.DataFrame) -> str:
    h = hashlib.sha256()
    h.update("||".join(df.columns.astype(str).tolist()).encode("utf-8"))
    h.update("||".join(map(str, df.dtypes.tolist())).encode("utf-8"))
    row_hashes = pd.util.hash_pandas_object(df, index=True).to_numpy()
    h.update(row_hashes.tobytes())
    return h.hexdigest()


def _write_table(df: pd.DataFrame, stem: Path) -> list:
    stem.parent.mkdir(parents=True, exist_ok=True)
    csv_path = stem.with_suffix(".csv")
    parquet_path = stem.with_suffix(".parquet")
    df.to_csv(csv_path, index=False)
    df.to_parquet(parquet_path, index=False)
    return [csv_path, parquet_path]


def compensation_tables(fish_ids: list, exports_dir: Path, max_db: float) -> tuple:
    diffs = []
    for fish_id in fish_ids:
        fish_dir = exports_dir / fish_id
        comp = read_freq_response(fish_dir, fish_id, compensated=True)
        uncomp = read_freq_response(fish_dir, fish_id, compensated=False)
        diffs.append(compensation_differences(comp, uncomp))
    all_diffs = pd.concat(diffs, ignore_index=True)
    return accepted_pings(all_diffs, max_db), compensation_summary(all_diffs, max_db)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import Echoview exports for every fish and build the analysis table.")
    parser.add_argument("--exports-dir", type=Path, default=FISH_EXPORTS_DIR, help="One sub-directory per fish.")
    parser.add_argument("--fish-info", type=Path, default=FISH_INFO_FILE, help="Biological data CSV (fishNum key).")
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR, help="Where merged tables are written.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory for tables and logs.")
    parser.add_argument("--fish", nargs="*", default=None, help="Optional subset of fish ids (default: all).")
    parser.add_argument(
        "--max-ts-diff",
        type=float,
        default=TS_COMPENSATION_MAX_DB,
        help="Reject pings whose beam compensation exceeds this many dB at any frequency.",
    )
    parser.add_argument(
        "--skip-bad-fish",
        action="store_true",
        help="Skip fish whose exports fail to parse instead of aborting.",
    )
    args = parser.parse_args()
    configure_logging()

    if not args.exports_dir.is_dir():
        raise SystemExit(f"Export directory not found: {args.exports_dir}")
    if not args.fish_info.exists():
        raise SystemExit(f"Fish info file not found: {args.fish_info}")
    if args.max_ts_diff <= 0:
        raise SystemExit("--max-ts-diff must be positive.")

    fish_ids = list_fish_ids(args.exports_dir)
    if args.fish:
        unknown = sorted(set(args.fish) - set(fish_ids))
        if unknown:
            raise SystemExit(f"Unknown fish ids: {unknown}")
        fish_ids = [f for f in fish_ids if f in set(args.fish)]
    if not fish_ids:
        raise SystemExit(f"No fish directories under {args.exports_dir}")

    fish_info = read_fish_info(args.fish_info)

    skipped: list = []
    try:
        master = build_master_table(
            fish_ids, args.exports_dir, fish_info, skip_bad_fish=args.skip_bad_fish, skipped=skipped
        )
    except ValueError as exc:
        raise SystemExit(f"Import failed: {exc}")

    imported = [f for f in fish_ids if f not in {s["fishNum"] for s in skipped}]
    try:
        accepted, summary = compensation_tables(imported, args.exports_dir, args.max_ts_diff)
    except ValueError as exc:
        raise SystemExit(f"Compensation screen failed: {exc}")

    processed = apply_compensation_filter(master, accepted)

    tables_dir = args.outdir / "tables"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)

    written = []
    written += _write_table(master, args.processed_dir / "processed_AllFishCombined_unfiltered")
    written += _write_table(processed, args.processed_dir / "processed_AnalysisData")

    accepted_path = tables_dir / "accepted_6dB_TS_compensation_singletargets.csv"
    summary_path = tables_dir / "accepted_6dB_TS_compensation_singletargets_summary.csv"
    missingness_path = tables_dir / "missingness_analysis_data.csv"
    accepted.to_csv(accepted_path, index=False)
    summary.to_csv(summary_path, index=False)
    summarize_missingness(processed).to_csv(missingness_path, index=False)
    written += [accepted_path, summary_path, missingness_path]

    decisions = run_metadata(
        exports_dir=str(args.exports_dir),
        fish_info=str(args.fish_info),
        fish_requested=fish_ids,
        fish_imported=imported,
        fish_skipped=skipped,
        n_frequency_columns=len(frequency_columns(master)),
        row_filters=[
            {
                "rule": "inner_join_fish_info_targets_regions",
                "rows_after": int(len(master)),
            },
            {
                "rule": "beam_compensation_max_ts_diff",
                "threshold_db": args.max_ts_diff,
                "pings_accepted": int(len(accepted)),
                "dropped_rows": int(len(master) - len(processed)),
                "rows_after": int(len(processed)),
            },
        ],
        master_rows=int(len(master)),
        processed_rows=int(len(processed)),
        processed_cols=int(processed.shape[1]),
        content_hash_sha256=_sha256_df(processed),
        outputs=[str(p) for p in written],
    )
    decisions_path = logs_dir / "decisions.json"
    write_json(decisions_path, decisions)

    for p in written + [decisions_path]:
        print(f"Wrote {p}")


if __name__ == "__main__":
    main()
