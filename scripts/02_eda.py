from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fishtrack.analysis.correlation import (  # noqa: E402
    correlation_matrix,
    species_point_biserial,
    top_correlated_pairs,
)
from fishtrack.analysis.decomposition import fit_pca  # noqa: E402
from fishtrack.analysis.missingness import (  # noqa: E402
    missingness_by_column,
    missingness_by_fish,
    screen_features,
)
from fishtrack.analysis.outliers import filter_outliers  # noqa: E402
from fishtrack.config import (  # noqa: E402
    ANALYSIS_FILE,
    GEOMETRY_COLS,
    MAX_FEATURE_MISSING_RATE,
    MODEL_SPECIES,
    MODELING_FILE,
    OUTLIER_Z_THRESHOLD,
    OUTPUTS_DIR,
    PCA_COMPONENTS,
    SPECIES_COL,
    TARGET_COL,
    TOP_CORRELATED_PAIRS,
)
from fishtrack.data.coding import encode_species_target, frequency_columns  # noqa: E402
from fishtrack.data.validate import assert_required_columns  # noqa: E402
from fishtrack.reporting.figures import (  # noqa: E402
    plot_correlation_heatmap,
    plot_mean_frequency_response,
    plot_missingness_bar,
    plot_pca_scores,
    plot_scree,
)
from fishtrack.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(
        description="EDA: missingness diagnosis, feature screen, outlier filter, PCA and correlation."
    )
    parser.add_argument("--input", type=Path, default=ANALYSIS_FILE, help="Filtered analysis table (parquet).")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument(
        "--modeling-out",
        type=Path,
        default=MODELING_FILE,
        help="Where the screened, outlier-filtered modelling table is written.",
    )
    parser.add_argument("--max-missing-rate", type=float, default=MAX_FEATURE_MISSING_RATE)
    parser.add_argument("--outlier-z", type=float, default=OUTLIER_Z_THRESHOLD)
    parser.add_argument("--pca-components", type=int, default=PCA_COMPONENTS)
    parser.add_argument("--seed", type=int, default=2026)
    args = parser.parse_args()
    configure_logging()

    if not args.input.exists():
        raise SystemExit(f"Analysis table not found: {args.input}. Run scripts/01_build_dataset.py first.")
    if not 0.0 <= args.max_missing_rate <= 1.0:
        raise SystemExit("--max-missing-rate must be in [0, 1].")
    if args.outlier_z <= 0:
        raise SystemExit("--outlier-z must be positive.")
    if args.pca_components <= 0:
        raise SystemExit("--pca-components must be a positive integer.")

    df = pd.read_parquet(args.input)
    try:
        assert_required_columns(df, ["fishNum", "FishTrack", SPECIES_COL])
    except ValueError as exc:
        raise SystemExit(str(exc))

    freq_cols = frequency_columns(df)
    if not freq_cols:
        raise SystemExit("No frequency-response columns (F<kHz>) in the analysis table.")

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)
    figures_dir.mkdir(parents=True, exist_ok=True)

    # Missing-data diagnosis
    miss = missingness_by_column(df)
    miss.to_csv(tables_dir / "missingness_eda.csv", index=False)
    missingness_by_fish(df, freq_cols).to_csv(tables_dir / "missingness_by_fish.csv", index=False)
    plot_missingness_bar(miss, figures_dir / "missingness_bar.png", "Missingness by Column (Analysis Table)")

    kept, dropped = screen_features(df, freq_cols, args.max_missing_rate)
    if not kept:
        raise SystemExit(f"All frequency columns exceed --max-missing-rate={args.max_missing_rate}.")

    # Outlier filtering on the retained frequency response
    retained, outlier_counts = filter_outliers(df, kept, args.outlier_z, by="fishNum")
    outlier_counts.to_csv(tables_dir / "outliers_by_fish.csv", index=False)

    modeling = retained.drop(columns=dropped)
    args.modeling_out.parent.mkdir(parents=True, exist_ok=True)
    modeling.to_parquet(args.modeling_out, index=False)

    plot_mean_frequency_response(modeling, kept, SPECIES_COL, figures_dir / "mean_frequency_response_by_species.png")

    # PCA on the frequency response
    pca = fit_pca(modeling, kept, args.pca_components, seed=args.seed)
    pca.explained_variance.to_csv(tables_dir / "pca_explained_variance.csv", index=False)
    pca.loadings.to_csv(tables_dir / "pca_loadings.csv", index=False)
    scores = pd.concat([modeling[["fishNum", "FishTrack", SPECIES_COL]], pca.scores], axis=1)
    scores.to_csv(tables_dir / "pca_scores.csv", index=False)
    plot_pca_scores(pca.scores, modeling[SPECIES_COL], pca.explained_variance, figures_dir / "pca_scores_by_species.png")
    plot_scree(pca.explained_variance, figures_dir / "pca_scree.png")

    # Correlation analysis
    freq_corr = correlation_matrix(modeling, kept)
    top_correlated_pairs(freq_corr, TOP_CORRELATED_PAIRS).to_csv(
        tables_dir / "top_correlated_frequency_pairs.csv", index=False
    )
    plot_correlation_heatmap(freq_corr, figures_dir / "frequency_correlation_heatmap.png", "Frequency Response Correlation")

    geometry = [c for c in GEOMETRY_COLS + ["TS_mean", "MaxTSdiff"] if c in modeling.columns]
    if len(geometry) >= 2:
        correlation_matrix(modeling, geometry, method="spearman").to_csv(tables_dir / "geometry_correlation.csv")

    pair = modeling.loc[modeling[SPECIES_COL].isin(MODEL_SPECIES)].copy()
    species_corr_written = False
    if pair[SPECIES_COL].nunique() == 2:
        pair[TARGET_COL] = encode_species_target(pair[SPECIES_COL])
        species_point_biserial(pair, kept + geometry, TARGET_COL).to_csv(
            tables_dir / "species_point_biserial.csv", index=False
        )
        species_corr_written = True

    meta = run_metadata(
        input_parquet=str(args.input),
        modeling_parquet=str(args.modeling_out),
        seed=args.seed,
        rows_in=int(len(df)),
        rows_after_outlier_filter=int(len(modeling)),
        n_fish=int(df["fishNum"].nunique()),
        species_counts={str(k): int(v) for k, v in df[SPECIES_COL].value_counts().items()},
        feature_screen={
            "max_missing_rate": args.max_missing_rate,
            "n_frequency_columns": len(freq_cols),
            "kept": kept,
            "dropped": dropped,
        },
        outlier_filter={
            "rule": "abs(z(mean TS over kept frequencies)) > threshold within fish",
            "threshold": args.outlier_z,
            "n_outliers": int(outlier_counts["n_outliers"].sum()),
        },
        pca={
            "n_components": int(len(pca.explained_variance)),
            "cumulative_ratio": float(pca.explained_variance["cumulative_ratio"].iloc[-1]),
        },
        species_point_biserial_written=species_corr_written,
    )
    write_json(logs_dir / "eda_run_metadata.json", meta)

    print(f"Wrote {args.modeling_out}")
    print(f"Wrote EDA artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
