from __future__ import annotations

import argparse
import hashlib
import random
import subprocess
import sys
from pathlib import Path
from typing import Dict, List

import joblib
import numpy as np
import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fishtrack.config import (  # noqa: E402
    CV_FOLDS,
    DATASET_VERSION,
    DECISION_THRESHOLD,
    EXPERIMENT_NAMESPACE,
    FEATURE_SETS,
    GEOMETRY_COLS,
    GROUP_COL,
    MODEL_NAMES,
    MODEL_SPECIES,
    MODELING_FILE,
    OUTPUTS_DIR,
    POSITIVE_LABEL,
    RANDOM_SEEDS,
    SPECIES_COL,
    SPECIES_NAMES,
    TARGET_COL,
    TEST_SIZE,
    TRACK_COL,
)
from fishtrack.data.coding import encode_species_target, frequency_columns  # noqa: E402
from fishtrack.data.splits import fold_assignments, make_group_cv_folds, make_group_holdout_split  # noqa: E402
from fishtrack.data.validate import assert_required_columns  # noqa: E402
from fishtrack.evaluation.bootstrap import fish_bootstrap_metric_draws, summarize_bootstrap_ci  # noqa: E402
from fishtrack.evaluation.crossval import (  # noqa: E402
    aggregate_fold_metrics,
    cross_validate_grouped,
    predict_proba_positive,
)
from fishtrack.evaluation.metrics import (  # noqa: E402
    compute_classification_metrics,
    confusion_counts,
    fish_level_predictions,
    predict_labels,
)
from fishtrack.models.registry import build_estimator  # noqa: E402
from fishtrack.reporting.figures import plot_confusion_matrix, plot_roc  # noqa: E402
from fishtrack.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def resolve_git_commit(root: Path) -> str:
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=root,
            check=True,
            capture_output=True,
            text=True,
        )
        return proc.stdout.strip() or "no_vcs"
    except (OSError, subprocess.CalledProcessError):
        return "no_vcs"


def deterministic_run_id(seed: int, model: str, featureset: str) -> str:
    return f"{EXPERIMENT_NAMESPACE}_seed{seed}_{model}_{featureset}"


def select_features(df: pd.DataFrame, featureset: str) -> List[str]:
    cols = frequency_columns(df)
    if featureset == "full":
        cols = cols + [c for c in GEOMETRY_COLS if c in df.columns]
    return cols


def make_estimator_factory(model_name: str, seed: int, inner_folds: int):
    """Estimators are built per fit so the stack's inner folds group the rows it is fitted on."""

    def factory(X_fit: pd.DataFrame, y_fit: pd.Series, groups_fit: np.ndarray):
        cv = None
        if model_name == "stack":
            n_fish = int(np.unique(groups_fit).size)
            k = min(inner_folds, n_fish)
            if k < 2:
                raise ValueError(f"Stacking needs at least 2 training fish; got {n_fish}.")
            cv = make_group_cv_folds(X_fit, y_fit, groups_fit, k, seed)
        return build_estimator(model_name, seed, cv=cv)

    return factory


def save_npz(path: Path, **arrays) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


def write_metrics_row(path: Path, row: Dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame([row]).to_csv(path, index=False)


def main() -> None:
    parser = argparse.ArgumentParser(description="Train and evaluate LT vs SMB classifiers with fish-grouped validation.")
    parser.add_argument("--input", type=Path, default=MODELING_FILE, help="Modelling table from scripts/02_eda.py.")
    parser.add_argument("--seed", type=int, default=2026, help="Random seed for holdout split, CV folds and models.")
    parser.add_argument(
        "--allow-any-seed",
        action="store_true",
        help="Allow seeds not listed in fishtrack/config.py RANDOM_SEEDS (not recommended).",
    )
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--model", choices=MODEL_NAMES + ["all"], default="all")
    parser.add_argument("--features", choices=FEATURE_SETS, default="frequency")
    parser.add_argument("--cv-folds", type=int, default=CV_FOLDS, help="Fish-grouped CV folds on the training fish.")
    parser.add_argument("--test-size", type=float, default=TEST_SIZE, help="Approximate share of fish held out.")
    parser.add_argument("--threshold", type=float, default=DECISION_THRESHOLD, help="Probability cut for SMB.")
    parser.add_argument(
        "--n_boot",
        type=int,
        default=1000,
        help="Number of fish-level bootstrap resamples for test-set confidence intervals.",
    )
    parser.add_argument("--run-id", type=str, default=None, help="Optional run id; otherwise deterministic.")
    args = parser.parse_args()
    configure_logging()

    if (not args.allow_any_seed) and (args.seed not in RANDOM_SEEDS):
        raise SystemExit(f"--seed must be one of {RANDOM_SEEDS} unless --allow-any-seed is provided.")
    if args.cv_folds < 2:
        raise SystemExit("--cv-folds must be >= 2.")
    if not 0.0 < args.test_size < 1.0:
        raise SystemExit("--test-size must be in (0, 1).")
    if not 0.0 < args.threshold < 1.0:
        raise SystemExit("--threshold must be in (0, 1).")
    if args.n_boot < 0:
        raise SystemExit("--n_boot must be >= 0.")

    random.seed(args.seed)
    np.random.seed(args.seed)

    if not args.input.exists():
        raise SystemExit(f"Modelling input not found: {args.input}. Run scripts/02_eda.py first.")

    df = pd.read_parquet(args.input)
    try:
        assert_required_columns(df, [GROUP_COL, TRACK_COL, SPECIES_COL])
    except ValueError as exc:
        raise SystemExit(str(exc))

    n_rows_all = len(df)
    df = df.loc[df[SPECIES_COL].isin(MODEL_SPECIES)].reset_index(drop=True)
    if df[SPECIES_COL].nunique() != 2:
        raise SystemExit(f"Need pings from both {MODEL_SPECIES}; found {sorted(df[SPECIES_COL].unique().tolist())}.")

    featureset = args.features
    feature_cols = select_features(df, featureset)
    if not feature_cols:
        raise SystemExit("No feature columns selected.")

    X = df[feature_cols].apply(pd.to_numeric, errors="coerce")
    y = encode_species_target(df[SPECIES_COL]).rename(TARGET_COL)
    groups = df[GROUP_COL].astype(str).to_numpy()

    try:
        train_pos, test_pos = make_group_holdout_split(X, y, groups, args.test_size, args.seed)
    except ValueError as exc:
        raise SystemExit(f"Holdout split failed: {exc}")

    if y.iloc[train_pos].nunique() < 2 or y.iloc[test_pos].nunique() < 2:
        raise SystemExit("Holdout split left a side with a single species; add fish or change --test-size.")

    X_train, y_train, g_train = X.iloc[train_pos], y.iloc[train_pos], groups[train_pos]
    X_test, y_test, g_test = X.iloc[test_pos], y.iloc[test_pos], groups[test_pos]

    try:
        folds = make_group_cv_folds(X_train, y_train, g_train, args.cv_folds, args.seed)
    except ValueError as exc:
        raise SystemExit(f"CV fold assignment failed: {exc}")

    outdir = args.outdir
    out_metrics = outdir / "metrics"
    out_tables = outdir / "tables"
    out_figures = outdir / "figures"
    out_models = outdir / "models"
    out_splits = outdir / "splits"
    out_logs = outdir / "logs"
    for d in [out_metrics, out_tables, out_figures, out_models, out_splits, out_logs]:
        d.mkdir(parents=True, exist_ok=True)

    save_npz(out_splits / f"holdout_seed{args.seed}.npz", train_idx=train_pos, test_idx=test_pos)
    save_npz(
        out_splits / f"cvfolds_seed{args.seed}.npz",
        train_idx=train_pos,
        fold_id=fold_assignments(len(train_pos), folds),
    )
    fish_split = pd.DataFrame({GROUP_COL: sorted(set(groups))})
    fish_split["split"] = np.where(fish_split[GROUP_COL].isin(set(g_test)), "test", "train")
    fish_split.to_csv(out_splits / f"fish_split_seed{args.seed}.csv", index=False)

    input_sha = sha256_file(args.input)
    git_commit = resolve_git_commit(PROJECT_ROOT)
    display_labels = [SPECIES_NAMES[s] for s in MODEL_SPECIES]

    models_to_run = MODEL_NAMES if args.model == "all" else [args.model]
    summary_test_rows = []
    summary_cv_rows = []
    primary_ci_rows = []

    for model_name in models_to_run:
        run_id = args.run_id or deterministic_run_id(args.seed, model_name, featureset)
        if args.run_id and args.model == "all":
            run_id = f"{args.run_id}_{model_name}"

        factory = make_estimator_factory(model_name, args.seed, args.cv_folds)

        # Grouped CV on the training fish only.
        cv_fold_df, oof = cross_validate_grouped(factory, X_train, y_train, g_train, folds, threshold=args.threshold)
        cv_fold_path = out_metrics / f"metrics_cv_folds_seed{args.seed}_{model_name}_{featureset}.csv"
        cv_fold_df.to_csv(cv_fold_path, index=False)

        oof_fish = fish_level_predictions(y_train.to_numpy(), oof, g_train, args.threshold)
        cv_row = {
            "dataset_version": DATASET_VERSION,
            "run_id": run_id,
            "seed": args.seed,
            "model": model_name,
            "featureset": featureset,
            "n_train": int(len(train_pos)),
            "n_train_fish": int(np.unique(g_train).size),
            "cv_folds": args.cv_folds,
            **aggregate_fold_metrics(cv_fold_df),
            **{f"oof_{k}": v for k, v in compute_classification_metrics(y_train.to_numpy(), oof, args.threshold).items()},
            "oof_fish_accuracy": float((oof_fish["y_pred"] == oof_fish["y_true"]).mean()),
        }
        cv_path = out_metrics / f"metrics_cv_seed{args.seed}_{model_name}_{featureset}.csv"
        write_metrics_row(cv_path, cv_row)
        summary_cv_rows.append(cv_row)

        # Final fit on all training fish, scored once on the held-out fish.
        final_est = factory(X_train, y_train, g_train)
        final_est.fit(X_train, y_train)
        model_path = out_models / f"{model_name}_{featureset}_seed{args.seed}.joblib"
        joblib.dump(final_est, model_path)

        y_prob = predict_proba_positive(final_est, X_test, POSITIVE_LABEL)
        y_pred = predict_labels(y_prob, args.threshold)
        test_metrics = compute_classification_metrics(y_test.to_numpy(), y_prob, args.threshold)
        cm = confusion_counts(y_test.to_numpy(), y_prob, args.threshold)

        fish_preds = fish_level_predictions(y_test.to_numpy(), y_prob, g_test, args.threshold)
        fish_metrics = compute_classification_metrics(
            fish_preds["y_true"].to_numpy(), fish_preds["y_prob_mean"].to_numpy(), args.threshold
        )
        fish_preds.insert(0, "model", model_name)
        fish_path = out_tables / f"fish_preds_test_{model_name}_{featureset}_seed{args.seed}.csv"
        fish_preds.to_csv(fish_path, index=False)

        test_row = {
            "dataset_version": DATASET_VERSION,
            "run_id": run_id,
            "seed": args.seed,
            "model": model_name,
            "featureset": featureset,
            "threshold": args.threshold,
            "n_train": int(len(train_pos)),
            "n_test": int(len(test_pos)),
            "n_test_fish": int(np.unique(g_test).size),
            **test_metrics,
            **cm,
            **{f"fish_{k}": v for k, v in fish_metrics.items()},
        }
        test_path = out_metrics / f"metrics_test_seed{args.seed}_{model_name}_{featureset}.csv"
        write_metrics_row(test_path, test_row)
        summary_test_rows.append(test_row)

        preds = pd.DataFrame(
            {
                "row_index": test_pos.astype(int),
                GROUP_COL: g_test,
                TRACK_COL: df[TRACK_COL].iloc[test_pos].to_numpy(),
                "y_true": y_test.to_numpy(dtype=int),
                "y_prob": y_prob,
                "y_pred": y_pred,
            }
        )
        preds_path = out_tables / f"preds_test_{model_name}_{featureset}_seed{args.seed}.csv"
        preds.to_csv(preds_path, index=False)

        plot_roc(
            y_test.to_numpy(),
            y_prob,
            out_figures / f"roc_curve_test_{model_name}_{featureset}_seed{args.seed}.png",
            f"ROC Curve (Test): {model_name} / {featureset} / seed={args.seed}",
            auc=test_metrics["roc_auc"],
        )
        plot_confusion_matrix(
            y_test.to_numpy(),
            y_pred,
            display_labels,
            out_figures / f"confusion_matrix_test_{model_name}_{featureset}_seed{args.seed}.png",
            f"Confusion Matrix @{args.threshold:g} (Test): {model_name}",
        )

        # Fish-level bootstrap CIs on the held-out metrics.
        boot = fish_bootstrap_metric_draws(
            y_true=y_test.to_numpy(dtype=int),
            y_prob=y_prob,
            groups=g_test,
            n_boot=args.n_boot,
            seed=args.seed + 101,
            threshold=args.threshold,
        )
        boot.insert(0, "model", model_name)
        boot_path = out_tables / f"bootstrap_draws_test_seed{args.seed}_{model_name}_{featureset}.csv"
        boot.to_csv(boot_path, index=False)
        ci = summarize_bootstrap_ci(boot)
        primary_ci_rows.append(
            {
                "dataset_version": DATASET_VERSION,
                "run_id": run_id,
                "seed": args.seed,
                "model": model_name,
                "featureset": featureset,
                "n_test": int(len(test_pos)),
                "n_boot": int(args.n_boot),
                **{
                    key: value
                    for metric, (lo, hi) in ci.items()
                    for key, value in [
                        (metric, float(test_metrics[metric])),
                        (f"{metric}_ci95_low", lo),
                        (f"{metric}_ci95_high", hi),
                    ]
                },
                "ci_method": "fish_cluster_bootstrap_percentile",
            }
        )

        meta: Dict[str, object] = run_metadata(
            dataset_version=DATASET_VERSION,
            experiment_namespace=EXPERIMENT_NAMESPACE,
            run_id=run_id,
            seed=args.seed,
            model=model_name,
            featureset=featureset,
            feature_cols=feature_cols,
            target_col=TARGET_COL,
            species=MODEL_SPECIES,
            positive_label=POSITIVE_LABEL,
            threshold=args.threshold,
            validation_protocol={
                "grouping": GROUP_COL,
                "test_size": args.test_size,
                "cv_folds": args.cv_folds,
                "random_seed": args.seed,
                "test_fish": sorted(set(g_test)),
            },
            inputs={
                "parquet_path": str(args.input),
                "parquet_sha256": input_sha,
                "rows_in": int(n_rows_all),
                "rows_modelled": int(len(df)),
                "feature_cols_sha256": hashlib.sha256("|".join(feature_cols).encode("utf-8")).hexdigest(),
            },
            artifacts={
                "model_joblib": str(model_path),
                "metrics_cv_csv": str(cv_path),
                "metrics_cv_folds_csv": str(cv_fold_path),
                "metrics_test_csv": str(test_path),
                "preds_test_csv": str(preds_path),
                "fish_preds_test_csv": str(fish_path),
                "bootstrap_draws_test_csv": str(boot_path),
            },
            git_commit=git_commit,
        )
        meta_path = out_models / f"{model_name}_{featureset}_seed{args.seed}.meta.json"
        write_json(meta_path, meta)
        write_json(out_logs / f"run_{run_id}.json", meta)
        print(f"{model_name}: test roc_auc={test_metrics['roc_auc']:.3f} f1={test_metrics['f1']:.3f}")

    pd.DataFrame(summary_test_rows).to_csv(out_tables / "results_summary_test.csv", index=False)
    pd.DataFrame(summary_cv_rows).to_csv(out_tables / "results_summary_cv.csv", index=False)
    pd.DataFrame(primary_ci_rows).to_csv(out_tables / "primary_metrics_with_ci.csv", index=False)

    print(f"Wrote modeling artifacts to {outdir}/")


if __name__ == "__main__":
    main()
