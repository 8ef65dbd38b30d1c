from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from fishtrack.evaluation.metrics import compute_classification_metrics


def predict_proba_positive(estimator, X, positive_label: int = 1) -> np.ndarray:
    proba = estimator.predict_proba(X)
    if proba.ndim != 2 or proba.shape[1] < 2:
        raise ValueError("predict_proba output has unexpected shape.")
    classes = list(getattr(estimator, "classes_", [0, 1]))
    return proba[:, classes.index(positive_label)]


def cross_validate_grouped(
    estimator_factory: Callable[[pd.DataFrame, pd.Series, np.ndarray], object],
    X: pd.DataFrame,
    y: pd.Series,
    groups: np.ndarray,
    folds: Sequence[Tuple[np.ndarray, np.ndarray]],
    threshold: float = 0.5,
) -> Tuple[pd.DataFrame, np.ndarray]:
    """Fit one estimator per fold and score it on the held-out fish.

    `estimator_factory(X_tr, y_tr, groups_tr)` returns an unfitted estimator, so
    ensembles can build inner grouped splits on the fold's own training rows.
    Returns the per-fold metrics and out-of-fold positive-class probabilities.
    """

    groups = np.asarray(groups)
    oof = np.full(len(X), np.nan, dtype=float)
    rows: List[dict] = []

    for fold, (tr_idx, va_idx) in enumerate(folds, start=1):
        X_tr, y_tr = X.iloc[tr_idx], y.iloc[tr_idx]
        X_va, y_va = X.iloc[va_idx], y.iloc[va_idx]

        est = estimator_factory(X_tr, y_tr, groups[tr_idx])
        est.fit(X_tr, y_tr)
        y_prob = predict_proba_positive(est, X_va)
        oof[va_idx] = y_prob

        metrics = compute_classification_metrics(y_va.to_numpy(), y_prob, threshold)
        rows.append(
            {
                "fold": fold,
                "n_train": int(len(tr_idx)),
                "n_valid": int(len(va_idx)),
                "n_fish_valid": int(np.unique(groups[va_idx]).size),
                **metrics,
            }
        )

    fold_df = pd.DataFrame(rows).sort_values("fold", kind="mergesort").reset_index(drop=True)
    return fold_df, oof


def aggregate_fold_metrics(fold_df: pd.DataFrame) -> Dict[str, float]:
    skip = {"fold", "n_train", "n_valid", "n_fish_valid"}
    metric_cols = [c for c in fold_df.columns if c not in skip]
    out: Dict[str, float] = {}
    for c in metric_cols:
        out[f"{c}_mean"] = float(fold_df[c].mean())
        out[f"{c}_std"] = float(fold_df[c].std(ddof=1)) if len(fold_df) > 1 else np.nan
    return out
