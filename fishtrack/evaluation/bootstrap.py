from __future__ import annotations

from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd

from fishtrack.evaluation.metrics import compute_classification_metrics

BOOTSTRAP_METRICS = ("roc_auc", "f1", "accuracy", "balanced_accuracy")


def _fish_bootstrap_indices(
    fish_by_class: Dict[int, np.ndarray], rows_by_fish: Dict[object, np.ndarray], rng: np.random.Generator
) -> np.ndarray:
    # Resample whole fish within each species so both classes stay represented.
    picked = []
    for fish in fish_by_class.values():
        draw = fish[rng.integers(0, fish.size, size=fish.size, endpoint=False)]
        picked.extend(rows_by_fish[f] for f in draw)
    return np.concatenate(picked) if picked else np.array([], dtype=int)


def fish_bootstrap_metric_draws(
    *,
    y_true: np.ndarray,
    y_prob: np.ndarray,
    groups: np.ndarray,
    n_boot: int,
    seed: int,
    threshold: float = 0.5,
) -> pd.DataFrame:
    if n_boot <= 0:
        return pd.DataFrame(columns=["iter", *BOOTSTRAP_METRICS])

    y = np.asarray(y_true, dtype=int)
    p = np.asarray(y_prob, dtype=float)
    g = np.asarray(groups)

    rows_by_fish = {fish: np.flatnonzero(g == fish) for fish in np.unique(g)}
    fish_label = {fish: int(y[idx[0]]) for fish, idx in rows_by_fish.items()}
    fish_by_class = {
        label: np.array([f for f, lab in fish_label.items() if lab == label], dtype=object)
        for label in sorted(set(fish_label.values()))
    }

    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n_boot):
        idx = _fish_bootstrap_indices(fish_by_class, rows_by_fish, rng)
        m = compute_classification_metrics(y[idx], p[idx], threshold)
        rows.append({"iter": i, **{k: m[k] for k in BOOTSTRAP_METRICS}})
    return pd.DataFrame(rows)


def summarize_bootstrap_ci(
    draws: pd.DataFrame,
    *,
    alpha: float = 0.05,
    metrics: Iterable[str] = BOOTSTRAP_METRICS,
) -> Dict[str, Tuple[float, float]]:
    if draws.empty:
        return {m: (np.nan, np.nan) for m in metrics}
    lo = float(100.0 * (alpha / 2.0))
    hi = float(100.0 * (1.0 - alpha / 2.0))
    out: Dict[str, Tuple[float, float]] = {}
    for m in metrics:
        vals = draws[m].dropna().to_numpy(dtype=float)
        if vals.size == 0:
            out[m] = (np.nan, np.nan)
        else:
            out[m] = (float(np.percentile(vals, lo)), float(np.percentile(vals, hi)))
    return out
