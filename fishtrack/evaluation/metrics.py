from typing import Dict

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    average_precision_score,
    balanced_accuracy_score,
    brier_score_loss,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
    roc_auc_score,
)

METRIC_NAMES = [
    "roc_auc",
    "pr_auc",
    "f1",
    "accuracy",
    "balanced_accuracy",
    "precision",
    "recall",
    "brier",
]


def predict_labels(y_prob, threshold: float = 0.5) -> np.ndarray:
    return (np.asarray(y_prob, dtype=float) >= threshold).astype(int)


def compute_classification_metrics(y_true, y_prob, threshold: float = 0.5) -> Dict[str, float]:
    y = np.asarray(y_true, dtype=int)
    p = np.asarray(y_prob, dtype=float)
    if y.size == 0:
        return {m: np.nan for m in METRIC_NAMES}

    y_pred = predict_labels(p, threshold)
    two_classes = np.unique(y).size >= 2
    return {
        "roc_auc": float(roc_auc_score(y, p)) if two_classes else np.nan,
        "pr_auc": float(average_precision_score(y, p)) if two_classes else np.nan,
        "f1": float(f1_score(y, y_pred, zero_division=0)),
        "accuracy": float(accuracy_score(y, y_pred)),
        "balanced_accuracy": float(balanced_accuracy_score(y, y_pred)) if two_classes else np.nan,
        "precision": float(precision_score(y, y_pred, zero_division=0)),
        "recall": float(recall_score(y, y_pred, zero_division=0)),
        "brier": float(brier_score_loss(y, p, pos_label=1)),
    }


def confusion_counts(y_true, y_prob, threshold: float = 0.5) -> Dict[str, int]:
    y_pred = predict_labels(y_prob, threshold)
    tn, fp, fn, tp = confusion_matrix(np.asarray(y_true, dtype=int), y_pred, labels=[0, 1]).ravel()
    return {"tn": int(tn), "fp": int(fp), "fn": int(fn), "tp": int(tp)}


def fish_level_predictions(y_true, y_prob, groups, threshold: float = 0.5) -> pd.DataFrame:
    """Average ping probabilities per fish and score the fish as a whole."""

    df = pd.DataFrame(
        {
            "fishNum": np.asarray(groups),
            "y_true": np.asarray(y_true, dtype=int),
            "y_prob": np.asarray(y_prob, dtype=float),
        }
    )
    labels = df.groupby("fishNum")["y_true"].nunique()
    mixed = labels[labels > 1].index.tolist()
    if mixed:
        raise ValueError(f"Fish with more than one label: {mixed}")

    out = (
        df.groupby("fishNum", sort=True)
        .agg(n_pings=("y_prob", "size"), y_true=("y_true", "first"), y_prob_mean=("y_prob", "mean"))
        .reset_index()
    )
    out["y_pred"] = predict_labels(out["y_prob_mean"], threshold)
    out["ping_vote_share"] = (
        df.assign(vote=predict_labels(df["y_prob"], threshold)).groupby("fishNum", sort=True)["vote"].mean().to_numpy()
    )
    return out
