import numpy as np
import pandas as pd
import pytest

from fishtrack.data.splits import make_group_cv_folds
from fishtrack.evaluation.bootstrap import fish_bootstrap_metric_draws, summarize_bootstrap_ci
from fishtrack.evaluation.crossval import aggregate_fold_metrics, cross_validate_grouped
from fishtrack.evaluation.metrics import (
    compute_classification_metrics,
    confusion_counts,
    fish_level_predictions,
)
from fishtrack.models.registry import build_estimator


def test_metrics_perfect_and_single_class():
    m = compute_classification_metrics([0, 0, 1, 1], [0.1, 0.2, 0.8, 0.9])
    assert m["roc_auc"] == 1.0
    assert m["f1"] == 1.0
    assert m["accuracy"] == 1.0

    single = compute_classification_metrics([1, 1], [0.7, 0.2])
    assert np.isnan(single["roc_auc"])
    assert single["accuracy"] == 0.5


def test_confusion_counts_threshold():
    counts = confusion_counts([0, 0, 1, 1], [0.6, 0.2, 0.4, 0.9])
    assert counts == {"tn": 1, "fp": 1, "fn": 1, "tp": 1}
    counts = confusion_counts([0, 0, 1, 1], [0.6, 0.2, 0.4, 0.9], threshold=0.3)
    assert counts["fn"] == 0


def test_fish_level_predictions():
    out = fish_level_predictions(
        y_true=[0, 0, 1, 1, 1],
        y_prob=[0.2, 0.6, 0.9, 0.7, 0.2],
        groups=["LT001", "LT001", "SMB001", "SMB001", "SMB001"],
    ).set_index("fishNum")
    assert out.loc["LT001", "y_prob_mean"] == pytest.approx(0.4)
    assert out.loc["LT001", "y_pred"] == 0
    assert out.loc["SMB001", "n_pings"] == 3
    assert out.loc["SMB001", "ping_vote_share"] == pytest.approx(2 / 3)

    with pytest.raises(ValueError):
        fish_level_predictions([0, 1], [0.5, 0.5], ["LT001", "LT001"])


def test_fish_bootstrap_keeps_both_species():
    y = np.array([0] * 6 + [1] * 6)
    p = np.linspace(0.05, 0.95, 12)
    groups = np.repeat(["LT1", "LT2", "LT3", "SMB1", "SMB2", "SMB3"], 2)
    draws = fish_bootstrap_metric_draws(y_true=y, y_prob=p, groups=groups, n_boot=25, seed=1)
    assert len(draws) == 25
    assert draws["roc_auc"].notna().all()

    ci = summarize_bootstrap_ci(draws)
    lo, hi = ci["roc_auc"]
    assert 0.0 <= lo <= hi <= 1.0

    empty = fish_bootstrap_metric_draws(y_true=y, y_prob=p, groups=groups, n_boot=0, seed=1)
    assert empty.empty
    assert np.isnan(summarize_bootstrap_ci(empty)["f1"][0])


def test_cross_validate_grouped_out_of_fold():
    rng = np.random.default_rng(0)
    groups = np.repeat([f"F{i}" for i in range(8)], 10)
    y = pd.Series(np.repeat([0, 1] * 4, 10))
    X = pd.DataFrame({"F50": rng.normal(0, 1, 80) + 3 * y, "F60": rng.normal(0, 1, 80)})

    folds = make_group_cv_folds(X, y, groups, n_splits=4, seed=2026)
    fold_df, oof = cross_validate_grouped(lambda X_, y_, g_: build_estimator("enet", 2026), X, y, groups, folds)

    assert fold_df["fold"].tolist() == [1, 2, 3, 4]
    assert fold_df["n_valid"].sum() == 80
    assert not np.isnan(oof).any()

    agg = aggregate_fold_metrics(fold_df)
    assert "roc_auc_mean" in agg and "f1_std" in agg
    assert "n_valid_mean" not in agg
