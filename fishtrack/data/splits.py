from typing import List, Tuple

import numpy as np
from sklearn.model_selection import StratifiedGroupKFold


def _check_groups(y, groups, n_splits: int) -> None:
    groups = np.asarray(groups)
    y = np.asarray(y)
    n_groups = np.unique(groups).size
    if n_groups < n_splits:
        raise ValueError(f"Need at least {n_splits} fish for a {n_splits}-way grouped split; got {n_groups}.")
    per_group = {g: np.unique(y[groups == g]).size for g in np.unique(groups)}
    mixed = sorted(str(g) for g, k in per_group.items() if k > 1)
    if mixed:
        raise ValueError(f"Fish with more than one label: {mixed}")


def make_group_holdout_split(X, y, groups, test_size: float, seed: int) -> Tuple[np.ndarray, np.ndarray]:
    """Species-stratified holdout that keeps every fish on one side of the split."""

    n_splits = max(2, int(round(1.0 / test_size)))
    _check_groups(y, groups, n_splits)
    splitter = StratifiedGroupKFold(n_splits=n_splits, shuffle=True, random_state=seed)
    train_idx, test_idx = next(splitter.split(X, y, groups))
    return train_idx, test_idx


def make_group_cv_folds(X, y, groups, n_splits: int, seed: int) -> List[Tuple[np.ndarray, np.ndarray]]:
    _check_groups(y, groups, n_splits)
    splitter = StratifiedGroupKFold(n_splits=n_splits, shuffle=True, random_state=seed)
    return list(splitter.split(X, y, groups))


def fold_assignments(n_rows: int, folds: List[Tuple[np.ndarray, np.ndarray]]) -> np.ndarray:
    fold_id = np.full(n_rows, fill_value=-1, dtype=int)
    for f, (_, va) in enumerate(folds):
        fold_id[va] = f
    if (fold_id < 0).any():
        raise RuntimeError("Failed to assign all rows to CV folds.")
    return fold_id
