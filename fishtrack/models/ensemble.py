from typing import Iterable, Optional, Tuple

import numpy as np
from sklearn.ensemble import StackingClassifier
from sklearn.linear_model import LogisticRegression

from fishtrack.models.baseline import build_elastic_net
from fishtrack.models.boosted import build_hist_gradient_boosting
from fishtrack.models.forest import build_random_forest
from fishtrack.models.neural import build_neural_network


def build_base_learners(seed: int) -> list:
    return [
        ("enet", build_elastic_net(seed)),
        ("rf", build_random_forest(seed)),
        ("hgb", build_hist_gradient_boosting(seed)),
        ("mlp", build_neural_network(seed)),
    ]


def build_stacked_ensemble(
    seed: int,
    cv: Optional[Iterable[Tuple[np.ndarray, np.ndarray]]] = None,
) -> StackingClassifier:
    """Stacked generalization over the four base learners.

    `cv` must be precomputed fish-grouped splits of the rows the ensemble is
    fitted on; ungrouped folds would put pings of one fish on both sides.
    """

    if cv is None or isinstance(cv, int):
        raise ValueError("Stacking needs precomputed fish-grouped folds (cv=[(train_idx, valid_idx), ...]).")
    cv = list(cv)
    return StackingClassifier(
        estimators=build_base_learners(seed),
        final_estimator=LogisticRegression(max_iter=2000, solver="lbfgs"),
        cv=cv,
        stack_method="predict_proba",
        passthrough=False,
    )
