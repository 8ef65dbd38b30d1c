from typing import Iterable, Optional, Tuple

import numpy as np
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline

from fishtrack.models.baseline import build_elastic_net
from fishtrack.models.boosted import build_hist_gradient_boosting
from fishtrack.models.ensemble import build_stacked_ensemble
from fishtrack.models.forest import build_random_forest
from fishtrack.models.neural import build_neural_network

BUILDERS = {
    "enet": build_elastic_net,
    "rf": build_random_forest,
    "hgb": build_hist_gradient_boosting,
    "mlp": build_neural_network,
}


def build_estimator(
    model: str,
    seed: int,
    cv: Optional[Iterable[Tuple[np.ndarray, np.ndarray]]] = None,
) -> Pipeline:
    """Median imputation followed by the named learner."""

    if model == "stack":
        clf = build_stacked_ensemble(seed, cv=cv)
    elif model in BUILDERS:
        clf = BUILDERS[model](seed)
    else:
        raise ValueError(f"Unknown model: {model}")

    return Pipeline(steps=[("imputer", SimpleImputer(strategy="median", keep_empty_features=True)), ("model", clf)])
