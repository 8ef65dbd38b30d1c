import sklearn
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.utils.fixes import parse_version


def _elastic_net_penalty() -> dict:
    # From scikit-learn 1.8 the mix is set by l1_ratio alone and `penalty` is deprecated.
    if parse_version(sklearn.__version__) >= parse_version("1.8"):
        return {}
    return {"penalty": "elasticnet"}


def build_elastic_net(seed: int, l1_ratio: float = 0.5, C: float = 1.0) -> Pipeline:
    return Pipeline(
        steps=[
            ("scaler", StandardScaler(with_mean=True, with_std=True)),
            (
                "model",
                LogisticRegression(
                    solver="saga",
                    l1_ratio=l1_ratio,
                    C=C,
                    max_iter=5000,
                    random_state=seed,
                    **_elastic_net_penalty(),
                ),
            ),
        ]
    )
