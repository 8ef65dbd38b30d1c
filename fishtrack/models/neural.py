from sklearn.neural_network import MLPClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler


def build_neural_network(seed: int) -> Pipeline:
    # One small hidden layer; the frequency response is a few hundred correlated inputs.
    return Pipeline(
        steps=[
            ("scaler", StandardScaler()),
            (
                "model",
                MLPClassifier(
                    hidden_layer_sizes=(32,),
                    alpha=1e-3,
                    learning_rate_init=1e-3,
                    max_iter=1000,
                    random_state=seed,
                ),
            ),
        ]
    )
