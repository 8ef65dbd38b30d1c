from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import pandas as pd
from sklearn.decomposition import PCA
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler


@dataclass(frozen=True)
class PCAResult:
    scores: pd.DataFrame
    explained_variance: pd.DataFrame
    loadings: pd.DataFrame
    pipeline: Pipeline


def fit_pca(df: pd.DataFrame, cols: Sequence[str], n_components: int, seed: int = 2026) -> PCAResult:
    cols = list(cols)
    if not cols:
        raise ValueError("PCA needs at least one feature column.")
    if len(df) < 2:
        raise ValueError("PCA needs at least two rows.")

    k = max(1, min(int(n_components), len(df), len(cols)))
    pipe = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="median")),
            ("scaler", StandardScaler()),
            ("pca", PCA(n_components=k, random_state=seed)),
        ]
    )
    scores = pipe.fit_transform(df[cols])
    pca = pipe.named_steps["pca"]
    names = [f"PC{i + 1}" for i in range(pca.n_components_)]

    explained = pd.DataFrame(
        {
            "component": names,
            "explained_variance_ratio": pca.explained_variance_ratio_,
            "cumulative_ratio": pca.explained_variance_ratio_.cumsum(),
        }
    )
    loadings = pd.DataFrame(pca.components_.T, index=cols, columns=names).rename_axis("feature").reset_index()
    return PCAResult(
        scores=pd.DataFrame(scores, columns=names, index=df.index),
        explained_variance=explained,
        loadings=loadings,
        pipeline=pipe,
    )
