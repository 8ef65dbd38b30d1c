from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def correlation_matrix(df: pd.DataFrame, cols: Sequence[str], method: str = "pearson") -> pd.DataFrame:
    if method not in {"pearson", "spearman", "kendall"}:
        raise ValueError(f"Unknown correlation method: {method}")
    return df[list(cols)].apply(pd.to_numeric, errors="coerce").corr(method=method)


def top_correlated_pairs(corr: pd.DataFrame, k: int) -> pd.DataFrame:
    """Strongest off-diagonal pairs by |r|; each unordered pair appears once."""

    values = corr.to_numpy()
    iu = np.triu_indices_from(values, k=1)
    pairs = pd.DataFrame(
        {
            "feature_a": corr.index.to_numpy()[iu[0]],
            "feature_b": corr.columns.to_numpy()[iu[1]],
            "r": values[iu],
        }
    ).dropna(subset=["r"])
    pairs["abs_r"] = pairs["r"].abs()
    pairs = pairs.sort_values(["abs_r", "feature_a", "feature_b"], ascending=[False, True, True], kind="mergesort")
    return pairs.head(k).reset_index(drop=True)


def species_point_biserial(df: pd.DataFrame, cols: Sequence[str], target: str) -> pd.DataFrame:
    y = df[target].astype(float)
    rows = []
    for col in cols:
        x = pd.to_numeric(df[col], errors="coerce")
        mask = x.notna() & y.notna()
        if mask.sum() < 3 or x[mask].std() == 0 or y[mask].std() == 0:
            r = np.nan
        else:
            r = float(np.corrcoef(x[mask], y[mask])[0, 1])
        rows.append({"feature": col, "n": int(mask.sum()), "r_species": r})
    out = pd.DataFrame(rows, columns=["feature", "n", "r_species"])
    return out.sort_values("r_species", key=lambda s: s.abs(), ascending=False, kind="mergesort").reset_index(drop=True)
