from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd


def ping_mean_ts(df: pd.DataFrame, cols: Sequence[str]) -> pd.Series:
    return df[list(cols)].mean(axis=1, skipna=True)


def zscore_outlier_mask(
    df: pd.DataFrame,
    cols: Sequence[str],
    threshold: float,
    by: Optional[str] = "fishNum",
) -> pd.Series:
    """Flag pings whose mean TS lies more than `threshold` SDs from their fish's mean.

    Groups of one ping or with zero spread are never flagged; neither are pings
    with no TS values at all.
    """

    if threshold <= 0:
        raise ValueError(f"threshold must be positive; got {threshold}")

    level = ping_mean_ts(df, cols)
    if by is None:
        center = level.mean()
        spread = level.std(ddof=1)
    else:
        grouped = level.groupby(df[by])
        center = grouped.transform("mean")
        spread = grouped.transform(lambda s: s.std(ddof=1))

    with np.errstate(divide="ignore", invalid="ignore"):
        z = (level - center) / spread
    z = z.where(np.isfinite(z))
    return (z.abs() > threshold).fillna(False).astype(bool)


def filter_outliers(
    df: pd.DataFrame,
    cols: Sequence[str],
    threshold: float,
    by: str = "fishNum",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    mask = zscore_outlier_mask(df, cols, threshold, by=by)
    counts = (
        pd.DataFrame({by: df[by], "outlier": mask})
        .groupby(by, sort=True)["outlier"]
        .agg(n_pings="size", n_outliers="sum")
        .reset_index()
    )
    counts["n_outliers"] = counts["n_outliers"].astype(int)
    counts["n_retained"] = counts["n_pings"] - counts["n_outliers"]
    return df.loc[~mask].reset_index(drop=True), counts
