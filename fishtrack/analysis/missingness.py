from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd


def missingness_by_column(df: pd.DataFrame) -> pd.DataFrame:
    rows = []
    n = len(df)
    for col in df.columns.astype(str).tolist():
        s = df[col]
        n_missing = int(s.isna().sum())
        rows.append(
            {
                "column": col,
                "dtype": str(s.dtype),
                "n": n,
                "n_missing": n_missing,
                "pct_missing": round((n_missing / n) * 100.0, 6) if n else np.nan,
                "n_unique": int(s.nunique(dropna=True)),
            }
        )
    return pd.DataFrame(rows, columns=["column", "dtype", "n", "n_missing", "pct_missing", "n_unique"])


def missingness_by_fish(df: pd.DataFrame, cols: Sequence[str], group_col: str = "fishNum") -> pd.DataFrame:
    """Per-fish ping counts and missing rate across the given (frequency) columns."""

    cols = list(cols)
    rows = []
    for fish, g in df.groupby(group_col, sort=True):
        block = g[cols]
        rows.append(
            {
                group_col: fish,
                "n_pings": int(len(g)),
                "missing_rate": round(float(block.isna().to_numpy().mean()), 6) if cols else np.nan,
                "pings_fully_missing": int(block.isna().all(axis=1).sum()) if cols else 0,
                "columns_fully_missing": int(block.isna().all(axis=0).sum()) if cols else 0,
            }
        )
    return pd.DataFrame(rows)


def screen_features(
    df: pd.DataFrame, cols: Sequence[str], max_missing_rate: float
) -> Tuple[List[str], List[str]]:
    """Split columns into (kept, dropped) by missing rate; the limit itself is kept."""

    if not 0.0 <= max_missing_rate <= 1.0:
        raise ValueError(f"max_missing_rate must be in [0, 1]; got {max_missing_rate}")
    rates = df[list(cols)].isna().mean() if len(df) else pd.Series(1.0, index=list(cols))
    kept = [c for c in cols if rates[c] <= max_missing_rate]
    dropped = [c for c in cols if rates[c] > max_missing_rate]
    return kept, dropped
