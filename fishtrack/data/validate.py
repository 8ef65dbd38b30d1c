from typing import Iterable

import pandas as pd


def assert_required_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def assert_unique_keys(df: pd.DataFrame, keys: Iterable[str], what: str = "table") -> None:
    keys = list(keys)
    dup = df.duplicated(subset=keys, keep=False)
    if dup.any():
        sample = df.loc[dup, keys].drop_duplicates().head(5).to_dict("records")
        raise ValueError(f"Duplicate {keys} rows in {what}: {sample}")
