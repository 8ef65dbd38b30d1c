from __future__ import annotations

import re
from typing import Iterable, List

import numpy as np
import pandas as pd

from fishtrack.config import SPECIES_TARGET_CODES


_FREQ_COL_RE = re.compile(r"^F(\d+(?:\.\d+)?)$")
_SPECIES_RE = re.compile(r"^([A-Za-z]+)")


def normalize_region_name(series: pd.Series) -> pd.Series:
    return series.astype(str).str.replace(" ", "_", regex=False)


def frequency_label(freq_khz: float) -> str:
    """Column label for a frequency in kHz: 45.0 -> 'F45', 45.5 -> 'F45.5'."""

    return f"F{float(freq_khz):g}"


def frequency_value(column: str) -> float:
    m = _FREQ_COL_RE.match(column)
    if m is None:
        raise ValueError(f"Not a frequency column: {column!r}")
    return float(m.group(1))


def is_frequency_column(column: str) -> bool:
    return _FREQ_COL_RE.match(str(column)) is not None


def order_frequency_columns(columns: Iterable[str]) -> List[str]:
    return sorted([c for c in columns if is_frequency_column(c)], key=frequency_value)


def frequency_columns(df: pd.DataFrame) -> List[str]:
    return order_frequency_columns(df.columns.astype(str).tolist())


def species_from_fish_id(fish_id: str) -> str:
    m = _SPECIES_RE.match(str(fish_id))
    if m is None:
        raise ValueError(f"Cannot derive species from fish id {fish_id!r}")
    return m.group(1).upper()


def encode_species_target(species: pd.Series) -> pd.Series:
    """Map species codes to the binary target; unknown codes are an error."""

    unexpected = sorted(set(species.dropna().unique().tolist()) - set(SPECIES_TARGET_CODES))
    if unexpected or species.isna().any():
        raise ValueError(
            f"Unexpected species codes for the binary target: {unexpected or ['<NA>']}; "
            f"expected {sorted(SPECIES_TARGET_CODES)}."
        )
    return species.map(SPECIES_TARGET_CODES).astype(int)


def summarize_missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Return per-column missingness summary in stable column order."""

    n = len(df)
    rows = []
    for col in df.columns.astype(str).tolist():
        n_missing = int(df[col].isna().sum())
        missing_rate = round(n_missing / n, 6) if n else np.nan
        rows.append({"column": col, "n": n, "n_missing": n_missing, "missing_rate": missing_rate})
    return pd.DataFrame(rows, columns=["column", "n", "n_missing", "missing_rate"])
