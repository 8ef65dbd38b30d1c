"""Per-fish ping diagnostics: where in the beam each ping sits and how TS varies with it."""

from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd

from fishtrack.data.validate import assert_required_columns

QUADRANTS = ["NW", "NE", "SW", "SE"]


def assign_quadrant(df: pd.DataFrame) -> pd.DataFrame:
    """Label each ping by the signs of its major/minor beam angles."""

    assert_required_columns(df, ["Angle_major_axis", "Angle_minor_axis"])
    major = df["Angle_major_axis"]
    minor = df["Angle_minor_axis"]
    conditions = [
        (major >= 0) & (minor >= 0),
        (major >= 0) & (minor < 0),
        (major < 0) & (minor >= 0),
        (major < 0) & (minor < 0),
    ]
    out = df.copy()
    quadrat = pd.Series(np.select(conditions, ["NE", "NW", "SE", "SW"], default=""), index=df.index, dtype=object)
    out["Quadrat"] = quadrat.where(quadrat != "", np.nan)
    return out


def fish_ids(df: pd.DataFrame) -> List[str]:
    assert_required_columns(df, ["fishNum"])
    return sorted(df["fishNum"].dropna().astype(str).unique().tolist())


def fish_pings(df: pd.DataFrame, fish_id: str) -> pd.DataFrame:
    sub = df.loc[df["fishNum"].astype(str) == str(fish_id)]
    if sub.empty:
        raise ValueError(f"No pings for fish {fish_id!r}")
    if "Quadrat" not in sub.columns:
        sub = assign_quadrant(sub)
    return sub


def quadrant_summary(df: pd.DataFrame, fish_id: str) -> pd.DataFrame:
    """Ping counts per quadrant; pings missing an angle are counted in a trailing NaN row."""

    pings = fish_pings(df, fish_id)
    counts = pings.groupby("Quadrat")["Quadrat"].size()
    out = (
        counts.reindex(QUADRANTS, fill_value=0)
        .rename("Ntargets")
        .rename_axis("Quadrat")
        .reset_index()
    )
    n_unassigned = int(pings["Quadrat"].isna().sum())
    if n_unassigned:
        out = pd.concat(
            [out, pd.DataFrame({"Quadrat": [np.nan], "Ntargets": [n_unassigned]})], ignore_index=True
        )
    return out
