"""6 dB beam-compensation screen.

Beam compensation corrects target strength for the target's position in the
beam. Pings far off axis get large corrections that are unreliable, so a ping is
kept only when the correction stays within the threshold at every frequency.
"""

from __future__ import annotations

import pandas as pd

from fishtrack.data.validate import assert_required_columns

KEYS = ["fishNum", "FishTrack"]


def compensation_differences(comp_long: pd.DataFrame, uncomp_long: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(comp_long, KEYS + ["Frequency", "TS"])
    assert_required_columns(uncomp_long, KEYS + ["Frequency", "uncompTS"])
    diffs = comp_long.merge(uncomp_long, on=KEYS + ["Frequency"], how="inner")
    diffs["TSdifference"] = diffs["TS"] - diffs["uncompTS"]
    return diffs


def max_compensation_by_ping(diffs: pd.DataFrame) -> pd.DataFrame:
    # A missing difference at any frequency leaves the ping unscreened (NaN), so it is rejected.
    return (
        diffs.groupby(KEYS, sort=True)["TSdifference"]
        .agg(lambda s: s.max(skipna=False))
        .rename("MaxTSdiff")
        .reset_index()
    )


def accepted_pings(diffs: pd.DataFrame, max_db: float) -> pd.DataFrame:
    per_ping = max_compensation_by_ping(diffs)
    return per_ping.loc[per_ping["MaxTSdiff"] <= max_db].reset_index(drop=True)


def compensation_summary(diffs: pd.DataFrame, max_db: float) -> pd.DataFrame:
    per_ping = max_compensation_by_ping(diffs)
    rows = []
    for fish, g in per_ping.groupby("fishNum", sort=True):
        n_all = int(g["FishTrack"].nunique())
        n_kept = int(g.loc[g["MaxTSdiff"] <= max_db, "FishTrack"].nunique())
        rows.append(
            {
                "fish": fish,
                "Npings_all": n_all,
                "Npings_filtered": n_kept,
                "PropRemaining": round(n_kept / n_all, 2) if n_all else float("nan"),
            }
        )
    out = pd.DataFrame(rows, columns=["fish", "Npings_all", "Npings_filtered", "PropRemaining"])
    return out.sort_values(["PropRemaining", "fish"], kind="mergesort").reset_index(drop=True)
