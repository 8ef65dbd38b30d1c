from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from fishtrack.config import SPECIES_COL
from fishtrack.data.coding import frequency_label, order_frequency_columns, species_from_fish_id
from fishtrack.data.ingest import read_freq_response, read_single_targets, read_track_regions
from fishtrack.data.validate import assert_required_columns, assert_unique_keys

logger = logging.getLogger(__name__)

KEYS = ["fishNum", "FishTrack"]


def pivot_frequency_wide(freq_long: pd.DataFrame, value_col: str = "TS") -> pd.DataFrame:
    """One row per ping, one F<kHz> column per frequency."""

    assert_required_columns(freq_long, KEYS + ["Frequency", value_col])
    assert_unique_keys(freq_long, KEYS + ["Frequency"], what="frequency response")

    wide = freq_long.pivot(index=KEYS, columns="Frequency", values=value_col)
    wide = wide.sort_index(axis=1)
    wide.columns = [frequency_label(f) for f in wide.columns]
    wide.columns.name = None
    return wide.reset_index()


def build_fish_table(fish_id: str, fish_dir: Path, fish_info: pd.DataFrame) -> pd.DataFrame:
    """Merge biology, single targets, track regions and frequency response for one fish."""

    freq_wide = pivot_frequency_wide(read_freq_response(fish_dir, fish_id, compensated=True))
    targets = read_single_targets(fish_dir, fish_id)
    regions = read_track_regions(fish_dir, fish_id)

    tracks = targets.merge(regions, on=["fishNum", "Region_name"], how="inner")
    table = fish_info.merge(tracks, on="fishNum", how="inner")
    table = table.merge(freq_wide, on=KEYS, how="left")

    if table.empty:
        logger.warning("%s: no rows after joining fish info, targets and regions", fish_id)
    return table


def _column_order(columns: Iterable[str]) -> List[str]:
    columns = list(columns)
    freq_cols = order_frequency_columns(columns)
    return [c for c in columns if c not in set(freq_cols)] + freq_cols


def build_master_table(
    fish_ids: Iterable[str],
    exports_dir: Path,
    fish_info: pd.DataFrame,
    *,
    skip_bad_fish: bool = False,
    skipped: Optional[List[dict]] = None,
) -> pd.DataFrame:
    tables = []
    for fish_id in fish_ids:
        try:
            tables.append(build_fish_table(fish_id, exports_dir / fish_id, fish_info))
        except (ValueError, OSError) as exc:
            if not skip_bad_fish:
                raise
            logger.warning("%s: skipped (%s)", fish_id, exc)
            if skipped is not None:
                skipped.append({"fishNum": fish_id, "error": str(exc)})
            continue
        logger.info("imported %s", fish_id)

    if not tables:
        raise ValueError("No fish tables were imported.")

    master = pd.concat(tables, ignore_index=True, sort=False)
    if SPECIES_COL in master.columns:
        master = master.drop(columns=SPECIES_COL)
    master.insert(1, SPECIES_COL, master["fishNum"].map(species_from_fish_id))
    return master[_column_order(master.columns)]


def apply_compensation_filter(master: pd.DataFrame, accepted: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(accepted, KEYS + ["MaxTSdiff"])
    out = master.merge(accepted[KEYS + ["MaxTSdiff"]], on=KEYS, how="inner")
    cols = [c for c in out.columns if c != "MaxTSdiff"]
    pos = cols.index("FishTrack") + 1
    return out[cols[:pos] + ["MaxTSdiff"] + cols[pos:]]
