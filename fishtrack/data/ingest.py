"""Readers for the per-fish Echoview CSV exports.

Each fish directory holds the wideband frequency-response exports (one file per
transducer band, with and without beam compensation) plus the single-target and
region exports of the tracked fish.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List

import numpy as np
import pandas as pd

from fishtrack.config import (
    FREQ_BAND_LIMITS_KHZ,
    FREQ_BANDS_KHZ,
    FREQ_DATA_START_ROW,
    FREQ_PING_INDEX_ROW,
    FREQ_REGION_NAME_ROW,
    FREQ_REQUIRED_BAND_KHZ,
    FREQ_RESPONSE_FILE,
    FREQ_RESPONSE_UNCOMP_FILE,
    FREQ_TRAILING_COLS,
    REGION_COLUMNS,
    REGION_MEAN_BLOCK,
    REGIONS_FILE,
    TARGET_COLUMNS,
    TARGETS_FILE,
)
from fishtrack.data.coding import normalize_region_name
from fishtrack.data.validate import assert_required_columns

logger = logging.getLogger(__name__)


def list_fish_ids(exports_dir: Path) -> List[str]:
    if not exports_dir.is_dir():
        raise ValueError(f"Export directory not found: {exports_dir}")
    return sorted(p.name for p in exports_dir.iterdir() if p.is_dir() and not p.name.startswith("."))


def _read_rows(path: Path) -> List[List[str]]:
    # Header rows are shorter than data rows, so the file is not rectangular.
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.reader(f)]


def _header_values(rows: List[List[str]], row_idx: int, label: str, path: Path) -> List[str]:
    if len(rows) <= row_idx or not rows[row_idx]:
        raise ValueError(f"{path.name}: missing {label} header at line {row_idx + 1}")
    row = rows[row_idx]
    if row[0].strip() != label:
        raise ValueError(f"{path.name}: expected {label!r} at line {row_idx + 1}, found {row[0]!r}")
    return [v.strip() for v in row[1:] if v.strip() != ""]


def _read_band(path: Path, band: int) -> pd.DataFrame:
    """Parse one frequency-response export into a wide frame (Frequency + one column per ping)."""

    rows = _read_rows(path)
    ping_index = _header_values(rows, FREQ_PING_INDEX_ROW, "Ping_index", path)
    region_names = _header_values(rows, FREQ_REGION_NAME_ROW, "Region_name", path)
    if len(ping_index) != len(region_names):
        raise ValueError(
            f"{path.name}: {len(ping_index)} ping indices but {len(region_names)} region names"
        )

    tracks = [f"{r}_{p}".replace(" ", "_") for r, p in zip(region_names, ping_index)]
    expected_width = 1 + len(tracks) + len(FREQ_TRAILING_COLS)

    data = [row for row in rows[FREQ_DATA_START_ROW:] if any(v.strip() for v in row)]
    bad = [i for i, row in enumerate(data) if len(row) != expected_width]
    if bad:
        raise ValueError(
            f"{path.name}: data rows must have {expected_width} fields; "
            f"first bad row at line {FREQ_DATA_START_ROW + bad[0] + 1}"
        )

    wide = pd.DataFrame(data, columns=["Frequency"] + tracks + FREQ_TRAILING_COLS)
    wide = wide.drop(columns=FREQ_TRAILING_COLS)
    wide = wide.apply(pd.to_numeric, errors="coerce")

    low, high = FREQ_BAND_LIMITS_KHZ.get(band, (None, None))
    if low is not None:
        wide = wide.loc[wide["Frequency"] >= low]
    if high is not None:
        wide = wide.loc[wide["Frequency"] <= high]
    return wide


def read_freq_response(fish_dir: Path, fish_id: str, compensated: bool = True) -> pd.DataFrame:
    """Read all transducer bands for one fish into long form.

    Returns columns fishNum, FishTrack, Frequency and TS (uncompTS when
    compensated=False). The 70 kHz band is required; the others are read when present.
    """

    template = FREQ_RESPONSE_FILE if compensated else FREQ_RESPONSE_UNCOMP_FILE
    value_col = "TS" if compensated else "uncompTS"

    bands = []
    for band in FREQ_BANDS_KHZ:
        path = fish_dir / template.format(band=band)
        if not path.exists():
            if band == FREQ_REQUIRED_BAND_KHZ:
                raise ValueError(f"{fish_id}: required export not found: {path}")
            logger.warning("%s: no %d kHz export (%s); band skipped", fish_id, band, path.name)
            continue
        bands.append(_read_band(path, band))

    wide = pd.concat(bands, ignore_index=True, sort=False)
    long = wide.melt(id_vars="Frequency", var_name="FishTrack", value_name=value_col)
    long.insert(0, "fishNum", fish_id)
    return long[["fishNum", "FishTrack", "Frequency", value_col]].reset_index(drop=True)


def _forward_delta(next_values: pd.Series, values: pd.Series, consecutive: pd.Series) -> pd.Series:
    return (next_values - values).where(consecutive)


def read_single_targets(fish_dir: Path, fish_id: str) -> pd.DataFrame:
    df = pd.read_csv(fish_dir / TARGETS_FILE)
    df.columns = df.columns.str.strip()
    assert_required_columns(df, [c for c in TARGET_COLUMNS if c != "FishTrack"] + ["Ping_number"])

    df["Region_name"] = normalize_region_name(df["Region_name"])
    df["FishTrack"] = df["Region_name"] + "_" + df["Ping_number"].astype(int).astype(str)
    df = df[TARGET_COLUMNS].copy()
    df.insert(0, "fishNum", fish_id)
    df["pingNumber"] = df["FishTrack"].str.rsplit("_", n=1).str[-1].astype(float)

    # Deltas to the next ping in the same track, defined only for consecutive pings.
    grouped = df.groupby(["fishNum", "Region_name"], sort=False)
    consecutive = (grouped["pingNumber"].shift(-1) - df["pingNumber"]).abs() == 1
    df["deltaRange"] = _forward_delta(grouped["Target_range"].shift(-1), df["Target_range"], consecutive)
    df["deltaMinAng"] = _forward_delta(grouped["Angle_minor_axis"].shift(-1), df["Angle_minor_axis"], consecutive)
    df["deltaMajAng"] = _forward_delta(grouped["Angle_major_axis"].shift(-1), df["Angle_major_axis"], consecutive)

    with np.errstate(divide="ignore", invalid="ignore"):
        lateral = np.sqrt(df["deltaMajAng"] ** 2 + df["deltaMinAng"] ** 2)
        df["aspectAngle"] = np.degrees(np.arctan(df["deltaRange"] / lateral))

    lead = ["fishNum", "Region_name", "FishTrack", "Ping_time", "deltaRange", "deltaMinAng", "deltaMajAng", "aspectAngle"]
    rest = [c for c in df.columns if c not in lead]
    return df[lead + rest].reset_index(drop=True)


def read_track_regions(fish_dir: Path, fish_id: str) -> pd.DataFrame:
    df = pd.read_csv(fish_dir / REGIONS_FILE)
    df.columns = df.columns.str.strip()
    first, last = REGION_MEAN_BLOCK
    assert_required_columns(df, REGION_COLUMNS + [first, last])

    cols = df.columns.tolist()
    start, stop = cols.index(first), cols.index(last)
    if stop < start:
        raise ValueError(f"{fish_id}: {last} precedes {first} in {REGIONS_FILE}")

    df = df[REGION_COLUMNS + cols[start : stop + 1]].copy()
    df["Region_name"] = normalize_region_name(df["Region_name"])
    df.insert(0, "fishNum", fish_id)
    return df


def read_fish_info(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    df.columns = df.columns.str.strip()
    assert_required_columns(df, ["fishNum"])
    df["fishNum"] = df["fishNum"].astype(str).str.strip()
    if "dateTimeSample" in df.columns:
        df["dateTimeSample"] = pd.to_datetime(df["dateTimeSample"], errors="coerce")
    return df
