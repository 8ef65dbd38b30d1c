from pathlib import Path

import numpy as np
import pandas as pd
import pytest

BAND_FREQS = {
    70: [50.0, 60.0, 70.0, 80.0, 89.5, 90.0],
    120: [90.0, 100.0, 120.0, 140.0, 160.0, 170.0],
    200: [160.0, 170.0, 180.0, 190.0, 200.0],
}
TRACKS = {"Region 1": [1, 2, 3, 4, 5, 6], "Region 2": [10, 11, 12, 14, 15]}
REJECTED_PING = ("Region 1", 2)


def _species_ts(fish_id: str, freq: float, rng: np.random.Generator) -> float:
    if fish_id.startswith("SMB"):
        base = -46.0 + 0.04 * (freq - 100.0)
    elif fish_id.startswith("LT"):
        base = -38.0 + 2.5 * np.sin(freq / 25.0)
    else:
        base = -42.0
    return float(base + rng.normal(0.0, 0.5))


def _write_freq_export(path: Path, freqs, pings, values, extra_label: str = "TS") -> None:
    regions = [r for r, _ in pings]
    indices = [str(p) for _, p in pings]
    lines = [
        ",".join(["Ping_date"] + ["2022-09-12"] * len(pings)),
        ",".join(["Ping_index"] + indices),
        ",".join(["Ping_time"] + ["10:00:00"] * len(pings)),
        ",".join(["Ping_milliseconds"] + ["0"] * len(pings)),
        ",".join(["Range_start"] + ["0"] * len(pings)),
        ",".join(["Range_stop"] + ["20"] * len(pings)),
        ",".join(["Target_count"] + ["1"] * len(pings)),
        ",".join(["Region_name"] + regions),
    ]
    for i, f in enumerate(freqs):
        row = [f"{f:g}"] + [f"{values[(f, r, p)]:.4f}" for r, p in pings] + [str(i), extra_label]
        lines.append(",".join(row))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def write_fish(root: Path, fish_id: str, seed: int = 0, bands=(70, 120, 200)) -> Path:
    """Write one fish's Echoview exports (compensated, uncompensated, targets, regions)."""

    rng = np.random.default_rng(seed)
    fish_dir = root / fish_id
    fish_dir.mkdir(parents=True, exist_ok=True)
    pings = [(r, p) for r, ps in TRACKS.items() for p in ps]

    comp, uncomp = {}, {}
    for band in bands:
        for f in BAND_FREQS[band]:
            for r, p in pings:
                key = (f, r, p)
                if key not in comp:
                    comp[key] = _species_ts(fish_id, f, rng)
                    diff = 8.0 if ((r, p) == REJECTED_PING and f == 100.0) else float(rng.uniform(0.0, 3.0))
                    uncomp[key] = comp[key] - diff

    for band in bands:
        _write_freq_export(fish_dir / f"FreqResponse{band}.csv", BAND_FREQS[band], pings, comp)
        _write_freq_export(fish_dir / f"FreqResponse{band}_uncompTS.csv", BAND_FREQS[band], pings, uncomp)

    rows = []
    for r, ps in TRACKS.items():
        for i, p in enumerate(ps):
            rows.append(
                {
                    "Region_name": r,
                    "Ping_number": p,
                    "Ping_time": f"10:00:{p:02d}",
                    "Target_range": 10.0 + 0.1 * i,
                    "Angle_minor_axis": float(rng.uniform(-3, 3)),
                    "Angle_major_axis": float(rng.uniform(-3, 3)),
                    "Distance_minor_axis": float(rng.uniform(-0.5, 0.5)),
                    "Distance_major_axis": float(rng.uniform(-0.5, 0.5)),
                    "StandDev_Angles_Minor_Axis": 0.1,
                    "StandDev_Angles_Major_Axis": 0.1,
                    "Target_true_depth": 12.0 + 0.05 * i,
                    "TS_comp": -40.0,
                }
            )
    pd.DataFrame(rows).to_csv(fish_dir / "ExportedFishTracks (targets).csv", index=False)

    pd.DataFrame(
        [
            {
                "Region_ID": i + 1,
                "Region_name": r,
                "Ping_S": ps[0],
                "Ping_E": ps[-1],
                "Num_targets": len(ps),
                "TS_mean": float(np.mean([comp[(50.0, r, p)] for p in ps])),
                "Target_range_mean": 10.2,
                "Target_depth_mean": 12.1,
                "Region_top_altitude_mean": 3.0,
                "Region_notes": "",
            }
            for i, (r, ps) in enumerate(TRACKS.items())
        ]
    ).to_csv(fish_dir / "ExportedFishTracks (regions).csv", index=False)
    return fish_dir


@pytest.fixture
def exports_root(tmp_path: Path):
    """Sixteen modelled fish (8 LT, 8 SMB), one LWF, and a fish-info table."""

    exports = tmp_path / "fish"
    fish = [f"LT{i:03d}" for i in range(1, 9)] + [f"SMB{i:03d}" for i in range(1, 9)] + ["LWF001"]
    for seed, fish_id in enumerate(fish):
        bands = (70, 120) if fish_id == "SMB008" else (70, 120, 200)
        write_fish(exports, fish_id, seed=seed, bands=bands)

    info = pd.DataFrame(
        {
            "fishNum": fish,
            "dateTimeSample": ["2022-09-12 10:00:00"] * len(fish),
            "totalLength": np.linspace(300, 500, len(fish)),
            "weight": np.linspace(400, 1500, len(fish)),
        }
    )
    info_path = tmp_path / "fishInfo.csv"
    info.to_csv(info_path, index=False)
    return exports, info_path


@pytest.fixture
def single_fish(tmp_path: Path):
    exports = tmp_path / "fish"
    write_fish(exports, "LT001", seed=1)
    return exports / "LT001"
