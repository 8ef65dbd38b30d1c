import pandas as pd
import pytest

from fishtrack.data.build import (
    apply_compensation_filter,
    build_fish_table,
    build_master_table,
    pivot_frequency_wide,
)
from fishtrack.data.coding import (
    encode_species_target,
    frequency_columns,
    frequency_label,
    order_frequency_columns,
    species_from_fish_id,
)
from fishtrack.data.ingest import list_fish_ids, read_fish_info, read_freq_response


def test_frequency_labels_and_order():
    assert frequency_label(45.0) == "F45"
    assert frequency_label(45.5) == "F45.5"
    assert order_frequency_columns(["F100", "fishNum", "F45.5", "F9", "F45"]) == ["F9", "F45", "F45.5", "F100"]


def test_species_coding():
    assert species_from_fish_id("SMB004") == "SMB"
    assert species_from_fish_id("lt001") == "LT"
    assert encode_species_target(pd.Series(["LT", "SMB"])).tolist() == [0, 1]
    with pytest.raises(ValueError, match="LWF"):
        encode_species_target(pd.Series(["LT", "LWF"]))


def test_pivot_frequency_wide(single_fish):
    wide = pivot_frequency_wide(read_freq_response(single_fish, "LT001"))
    assert wide.columns[:2].tolist() == ["fishNum", "FishTrack"]
    assert frequency_columns(wide)[0] == "F50"
    assert "F89.5" in wide.columns
    assert len(wide) == 11


def test_pivot_rejects_duplicate_frequencies():
    long = pd.DataFrame(
        {"fishNum": ["LT001"] * 2, "FishTrack": ["R_1"] * 2, "Frequency": [90.0, 90.0], "TS": [-40.0, -41.0]}
    )
    with pytest.raises(ValueError, match="Duplicate"):
        pivot_frequency_wide(long)


def test_build_fish_table(exports_root):
    exports, info_path = exports_root
    table = build_fish_table("LT001", exports / "LT001", read_fish_info(info_path))
    assert len(table) == 11
    assert {"totalLength", "TS_mean", "aspectAngle", "F200"} <= set(table.columns)


def test_build_master_table_orders_columns(exports_root):
    exports, info_path = exports_root
    master = build_master_table(list_fish_ids(exports), exports, read_fish_info(info_path))

    freq = frequency_columns(master)
    assert master.columns[-len(freq):].tolist() == freq
    assert master.columns[:2].tolist() == ["fishNum", "species"]
    assert set(master["species"]) == {"LT", "SMB", "LWF"}
    assert len(master) == 17 * 11
    # SMB008 has no 200 kHz export.
    assert master.loc[master["fishNum"] == "SMB008", "F200"].isna().all()


def test_build_master_table_skip_bad_fish(exports_root):
    exports, info_path = exports_root
    (exports / "LT002" / "FreqResponse70.csv").unlink()
    info = read_fish_info(info_path)

    with pytest.raises(ValueError):
        build_master_table(["LT001", "LT002"], exports, info)

    skipped = []
    master = build_master_table(["LT001", "LT002"], exports, info, skip_bad_fish=True, skipped=skipped)
    assert set(master["fishNum"]) == {"LT001"}
    assert [s["fishNum"] for s in skipped] == ["LT002"]


def test_apply_compensation_filter_places_max_diff():
    master = pd.DataFrame(
        {"fishNum": ["LT001", "LT001"], "species": ["LT", "LT"], "FishTrack": ["R_1", "R_2"], "F50": [-40.0, -41.0]}
    )
    accepted = pd.DataFrame({"fishNum": ["LT001"], "FishTrack": ["R_2"], "MaxTSdiff": [2.5]})
    out = apply_compensation_filter(master, accepted)
    assert out.columns.tolist() == ["fishNum", "species", "FishTrack", "MaxTSdiff", "F50"]
    assert out["FishTrack"].tolist() == ["R_2"]
