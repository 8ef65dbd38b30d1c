import pandas as pd
import pytest

from fishtrack.data.compensation import accepted_pings, compensation_differences, compensation_summary
from fishtrack.data.ingest import read_freq_response


def test_six_db_screen_rejects_overcompensated_ping(single_fish):
    comp = read_freq_response(single_fish, "LT001", compensated=True)
    uncomp = read_freq_response(single_fish, "LT001", compensated=False)
    diffs = compensation_differences(comp, uncomp)

    accepted = accepted_pings(diffs, 6.0)
    assert "Region_1_2" not in set(accepted["FishTrack"])
    assert len(accepted) == 10
    assert (accepted["MaxTSdiff"] <= 6.0).all()

    summary = compensation_summary(diffs, 6.0)
    assert summary.to_dict("records") == [
        {"fish": "LT001", "Npings_all": 11, "Npings_filtered": 10, "PropRemaining": 0.91}
    ]


def test_threshold_is_inclusive():
    diffs = pd.DataFrame(
        {
            "fishNum": ["A", "A", "B"],
            "FishTrack": ["t1", "t1", "t2"],
            "Frequency": [50.0, 60.0, 50.0],
            "TSdifference": [6.0, 1.0, 6.01],
        }
    )
    assert accepted_pings(diffs, 6.0)["FishTrack"].tolist() == ["t1"]
    summary = compensation_summary(diffs, 6.0)
    assert summary["fish"].tolist() == ["B", "A"]
    assert summary["PropRemaining"].tolist() == [0.0, 1.0]


def test_differences_require_columns():
    with pytest.raises(ValueError, match="uncompTS"):
        compensation_differences(
            pd.DataFrame(columns=["fishNum", "FishTrack", "Frequency", "TS"]),
            pd.DataFrame(columns=["fishNum", "FishTrack", "Frequency", "TS"]),
        )


def test_ping_with_missing_difference_is_rejected():
    diffs = pd.DataFrame(
        {
            "fishNum": ["A", "A", "A"],
            "FishTrack": ["t1", "t1", "t2"],
            "Frequency": [50.0, 60.0, 50.0],
            "TSdifference": [1.0, float("nan"), 1.0],
        }
    )
    assert accepted_pings(diffs, 6.0)["FishTrack"].tolist() == ["t2"]
    summary = compensation_summary(diffs, 6.0)
    assert summary.to_dict("records") == [
        {"fish": "A", "Npings_all": 2, "Npings_filtered": 1, "PropRemaining": 0.5}
    ]
