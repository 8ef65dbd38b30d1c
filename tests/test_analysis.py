import numpy as np
import pandas as pd
import pytest

from fishtrack.analysis.correlation import correlation_matrix, species_point_biserial, top_correlated_pairs
from fishtrack.analysis.decomposition import fit_pca
from fishtrack.analysis.missingness import missingness_by_column, missingness_by_fish, screen_features
from fishtrack.analysis.outliers import filter_outliers, zscore_outlier_mask
from fishtrack.diagnostics import assign_quadrant, fish_ids, quadrant_summary


@pytest.fixture
def pings():
    rng = np.random.default_rng(7)
    n = 40
    df = pd.DataFrame(
        {
            "fishNum": ["LT001"] * 20 + ["SMB001"] * 20,
            "species": ["LT"] * 20 + ["SMB"] * 20,
            "F50": rng.normal(-40, 1, n),
            "F60": rng.normal(-42, 1, n),
        }
    )
    df["F70"] = df["F50"] * 0.9 + rng.normal(0, 0.1, n)
    df.loc[:11, "F200"] = np.nan
    df.loc[12:, "F200"] = -45.0
    return df


def test_missingness_tables(pings):
    by_col = missingness_by_column(pings).set_index("column")
    assert by_col.loc["F200", "n_missing"] == 12
    assert by_col.loc["F200", "pct_missing"] == pytest.approx(30.0)

    by_fish = missingness_by_fish(pings, ["F50", "F200"]).set_index("fishNum")
    assert by_fish.loc["LT001", "missing_rate"] == pytest.approx(12 / 40)
    assert by_fish.loc["SMB001", "missing_rate"] == 0.0


def test_screen_features(pings):
    kept, dropped = screen_features(pings, ["F50", "F60", "F200"], 0.2)
    assert kept == ["F50", "F60"]
    assert dropped == ["F200"]

    kept, dropped = screen_features(pings, ["F50", "F200"], 0.3)
    assert dropped == []

    with pytest.raises(ValueError):
        screen_features(pings, ["F50"], 1.5)


def test_outlier_mask_flags_extreme_ping(pings):
    pings.loc[3, ["F50", "F60", "F70"]] = [-10.0, -10.0, -10.0]
    mask = zscore_outlier_mask(pings, ["F50", "F60", "F70"], threshold=3.0, by="fishNum")
    assert mask.dtype == bool
    assert mask.tolist().count(True) == 1
    assert mask.iloc[3]

    retained, counts = filter_outliers(pings, ["F50", "F60", "F70"], threshold=3.0)
    assert len(retained) == 39
    assert counts.set_index("fishNum").loc["LT001", "n_outliers"] == 1


def test_outlier_mask_ignores_degenerate_groups():
    df = pd.DataFrame({"fishNum": ["A", "B", "B"], "F50": [-10.0, -40.0, -40.0]})
    assert not zscore_outlier_mask(df, ["F50"], threshold=1.0).any()


def test_pca_clips_components(pings):
    result = fit_pca(pings, ["F50", "F60", "F70"], n_components=10)
    assert result.scores.shape == (40, 3)
    assert result.explained_variance["cumulative_ratio"].iloc[-1] == pytest.approx(1.0)
    assert result.loadings["feature"].tolist() == ["F50", "F60", "F70"]


def test_pca_imputes_missing(pings):
    result = fit_pca(pings, ["F50", "F200"], n_components=1)
    assert not result.scores.isna().any().any()


def test_correlation_pairs(pings):
    corr = correlation_matrix(pings, ["F50", "F60", "F70"])
    top = top_correlated_pairs(corr, 2)
    assert len(top) == 2
    assert {top.loc[0, "feature_a"], top.loc[0, "feature_b"]} == {"F50", "F70"}
    assert (top["feature_a"] != top["feature_b"]).all()

    with pytest.raises(ValueError):
        correlation_matrix(pings, ["F50"], method="cosine")


def test_species_point_biserial(pings):
    pings["y_smb"] = (pings["species"] == "SMB").astype(int)
    pings.loc[pings["species"] == "SMB", "F60"] += 5.0
    out = species_point_biserial(pings, ["F50", "F60", "F200"], "y_smb")
    assert out.loc[0, "feature"] == "F60"
    assert np.isnan(out.set_index("feature").loc["F200", "r_species"])


def test_quadrants():
    df = pd.DataFrame(
        {
            "fishNum": ["LT001"] * 5,
            "Angle_major_axis": [1.0, 1.0, -1.0, -1.0, np.nan],
            "Angle_minor_axis": [0.0, -2.0, 2.0, -2.0, 1.0],
        }
    )
    out = assign_quadrant(df)
    assert out["Quadrat"].iloc[:4].tolist() == ["NE", "NW", "SE", "SW"]
    assert pd.isna(out["Quadrat"].iloc[4])

    summary = quadrant_summary(df, "LT001")
    assert summary.columns.tolist() == ["Quadrat", "Ntargets"]
    assert summary["Ntargets"].sum() == 5
    assert summary["Quadrat"].iloc[:4].tolist() == ["NW", "NE", "SW", "SE"]
    assert pd.isna(summary["Quadrat"].iloc[4])
    assert summary["Ntargets"].iloc[4] == 1
    assert fish_ids(df) == ["LT001"]

    with pytest.raises(ValueError):
        quadrant_summary(df, "SMB001")
