import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

# Matplotlib must be configured before importing pyplot.
_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import matplotlib  # noqa: E402

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from scipy.stats import gaussian_kde  # noqa: E402
from sklearn.metrics import ConfusionMatrixDisplay, roc_curve  # noqa: E402

from fishtrack.diagnostics import QUADRANTS  # noqa: E402


def save_figure(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def plot_missingness_bar(miss: pd.DataFrame, path: Path, title: str) -> None:
    miss_sorted = miss.sort_values(["pct_missing", "column"], ascending=[False, True], kind="mergesort")
    fig, ax = plt.subplots(figsize=(12, 5))
    ax.bar(miss_sorted["column"], miss_sorted["pct_missing"])
    ax.set_title(title)
    ax.set_ylabel("Percent missing")
    ax.set_xlabel("Column")
    ax.set_ylim(0, max(1.0, float(miss_sorted["pct_missing"].max() or 0.0) * 1.05))
    ax.tick_params(axis="x", rotation=90, labelsize=5)
    fig.tight_layout()
    save_figure(fig, path)


def plot_mean_frequency_response(df: pd.DataFrame, freq_cols: Sequence[str], species_col: str, path: Path) -> None:
    freqs = [float(c[1:]) for c in freq_cols]
    fig, ax = plt.subplots(figsize=(9, 5))
    for species, g in df.groupby(species_col, sort=True):
        mean = g[list(freq_cols)].mean()
        sd = g[list(freq_cols)].std()
        ax.plot(freqs, mean.to_numpy(), linewidth=2, label=f"{species} (n={len(g)})")
        ax.fill_between(freqs, (mean - sd).to_numpy(), (mean + sd).to_numpy(), alpha=0.2)
    ax.set_title("Mean Frequency Response by Species (±1 SD)")
    ax.set_xlabel("Frequency (kHz)")
    ax.set_ylabel("TS (dB re 1 m²)")
    ax.legend()
    fig.tight_layout()
    save_figure(fig, path)


def plot_pca_scores(scores: pd.DataFrame, labels: pd.Series, explained: pd.DataFrame, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(7, 6))
    y_col = "PC2" if "PC2" in scores.columns else "PC1"
    for label in sorted(labels.dropna().unique().tolist()):
        mask = (labels == label).to_numpy()
        ax.scatter(scores.loc[mask, "PC1"], scores.loc[mask, y_col], s=8, alpha=0.6, label=str(label))
    ratios = explained.set_index("component")["explained_variance_ratio"]
    ax.set_xlabel(f"PC1 ({ratios.get('PC1', np.nan) * 100:.1f}%)")
    ax.set_ylabel(f"{y_col} ({ratios.get(y_col, np.nan) * 100:.1f}%)")
    ax.set_title("PCA of Frequency Response")
    ax.legend()
    fig.tight_layout()
    save_figure(fig, path)


def plot_scree(explained: pd.DataFrame, path: Path) -> None:
    x = np.arange(1, len(explained) + 1)
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(x, explained["explained_variance_ratio"], label="Component")
    ax.plot(x, explained["cumulative_ratio"], marker="o", color="black", label="Cumulative")
    ax.set_xticks(x)
    ax.set_xlabel("Principal component")
    ax.set_ylabel("Explained variance ratio")
    ax.set_ylim(0, 1.05)
    ax.legend()
    fig.tight_layout()
    save_figure(fig, path)


def plot_correlation_heatmap(corr: pd.DataFrame, path: Path, title: str) -> None:
    fig, ax = plt.subplots(figsize=(9, 8))
    im = ax.imshow(corr.to_numpy(), vmin=-1, vmax=1, cmap="RdBu_r")
    step = max(1, len(corr) // 20)
    ticks = np.arange(0, len(corr), step)
    ax.set_xticks(ticks)
    ax.set_xticklabels(corr.columns[ticks], rotation=90, fontsize=6)
    ax.set_yticks(ticks)
    ax.set_yticklabels(corr.index[ticks], fontsize=6)
    ax.set_title(title)
    fig.colorbar(im, ax=ax, shrink=0.8)
    fig.tight_layout()
    save_figure(fig, path)


def plot_roc(y_true, y_prob, path: Path, title: str, auc: Optional[float] = None) -> None:
    fpr, tpr, _ = roc_curve(np.asarray(y_true, dtype=int), np.asarray(y_prob, dtype=float))
    fig, ax = plt.subplots(figsize=(6, 5))
    label = f"AUC={auc:.3f}" if auc is not None and not np.isnan(auc) else "ROC"
    ax.plot(fpr, tpr, linewidth=2, label=label)
    ax.plot([0, 1], [0, 1], "--", color="gray", linewidth=1)
    ax.set_title(title)
    ax.set_xlabel("False positive rate")
    ax.set_ylabel("True positive rate")
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.legend()
    fig.tight_layout()
    save_figure(fig, path)


def plot_confusion_matrix(y_true, y_pred, display_labels: Sequence[str], path: Path, title: str) -> None:
    fig, ax = plt.subplots(figsize=(4, 4))
    ConfusionMatrixDisplay.from_predictions(
        np.asarray(y_true, dtype=int),
        np.asarray(y_pred, dtype=int),
        labels=[0, 1],
        display_labels=list(display_labels),
        ax=ax,
        colorbar=False,
    )
    ax.set_title(title)
    fig.tight_layout()
    save_figure(fig, path)


def _quadrant_scatter(pings: pd.DataFrame, x: str, y: str, offset: float, title: str, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(6, 6))
    sc = ax.scatter(pings[x], pings[y], c=pings["TS_mean"], cmap="viridis", s=12)
    for label, (sx, sy) in {"NE": (1, 1), "NW": (-1, 1), "SW": (-1, -1), "SE": (1, -1)}.items():
        ax.text(sx * offset, sy * offset, label, ha="center", va="center", fontweight="bold")
    ax.axhline(0, color="black", linewidth=0.8)
    ax.axvline(0, color="black", linewidth=0.8)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title)
    fig.colorbar(sc, ax=ax, label="TS_mean")
    fig.tight_layout()
    save_figure(fig, path)


def plot_axis_distances(pings: pd.DataFrame, fish_id: str, path: Path) -> None:
    _quadrant_scatter(pings, "Distance_minor_axis", "Distance_major_axis", 1.0, f"Axis Distances: {fish_id}", path)


def plot_axis_angles(pings: pd.DataFrame, fish_id: str, path: Path) -> None:
    _quadrant_scatter(pings, "Angle_minor_axis", "Angle_major_axis", 4.0, f"Axis Angles: {fish_id}", path)


def plot_quadrant_densities(pings: pd.DataFrame, value_col: str, fish_id: str, path: Path) -> None:
    """One kernel-density panel per beam quadrant, laid out NW/NE over SW/SE."""

    fig, axes = plt.subplots(2, 2, figsize=(9, 7), sharex=True)
    for ax, quad in zip(axes.ravel(), QUADRANTS):
        vals = pings.loc[pings["Quadrat"] == quad, value_col].dropna()
        if vals.nunique() > 1:
            grid = np.linspace(vals.min(), vals.max(), 200)
            density = gaussian_kde(vals.to_numpy())(grid)
            ax.fill_between(grid, density, color="grey", alpha=0.5)
            ax.plot(grid, density, color="black", linewidth=1)
        elif len(vals):
            # A constant sample has no spread to smooth.
            ax.axvline(vals.iloc[0], color="black", linewidth=1)
        else:
            ax.text(0.5, 0.5, "no pings", transform=ax.transAxes, ha="center", va="center")
        ax.set_title(f"{quad} (n={len(vals)})")
        ax.set_xlabel(value_col)
    fig.suptitle(f"{value_col} by Quadrant: {fish_id}")
    fig.tight_layout()
    save_figure(fig, path)
