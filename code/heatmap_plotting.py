# -*- coding: utf-8 -*-
"""
Created on Sun Oct  4 13:50:37 2026

heatmap_plotting.py

Figures for checking a run by eye:
  - area x hour heatmap of published hourly earnings, one figure per
    day of week (suppressed cells stay blank)
  - histogram of per-hour earnings with the outlier cut-offs of both
    detectors
"""
from __future__ import annotations

import calendar
from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from config import IQR_MULTIPLIER, PLOTS_DIR, ZSCORE_THRESHOLD
from schemas import require_columns


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ensure_out_dir(out_dir: Path | str | None) -> Path:
    """
    Ensure output directory exists; accept either Path or string.
    """
    if out_dir is None:
        out_dir = PLOTS_DIR
    if isinstance(out_dir, str):
        out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def area_hour_grid(estimates: pd.DataFrame, day_of_week: int, value_col: str = "published") -> pd.DataFrame:
    """
    Pivot one weekday's estimates to areas (rows) x hours 0-23 (columns).
    Missing cells are NaN.
    """
    require_columns(estimates, ["area_id", "day_of_week", "hour", value_col], "area_hour_grid")

    areas = sorted(estimates["area_id"].unique())
    day = estimates[estimates["day_of_week"] == day_of_week]
    if day.empty:
        return pd.DataFrame(np.nan, index=areas, columns=range(24))

    grid = day.pivot_table(index="area_id", columns="hour", values=value_col, aggfunc="first")
    return grid.reindex(index=areas, columns=range(24))


# ---------------------------------------------------------------------------
# Plots
# ---------------------------------------------------------------------------

def plot_area_hour_heatmap(
    estimates: pd.DataFrame,
    day_of_week: int,
    value_col: str = "published",
    area_names: dict | None = None,
    save: bool = False,
    out_dir: Path | str | None = None,
) -> Path | None:
    """Heatmap of value_col for one weekday (0=Mon)."""
    grid = area_hour_grid(estimates, day_of_week, value_col)
    day_name = calendar.day_name[day_of_week]

    if grid.isna().all().all():
        print(f"No published estimates for {day_name}; skipping heatmap.")
        return None

    labels = [
        area_names.get(a, str(a)) if area_names else str(a)
        for a in grid.index
    ]

    fig, ax = plt.subplots(figsize=(12, 0.4 * len(grid) + 2))
    masked = np.ma.masked_invalid(grid.to_numpy(dtype=float))
    im = ax.imshow(masked, aspect="auto", cmap="viridis")

    ax.set_xticks(range(24))
    ax.set_xticklabels([f"{h:02d}" for h in range(24)])
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels)
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("Area")
    ax.set_title(f"Average hourly earnings, {day_name}")
    fig.colorbar(im, ax=ax, shrink=0.8, label="$ / hour")
    fig.tight_layout()

    path = None
    if save:
        out_dir = _ensure_out_dir(out_dir)
        path = out_dir / f"heatmap_{day_name.lower()}.png"
        fig.savefig(path, dpi=150, bbox_inches="tight")
    else:
        plt.show()
    plt.close(fig)
    return path


def plot_all_days(
    estimates: pd.DataFrame,
    value_col: str = "published",
    area_names: dict | None = None,
    save: bool = False,
    out_dir: Path | str | None = None,
) -> list[Path]:
    paths = []
    for dow in range(7):
        path = plot_area_hour_heatmap(
            estimates, dow, value_col=value_col, area_names=area_names,
            save=save, out_dir=out_dir,
        )
        if path is not None:
            paths.append(path)
    return paths


def plot_outlier_cutoffs(
    rows: pd.DataFrame,
    col: str = "hour_earnings",
    threshold: float = ZSCORE_THRESHOLD,
    k: float = IQR_MULTIPLIER,
    bin_width: float = 1.0,
    save: bool = False,
    out_dir: Path | str | None = None,
) -> Path | None:
    """Histogram of col with the z-score and IQR upper cut-offs marked."""
    s = pd.to_numeric(rows[col], errors="coerce").dropna()
    if s.empty:
        print(f"No data for {col}; skipping outlier histogram.")
        return None

    z_cut = s.mean() + threshold * s.std()
    q1, q3 = s.quantile([0.25, 0.75])
    iqr_cut = q3 + k * (q3 - q1)

    mn = np.floor(s.min() / bin_width) * bin_width
    mx = max(np.ceil(s.max() / bin_width) * bin_width, mn + bin_width)
    bins = np.arange(mn, mx + bin_width, bin_width)

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.hist(s, bins=bins)
    ax.axvline(z_cut, color="red", linewidth=2, linestyle="--",
               label=f"z-score cut = {z_cut:.2f}")
    ax.axvline(iqr_cut, color="black", linewidth=2, linestyle=":",
               label=f"IQR cut = {iqr_cut:.2f}")
    ax.set_title(f"Distribution of {col}")
    ax.set_xlabel(col)
    ax.set_ylabel("Count")
    ax.grid(True, axis="y", alpha=0.3)
    ax.legend()

    path = None
    if save:
        out_dir = _ensure_out_dir(out_dir)
        path = out_dir / f"outlier_cutoffs_{col}.png"
        fig.savefig(path, dpi=150, bbox_inches="tight")
    else:
        plt.show()
    plt.close(fig)
    return path
