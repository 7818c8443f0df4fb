# -*- coding: utf-8 -*-
"""
Created on Fri Oct  2 15:30:44 2026

job_filters.py

Outlier detection and error filters for job / job-hour tables.

Outliers: two detectors over the per-hour earnings distribution,
    - z-score: (x - mean) / std > ZSCORE_THRESHOLD
    - IQR:     x outside [Q1 - k*IQR, Q3 + k*IQR]
Both flags are always computed; only OUTLIER_METHOD's flag drops rows.

Errors: independent row predicates, each DataFrame -> DataFrame,
    - duration over the job-type ceiling (ride 6h / delivery 2h)
    - dropoff before pickup (or missing timestamps)
    - duplicate (job_id, date, hour) rows
    - jobs touching more than MAX_AREAS_PER_JOB areas
    - rows with no attributed area
"""
from __future__ import annotations

import pandas as pd

from config import (
    IQR_MULTIPLIER,
    MAX_AREAS_PER_JOB,
    MAX_DURATION_HOURS,
    OUTLIER_METHOD,
    ZSCORE_THRESHOLD,
)
from schemas import require_columns


OUTLIER_METHODS = ("zscore", "iqr")


def _report_drop(label: str, before: int, after: int) -> None:
    print(f"[Filter] {label}: dropped {before - after:,} of {before:,} rows")


# ---------------------------------------------------------------------------
# Outlier detectors
# ---------------------------------------------------------------------------

def zscore_outlier_mask(
    values: pd.Series,
    threshold: float = ZSCORE_THRESHOLD,
    two_sided: bool = False,
) -> pd.Series:
    """
    True where (x - mean) / std exceeds threshold (sample std).
    One-sided by default: only unusually high values are flagged.
    """
    x = pd.to_numeric(values, errors="coerce")
    std = x.std()
    if pd.isna(std) or std == 0:
        return pd.Series(False, index=x.index)

    z = (x - x.mean()) / std
    if two_sided:
        z = z.abs()
    return (z > threshold).fillna(False)


def iqr_outlier_mask(values: pd.Series, k: float = IQR_MULTIPLIER) -> pd.Series:
    """True where x is outside [Q1 - k*IQR, Q3 + k*IQR]."""
    x = pd.to_numeric(values, errors="coerce")
    q1 = x.quantile(0.25)
    q3 = x.quantile(0.75)
    iqr = q3 - q1
    lower = q1 - k * iqr
    upper = q3 + k * iqr
    return ((x < lower) | (x > upper)).fillna(False)


def flag_zscore_outliers(
    df: pd.DataFrame,
    col: str,
    threshold: float = ZSCORE_THRESHOLD,
    two_sided: bool = False,
) -> pd.DataFrame:
    out = df.copy()
    out["outlier_zscore"] = zscore_outlier_mask(out[col], threshold, two_sided)
    return out


def flag_iqr_outliers(df: pd.DataFrame, col: str, k: float = IQR_MULTIPLIER) -> pd.DataFrame:
    out = df.copy()
    out["outlier_iqr"] = iqr_outlier_mask(out[col], k)
    return out


def drop_outliers(
    df: pd.DataFrame,
    col: str = "hour_earnings",
    method: str = OUTLIER_METHOD,
    threshold: float = ZSCORE_THRESHOLD,
    k: float = IQR_MULTIPLIER,
) -> pd.DataFrame:
    """
    Flag with both detectors, print how they compare, and drop the rows
    flagged by `method`. The flag columns stay on the returned table.
    """
    if method not in OUTLIER_METHODS:
        raise ValueError(f"method must be one of {OUTLIER_METHODS}, got {method!r}")
    require_columns(df, [col], "drop_outliers")

    flagged = flag_zscore_outliers(df, col, threshold=threshold)
    flagged = flag_iqr_outliers(flagged, col, k=k)
    if flagged.empty:
        print("[Filter] No rows to check for outliers.")
        return flagged

    print("[Filter] Outlier flags (rows = zscore, columns = iqr):")
    print(pd.crosstab(flagged["outlier_zscore"], flagged["outlier_iqr"]))

    keep = ~flagged[f"outlier_{method}"]
    out = flagged[keep]
    _report_drop(f"{method} outliers in {col}", len(flagged), len(out))
    return out


# ---------------------------------------------------------------------------
# Error filters
# ---------------------------------------------------------------------------

def drop_excess_duration(
    df: pd.DataFrame,
    max_hours: dict | None = None,
) -> pd.DataFrame:
    """
    Drop jobs longer than the ceiling for their job_type. Unknown types
    get the ride ceiling.
    """
    require_columns(df, ["duration_min", "job_type"], "drop_excess_duration")
    if max_hours is None:
        max_hours = MAX_DURATION_HOURS

    ceiling_h = df["job_type"].map(max_hours).fillna(max_hours["ride"])
    too_long = df["duration_min"] > ceiling_h * 60.0

    out = df[~too_long]
    _report_drop("excess duration", len(df), len(out))
    return out


def drop_inverted_timestamps(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows whose dropoff is before pickup or either timestamp is missing."""
    require_columns(df, ["pickup_at", "dropoff_at"], "drop_inverted_timestamps")

    bad = (
        df["pickup_at"].isna()
        | df["dropoff_at"].isna()
        | (df["dropoff_at"] < df["pickup_at"])
    )
    out = df[~bad]
    _report_drop("inverted/missing timestamps", len(df), len(out))
    return out


def drop_duplicate_hours(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the first row of each (job_id, date, hour)."""
    require_columns(df, ["job_id", "date", "hour"], "drop_duplicate_hours")

    out = df.drop_duplicates(subset=["job_id", "date", "hour"], keep="first")
    _report_drop("duplicate job-hours", len(df), len(out))
    return out


def drop_multi_area_jobs(df: pd.DataFrame, max_areas: int = MAX_AREAS_PER_JOB) -> pd.DataFrame:
    """Drop jobs touching more than max_areas distinct areas."""
    require_columns(df, ["n_areas_touched"], "drop_multi_area_jobs")

    out = df[df["n_areas_touched"] <= max_areas]
    _report_drop(f"jobs touching > {max_areas} areas", len(df), len(out))
    return out


def drop_unmatched_areas(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows with no attributed area; they have no heatmap cell."""
    require_columns(df, ["area_id"], "drop_unmatched_areas")

    out = df[df["area_id"].notna()].copy()
    _report_drop("rows without an area", len(df), len(out))

    # NaN-free now, so integer ids can go back to an integer dtype
    if pd.api.types.is_float_dtype(out["area_id"]) and (out["area_id"] % 1 == 0).all():
        out["area_id"] = out["area_id"].astype("int64")
    return out


def drop_job_errors(df: pd.DataFrame) -> pd.DataFrame:
    """Job-level predicates, run before apportioning."""
    out = drop_inverted_timestamps(df)
    out = drop_excess_duration(out)
    return out


def drop_hour_errors(df: pd.DataFrame, max_areas: int = MAX_AREAS_PER_JOB) -> pd.DataFrame:
    """Job-hour-level predicates, run after apportioning."""
    out = drop_duplicate_hours(df)
    out = drop_multi_area_jobs(out, max_areas=max_areas)
    out = drop_unmatched_areas(out)
    return out
