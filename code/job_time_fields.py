# -*- coding: utf-8 -*-
"""
Created on Fri Oct  2 09:05:31 2026

job_time_fields.py

Local-time calendar fields and total earnings per job.

Pickup / dropoff timestamps are stored in UTC; drivers see the heatmap in
their own wall-clock time, so every job is converted to its driver's
timezone (DEFAULT_TIMEZONE when the driver has none) before any hour or
day field is derived.
"""
from __future__ import annotations

import pandas as pd

from config import DEFAULT_TIMEZONE
from schemas import require_columns


EARNINGS_COLS = ["base_pay", "tip", "incentive"]


def to_local_time(
    ts_utc: pd.Series,
    tz_names: pd.Series | None = None,
    default_tz: str = DEFAULT_TIMEZONE,
) -> pd.Series:
    """
    Convert tz-aware UTC timestamps to naive local wall-clock time, row by
    row timezone. Naive input is taken to be UTC.
    """
    ts = pd.to_datetime(ts_utc, errors="coerce", utc=True)

    if tz_names is None:
        tz_names = pd.Series(default_tz, index=ts.index)
    tz_names = tz_names.fillna(default_tz).astype(str)

    local = pd.Series(pd.NaT, index=ts.index, dtype="datetime64[ns]")
    for tz, idx in tz_names.groupby(tz_names).groups.items():
        local.loc[idx] = ts.loc[idx].dt.tz_convert(tz).dt.tz_localize(None)
    return local


def add_local_time_fields(jobs: pd.DataFrame, default_tz: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    """
    Add:
      - local_tz: the timezone used (driver_timezone or default_tz)
      - pickup_local, dropoff_local (naive local time)
      - pickup_date, pickup_day_of_week (0=Mon), pickup_day (weekday name)
      - pickup_hour, pickup_minute, dropoff_hour, dropoff_minute
      - duration_min: real elapsed minutes, from the UTC timestamps
    """
    require_columns(jobs, ["pickup_at", "dropoff_at"], "add_local_time_fields")

    df = jobs.copy()
    if "driver_timezone" in df.columns:
        df["local_tz"] = df["driver_timezone"].fillna(default_tz).astype(str)
    else:
        df["local_tz"] = default_tz

    df["pickup_local"] = to_local_time(df["pickup_at"], df["local_tz"], default_tz)
    df["dropoff_local"] = to_local_time(df["dropoff_at"], df["local_tz"], default_tz)

    pickup = df["pickup_local"]
    dropoff = df["dropoff_local"]

    df["pickup_date"] = pickup.dt.date
    df["pickup_day_of_week"] = pickup.dt.dayofweek
    df["pickup_day"] = pickup.dt.day_name()
    df["pickup_hour"] = pickup.dt.hour
    df["pickup_minute"] = pickup.dt.minute
    df["dropoff_hour"] = dropoff.dt.hour
    df["dropoff_minute"] = dropoff.dt.minute

    elapsed = (
        pd.to_datetime(df["dropoff_at"], utc=True)
        - pd.to_datetime(df["pickup_at"], utc=True)
    )
    df["duration_min"] = elapsed.dt.total_seconds() / 60.0

    return df


def add_total_earnings(jobs: pd.DataFrame) -> pd.DataFrame:
    """
    total_earnings = base_pay + tip + incentive, missing components as 0.0.
    """
    df = jobs.copy()
    present = [c for c in EARNINGS_COLS if c in df.columns]
    if not present:
        raise KeyError(f"None of the earnings columns {EARNINGS_COLS} found.")

    for col in present:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)

    df["total_earnings"] = df[present].sum(axis=1)
    return df


def normalize_job_times(jobs: pd.DataFrame, default_tz: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    df = add_local_time_fields(jobs, default_tz=default_tz)
    return add_total_earnings(df)
