# -*- coding: utf-8 -*-
"""
Created on Fri Oct  2 11:48:09 2026

hourly_apportion.py

Split each job into one row per local clock hour it spans and prorate its
total earnings across those rows by minutes spent in each hour.

Minutes are real elapsed whole minutes (seconds ignored). The interval is
walked on tz-aware local time, so each piece ends at the next wall-clock
hour boundary:
    - spring-forward: the skipped hour gets no row
    - fall-back: both passes through the repeated hour land on one row
A dropoff exactly on the hour adds no row for that hour.

hour_earnings = minutes / total_minutes * total_earnings, so the rows of a
job always add back up to its total_earnings. A job that fits inside one
hour keeps total_earnings unchanged.

Jobs with zero total minutes cannot be prorated; they are split off with
status ZeroDurationJob instead of producing rows.
"""
from __future__ import annotations

import pandas as pd

from schemas import STATUS_OK, ZERO_DURATION_JOB, require_columns


ONE_HOUR = pd.Timedelta(hours=1)
ONE_MINUTE = pd.Timedelta(minutes=1)


def _floor_minute(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts.floor("min")
    # flooring in UTC avoids ambiguous wall times at fall-back
    return ts.tz_convert("UTC").floor("min").tz_convert(ts.tz)


def hour_minutes(pickup_local: pd.Timestamp, dropoff_local: pd.Timestamp) -> list[tuple[pd.Timestamp, int]]:
    """
    [(hour_start, minutes), ...] for the clock hours between pickup and
    dropoff. hour_start is naive local wall-clock time.

    Takes tz-aware local timestamps (naive ones are read as wall-clock
    time with no DST change in between). Empty if dropoff is before
    pickup.
    """
    if pd.isna(pickup_local) or pd.isna(dropoff_local) or dropoff_local < pickup_local:
        return []

    t = _floor_minute(pickup_local)
    end = _floor_minute(dropoff_local)

    pieces: dict[pd.Timestamp, int] = {}
    while t < end:
        wall = t.tz_localize(None) if t.tzinfo is not None else t
        hour_start = wall.floor("h")
        nxt = min(t + (hour_start + ONE_HOUR - wall), end)
        pieces[hour_start] = pieces.get(hour_start, 0) + int((nxt - t) / ONE_MINUTE)
        t = nxt
    return list(pieces.items())


def _as_local(ts, tz: str) -> pd.Timestamp:
    ts = pd.Timestamp(ts)
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts.tz_convert(tz)


def _local_intervals(jobs: pd.DataFrame) -> list[tuple[pd.Timestamp, pd.Timestamp]]:
    """
    (pickup, dropoff) per job as tz-aware local time when the UTC
    timestamps and local_tz are present, else the naive local columns.
    """
    if {"pickup_at", "dropoff_at", "local_tz"}.issubset(jobs.columns):
        return [
            (_as_local(pu, tz), _as_local(do, tz))
            for pu, do, tz in zip(jobs["pickup_at"], jobs["dropoff_at"], jobs["local_tz"])
        ]
    return list(zip(jobs["pickup_local"], jobs["dropoff_local"]))


def _check_not_inverted(jobs: pd.DataFrame) -> None:
    if {"pickup_at", "dropoff_at"}.issubset(jobs.columns):
        inverted = jobs["dropoff_at"] < jobs["pickup_at"]
    else:
        inverted = jobs["dropoff_local"] < jobs["pickup_local"]

    n = int(inverted.sum())
    if n:
        raise ValueError(
            f"{n} job(s) with dropoff before pickup; "
            "run drop_inverted_timestamps before apportioning."
        )


def split_zero_duration(jobs: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Return (apportionable_jobs, zero_duration_jobs). Both get
    total_minutes and apportion_status columns.
    """
    require_columns(jobs, ["pickup_local", "dropoff_local"], "split_zero_duration")

    df = jobs.copy()
    df["total_minutes"] = [
        sum(m for _, m in hour_minutes(pu, do))
        for pu, do in _local_intervals(df)
    ]

    zero_mask = df["total_minutes"] <= 0
    df["apportion_status"] = STATUS_OK
    df.loc[zero_mask, "apportion_status"] = ZERO_DURATION_JOB

    return df[~zero_mask], df[zero_mask]


def apportion_job_hours(jobs: pd.DataFrame) -> pd.DataFrame:
    """
    Expand jobs into job-hour rows.

    Adds per row: date, day_of_week (0=Mon), day, hour, minutes,
    hour_share, hour_earnings; per job: total_minutes, n_hours.
    All job columns are carried along.
    """
    require_columns(
        jobs,
        ["job_id", "pickup_local", "dropoff_local", "total_earnings"],
        "apportion_job_hours",
    )
    _check_not_inverted(jobs)

    df, zero = split_zero_duration(jobs)
    if not zero.empty:
        print(f"[WARN] {len(zero):,} zero-duration jobs left out of the hour table.")

    positions = []
    hour_starts = []
    minutes = []
    for pos, (pu, do) in enumerate(_local_intervals(df)):
        for hour_start, mins in hour_minutes(pu, do):
            positions.append(pos)
            hour_starts.append(hour_start)
            minutes.append(mins)

    rows = df.iloc[positions].reset_index(drop=True)
    hour_start = pd.to_datetime(pd.Series(hour_starts, dtype="datetime64[ns]"))

    rows["hour_start"] = hour_start
    rows["date"] = hour_start.dt.date
    rows["day_of_week"] = hour_start.dt.dayofweek
    rows["day"] = hour_start.dt.day_name()
    rows["hour"] = hour_start.dt.hour
    rows["minutes"] = pd.Series(minutes, dtype="int64")

    job_pos = pd.Series(positions, dtype="int64")
    rows["n_hours"] = job_pos.map(job_pos.value_counts()).astype("int64")
    rows["hour_share"] = rows["minutes"] / rows["total_minutes"]
    rows["hour_earnings"] = rows["hour_share"] * rows["total_earnings"]

    # Single-hour jobs are not apportioned
    single = rows["n_hours"] == 1
    rows.loc[single, "hour_share"] = 1.0
    rows.loc[single, "hour_earnings"] = rows.loc[single, "total_earnings"]

    print(f"[Apportion] {len(df):,} jobs -> {len(rows):,} job-hour rows")
    return rows
