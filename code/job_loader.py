# -*- coding: utf-8 -*-
"""
Created on Thu Oct  1 11:40:03 2026

job_loader.py

Pull the two inputs of the heatmap run out of the jobs database:

1. Jobs, joined to drivers (for the driver's timezone) and employers.
2. Area boundary records.

Timestamps come back as tz-aware UTC, money columns as floats, and
boundaries as lists of (lat, lng) vertices.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

import pandas as pd
from sqlalchemy import DateTime, bindparam, create_engine, text
from sqlalchemy.engine import Engine

from config import DATABASE_URL
from schemas import require_columns


JOBS_QUERY = """
SELECT
    j.job_id,
    j.driver_id,
    j.employer_id,
    j.pickup_at,
    j.dropoff_at,
    j.pickup_lat,
    j.pickup_lng,
    j.dropoff_lat,
    j.dropoff_lng,
    j.base_pay,
    j.tip,
    j.incentive,
    j.job_type,
    d.timezone AS driver_timezone,
    e.employer_name
FROM jobs j
JOIN drivers d ON d.driver_id = j.driver_id
LEFT JOIN employers e ON e.employer_id = j.employer_id
"""

AREAS_QUERY = """
SELECT
    area_id,
    area_name,
    boundary
FROM areas
"""

JOB_REQUIRED_COLS = [
    "job_id",
    "driver_id",
    "pickup_at",
    "dropoff_at",
    "pickup_lat",
    "pickup_lng",
    "dropoff_lat",
    "dropoff_lng",
    "base_pay",
    "job_type",
]

MONEY_COLS = ["base_pay", "tip", "incentive"]
COORD_COLS = ["pickup_lat", "pickup_lng", "dropoff_lat", "dropoff_lng"]


def get_engine(url: Optional[str] = None) -> Engine:
    """SQLAlchemy engine for url, or for config.DATABASE_URL."""
    return create_engine(url or DATABASE_URL)


def _bound(value) -> Optional[datetime]:
    # Naive bounds are UTC, like the stored pickup_at
    if value is None:
        return None
    ts = pd.Timestamp(value)
    ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
    return ts.to_pydatetime()


def load_jobs(engine: Engine, start=None, end=None) -> pd.DataFrame:
    """
    Run JOBS_QUERY and coerce types.

    start / end bound pickup_at (inclusive / exclusive) and are read as UTC
    when naive; either may be None. They are bound as DateTime parameters,
    so the driver formats them the same way it stores DateTime columns.
    """
    query = JOBS_QUERY
    conditions = []
    params = {}
    if start is not None:
        conditions.append("j.pickup_at >= :start")
        params["start"] = _bound(start)
    if end is not None:
        conditions.append("j.pickup_at < :end")
        params["end"] = _bound(end)
    if conditions:
        query += "WHERE " + "\n  AND ".join(conditions) + "\n"

    stmt = text(query).bindparams(
        *[bindparam(name, type_=DateTime(timezone=True)) for name in params]
    )
    with engine.connect() as conn:
        df = pd.read_sql(stmt, conn, params=params)

    require_columns(df, JOB_REQUIRED_COLS, "load_jobs")

    for col in ["pickup_at", "dropoff_at"]:
        df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)

    for col in MONEY_COLS + COORD_COLS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    df["job_type"] = df["job_type"].astype(str).str.strip().str.lower()

    print(f"[Loader] Jobs loaded: {len(df):,}")
    return df


def parse_boundary(raw) -> list[tuple[float, float]]:
    """
    Parse a stored boundary into [(lat, lng), ...].

    Accepts JSON text '[[lat, lng], ...]' or an already-decoded sequence.
    """
    if isinstance(raw, str):
        raw = json.loads(raw)
    if raw is None:
        raise ValueError("Area boundary is empty.")

    vertices = [(float(lat), float(lng)) for lat, lng in raw]
    if len(vertices) < 3:
        raise ValueError(
            f"Area boundary needs at least 3 vertices, got {len(vertices)}."
        )
    return vertices


def load_areas(engine: Engine) -> pd.DataFrame:
    """Run AREAS_QUERY and decode each boundary into a vertex list."""
    with engine.connect() as conn:
        df = pd.read_sql(text(AREAS_QUERY), conn)

    require_columns(df, ["area_id", "area_name", "boundary"], "load_areas")

    boundaries = []
    for area_id, raw in zip(df["area_id"], df["boundary"]):
        try:
            boundaries.append(parse_boundary(raw))
        except ValueError as e:
            raise ValueError(f"Area {area_id}: {e}") from e
    df["boundary"] = boundaries

    print(f"[Loader] Areas loaded: {len(df):,}")
    return df


def load_inputs(engine: Engine, start=None, end=None) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load jobs and areas for one run.
    """
    jobs = load_jobs(engine, start=start, end=end)
    areas = load_areas(engine)
    return jobs, areas
