# -*- coding: utf-8 -*-
"""
Created on Thu Oct  1 10:02:18 2026

schemas.py

Record schemas for the tables passed between pipeline stages, plus the
result states carried in their status columns.

Each stage works on a pandas DataFrame; the dataclasses document the row
shape and are used to build small tables in tests and ad-hoc runs:

    jobs = records_to_frame([Job(...), Job(...)])
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd


# ---------------------------------------------------------------------------
# Result states
# ---------------------------------------------------------------------------

STATUS_OK = "ok"
NO_AREA_MATCH = "NoAreaMatch"
AMBIGUOUS_AREA_MATCH = "AmbiguousAreaMatch"
ZERO_DURATION_JOB = "ZeroDurationJob"
INSUFFICIENT_CONFIDENCE = "InsufficientConfidence"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Job:
    job_id: int
    driver_id: int
    employer_id: int
    pickup_at: datetime
    dropoff_at: datetime
    pickup_lat: float
    pickup_lng: float
    dropoff_lat: float
    dropoff_lng: float
    base_pay: float
    tip: float = 0.0
    incentive: float = 0.0
    job_type: str = "ride"
    driver_timezone: Optional[str] = None
    employer_name: Optional[str] = None


@dataclass(frozen=True)
class Area:
    area_id: int
    area_name: str
    boundary: tuple  # ((lat, lng), ...)


@dataclass(frozen=True)
class JobHourRow:
    job_id: int
    date: date
    day_of_week: int
    day: str
    hour: int
    minutes: int
    hour_earnings: float


@dataclass(frozen=True)
class AreaEstimate:
    area_id: int
    day_of_week: int
    hour: int
    mean: float
    n_obs: int
    std_err: float
    ci_lower: float
    ci_upper: float
    ci_half_width: float
    published: float
    status: str


def column_names(record_type) -> list[str]:
    return [f.name for f in fields(record_type)]


JOB_COLUMNS = column_names(Job)
AREA_COLUMNS = column_names(Area)
JOB_HOUR_COLUMNS = column_names(JobHourRow)
ESTIMATE_COLUMNS = column_names(AreaEstimate)

ESTIMATE_KEY = ["area_id", "day_of_week", "hour"]


def records_to_frame(records: Iterable, record_type=None) -> pd.DataFrame:
    """
    Build a DataFrame from dataclass records. An empty iterable needs
    record_type so the columns are still known.
    """
    records = list(records)
    if not records:
        if record_type is None:
            raise ValueError("record_type is required for an empty record list.")
        return pd.DataFrame(columns=column_names(record_type))
    return pd.DataFrame([asdict(r) for r in records])


def require_columns(df: pd.DataFrame, cols: Iterable[str], where: str) -> None:
    """Raise KeyError naming every expected column missing from df."""
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise KeyError(f"{where}: expected column(s) not found: {missing}")
