import matplotlib

matplotlib.use("Agg")

import json

import numpy as np
import pandas as pd
import pytest
from sqlalchemy import create_engine

from schemas import Area, Job, records_to_frame


SQUARE_1 = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]
SQUARE_2 = [(0.0, 1.0), (0.0, 2.0), (1.0, 2.0), (1.0, 1.0)]
# small square inside SQUARE_1
SQUARE_3 = [(0.2, 0.2), (0.2, 0.4), (0.4, 0.4), (0.4, 0.2)]


def make_job(job_id, pickup, dropoff, base_pay=20.0, **kwargs) -> Job:
    fields = dict(
        job_id=job_id,
        driver_id=kwargs.pop("driver_id", 1),
        employer_id=kwargs.pop("employer_id", 1),
        pickup_at=pd.Timestamp(pickup).tz_localize("UTC"),
        dropoff_at=pd.Timestamp(dropoff).tz_localize("UTC"),
        pickup_lat=kwargs.pop("pickup_lat", 0.5),
        pickup_lng=kwargs.pop("pickup_lng", 0.5),
        dropoff_lat=kwargs.pop("dropoff_lat", 0.5),
        dropoff_lng=kwargs.pop("dropoff_lng", 0.5),
        base_pay=base_pay,
        driver_timezone=kwargs.pop("driver_timezone", "UTC"),
    )
    fields.update(kwargs)
    return Job(**fields)


@pytest.fixture
def areas():
    return records_to_frame([
        Area(1, "Downtown", tuple(SQUARE_1)),
        Area(2, "Harbor", tuple(SQUARE_2)),
        Area(3, "Old Town", tuple(SQUARE_3)),
    ])


@pytest.fixture
def two_areas():
    return records_to_frame([
        Area(1, "Downtown", tuple(SQUARE_1)),
        Area(2, "Harbor", tuple(SQUARE_2)),
    ])


@pytest.fixture
def synthetic_jobs():
    """
    400 jobs on Monday 2026-07-06 between 08:00 and 12:00 UTC, pickups
    split between areas 1 and 2, earnings around $15 per job.
    """
    rng = np.random.default_rng(7)
    start = pd.Timestamp("2026-07-06 08:00")
    jobs = []
    for i in range(400):
        pickup = start + pd.Timedelta(minutes=int(rng.integers(0, 240)))
        dropoff = pickup + pd.Timedelta(minutes=int(rng.integers(10, 50)))
        lng = 0.5 if i % 2 == 0 else 1.5
        jobs.append(make_job(
            job_id=i + 1,
            pickup=pickup,
            dropoff=dropoff,
            base_pay=float(rng.normal(12.0, 1.5)),
            tip=float(rng.normal(2.0, 0.5)),
            incentive=1.0,
            driver_id=int(rng.integers(1, 60)),
            pickup_lat=0.5,
            pickup_lng=lng,
            dropoff_lat=0.5,
            dropoff_lng=lng,
        ))
    return records_to_frame(jobs)


@pytest.fixture
def sqlite_engine():
    engine = create_engine("sqlite://")

    drivers = pd.DataFrame({
        "driver_id": [1, 2],
        "timezone": ["America/New_York", None],
    })
    employers = pd.DataFrame({
        "employer_id": [10],
        "employer_name": ["RideCo"],
    })
    jobs = pd.DataFrame({
        "job_id": [100, 101, 102],
        "driver_id": [1, 2, 1],
        "employer_id": [10, 10, 99],
        "pickup_at": pd.to_datetime(["2026-07-06 14:00:00", "2026-07-06 15:10:00", "2026-07-08 09:00:00"]),
        "dropoff_at": pd.to_datetime(["2026-07-06 14:30:00", "2026-07-06 16:20:00", "2026-07-08 09:45:00"]),
        "pickup_lat": [0.5, 0.5, 0.5],
        "pickup_lng": [0.5, 1.5, 0.5],
        "dropoff_lat": [0.5, 0.5, 0.5],
        "dropoff_lng": [0.5, 1.5, 0.5],
        "base_pay": [10.0, 25.5, 8.0],
        "tip": [2.0, None, 0.0],
        "incentive": [0.0, 1.0, None],
        "job_type": ["ride", "Delivery ", "ride"],
    })
    areas = pd.DataFrame({
        "area_id": [1, 2],
        "area_name": ["Downtown", "Harbor"],
        "boundary": [json.dumps(SQUARE_1), json.dumps(SQUARE_2)],
    })

    drivers.to_sql("drivers", engine, index=False)
    employers.to_sql("employers", engine, index=False)
    jobs.to_sql("jobs", engine, index=False)
    areas.to_sql("areas", engine, index=False)
    return engine
