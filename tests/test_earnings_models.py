import datetime as dt

import numpy as np
import pandas as pd
import pytest

from earnings_models import (
    average_direct,
    average_modeled,
    compute_estimates,
    driver_hour_earnings,
    fit_robust_weights,
)


def _row(job_id, driver_id, hour, area_id, earnings, date=dt.date(2026, 7, 6)):
    return {
        "job_id": job_id,
        "driver_id": driver_id,
        "date": date,
        "day_of_week": date.weekday(),
        "hour": hour,
        "area_id": area_id,
        "hour_earnings": earnings,
    }


@pytest.fixture
def noisy_rows():
    """Two cells with 40 driver-hours each; cell (1, Mon, 9) has one spike."""
    rng = np.random.default_rng(11)
    rows = []
    job_id = 1
    for area_id, hour, level in [(1, 9, 20.0), (2, 10, 30.0)]:
        for driver_id in range(40):
            rows.append(_row(job_id, driver_id, hour, area_id, float(rng.normal(level, 1.0))))
            job_id += 1
    rows[0]["hour_earnings"] = 200.0
    return pd.DataFrame(rows)


def test_driver_hours_sum_jobs_in_same_hour():
    rows = pd.DataFrame([
        _row(1, 7, 9, 1, 6.0),
        _row(2, 7, 9, 1, 4.0),
        _row(3, 8, 9, 1, 12.0),
    ])

    dh = driver_hour_earnings(rows)

    assert sorted(dh["hourly_earnings"].tolist()) == [10.0, 12.0]
    assert dh.loc[dh["driver_id"] == 7, "n_jobs"].item() == 2


def test_driver_hours_require_areas():
    rows = pd.DataFrame([_row(1, 7, 9, np.nan, 6.0)])

    with pytest.raises(ValueError):
        driver_hour_earnings(rows)


def test_direct_average_and_interval():
    rows = pd.DataFrame([
        _row(1, 1, 9, 1, 10.0),
        _row(2, 2, 9, 1, 20.0),
        _row(3, 3, 9, 1, 30.0),
        _row(4, 1, 14, 2, 50.0),
    ])

    est = average_direct(rows, confidence=0.95)

    cell = est[(est["area_id"] == 1) & (est["hour"] == 9)].iloc[0]
    assert cell["mean"] == pytest.approx(20.0)
    assert cell["n_obs"] == 3
    assert cell["std_err"] == pytest.approx(10.0 / np.sqrt(3))
    # t(0.975, 2) = 4.303
    assert cell["ci_upper"] - cell["mean"] == pytest.approx(4.3027 * 10.0 / np.sqrt(3), rel=1e-3)
    assert cell["day"] == "Monday"

    single = est[est["area_id"] == 2].iloc[0]
    assert single["n_obs"] == 1
    assert np.isnan(single["ci_lower"])


def test_robust_weights_down_weight_the_spike(noisy_rows):
    dh = driver_hour_earnings(noisy_rows)

    _, weights = fit_robust_weights(dh)

    spike = dh["hourly_earnings"].idxmax()
    assert weights[spike] < 0.2
    assert weights.drop(spike).median() == pytest.approx(1.0)


def test_modeled_average_resists_the_spike(noisy_rows):
    est, models = average_modeled(noisy_rows, confidence=0.9)

    assert set(models) == {"robust", "weighted"}
    assert len(est) == 2

    cell = est[est["area_id"] == 1].iloc[0]
    raw_mean = noisy_rows.loc[noisy_rows["area_id"] == 1, "hour_earnings"].mean()
    assert cell["mean"] < raw_mean
    assert cell["mean"] == pytest.approx(20.0, abs=1.5)
    assert cell["ci_lower"] < cell["mean"] < cell["ci_upper"]
    assert cell["n_obs"] == 40

    other = est[est["area_id"] == 2].iloc[0]
    assert other["mean"] == pytest.approx(30.0, abs=1.0)
    assert other["day"] == "Monday"


def test_compute_estimates_dispatch(noisy_rows):
    est, models = compute_estimates(noisy_rows, method="direct")

    assert models == {}
    assert {"mean", "std_err", "ci_lower", "ci_upper", "n_obs"}.issubset(est.columns)

    with pytest.raises(ValueError):
        compute_estimates(noisy_rows, method="median")


def test_confidence_must_be_a_probability(noisy_rows):
    with pytest.raises(ValueError):
        average_direct(noisy_rows, confidence=90)


@pytest.fixture
def sparse_rows():
    """12 single-driver-hour cells plus one cell (area 1, 9:00) with six."""
    rows = []
    for i, earnings in enumerate([28.0, 29.0, 30.0, 30.0, 31.0, 32.0]):
        rows.append(_row(i + 1, i + 1, 9, 1, earnings))
    for hour in range(12):
        rows.append(_row(100 + hour, 50 + hour, hour + 10, 2, 10.0 + hour))
    return pd.DataFrame(rows)


def test_singleton_cells_do_not_zero_the_robust_weights(sparse_rows):
    dh = driver_hour_earnings(sparse_rows)

    rlm, weights = fit_robust_weights(dh)

    assert rlm is not None
    repeated = dh["area_id"] == 1
    assert (weights[repeated] > 0.9).all()
    assert (weights[~repeated] == 1.0).all()


def test_sparse_modeled_error_matches_direct(sparse_rows):
    direct = average_direct(sparse_rows)
    modeled, models = average_modeled(sparse_rows)

    key = (direct["area_id"] == 1) & (direct["hour"] == 9)
    direct_se = direct.loc[key, "std_err"].item()
    modeled_se = modeled.loc[(modeled["area_id"] == 1) & (modeled["hour"] == 9), "std_err"].item()

    assert modeled_se == pytest.approx(direct_se, rel=0.05)
    assert set(models) == {"robust", "weighted"}


def test_robust_weights_skipped_when_every_cell_is_a_singleton():
    rows = pd.DataFrame([_row(h, h, h, 1, 10.0 + h) for h in range(5)])
    dh = driver_hour_earnings(rows)

    rlm, weights = fit_robust_weights(dh)

    assert rlm is None
    assert (weights == 1.0).all()
