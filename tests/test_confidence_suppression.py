import numpy as np
import pandas as pd
import pytest

from confidence_suppression import suppress_wide_estimates, suppression_summary
from schemas import INSUFFICIENT_CONFIDENCE, STATUS_OK


@pytest.fixture
def estimates():
    return pd.DataFrame({
        "area_id": [1, 1, 2],
        "day_of_week": [0, 0, 0],
        "hour": [9, 10, 9],
        "mean": [20.0, 25.0, 18.0],
        "ci_lower": [18.0, 17.0, np.nan],
        "ci_upper": [22.0, 33.0, np.nan],
    })


def test_wide_interval_suppressed_narrow_published(estimates):
    out = suppress_wide_estimates(estimates, max_half_width=5.0)

    assert out["ci_half_width"].tolist()[:2] == [2.0, 8.0]
    assert out["status"].tolist()[:2] == [STATUS_OK, INSUFFICIENT_CONFIDENCE]
    assert out.loc[0, "published"] == 20.0
    assert np.isnan(out.loc[1, "published"])


def test_undefined_interval_suppressed(estimates):
    out = suppress_wide_estimates(estimates, max_half_width=5.0)

    assert out.loc[2, "status"] == INSUFFICIENT_CONFIDENCE
    assert np.isnan(out.loc[2, "published"])


def test_threshold_is_tunable(estimates):
    out = suppress_wide_estimates(estimates, max_half_width=10.0)

    assert out["status"].tolist()[:2] == [STATUS_OK, STATUS_OK]


def test_threshold_must_be_positive(estimates):
    with pytest.raises(ValueError):
        suppress_wide_estimates(estimates, max_half_width=0)


def test_summary_counts_statuses(estimates):
    out = suppress_wide_estimates(estimates, max_half_width=5.0)

    summary = suppression_summary(out).set_index("status")

    assert summary.loc[INSUFFICIENT_CONFIDENCE, "n_estimates"] == 2
    assert summary.loc[STATUS_OK, "n_estimates"] == 1
    assert summary["share"].sum() == pytest.approx(1.0)
