# -*- coding: utf-8 -*-
"""
Created on Sat Oct  3 16:02:11 2026

confidence_suppression.py

Hide area/hour estimates whose confidence interval is too wide to show a
driver. Published value is the point estimate, or NaN with status
InsufficientConfidence when the CI half-width is above the threshold or
cannot be computed.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from config import MAX_CI_HALF_WIDTH
from schemas import INSUFFICIENT_CONFIDENCE, STATUS_OK, require_columns


def ci_half_width(estimates: pd.DataFrame) -> pd.Series:
    require_columns(estimates, ["ci_lower", "ci_upper"], "ci_half_width")
    return (estimates["ci_upper"] - estimates["ci_lower"]) / 2.0


def suppress_wide_estimates(
    estimates: pd.DataFrame,
    max_half_width: float = MAX_CI_HALF_WIDTH,
) -> pd.DataFrame:
    """
    Add ci_half_width, published and status.

    The confidence level is whatever the CI columns were built with; see
    earnings_models.compute_estimates.
    """
    if max_half_width <= 0:
        raise ValueError(f"max_half_width must be positive, got {max_half_width}")
    require_columns(estimates, ["mean"], "suppress_wide_estimates")

    out = estimates.copy()
    out["ci_half_width"] = ci_half_width(out).astype(float)

    hw = out["ci_half_width"]
    suppressed = ~np.isfinite(hw) | (hw > max_half_width)

    out["published"] = out["mean"].where(~suppressed)
    out["status"] = np.where(suppressed, INSUFFICIENT_CONFIDENCE, STATUS_OK)

    print(f"[Suppress] {int(suppressed.sum()):,} of {len(out):,} estimates "
          f"above ${max_half_width:,.2f} half-width")
    return out


def suppression_summary(estimates: pd.DataFrame) -> pd.DataFrame:
    """Counts and share of estimates per status."""
    require_columns(estimates, ["status"], "suppression_summary")

    summary = estimates["status"].value_counts().rename("n_estimates").to_frame()
    summary["share"] = summary["n_estimates"] / summary["n_estimates"].sum()
    return summary.reset_index().rename(columns={"index": "status"})
