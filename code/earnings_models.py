# -*- coding: utf-8 -*-
"""
Created on Sat Oct  3 10:17:26 2026

earnings_models.py

Average hourly earnings per (area, day of week, hour) cell.

Both methods start from driver-hours: a driver's apportioned earnings
summed within one date / hour / area.

  direct:   mean of driver-hours per cell, t-based CI from the sample
            standard error.

  modeled:  (1) RLM with the Huber norm,
                    hourly_earnings ~ C(cell)
                where cell is the area x day x hour interaction. The
                robust fit gives each driver-hour a weight in (0, 1]
                instead of dropping far-off values.
            (2) WLS with the same design and those weights.
            (3) Predicted mean per observed cell with standard error and
                CI from the WLS fit (get_prediction).
"""
from __future__ import annotations

import calendar

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm
from scipy import stats

from config import AVERAGING_METHOD, CONFIDENCE_LEVEL
from schemas import ESTIMATE_KEY, require_columns


AVERAGING_METHODS = ("direct", "modeled")

DRIVER_HOUR_KEY = ["driver_id", "date", "day_of_week", "hour", "area_id"]

MODEL_FORMULA = "hourly_earnings ~ C(cell)"


def _alpha(confidence: float) -> float:
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be between 0 and 1, got {confidence}")
    return 1.0 - confidence


def add_day_names(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["day"] = out["day_of_week"].map(lambda d: calendar.day_name[int(d)])
    return out


def add_cell_labels(df: pd.DataFrame) -> pd.DataFrame:
    """cell = 'area|day_of_week|hour', one level per heatmap cell."""
    out = df.copy()
    out["cell"] = (
        out["area_id"].astype(str)
        + "|" + out["day_of_week"].astype(str)
        + "|" + out["hour"].astype(str)
    )
    return out


# ---------------------------------------------------------------------------
# Driver-hours
# ---------------------------------------------------------------------------

def driver_hour_earnings(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Sum apportioned earnings per driver, date, hour and area.
    Returns DRIVER_HOUR_KEY + hourly_earnings + n_jobs.
    """
    require_columns(rows, DRIVER_HOUR_KEY + ["hour_earnings", "job_id"], "driver_hour_earnings")
    if rows["area_id"].isna().any():
        raise ValueError("Rows without area_id; run drop_unmatched_areas first.")

    dh = (
        rows.groupby(DRIVER_HOUR_KEY, as_index=False)
        .agg(hourly_earnings=("hour_earnings", "sum"), n_jobs=("job_id", "nunique"))
    )
    print(f"[Model] Driver-hours: {len(dh):,}")
    return dh


# ---------------------------------------------------------------------------
# Direct averaging
# ---------------------------------------------------------------------------

def average_direct(rows: pd.DataFrame, confidence: float = CONFIDENCE_LEVEL) -> pd.DataFrame:
    """
    Plain two-level aggregation: driver-hours, then mean per cell.

    Cells with a single driver-hour have no standard error (NaN CI).
    """
    alpha = _alpha(confidence)
    dh = driver_hour_earnings(rows)

    est = (
        dh.groupby(ESTIMATE_KEY)["hourly_earnings"]
        .agg(mean="mean", n_obs="size", std="std")
        .reset_index()
    )

    n = est["n_obs"].astype(float)
    est["std_err"] = est["std"] / np.sqrt(n)

    dof = (n - 1).where(n > 1)
    t_crit = pd.Series(stats.t.ppf(1 - alpha / 2, dof), index=est.index)
    est["ci_lower"] = est["mean"] - t_crit * est["std_err"]
    est["ci_upper"] = est["mean"] + t_crit * est["std_err"]

    est = add_day_names(est.drop(columns=["std"]))
    print(f"[Model] Direct estimates for {len(est):,} cells")
    return est


# ---------------------------------------------------------------------------
# Modeled averaging
# ---------------------------------------------------------------------------

def build_design(driver_hours: pd.DataFrame):
    """patsy (y, X) for MODEL_FORMULA; adds the cell column first."""
    data = add_cell_labels(driver_hours)
    y, X = patsy.dmatrices(MODEL_FORMULA, data=data, return_type="dataframe")
    return y, X


def fit_robust_weights(driver_hours: pd.DataFrame):
    """
    Huber RLM of hourly_earnings on the cell interaction.

    Returns (rlm_results, weights) with weights indexed like driver_hours.

    A single-observation cell fits its own dummy exactly (residual 0), so
    it says nothing about spread and would pull the MAD scale toward 0.
    The RLM is fit on cells with at least two driver-hours only; rows of
    singleton cells get weight 1.0. rlm_results is None when no cell has
    two driver-hours. Non-finite weights (degenerate scale) fall back to 1.0.
    """
    weights = pd.Series(1.0, index=driver_hours.index)

    cell_size = driver_hours.groupby(ESTIMATE_KEY)["hourly_earnings"].transform("size")
    repeated = driver_hours[cell_size >= 2]
    if repeated.empty:
        print("[WARN] No cell has two driver-hours; robust weights all 1.0")
        return None, weights

    y, X = build_design(repeated)
    rlm = sm.RLM(y, X, M=sm.robust.norms.HuberT()).fit()
    fitted = pd.Series(np.asarray(rlm.weights, dtype=float), index=y.index)

    bad = ~np.isfinite(fitted)
    if bad.any():
        print(f"[WARN] {int(bad.sum()):,} non-finite robust weights set to 1.0")
        fitted[bad] = 1.0
    weights.loc[fitted.index] = fitted

    n_down = int((weights < 1.0).sum())
    print(f"[Model] RLM (HuberT): {len(fitted):,} of {len(weights):,} obs in repeated cells, "
          f"{n_down:,} down-weighted")
    return rlm, weights


def fit_weighted_model(driver_hours: pd.DataFrame, weights: pd.Series):
    """WLS with the RLM design. Returns (wls_results, X)."""
    y, X = build_design(driver_hours)
    w = weights.reindex(y.index)

    wls = sm.WLS(y, X, weights=w).fit()
    print(f"[Model] WLS: {int(wls.nobs):,} obs, {X.shape[1]:,} parameters, "
          f"R2 = {wls.rsquared:.3f}")
    return wls, X


def predict_cell_means(
    model,
    design_info,
    cells: pd.DataFrame,
    confidence: float = CONFIDENCE_LEVEL,
) -> pd.DataFrame:
    """
    Predicted mean, standard error and CI for each row of cells
    (area_id, day_of_week, hour).
    """
    alpha = _alpha(confidence)
    cells = add_cell_labels(cells).reset_index(drop=True)

    (X_cells,) = patsy.build_design_matrices([design_info], cells, return_type="dataframe")
    pred = model.get_prediction(X_cells)
    frame = pred.summary_frame(alpha=alpha)

    out = cells[ESTIMATE_KEY].copy()
    out["mean"] = frame["mean"].to_numpy()
    out["std_err"] = frame["mean_se"].to_numpy()
    out["ci_lower"] = frame["mean_ci_lower"].to_numpy()
    out["ci_upper"] = frame["mean_ci_upper"].to_numpy()
    return out


def average_modeled(rows: pd.DataFrame, confidence: float = CONFIDENCE_LEVEL):
    """
    Robust-weighted cell means. Returns (estimates, models) where models
    holds the fitted "weighted" results and, when it could be fit, "robust".
    """
    dh = driver_hour_earnings(rows)
    if dh.empty:
        raise ValueError("No driver-hours to model.")

    rlm, weights = fit_robust_weights(dh)
    wls, X = fit_weighted_model(dh, weights)

    counts = dh.groupby(ESTIMATE_KEY).size().rename("n_obs").reset_index()
    est = predict_cell_means(wls, X.design_info, counts[ESTIMATE_KEY], confidence)
    est = est.merge(counts, on=ESTIMATE_KEY, how="left", validate="1:1")

    est = add_day_names(est)
    print(f"[Model] Modeled estimates for {len(est):,} cells")

    models = {"weighted": wls}
    if rlm is not None:
        models["robust"] = rlm
    return est, models


def compute_estimates(
    rows: pd.DataFrame,
    method: str = AVERAGING_METHOD,
    confidence: float = CONFIDENCE_LEVEL,
):
    """
    Dispatch to average_direct / average_modeled.
    Returns (estimates, models); models is empty for the direct method.
    """
    if method == "direct":
        return average_direct(rows, confidence), {}
    if method == "modeled":
        return average_modeled(rows, confidence)
    raise ValueError(f"method must be one of {AVERAGING_METHODS}, got {method!r}")
