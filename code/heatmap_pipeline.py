# -*- coding: utf-8 -*-
"""
Created on Sun Oct  4 16:08:52 2026

heatmap_pipeline.py

Average hourly earnings per area / weekday / hour for the driver heatmap.

Usage:
    python code/heatmap_pipeline.py --method modeled --save-plots
    python code/heatmap_pipeline.py --start 2026-06-01 --end 2026-09-01 --method direct

Steps:
1. Load jobs (+ driver timezone, employer) and area boundaries from SQL.
2. Geocode pickup / dropoff points to areas.
3. Local-time fields and total earnings per job.
4. Drop inverted / over-long jobs, then split each job into clock hours
   with prorated earnings (zero-duration jobs are set aside).
5. Drop duplicate hours, jobs touching too many areas, rows without an
   area, then per-hour earnings outliers.
6. Average per (area, weekday, hour): direct mean or Huber-weighted WLS.
7. Suppress estimates with a CI half-width above the dollar threshold.
8. Write estimates (parquet), model report (xlsx), diagnostics, plots.
"""
from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd

from config import (
    AREA_BASIS,
    AVERAGING_METHOD,
    CONFIDENCE_LEVEL,
    DIAGNOSTICS_DIR,
    MAX_AREAS_PER_JOB,
    MAX_CI_HALF_WIDTH,
    OUTLIER_METHOD,
    PLOTS_DIR,
    PROCESSED_DIR,
    REPORTS_DIR,
)
from area_geocoder import geocode_jobs
from confidence_suppression import suppress_wide_estimates, suppression_summary
from earnings_models import compute_estimates
from heatmap_plotting import plot_all_days, plot_outlier_cutoffs
from hourly_apportion import apportion_job_hours, split_zero_duration
from job_filters import drop_hour_errors, drop_job_errors, drop_outliers
from job_loader import get_engine, load_inputs
from job_time_fields import normalize_job_times
from model_utils import write_model_report
from ols_diagnostics import compute_diagnostics, save_diagnostic_report
from schemas import (
    AMBIGUOUS_AREA_MATCH,
    INSUFFICIENT_CONFIDENCE,
    NO_AREA_MATCH,
    ZERO_DURATION_JOB,
)


ESTIMATE_OUTPUT_COLS = [
    "area_id",
    "area_name",
    "day_of_week",
    "day",
    "hour",
    "mean",
    "n_obs",
    "std_err",
    "ci_lower",
    "ci_upper",
    "ci_half_width",
    "published",
    "status",
]


def run_pipeline(
    jobs: pd.DataFrame,
    areas: pd.DataFrame,
    method: str = AVERAGING_METHOD,
    confidence: float = CONFIDENCE_LEVEL,
    max_half_width: float = MAX_CI_HALF_WIDTH,
    outlier_method: str = OUTLIER_METHOD,
    area_basis: str = AREA_BASIS,
    max_areas: int = MAX_AREAS_PER_JOB,
) -> dict:
    """
    Run steps 2-7 on in-memory inputs.

    Returns a dict with:
      - estimates:     suppressed AreaEstimate table
      - rows:          job-hour rows that went into the averages
      - zero_duration: jobs set aside as ZeroDurationJob
      - models:        fitted models ({} for the direct method)
      - status_counts: count per result state across the run
    """
    print(f"[Pipeline] {len(jobs):,} jobs, {len(areas):,} areas, method = {method}")

    geo = geocode_jobs(jobs, areas, area_basis=area_basis)
    timed = normalize_job_times(geo)
    valid = drop_job_errors(timed)

    apportionable, zero_duration = split_zero_duration(valid)
    if not zero_duration.empty:
        print(f"[WARN] {len(zero_duration):,} zero-duration jobs set aside.")
    rows = apportion_job_hours(apportionable)

    rows = drop_hour_errors(rows, max_areas=max_areas)
    rows = drop_outliers(rows, col="hour_earnings", method=outlier_method)
    if rows.empty:
        raise ValueError("No job-hour rows left after filtering.")

    estimates, models = compute_estimates(rows, method=method, confidence=confidence)
    estimates = suppress_wide_estimates(estimates, max_half_width=max_half_width)

    if "area_name" in areas.columns:
        names = areas[["area_id", "area_name"]].drop_duplicates("area_id")
        estimates = estimates.merge(names, on="area_id", how="left")
    else:
        estimates["area_name"] = None

    estimates = (
        estimates[ESTIMATE_OUTPUT_COLS]
        .sort_values(["area_id", "day_of_week", "hour"])
        .reset_index(drop=True)
    )

    status_counts = {
        f"pickup {NO_AREA_MATCH}": int((geo["pickup_area_status"] == NO_AREA_MATCH).sum()),
        f"pickup {AMBIGUOUS_AREA_MATCH}": int((geo["pickup_area_status"] == AMBIGUOUS_AREA_MATCH).sum()),
        f"dropoff {NO_AREA_MATCH}": int((geo["dropoff_area_status"] == NO_AREA_MATCH).sum()),
        f"dropoff {AMBIGUOUS_AREA_MATCH}": int((geo["dropoff_area_status"] == AMBIGUOUS_AREA_MATCH).sum()),
        ZERO_DURATION_JOB: len(zero_duration),
        INSUFFICIENT_CONFIDENCE: int((estimates["status"] == INSUFFICIENT_CONFIDENCE).sum()),
    }

    print("[Pipeline] Result states:")
    for state, n in status_counts.items():
        print(f"  {state}: {n:,}")
    print(suppression_summary(estimates))

    return {
        "estimates": estimates,
        "rows": rows,
        "zero_duration": zero_duration,
        "models": models,
        "status_counts": status_counts,
    }


def save_outputs(
    result: dict,
    method: str,
    save_plots: bool = False,
    processed_dir: Path = PROCESSED_DIR,
    reports_dir: Path = REPORTS_DIR,
) -> dict:
    """
    Write the estimates and, for the modeled method, the model report and
    diagnostics. Returns the written paths by name.
    """
    processed_dir = Path(processed_dir)
    reports_dir = Path(reports_dir)
    processed_dir.mkdir(parents=True, exist_ok=True)

    paths = {}

    out_path = processed_dir / f"area_hour_earnings_{method}.parquet"
    result["estimates"].to_parquet(out_path, index=False)
    print(f"[Pipeline] Estimates written to: {out_path}")
    paths["estimates"] = out_path

    models = result["models"]
    if models:
        paths["model_report"] = write_model_report(
            models, reports_dir / f"area_hour_earnings_{method}_models.xlsx"
        )

        weighted = models["weighted"]
        # WLS weights are the robust weights, 1.0 for singleton cells
        diag = compute_diagnostics(weighted, robust_weights=weighted.model.weights)
        diag_dir = reports_dir / DIAGNOSTICS_DIR.name
        paths["diagnostics"] = save_diagnostic_report(
            weighted, diag, model_name=f"wls_{method}", out_dir=str(diag_dir)
        )

    if save_plots:
        plots_dir = reports_dir / PLOTS_DIR.name
        area_names = dict(zip(result["estimates"]["area_id"], result["estimates"]["area_name"]))
        paths["heatmaps"] = plot_all_days(
            result["estimates"], area_names=area_names, save=True, out_dir=plots_dir
        )
        paths["outlier_plot"] = plot_outlier_cutoffs(
            result["rows"], save=True, out_dir=plots_dir
        )

    return paths


def main(
    database_url: str | None = None,
    start=None,
    end=None,
    method: str = AVERAGING_METHOD,
    confidence: float = CONFIDENCE_LEVEL,
    max_half_width: float = MAX_CI_HALF_WIDTH,
    outlier_method: str = OUTLIER_METHOD,
    area_basis: str = AREA_BASIS,
    save_plots: bool = False,
) -> dict:
    engine = get_engine(database_url)
    jobs, areas = load_inputs(engine, start=start, end=end)

    result = run_pipeline(
        jobs,
        areas,
        method=method,
        confidence=confidence,
        max_half_width=max_half_width,
        outlier_method=outlier_method,
        area_basis=area_basis,
    )
    result["paths"] = save_outputs(result, method=method, save_plots=save_plots)
    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Average hourly earnings per area and hour for the driver heatmap."
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the jobs database (default: HEATMAP_DATABASE_URL or config).",
    )
    parser.add_argument("--start", default=None, help="First pickup date (inclusive).")
    parser.add_argument("--end", default=None, help="Last pickup date (exclusive).")
    parser.add_argument(
        "--method",
        choices=["direct", "modeled"],
        default=AVERAGING_METHOD,
        help=f"Averaging method (default: {AVERAGING_METHOD}).",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        default=CONFIDENCE_LEVEL,
        help=f"Confidence level of the intervals (default: {CONFIDENCE_LEVEL}).",
    )
    parser.add_argument(
        "--max-half-width",
        type=float,
        default=MAX_CI_HALF_WIDTH,
        help=f"Suppress estimates with a wider CI half-width, in dollars (default: {MAX_CI_HALF_WIDTH}).",
    )
    parser.add_argument(
        "--outlier-method",
        choices=["zscore", "iqr"],
        default=OUTLIER_METHOD,
        help=f"Detector whose flags drop rows (default: {OUTLIER_METHOD}).",
    )
    parser.add_argument(
        "--area-basis",
        choices=["pickup", "dropoff"],
        default=AREA_BASIS,
        help=f"Attribute job hours to the pickup or dropoff area (default: {AREA_BASIS}).",
    )
    parser.add_argument(
        "--save-plots",
        action="store_true",
        help="Save heatmaps and the outlier histogram under reports/plots.",
    )
    return parser.parse_args(argv)


def cli(argv=None) -> None:
    args = parse_args(argv)
    main(
        database_url=args.database_url,
        start=args.start,
        end=args.end,
        method=args.method,
        confidence=args.confidence,
        max_half_width=args.max_half_width,
        outlier_method=args.outlier_method,
        area_basis=args.area_basis,
        save_plots=args.save_plots,
    )


if __name__ == "__main__":
    cli()
