# -*- coding: utf-8 -*-
"""
Created on Thu Oct  1 09:12:40 2026

Paths and tunable constants for the area/hour earnings heatmap.
"""

import os
from pathlib import Path

# Project root = parent of this file
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
PROCESSED_DIR = DATA_DIR / "processed"
REPORTS_DIR = PROJECT_ROOT / "reports"
PLOTS_DIR = REPORTS_DIR / "plots"
DIAGNOSTICS_DIR = REPORTS_DIR / "diagnostics"

# Ensure directory creation
for p in [
    PROCESSED_DIR,
    REPORTS_DIR,
    PLOTS_DIR,
    DIAGNOSTICS_DIR,
]:
    p.mkdir(parents=True, exist_ok=True)

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

DATABASE_URL = os.environ.get(
    "HEATMAP_DATABASE_URL",
    f"sqlite:///{DATA_DIR / 'jobs.sqlite'}",
)

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

# Used when the driver record has no timezone
DEFAULT_TIMEZONE = "America/New_York"

# ---------------------------------------------------------------------------
# Error filter
# ---------------------------------------------------------------------------

MAX_DURATION_HOURS = {
    "ride": 6.0,
    "delivery": 2.0,
}

# Jobs touching more areas than this are dropped
MAX_AREAS_PER_JOB = 2

# "pickup" or "dropoff": which end of the job its hours are attributed to
AREA_BASIS = "pickup"

# ---------------------------------------------------------------------------
# Outliers
# ---------------------------------------------------------------------------

ZSCORE_THRESHOLD = 3.0
IQR_MULTIPLIER = 1.5

# "zscore" or "iqr"; the other detector is computed for comparison only
OUTLIER_METHOD = "zscore"

# ---------------------------------------------------------------------------
# Averaging / suppression
# ---------------------------------------------------------------------------

# "direct" or "modeled"
AVERAGING_METHOD = "modeled"

CONFIDENCE_LEVEL = 0.90

# Dollars; estimates with a wider CI half-width are not published
MAX_CI_HALF_WIDTH = 5.0
