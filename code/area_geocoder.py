# -*- coding: utf-8 -*-
"""
Created on Thu Oct  1 14:21:57 2026

area_geocoder.py

Attach heatmap areas to jobs by point-in-polygon tests on the pickup and
dropoff coordinates.

Behavior:
1. Each area boundary ((lat, lng) vertices) becomes a shapely Polygon with
   x = lng, y = lat.
2. Every pickup / dropoff point is tested against every polygon.
3. No containing polygon      -> area NaN, status NoAreaMatch.
   One containing polygon     -> that area, status ok.
   Several containing polygons -> the smallest polygon wins (ties: lowest
                                  area_id), status AmbiguousAreaMatch.
4. n_areas_touched counts every distinct area containing either end of
   the job, so overlapping polygons can push a job over the area limit.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
import shapely
from shapely.geometry import Polygon

from config import AREA_BASIS
from schemas import (
    AMBIGUOUS_AREA_MATCH,
    NO_AREA_MATCH,
    STATUS_OK,
    require_columns,
)


def boundary_to_polygon(boundary) -> Polygon:
    """
    (lat, lng) vertex sequence -> Polygon in (lng, lat) order.
    Self-intersecting rings are repaired with buffer(0).
    """
    poly = Polygon([(lng, lat) for lat, lng in boundary])
    if not poly.is_valid:
        poly = poly.buffer(0)
    return poly


def build_area_polygons(areas: pd.DataFrame) -> pd.DataFrame:
    """
    Return area_id, area_name, geometry and polygon_area, sorted so the
    preferred match for overlapping areas comes first.
    """
    require_columns(areas, ["area_id", "boundary"], "build_area_polygons")

    out = areas.copy()
    out["geometry"] = [boundary_to_polygon(b) for b in out["boundary"]]
    out["polygon_area"] = [g.area for g in out["geometry"]]

    empty = out["polygon_area"] <= 0
    if empty.any():
        ids = out.loc[empty, "area_id"].tolist()
        print(f"[WARN] Areas with empty polygons (never matched): {ids}")
        out = out[~empty]

    out = out.sort_values(["polygon_area", "area_id"]).reset_index(drop=True)
    return out.drop(columns=["boundary"])


def match_points(lat: pd.Series, lng: pd.Series, polygons: pd.DataFrame) -> pd.Series:
    """
    For each point, the list of area ids it falls in or on the edge of, in
    preference order (smallest polygon first). A point on the edge shared
    by two areas matches both. Missing coordinates match nothing.
    """
    lat_v = pd.to_numeric(lat, errors="coerce").to_numpy(dtype=float)
    lng_v = pd.to_numeric(lng, errors="coerce").to_numpy(dtype=float)
    valid = ~(np.isnan(lat_v) | np.isnan(lng_v))

    matches = [[] for _ in range(len(lat_v))]
    for area_id, geom in zip(polygons["area_id"], polygons["geometry"]):
        inside = np.zeros(len(lat_v), dtype=bool)
        inside[valid] = shapely.intersects_xy(geom, lng_v[valid], lat_v[valid])
        for i in np.flatnonzero(inside):
            matches[i].append(area_id)

    return pd.Series(matches, index=lat.index, dtype="object")


def resolve_matches(matches: pd.Series) -> pd.DataFrame:
    """
    Pick one area per point out of its containing areas.

    Returns columns area_id and status.
    """
    area_id = matches.apply(lambda m: m[0] if m else np.nan)
    n_matches = matches.apply(len)

    status = pd.Series(STATUS_OK, index=matches.index, dtype="object")
    status[n_matches == 0] = NO_AREA_MATCH
    status[n_matches > 1] = AMBIGUOUS_AREA_MATCH

    return pd.DataFrame({"area_id": area_id, "status": status})


def geocode_jobs(
    jobs: pd.DataFrame,
    areas: pd.DataFrame,
    area_basis: str = AREA_BASIS,
) -> pd.DataFrame:
    """
    Add pickup/dropoff area ids and statuses, n_areas_touched, and area_id
    (the area the job's hours are attributed to, per area_basis).
    """
    if area_basis not in {"pickup", "dropoff"}:
        raise ValueError(f"area_basis must be 'pickup' or 'dropoff', got {area_basis!r}")

    require_columns(
        jobs,
        ["pickup_lat", "pickup_lng", "dropoff_lat", "dropoff_lng"],
        "geocode_jobs",
    )

    polygons = build_area_polygons(areas)
    out = jobs.copy()

    all_matches = {}
    for end in ["pickup", "dropoff"]:
        matches = match_points(out[f"{end}_lat"], out[f"{end}_lng"], polygons)
        resolved = resolve_matches(matches)
        out[f"{end}_area_id"] = resolved["area_id"]
        out[f"{end}_area_status"] = resolved["status"]
        all_matches[end] = matches

        counts = resolved["status"].value_counts()
        n_none = int(counts.get(NO_AREA_MATCH, 0))
        n_multi = int(counts.get(AMBIGUOUS_AREA_MATCH, 0))
        if n_none:
            print(f"[WARN] {n_none:,} {end} points outside every area.")
        if n_multi:
            print(f"[WARN] {n_multi:,} {end} points inside several areas; smallest area used.")

    out["n_areas_touched"] = [
        len(set(p) | set(d))
        for p, d in zip(all_matches["pickup"], all_matches["dropoff"])
    ]
    out["area_id"] = out[f"{area_basis}_area_id"]

    matched = out["area_id"].notna().sum()
    print(f"[Geocoder] Jobs with an {area_basis} area: {matched:,} / {len(out):,}")
    return out
