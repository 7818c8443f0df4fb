import pandas as pd
import pytest

import heatmap_pipeline
from conftest import make_job
from heatmap_pipeline import ESTIMATE_OUTPUT_COLS, parse_args, run_pipeline, save_outputs
from schemas import INSUFFICIENT_CONFIDENCE, STATUS_OK, ZERO_DURATION_JOB, records_to_frame


@pytest.mark.parametrize("method", ["direct", "modeled"])
def test_run_pipeline_produces_area_hour_estimates(synthetic_jobs, two_areas, method):
    result = run_pipeline(synthetic_jobs, two_areas, method=method, max_half_width=5.0)

    est = result["estimates"]
    assert est.columns.tolist() == ESTIMATE_OUTPUT_COLS
    assert set(est["area_id"]) == {1, 2}
    assert set(est["area_name"]) == {"Downtown", "Harbor"}
    assert set(est["day"]) == {"Monday"}
    assert est["hour"].between(8, 12).all()
    assert not est.duplicated(["area_id", "day_of_week", "hour"]).any()

    published = est[est["status"] == STATUS_OK]
    assert not published.empty
    assert (published["published"] == published["mean"]).all()
    assert (published["ci_half_width"] <= 5.0).all()

    suppressed = est[est["status"] == INSUFFICIENT_CONFIDENCE]
    assert suppressed["published"].isna().all()


def test_run_pipeline_reports_result_states(synthetic_jobs, two_areas):
    extra = records_to_frame([
        # zero duration
        make_job(9001, "2026-07-06 09:00", "2026-07-06 09:00"),
        # pickup outside every area
        make_job(9002, "2026-07-06 09:00", "2026-07-06 09:20", pickup_lat=5.0, pickup_lng=5.0),
        # inverted, dropped before apportioning
        make_job(9003, "2026-07-06 10:00", "2026-07-06 09:00"),
    ])
    jobs = pd.concat([synthetic_jobs, extra], ignore_index=True)

    result = run_pipeline(jobs, two_areas, method="direct")

    counts = result["status_counts"]
    assert counts[ZERO_DURATION_JOB] == 1
    assert counts["pickup NoAreaMatch"] == 1
    assert result["zero_duration"]["job_id"].tolist() == [9001]
    assert not result["rows"]["job_id"].isin([9001, 9002, 9003]).any()


def test_run_pipeline_wide_threshold_publishes_everything(synthetic_jobs, two_areas):
    result = run_pipeline(synthetic_jobs, two_areas, method="modeled", max_half_width=1e6)

    assert (result["estimates"]["status"] == STATUS_OK).all()


def test_run_pipeline_fails_when_nothing_survives(two_areas):
    jobs = records_to_frame([
        make_job(1, "2026-07-06 09:00", "2026-07-06 09:20", pickup_lat=5.0, pickup_lng=5.0),
    ])

    with pytest.raises(ValueError, match="No job-hour rows"):
        run_pipeline(jobs, two_areas, method="direct")


def test_save_outputs_writes_files(synthetic_jobs, two_areas, tmp_path):
    result = run_pipeline(synthetic_jobs, two_areas, method="modeled")

    paths = save_outputs(
        result,
        method="modeled",
        save_plots=True,
        processed_dir=tmp_path / "processed",
        reports_dir=tmp_path / "reports",
    )

    saved = pd.read_parquet(paths["estimates"])
    assert len(saved) == len(result["estimates"])
    assert paths["model_report"].exists()
    assert all(p.exists() for p in paths["heatmaps"])
    assert len(paths["heatmaps"]) == 1  # Monday only
    assert paths["outlier_plot"].exists()
    txt_path, resid_png, qq_png = paths["diagnostics"]
    assert "wls_modeled" in txt_path


def test_main_reads_database(sqlite_engine, monkeypatch, tmp_path):
    monkeypatch.setattr(heatmap_pipeline, "get_engine", lambda url=None: sqlite_engine)

    def _save(result, method, save_plots=False):
        return save_outputs(result, method, save_plots, processed_dir=tmp_path, reports_dir=tmp_path)

    monkeypatch.setattr(heatmap_pipeline, "save_outputs", _save)

    result = heatmap_pipeline.main(method="direct", max_half_width=50.0)

    est = result["estimates"]
    assert set(est["area_id"]) == {1, 2}
    assert result["paths"]["estimates"].exists()
    # job 100: 14:00 UTC -> 10:00 New York
    downtown = est[est["area_id"] == 1]
    assert 10 in downtown["hour"].tolist()


def test_parse_args_defaults_and_overrides():
    args = parse_args(["--method", "direct", "--confidence", "0.95", "--max-half-width", "3", "--save-plots"])

    assert args.method == "direct"
    assert args.confidence == 0.95
    assert args.max_half_width == 3.0
    assert args.save_plots
    assert args.outlier_method in {"zscore", "iqr"}
    assert args.database_url is None
