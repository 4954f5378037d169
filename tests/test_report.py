import json
from pathlib import Path

import pandas as pd
import pytest

from street_coverage.models import CompletionStatus, CoverageResult
from street_coverage.report import (
    COLUMN_ORDER,
    results_to_frame,
    summarize_results,
    write_results_excel,
    write_results_json,
)


@pytest.fixture()
def results():
    return [
        CoverageResult(
            street_id="way/1",
            name="Main Street",
            highway_type="residential",
            length_m=400.0,
            distance_covered_m=398.5,
            projected_distance_covered_m=399.1,
            coverage_ratio=0.996,
            projected_coverage_ratio=0.998,
            completion_status=CompletionStatus.FULL,
            matched_points_count=41,
            coverage_interval=(0, 100),
            geometry=((-0.1, 51.5), (-0.094, 51.5)),
        ),
        CoverageResult(
            street_id="way/3",
            name="Side Lane",
            highway_type="service",
            length_m=400.0,
            distance_covered_m=120.25,
            projected_distance_covered_m=118.0,
            coverage_ratio=0.301,
            projected_coverage_ratio=0.295,
            completion_status=CompletionStatus.PARTIAL,
            matched_points_count=13,
        ),
    ]


def test_summarize_results(results):
    assert summarize_results(results) == {
        "streets": 2,
        "full": 1,
        "partial": 1,
        "total_distance_m": 518.75,
        "total_points": 54,
    }
    assert summarize_results([])["streets"] == 0


def test_results_to_frame_column_order(results):
    frame = results_to_frame(results)
    assert list(frame.columns) == COLUMN_ORDER
    assert frame.loc[0, "completion_status"] == "FULL"
    assert frame.loc[0, "coverage_end_pct"] == 100
    assert pd.isna(frame.loc[1, "coverage_start_pct"])
    assert list(results_to_frame([]).columns) == COLUMN_ORDER


def test_write_results_json(tmp_path: Path, results):
    path = tmp_path / "coverage.json"
    write_results_json(path, results, extra={"match_path": "LOCAL_ONLY"})
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["summary"]["streets"] == 2
    assert payload["match_path"] == "LOCAL_ONLY"
    first = payload["results"][0]
    assert first["completion_status"] == "FULL"
    assert first["coverage_interval"] == [0, 100]
    assert first["geometry"] == [[-0.1, 51.5], [-0.094, 51.5]]
    assert payload["results"][1]["coverage_interval"] is None


def test_write_results_json_without_geometry(tmp_path: Path, results):
    path = tmp_path / "coverage.json"
    write_results_json(path, results, include_geometry=False)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert all("geometry" not in item for item in payload["results"])


def test_write_results_excel(tmp_path: Path, results):
    path = tmp_path / "coverage.xlsx"
    write_results_excel(path, results)
    sheet = pd.read_excel(path, sheet_name="Coverage")
    assert list(sheet.columns) == COLUMN_ORDER
    assert list(sheet["street_id"]) == ["way/1", "way/3"]
    summary = pd.read_excel(path, sheet_name="Summary")
    assert dict(zip(summary["metric"], summary["value"]))["full"] == 1


def test_write_results_excel_styles_header(tmp_path: Path, results):
    from openpyxl import load_workbook

    path = tmp_path / "coverage.xlsx"
    write_results_excel(path, results)
    ws = load_workbook(path)["Coverage"]
    assert ws.cell(row=1, column=1).font.bold
    assert ws.column_dimensions["A"].width >= 6


def test_write_results_excel_empty(tmp_path: Path):
    path = tmp_path / "empty.xlsx"
    write_results_excel(path, [])
    sheet = pd.read_excel(path, sheet_name="Coverage")
    assert list(sheet.columns) == ["Message"]
    assert sheet.loc[0, "Message"] == "No streets matched."
