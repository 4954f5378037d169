"""JSON and Excel output for coverage results."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
import json
import logging
from os import PathLike
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .models import CompletionStatus, CoverageResult

LOGGER = logging.getLogger(__name__)

RESULTS_SHEET = "Coverage"
SUMMARY_SHEET = "Summary"

COLUMN_ORDER = [
    "street_id",
    "name",
    "highway_type",
    "length_m",
    "distance_covered_m",
    "coverage_ratio",
    "projected_distance_covered_m",
    "projected_coverage_ratio",
    "completion_status",
    "matched_points_count",
    "coverage_start_pct",
    "coverage_end_pct",
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFDDEBF7")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

PathInput = str | Path | PathLike[str]

__all__ = [
    "COLUMN_ORDER",
    "results_to_frame",
    "summarize_results",
    "write_results_excel",
    "write_results_json",
]


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def _row(result: CoverageResult) -> Dict[str, Any]:
    interval = result.coverage_interval
    return {
        "street_id": result.street_id,
        "name": result.name,
        "highway_type": result.highway_type,
        "length_m": result.length_m,
        "distance_covered_m": result.distance_covered_m,
        "coverage_ratio": result.coverage_ratio,
        "projected_distance_covered_m": result.projected_distance_covered_m,
        "projected_coverage_ratio": result.projected_coverage_ratio,
        "completion_status": result.completion_status.value,
        "matched_points_count": result.matched_points_count,
        "coverage_start_pct": interval[0] if interval else None,
        "coverage_end_pct": interval[1] if interval else None,
    }


def results_to_frame(results: Iterable[CoverageResult]) -> pd.DataFrame:
    """Tabulate results with a fixed column order (geometry omitted)."""

    rows = [_row(result) for result in results]
    if not rows:
        return pd.DataFrame(columns=COLUMN_ORDER)
    return pd.DataFrame(rows)[COLUMN_ORDER]


def summarize_results(results: Sequence[CoverageResult]) -> Dict[str, Any]:
    full = sum(1 for r in results if r.completion_status is CompletionStatus.FULL)
    return {
        "streets": len(results),
        "full": full,
        "partial": len(results) - full,
        "total_distance_m": round(sum(r.distance_covered_m for r in results), 2),
        "total_points": sum(r.matched_points_count for r in results),
    }


def write_results_json(
    filepath: PathInput,
    results: Sequence[CoverageResult],
    *,
    include_geometry: bool = True,
    extra: Dict[str, Any] | None = None,
) -> None:
    payload: Dict[str, Any] = {
        "summary": summarize_results(results),
        "results": [],
    }
    for result in results:
        item = result.to_dict()
        if not include_geometry:
            item.pop("geometry", None)
        payload["results"].append(item)
    if extra:
        payload.update(extra)
    path = Path(filepath)
    path.write_text(
        json.dumps(_normalise_value(payload), indent=2) + "\n", encoding="utf-8"
    )
    LOGGER.info("Wrote %d coverage results to %s", len(results), path)


def write_results_excel(filepath: PathInput, results: Sequence[CoverageResult]) -> None:
    """Write a results sheet and a summary sheet using the openpyxl engine."""

    path = str(Path(filepath))
    frame = results_to_frame(results)
    summary = pd.DataFrame(
        [{"metric": k, "value": v} for k, v in summarize_results(results).items()]
    )
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        if frame.empty:
            pd.DataFrame({"Message": ["No streets matched."]}).to_excel(
                writer, sheet_name=RESULTS_SHEET, index=False
            )
        else:
            frame.to_excel(writer, sheet_name=RESULTS_SHEET, index=False)
        summary.to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
        for sheet_name in (RESULTS_SHEET, SUMMARY_SHEET):
            ws = writer.sheets[sheet_name]
            _style_header_row(ws)
            _autosize(ws)
    LOGGER.info("Wrote %d coverage rows to %s", len(frame), path)


def _style_header_row(ws: Worksheet) -> None:
    for col_idx in range(1, ws.max_column + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    from .config import (
        EXCEL_AUTOSIZE_COLUMNS,
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
    )

    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width
