"""Coverage distance, interval and sampling helpers."""

from __future__ import annotations

import pytest

from conftest import gps, make_street, offset, walk_east
from street_coverage.matching.candidates import StreetIndex
from street_coverage.matching.coverage import (
    calculate_street_coverage,
    consecutive_distance_m,
    consecutive_runs,
    coverage_interval_from_geometry,
    coverage_interval_from_positions,
    projected_distance_m,
    sample_indices,
)
from street_coverage.models import CompletionStatus, IndexedPoint


def _indexed(pairs):
    return [IndexedPoint(point=gps(0, east), index=idx) for idx, east in pairs]


def test_distance_ignores_gaps_between_visits():
    # Indices 7 -> 20 are a separate visit; the 280 m jump is not counted.
    members = _indexed([(5, 0), (6, 10), (7, 20), (20, 300), (21, 310)])
    runs = consecutive_runs(members)
    assert [[m.index for m in run] for run in runs] == [[5, 6, 7], [20, 21]]
    assert consecutive_distance_m(members) == pytest.approx(30.0, abs=0.5)


def test_consecutive_runs_sorts_input():
    members = _indexed([(3, 30), (1, 10), (2, 20)])
    assert [m.index for m in consecutive_runs(members)[0]] == [1, 2, 3]


def test_single_points_contribute_nothing():
    members = _indexed([(1, 0), (5, 50), (9, 90)])
    assert consecutive_distance_m(members) == 0.0


def test_projected_distance_uses_along_positions():
    members = _indexed([(5, 0), (6, 10), (7, 20), (20, 300), (21, 310)])
    along = {5: 0.0, 6: 10.0, 7: 5.0, 20: 100.0, 21: 120.0}
    assert projected_distance_m(members, along) == pytest.approx(35.0)


@pytest.mark.parametrize(
    "values,length,expected",
    [
        ([10.0, 390.0], 400.0, (2, 98)),
        ([50.0, 50.0], 400.0, (12, 13)),
        ([0.0, 500.0], 400.0, (0, 100)),
        ([100.0, 100.0], 400.0, None),
        ([], 400.0, None),
        ([10.0, 20.0], 0.0, None),
    ],
)
def test_coverage_interval_from_positions(values, length, expected):
    assert coverage_interval_from_positions(values, length) == expected


def test_sample_indices_includes_both_ends():
    assert sample_indices(0) == []
    assert sample_indices(1) == [0]
    assert sample_indices(5) == [0, 1, 2, 3, 4]
    many = sample_indices(100)
    assert len(many) == 10
    assert many[0] == 0 and many[-1] == 99
    assert many == sorted(set(many))


def test_interval_from_geometry_projects_route():
    street = make_street("way/1", "Main Street", [(0, 0), (0, 400)])
    index = StreetIndex.build([street], [gps(0, 200)])
    prepared = index.get("way/1")
    route = [(lon, lat) for lat, lon in (offset(2, e) for e in range(102, 299, 14))]
    interval = coverage_interval_from_geometry(route, prepared, index.transformer)
    assert interval == (25, 75)
    assert coverage_interval_from_geometry(route[:1], prepared, index.transformer) is None


def test_calculate_street_coverage_rounds_and_classifies():
    street = make_street("way/1", "Main Street", [(0, 0), (0, 200)])
    points = walk_east(0, 0, 200)
    index = StreetIndex.build([street], points)
    groups = {"way/1": [IndexedPoint(point=p, index=i) for i, p in enumerate(points)]}
    [result] = calculate_street_coverage(groups, index.prepared, index.transformer)
    assert result.street_id == "way/1"
    assert result.matched_points_count == 21
    assert result.coverage_ratio == pytest.approx(1.0, abs=0.002)
    assert result.projected_coverage_ratio == pytest.approx(1.0, abs=0.002)
    assert result.distance_covered_m == round(result.distance_covered_m, 2)
    assert result.coverage_interval == (0, 100)
    assert result.completion_status is CompletionStatus.FULL
    assert result.geometry == street.coordinates


def test_calculate_street_coverage_skips_unknown_streets():
    street = make_street("way/1", "Main Street", [(0, 0), (0, 200)])
    index = StreetIndex.build([street], [gps(0, 0)])
    groups = {"way/404": _indexed([(0, 0), (1, 10)])}
    assert calculate_street_coverage(groups, index.prepared, index.transformer) == []
