"""Cross-referencing snapped routes with the street catalog."""

from __future__ import annotations

import pytest

from conftest import make_grid, make_street, offset
from street_coverage.clients.mapbox import Leg, Matching, MatchResponse, Step
from street_coverage.matching.geometry import polyline_length_m
from street_coverage.matching.strategies import (
    GeometricCrossReference,
    NameCrossReference,
    estimated_street_id,
    find_catalog_street,
    snapped_points,
)
from street_coverage.models import CompletionStatus


def _line(north, start, end, step=20):
    return tuple((lon, lat) for lat, lon in (offset(north, e) for e in range(start, end + 1, step)))


def _response(steps, coords):
    leg = Leg(steps=tuple(steps), distance_m=sum(s.distance_m for s in steps), duration_s=0.0)
    matching = Matching(0.9, coords, (leg,), leg.distance_m, 0.0)
    return MatchResponse("Ok", (matching,), ())


def test_estimated_street_id_is_stable():
    assert estimated_street_id("High Street", [(-0.1, 51.5)]) == "estimated-high-street-51500--100"
    assert estimated_street_id("Mill Lane", []) == "estimated-mill-lane"
    coords = [(0.0, 0.0), (-0.0004, 0.0126), (1.0, 1.0)]
    assert estimated_street_id("Mill Lane", coords) == "estimated-mill-lane-13-0"


def test_find_catalog_street_prefers_longest():
    short = make_street("way/20", "High Street", [(0, 0), (0, 50)])
    long = make_street("way/21", "High St", [(0, 100), (0, 400)])
    other = make_street("way/22", "Great Western Main Street East", [(50, 0), (50, 300)])
    streets = [short, long, other]
    assert find_catalog_street("HIGH STREET", streets).street_id == "way/20"
    assert find_catalog_street("Great Western Main Street", streets).street_id == "way/22"
    assert find_catalog_street("Nowhere Road", streets) is None


def test_snapped_points_flatten_matchings():
    coords = _line(0, 0, 100)
    points = snapped_points(_response([], coords))
    assert len(points) == len(coords)
    assert (points[0].lon, points[0].lat) == coords[0]


def test_geometric_cross_reference_empty_catalog():
    response = _response([], _line(0, 0, 400))
    assert GeometricCrossReference().cross_reference(response, []) == []


def test_name_cross_reference_covers_all_step_kinds():
    main_geometry = _line(0, 0, 190, step=10)
    ghost_geometry = _line(500, 0, 100)
    steps = [
        Step("Main Street", 190.0, 120.0, main_geometry),
        Step("Ghost Lane", 100.0, 60.0, ghost_geometry),
        Step("", 30.0, 20.0, ()),
    ]
    response = _response(steps, main_geometry + ghost_geometry)
    results = NameCrossReference().cross_reference(response, make_grid())

    main, ghost, unnamed = results
    assert main.name == "Main Street"
    assert main.coverage_ratio == pytest.approx(0.475, abs=0.01)
    assert main.coverage_interval == (0, 48)
    assert main.completion_status is CompletionStatus.PARTIAL

    assert ghost.street_id.startswith("estimated-ghost-lane-")
    assert ghost.length_m == pytest.approx(polyline_length_m(ghost_geometry), abs=0.01)
    assert ghost.coverage_interval is None

    assert unnamed.street_id == "mapbox-unnamed-2"
    assert unnamed.completion_status is CompletionStatus.PARTIAL
    assert unnamed.length_m == 0.0
