"""Candidate lookup and trajectory-aware point assignment."""

from __future__ import annotations

import pytest

from conftest import gps, make_grid, make_street, walk_east, walk_north
from street_coverage.matching.candidates import (
    StreetIndex,
    assign_points,
    group_points_by_street,
    score_candidate,
    select_best_candidate,
)
from street_coverage.matching.settings import MatchingSettings
from street_coverage.models import StreetCandidate


def test_find_candidates_sorted_by_distance():
    index = StreetIndex.build(make_grid(), [gps(0, 190)])
    candidates = index.find_candidates(gps(5, 190))
    assert [c.street_id for c in candidates] == ["way/1", "way/2"]
    assert candidates[0].distance_m == pytest.approx(5.0, abs=0.3)
    assert candidates[1].distance_m == pytest.approx(10.0, abs=0.3)


def test_find_candidates_respects_threshold():
    index = StreetIndex.build(make_grid(), [gps(50, 50)], max_distance_m=25.0)
    assert index.find_candidates(gps(50, 50)) == []
    assert [c.street_id for c in index.find_candidates(gps(80, 50))] == ["way/3"]


def test_index_skips_degenerate_streets():
    broken = make_street("way/9", "Stub", [(0, 0)], length_m=0.0)
    index = StreetIndex.build(make_grid() + [broken], [gps(0, 0)])
    assert len(index) == 3
    assert index.get("way/9") is None
    assert index.get("way/1") is not None


def test_empty_index_has_no_candidates():
    index = StreetIndex.build([], [gps(0, 0)])
    assert len(index) == 0
    assert index.find_candidates(gps(0, 0)) == []
    assert assign_points([gps(0, 0), gps(0, 10)], index) == [None, None]


def test_score_rewards_alignment_and_continuity():
    settings = MatchingSettings()
    aligned = StreetCandidate("a", distance_m=5.0, bearing_deg=90.0)
    crossing = StreetCandidate("b", distance_m=5.0, bearing_deg=0.0)
    assert score_candidate(aligned, 90.0, None, settings) == pytest.approx(32.0 + 40.0)
    assert score_candidate(crossing, 90.0, None, settings) == pytest.approx(32.0)
    assert score_candidate(crossing, 90.0, "b", settings) == pytest.approx(52.0)


def test_continuity_breaks_ties():
    first = StreetCandidate("a", distance_m=4.0, bearing_deg=90.0)
    second = StreetCandidate("b", distance_m=4.0, bearing_deg=90.0)
    assert select_best_candidate([first, second], 90.0, None).street_id == "a"
    assert select_best_candidate([first, second], 90.0, "b").street_id == "b"
    assert select_best_candidate([], 90.0, None) is None


def test_trace_along_street_near_intersection_stays_on_street():
    # Runner heads east 3 m north of Main Street and passes Cross Road.
    points = walk_east(3, 150, 250)
    index = StreetIndex.build(make_grid(), points)
    assignments = assign_points(points, index)
    assert set(assignments) == {"way/1"}


def test_trace_across_intersection_follows_travel_direction():
    points = walk_north(200, -100, 100)
    index = StreetIndex.build(make_grid(), points)
    assignments = assign_points(points, index)
    assert set(assignments) == {"way/2"}


def test_points_off_the_network_stay_unassigned():
    points = [gps(0, 0), gps(50, 50), gps(0, 20)]
    index = StreetIndex.build(make_grid(), points)
    assert assign_points(points, index) == ["way/1", None, "way/1"]


def test_group_points_by_street_keeps_trace_order():
    points = [gps(0, i * 10) for i in range(5)]
    groups = group_points_by_street(points, ["a", None, "b", "a", "a"])
    assert [item.index for item in groups["a"]] == [0, 3, 4]
    assert [item.index for item in groups["b"]] == [2]
    assert groups["a"][1].point == points[3]


def test_group_points_by_street_length_mismatch():
    with pytest.raises(ValueError):
        group_points_by_street([gps(0, 0)], [])
    with pytest.raises(ValueError):
        group_points_by_street([gps(0, 0)], ["a"], indices=[0, 1])


def test_group_points_by_street_uses_supplied_trace_indices():
    points = [gps(0, 0), gps(0, 200), gps(0, 210)]
    groups = group_points_by_street(points, ["a", "a", "a"], indices=[0, 7, 8])
    assert [item.index for item in groups["a"]] == [0, 7, 8]
