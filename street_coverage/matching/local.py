"""Local-only geometric matching of a GPS trace against a street catalog."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from ..models import CoverageResult, GpsPoint, StreetCatalog, StreetSegment
from .candidates import StreetIndex, assign_points, group_points_by_street
from .coverage import calculate_street_coverage
from .settings import DEFAULT_SETTINGS, MatchingSettings

LOGGER = logging.getLogger(__name__)

StreetSource = Union[StreetCatalog, Sequence[StreetSegment]]


def catalog_streets(streets: StreetSource) -> Sequence[StreetSegment]:
    if isinstance(streets, StreetCatalog):
        return streets.streets
    return streets


def match_points_to_streets(
    points: Sequence[GpsPoint],
    streets: StreetSource,
    settings: MatchingSettings = DEFAULT_SETTINGS,
    indices: Optional[Sequence[int]] = None,
) -> List[CoverageResult]:
    """Match a trace to streets and return per-street coverage.

    Results are ordered by distance covered, longest first. A trace with
    fewer than two points or an empty catalog yields an empty list.

    When ``points`` is a subset of a longer trace, ``indices`` carries each
    point's original position so that points which were not adjacent in the
    trace never form a consecutive run.
    """

    segments = catalog_streets(streets)
    if len(points) < 2 or not segments:
        LOGGER.debug(
            "Skipping local match: %d points, %d streets", len(points), len(segments)
        )
        return []

    index = StreetIndex.build(segments, points, max_distance_m=settings.max_distance_m)
    assignments = assign_points(points, index, settings)
    groups = group_points_by_street(points, assignments, indices)
    results = calculate_street_coverage(
        groups, index.prepared, index.transformer, settings
    )
    results = [
        result
        for result in results
        if result.matched_points_count >= settings.min_result_points
    ]
    results.sort(key=lambda result: result.distance_covered_m, reverse=True)

    assigned = sum(1 for street_id in assignments if street_id is not None)
    LOGGER.info(
        "Local match assigned %d/%d points to %d streets",
        assigned,
        len(points),
        len(results),
    )
    return results


__all__ = ["StreetSource", "catalog_streets", "match_points_to_streets"]
