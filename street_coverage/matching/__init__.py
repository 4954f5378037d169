"""Street matching engine: GPS trace + street catalog -> per-street coverage."""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..models import CoverageResult, GpsPoint
from .candidates import StreetIndex, assign_points, group_points_by_street
from .completion import completion_threshold, determine_completion_status
from .coverage import (
    calculate_street_coverage,
    consecutive_distance_m,
    coverage_interval_from_positions,
)
from .hybrid import HybridMatcher, MatchingClient, MatchPath, MatchReport
from .local import StreetSource, match_points_to_streets
from .merge import merge_coverage_results
from .settings import DEFAULT_SETTINGS, MatchingSettings
from .strategies import (
    GeometricCrossReference,
    MatchingStrategy,
    NameCrossReference,
)


def match_points_to_streets_hybrid(
    points: Sequence[GpsPoint],
    streets: StreetSource,
    client: Optional[MatchingClient] = None,
    *,
    strategy: Optional[MatchingStrategy] = None,
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> List[CoverageResult]:
    """Match with the snapping service when available, locally otherwise."""

    matcher = HybridMatcher(client=client, strategy=strategy, settings=settings)
    return matcher.match(points, streets)


__all__ = [
    "DEFAULT_SETTINGS",
    "GeometricCrossReference",
    "HybridMatcher",
    "MatchPath",
    "MatchReport",
    "MatchingClient",
    "MatchingSettings",
    "MatchingStrategy",
    "NameCrossReference",
    "StreetIndex",
    "StreetSource",
    "assign_points",
    "calculate_street_coverage",
    "completion_threshold",
    "consecutive_distance_m",
    "coverage_interval_from_positions",
    "determine_completion_status",
    "group_points_by_street",
    "match_points_to_streets",
    "match_points_to_streets_hybrid",
    "merge_coverage_results",
]
