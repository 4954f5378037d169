"""Combine two coverage result lists into one."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Dict, List, Sequence

from ..models import CoverageResult
from ..names import normalize_street_name
from .completion import determine_completion_status
from .settings import DEFAULT_SETTINGS, MatchingSettings

LOGGER = logging.getLogger(__name__)


def merge_coverage_results(
    primary: Sequence[CoverageResult],
    secondary: Sequence[CoverageResult],
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> List[CoverageResult]:
    """Merge ``secondary`` into ``primary`` without mutating either input.

    Entries collide on street id when the incoming entry has one, otherwise
    on normalised street name. On collision the larger distance covered wins
    and ratios are recomputed from it. The result is ordered by distance
    covered, longest first; merging with an empty list returns ``primary``
    unchanged.
    """

    if not secondary:
        return list(primary)

    merged: List[CoverageResult] = list(primary)
    by_id: Dict[str, int] = {}
    by_name: Dict[str, int] = {}
    for position, result in enumerate(merged):
        if result.street_id:
            by_id.setdefault(result.street_id, position)
        by_name.setdefault(normalize_street_name(result.name), position)

    for incoming in secondary:
        if incoming.street_id:
            position = by_id.get(incoming.street_id)
        else:
            position = by_name.get(normalize_street_name(incoming.name))

        if position is None:
            merged.append(incoming)
            new_position = len(merged) - 1
            if incoming.street_id:
                by_id.setdefault(incoming.street_id, new_position)
            by_name.setdefault(normalize_street_name(incoming.name), new_position)
            continue

        existing = merged[position]
        if incoming.distance_covered_m <= existing.distance_covered_m:
            continue
        merged[position] = _absorb(existing, incoming, settings)
        LOGGER.debug(
            "Merged %s: distance %.2f -> %.2f m",
            existing.street_id or existing.name,
            existing.distance_covered_m,
            incoming.distance_covered_m,
        )

    merged.sort(key=lambda result: result.distance_covered_m, reverse=True)
    return merged


def _absorb(
    existing: CoverageResult,
    incoming: CoverageResult,
    settings: MatchingSettings,
) -> CoverageResult:
    distance = incoming.distance_covered_m
    length = existing.length_m
    ratio = min(distance / length, 1.0) if length > 0 else 0.0
    ratio = round(ratio, settings.ratio_decimals)
    points = existing.matched_points_count + incoming.matched_points_count
    interval = existing.coverage_interval or incoming.coverage_interval
    return replace(
        existing,
        distance_covered_m=distance,
        projected_distance_covered_m=max(
            existing.projected_distance_covered_m,
            incoming.projected_distance_covered_m,
        ),
        coverage_ratio=ratio,
        projected_coverage_ratio=ratio,
        matched_points_count=points,
        coverage_interval=interval,
        completion_status=determine_completion_status(
            ratio, length, interval, points, settings
        ),
    )


__all__ = ["merge_coverage_results"]
