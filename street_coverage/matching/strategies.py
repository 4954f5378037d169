"""Ways of turning a snapped route into coverage against the local catalog."""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Protocol, Sequence

from ..clients.mapbox import ExtractedStreet, MatchResponse, extract_streets_from_match
from ..models import (
    UNNAMED_ROAD,
    CompletionStatus,
    CoverageResult,
    GpsPoint,
    StreetSegment,
)
from ..names import is_unnamed_street, normalize_street_name, street_names_match
from .candidates import StreetIndex
from .completion import determine_completion_status
from .coverage import coverage_interval_from_geometry
from .geometry import polyline_length_m
from .local import StreetSource, catalog_streets, match_points_to_streets
from .settings import DEFAULT_SETTINGS, MatchingSettings

LOGGER = logging.getLogger(__name__)

# Assumed share of a service-only street covered when its length is unknown.
ASSUMED_COVERAGE_SHARE = 0.5


class MatchingStrategy(Protocol):
    """Cross-reference a map-matching response with the local street catalog."""

    def cross_reference(
        self,
        response: MatchResponse,
        streets: StreetSource,
        settings: MatchingSettings = DEFAULT_SETTINGS,
    ) -> List[CoverageResult]: ...


def snapped_points(response: MatchResponse) -> List[GpsPoint]:
    """Flatten every matching geometry into a synthetic trace."""

    return [
        GpsPoint(lat=lat, lon=lon)
        for matching in response.matchings
        for lon, lat in matching.coordinates
    ]


class GeometricCrossReference:
    """Assign snapped route vertices to catalog streets by location.

    Names are ignored entirely, so streets survive when the two data sources
    disagree on naming.
    """

    def cross_reference(
        self,
        response: MatchResponse,
        streets: StreetSource,
        settings: MatchingSettings = DEFAULT_SETTINGS,
    ) -> List[CoverageResult]:
        if not catalog_streets(streets):
            return []
        points = snapped_points(response)
        if not points:
            return []
        results = match_points_to_streets(points, streets, settings)
        return [
            result
            for result in results
            if result.matched_points_count >= settings.min_points_for_full
        ]


def estimated_street_id(name: str, coordinates: Sequence) -> str:
    """Stable id for a street the catalog does not know, from name and midpoint."""

    slug = normalize_street_name(name).replace(" ", "-")
    if not coordinates:
        return f"estimated-{slug}"
    lon, lat = coordinates[len(coordinates) // 2]
    # Half-up rounding; round() would round .5 to even.
    return f"estimated-{slug}-{_round_half_up(lat * 1000)}-{_round_half_up(lon * 1000)}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def find_catalog_street(
    name: str,
    streets: Sequence[StreetSegment],
    by_name: Optional[Dict[str, List[StreetSegment]]] = None,
) -> Optional[StreetSegment]:
    """Longest catalog street whose name matches ``name`` exactly or fuzzily."""

    if by_name is None:
        by_name = _group_by_name(streets)
    wanted = normalize_street_name(name)

    exact = by_name.get(wanted)
    if exact:
        return max(exact, key=lambda street: street.length_m)
    for normalized, group in by_name.items():
        if street_names_match(wanted, normalized):
            return max(group, key=lambda street: street.length_m)
    fuzzy = [street for street in streets if street_names_match(name, street.name)]
    if fuzzy:
        return max(fuzzy, key=lambda street: street.length_m)
    return None


def _group_by_name(streets: Sequence[StreetSegment]) -> Dict[str, List[StreetSegment]]:
    grouped: Dict[str, List[StreetSegment]] = {}
    for street in streets:
        grouped.setdefault(normalize_street_name(street.name), []).append(street)
    return grouped


class NameCrossReference:
    """Legacy name-based cross-reference. Not used by default.

    Streets reported by the service steps are looked up in the catalog by
    normalised or fuzzy name; streets the catalog lacks get an estimated
    length and a deterministic id.
    """

    def cross_reference(
        self,
        response: MatchResponse,
        streets: StreetSource,
        settings: MatchingSettings = DEFAULT_SETTINGS,
    ) -> List[CoverageResult]:
        segments = list(catalog_streets(streets))
        by_name = _group_by_name(segments)
        extracted = extract_streets_from_match(response)
        index: Optional[StreetIndex] = None
        if segments:
            index = StreetIndex.build(
                segments,
                snapped_points(response),
                max_distance_m=settings.max_distance_m,
            )

        results: List[CoverageResult] = []
        for service_street in extracted:
            if is_unnamed_street(service_street.name):
                results.append(self._unnamed(service_street, len(results), settings))
                continue
            catalog_street = find_catalog_street(service_street.name, segments, by_name)
            if catalog_street is not None and index is not None:
                results.append(
                    self._from_catalog(service_street, catalog_street, index, settings)
                )
            else:
                LOGGER.info("No catalog match for service street %r", service_street.name)
                results.append(self._estimated(service_street, settings))

        results.sort(key=lambda result: result.distance_covered_m, reverse=True)
        return results

    @staticmethod
    def _unnamed(
        street: ExtractedStreet, position: int, settings: MatchingSettings
    ) -> CoverageResult:
        distance = round(street.distance_m, settings.distance_decimals)
        return CoverageResult(
            street_id=f"mapbox-unnamed-{position}",
            name=street.name or UNNAMED_ROAD,
            highway_type="unknown",
            length_m=0.0,
            distance_covered_m=distance,
            projected_distance_covered_m=distance,
            coverage_ratio=0.0,
            projected_coverage_ratio=0.0,
            completion_status=CompletionStatus.PARTIAL,
            matched_points_count=street.points_count,
            coverage_interval=None,
            geometry=street.coordinates,
        )

    @staticmethod
    def _from_catalog(
        street: ExtractedStreet,
        catalog_street: StreetSegment,
        index: StreetIndex,
        settings: MatchingSettings,
    ) -> CoverageResult:
        length = catalog_street.length_m
        ratio = street.distance_m / length if length > 0 else 0.0
        interval = None
        prepared = index.get(catalog_street.street_id)
        if prepared is not None:
            interval = coverage_interval_from_geometry(
                street.coordinates, prepared, index.transformer
            )
        distance = round(street.distance_m, settings.distance_decimals)
        rounded_ratio = round(ratio, settings.ratio_decimals)
        return CoverageResult(
            street_id=catalog_street.street_id,
            name=catalog_street.name,
            highway_type=catalog_street.highway_type,
            length_m=round(length, settings.distance_decimals),
            distance_covered_m=distance,
            projected_distance_covered_m=distance,
            coverage_ratio=rounded_ratio,
            projected_coverage_ratio=rounded_ratio,
            completion_status=determine_completion_status(
                ratio, length, interval, street.points_count, settings
            ),
            matched_points_count=street.points_count,
            coverage_interval=interval,
            geometry=tuple(catalog_street.coordinates),
        )

    @staticmethod
    def _estimated(street: ExtractedStreet, settings: MatchingSettings) -> CoverageResult:
        length = polyline_length_m(street.coordinates)
        if length == 0 and street.distance_m > 0:
            length = street.distance_m / ASSUMED_COVERAGE_SHARE
        ratio = (
            min(street.distance_m / length, 1.0) if length > 0 else ASSUMED_COVERAGE_SHARE
        )
        distance = round(street.distance_m, settings.distance_decimals)
        rounded_ratio = round(ratio, settings.ratio_decimals)
        return CoverageResult(
            street_id=estimated_street_id(street.name, street.coordinates),
            name=street.name,
            highway_type="unknown",
            length_m=round(length, settings.distance_decimals),
            distance_covered_m=distance,
            projected_distance_covered_m=distance,
            coverage_ratio=rounded_ratio,
            projected_coverage_ratio=rounded_ratio,
            completion_status=determine_completion_status(
                ratio, length, None, street.points_count, settings
            ),
            matched_points_count=street.points_count,
            coverage_interval=None,
            geometry=street.coordinates,
        )


__all__ = [
    "GeometricCrossReference",
    "MatchingStrategy",
    "NameCrossReference",
    "estimated_street_id",
    "find_catalog_street",
    "snapped_points",
]
