"""Per-street coverage calculation from grouped GPS points.

Distances are accumulated only inside runs of consecutive trace indices so a
runner who leaves a street and later returns is not credited for the jump
between the two visits. Two measures are produced: the raw point-to-point
path length (phase 1) and the distance travelled along the projected
centerline (phase 2), which damps zig-zag noise from GPS drift.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

from pyproj import Transformer

from ..models import CoverageInterval, CoverageResult, IndexedPoint, LonLat
from .completion import determine_completion_status
from .geometry import (
    PreparedStreet,
    path_length_m,
    project_lonlat,
    project_onto_street,
)
from .settings import DEFAULT_SETTINGS, MatchingSettings

# Upper bound on vertices sampled from an external geometry.
MAX_GEOMETRY_SAMPLES = 10


def consecutive_runs(points: Iterable[IndexedPoint]) -> List[List[IndexedPoint]]:
    """Split points into maximal runs whose trace indices step by exactly one."""

    ordered = sorted(points, key=lambda item: item.index)
    runs: List[List[IndexedPoint]] = []
    for item in ordered:
        if runs and item.index - runs[-1][-1].index == 1:
            runs[-1].append(item)
        else:
            runs.append([item])
    return runs


def consecutive_distance_m(points: Iterable[IndexedPoint]) -> float:
    """Geodesic path length summed within consecutive runs only."""

    return sum(
        path_length_m([item.point for item in run])
        for run in consecutive_runs(points)
        if len(run) >= 2
    )


def projected_distance_m(
    points: Iterable[IndexedPoint],
    along_by_index: Dict[int, float],
) -> float:
    """Distance travelled along the centerline within consecutive runs."""

    total = 0.0
    for run in consecutive_runs(points):
        for previous, current in zip(run, run[1:]):
            total += abs(along_by_index[current.index] - along_by_index[previous.index])
    return total


def coverage_interval_from_positions(
    along_values: Sequence[float], length_m: float
) -> Optional[CoverageInterval]:
    """Percentage span of the street touched by the projected positions."""

    if not along_values or length_m <= 0:
        return None
    positions = [
        max(0.0, min(100.0, value / length_m * 100.0))
        for value in along_values
        if value >= 0 and math.isfinite(value)
    ]
    if not positions:
        return None
    start = int(math.floor(min(positions)))
    end = int(math.ceil(max(positions)))
    if start >= end:
        return None
    return (start, end)


def sample_indices(count: int, max_samples: int = MAX_GEOMETRY_SAMPLES) -> List[int]:
    """Evenly spaced vertex indices that always include both ends."""

    if count <= 0:
        return []
    if count == 1:
        return [0]
    samples = min(count, max_samples)
    indices = sorted(
        {int(math.floor(i / (samples - 1) * (count - 1))) for i in range(samples)}
    )
    if indices[0] != 0:
        indices.insert(0, 0)
    if indices[-1] != count - 1:
        indices.append(count - 1)
    return indices


def coverage_interval_from_geometry(
    geometry: Sequence[LonLat],
    prepared: PreparedStreet,
    transformer: Transformer,
) -> Optional[CoverageInterval]:
    """Interval covered by an external route geometry projected onto a street."""

    length_m = prepared.street.length_m
    if len(geometry) < 2 or len(prepared.metric_points) < 2 or length_m <= 0:
        return None
    picked = [geometry[i] for i in sample_indices(len(geometry))]
    metric = project_lonlat(picked, transformer)
    along = [project_onto_street(xy, prepared).along_m for xy in metric]
    if len(along) < 2:
        return None
    return coverage_interval_from_positions(along, length_m)


def calculate_street_coverage(
    groups: Dict[str, List[IndexedPoint]],
    streets: Dict[str, PreparedStreet],
    transformer: Transformer,
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> List[CoverageResult]:
    """Build one coverage result per street with assigned points."""

    results: List[CoverageResult] = []
    for street_id, members in groups.items():
        prepared = streets.get(street_id)
        if prepared is None or not members:
            continue
        street = prepared.street
        metric = project_lonlat(
            [(item.point.lon, item.point.lat) for item in members], transformer
        )
        along_by_index = {
            item.index: project_onto_street(xy, prepared).along_m
            for item, xy in zip(members, metric)
        }
        distance = consecutive_distance_m(members)
        projected = projected_distance_m(members, along_by_index)
        length = street.length_m
        ratio = distance / length if length > 0 else 0.0
        projected_ratio = projected / length if length > 0 else 0.0
        interval = coverage_interval_from_positions(
            list(along_by_index.values()), length
        )
        results.append(
            CoverageResult(
                street_id=street.street_id,
                name=street.name,
                highway_type=street.highway_type,
                length_m=round(length, settings.distance_decimals),
                distance_covered_m=round(distance, settings.distance_decimals),
                projected_distance_covered_m=round(
                    projected, settings.distance_decimals
                ),
                coverage_ratio=round(ratio, settings.ratio_decimals),
                projected_coverage_ratio=round(
                    projected_ratio, settings.ratio_decimals
                ),
                completion_status=determine_completion_status(
                    projected_ratio,
                    length,
                    interval,
                    len(members),
                    settings,
                ),
                matched_points_count=len(members),
                coverage_interval=interval,
                geometry=tuple(street.coordinates),
            )
        )
    return results


__all__ = [
    "calculate_street_coverage",
    "consecutive_distance_m",
    "consecutive_runs",
    "coverage_interval_from_geometry",
    "coverage_interval_from_positions",
    "projected_distance_m",
    "sample_indices",
]
