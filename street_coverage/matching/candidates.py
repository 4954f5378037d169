"""Candidate lookup, trajectory-aware assignment and grouping of GPS points."""

from __future__ import annotations

from collections import defaultdict
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from pyproj import Transformer
from shapely.geometry import Point
from shapely.strtree import STRtree

from ..models import (
    GpsPoint,
    IndexedPoint,
    PointAssignment,
    StreetCandidate,
    StreetSegment,
)
from .geometry import (
    PreparedStreet,
    bearing_difference,
    build_local_transformer,
    prepare_street,
    project_gps_points,
    project_onto_street,
    street_bearing_at,
    trajectory_bearing,
)
from .settings import DEFAULT_SETTINGS, MatchingSettings

LOGGER = logging.getLogger(__name__)


class StreetIndex:
    """Spatial index over a street catalog in a local metric frame."""

    def __init__(
        self,
        streets: Sequence[StreetSegment],
        transformer: Transformer,
        *,
        max_distance_m: float = DEFAULT_SETTINGS.max_distance_m,
    ) -> None:
        self.transformer = transformer
        self.max_distance_m = max_distance_m
        self._prepared: List[PreparedStreet] = []
        for street in streets:
            if len(street.coordinates) < 2:
                LOGGER.debug("Skipping street %s without a usable centerline", street.street_id)
                continue
            self._prepared.append(prepare_street(street, transformer))
        self._by_id: Dict[str, PreparedStreet] = {
            prepared.street.street_id: prepared for prepared in self._prepared
        }
        self._tree: Optional[STRtree] = (
            STRtree([prepared.line for prepared in self._prepared])
            if self._prepared
            else None
        )

    @classmethod
    def build(
        cls,
        streets: Sequence[StreetSegment],
        points: Sequence[GpsPoint] = (),
        *,
        max_distance_m: float = DEFAULT_SETTINGS.max_distance_m,
    ) -> "StreetIndex":
        """Create an index whose metric frame is centred on the supplied data."""

        latlon: List[Tuple[float, float]] = [(p.lat, p.lon) for p in points]
        if not latlon:
            latlon = [
                (lat, lon) for street in streets for lon, lat in street.coordinates
            ]
        if not latlon:
            latlon = [(0.0, 0.0)]
        return cls(
            streets,
            build_local_transformer(latlon),
            max_distance_m=max_distance_m,
        )

    def __len__(self) -> int:
        return len(self._prepared)

    @property
    def prepared(self) -> Dict[str, PreparedStreet]:
        return self._by_id

    def get(self, street_id: str) -> Optional[PreparedStreet]:
        return self._by_id.get(street_id)

    def project_points(self, points: Sequence[GpsPoint]) -> np.ndarray:
        return project_gps_points(points, self.transformer)

    def find_candidates(
        self, point: GpsPoint, point_xy: Optional[Sequence[float]] = None
    ) -> List[StreetCandidate]:
        """Return streets within the proximity threshold, closest first."""

        if self._tree is None:
            return []
        if point_xy is None:
            point_xy = self.project_points([point])[0]
        query = Point(float(point_xy[0]), float(point_xy[1])).buffer(
            self.max_distance_m
        )
        candidates: List[StreetCandidate] = []
        for tree_index in sorted(int(i) for i in self._tree.query(query)):
            prepared = self._prepared[tree_index]
            projection = project_onto_street(point_xy, prepared)
            if projection.distance_m > self.max_distance_m:
                continue
            candidates.append(
                StreetCandidate(
                    street_id=prepared.street.street_id,
                    distance_m=projection.distance_m,
                    bearing_deg=street_bearing_at(prepared, projection),
                )
            )
        candidates.sort(key=lambda candidate: candidate.distance_m)
        return candidates


def score_candidate(
    candidate: StreetCandidate,
    trajectory: float,
    previous_street: Optional[str],
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> float:
    """Blend proximity, direction alignment and continuity into one score."""

    score = settings.distance_weight * (
        1.0 - candidate.distance_m / settings.max_distance_m
    )
    diff = bearing_difference(trajectory, candidate.bearing_deg)
    score += settings.alignment_weight * max(0.0, 1.0 - diff / 90.0)
    if previous_street is not None and candidate.street_id == previous_street:
        score += settings.continuity_bonus
    return score


def select_best_candidate(
    candidates: Sequence[StreetCandidate],
    trajectory: float,
    previous_street: Optional[str],
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> Optional[StreetCandidate]:
    best: Optional[StreetCandidate] = None
    best_score = float("-inf")
    for candidate in candidates:
        score = score_candidate(candidate, trajectory, previous_street, settings)
        # Strict comparison keeps the closest candidate on ties.
        if score > best_score:
            best_score = score
            best = candidate
    return best


def assign_points(
    points: Sequence[GpsPoint],
    index: StreetIndex,
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> PointAssignment:
    """Assign each point to at most one street, in trace order."""

    assignments: PointAssignment = []
    if not points or len(index) == 0:
        return [None] * len(points)
    metric = index.project_points(points)
    for i, point in enumerate(points):
        candidates = index.find_candidates(point, metric[i])
        if not candidates:
            assignments.append(None)
            continue
        if len(candidates) == 1:
            assignments.append(candidates[0].street_id)
            continue
        trajectory = trajectory_bearing(points, i)
        previous = assignments[i - 1] if i > 0 else None
        best = select_best_candidate(candidates, trajectory, previous, settings)
        assignments.append(best.street_id if best else None)
    return assignments


def group_points_by_street(
    points: Sequence[GpsPoint],
    assignments: PointAssignment,
    indices: Optional[Sequence[int]] = None,
) -> Dict[str, List[IndexedPoint]]:
    """Group assigned points by street, each group in original trace order.

    ``indices`` gives each point's position in the full trace when ``points``
    is a subset of it; by default points are numbered from zero.
    """

    if len(points) != len(assignments):
        raise ValueError("points and assignments must be the same length")
    if indices is None:
        indices = range(len(points))
    elif len(indices) != len(points):
        raise ValueError("points and indices must be the same length")
    groups: Dict[str, List[IndexedPoint]] = defaultdict(list)
    for index, point, street_id in zip(indices, points, assignments):
        if street_id is None:
            continue
        groups[street_id].append(IndexedPoint(point=point, index=index))
    for members in groups.values():
        members.sort(key=lambda item: item.index)
    return dict(groups)


__all__ = [
    "StreetIndex",
    "assign_points",
    "group_points_by_street",
    "score_candidate",
    "select_best_candidate",
]
