"""Mapbox Map Matching client.

Traces longer than the per-request coordinate cap are split into
overlapping windows that are requested one after another and merged back
into a single response whose tracepoints line up with the input points.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from polyline import decode as polyline_decode
import requests
from requests import Session

from .. import config
from ..errors import MapMatchingError, MapMatchingErrorKind
from ..models import UNNAMED_ROAD, GpsPoint, LonLat
from .response_handling import classify_matching_status, json_object
from .session import create_matching_session
from .throttle import RequestThrottle

LOGGER = logging.getLogger(__name__)

POLYLINE_PRECISION = 6
# Coordinates closer than this (degrees) are treated as the same vertex.
COORDINATE_TOLERANCE_DEG = 1e-6


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    distance_m: float
    duration_s: float
    coordinates: Tuple[LonLat, ...] = ()


@dataclass(frozen=True, slots=True)
class Leg:
    steps: Tuple[Step, ...]
    distance_m: float
    duration_s: float


@dataclass(frozen=True, slots=True)
class Matching:
    """One snapped route with its confidence in ``[0, 1]``."""

    confidence: float
    coordinates: Tuple[LonLat, ...]
    legs: Tuple[Leg, ...]
    distance_m: float
    duration_s: float


@dataclass(frozen=True, slots=True)
class Tracepoint:
    name: str
    location: LonLat
    waypoint_index: Optional[int]
    matchings_index: int


@dataclass(frozen=True, slots=True)
class MatchResponse:
    """Parsed Map Matching response; one tracepoint slot per input point."""

    code: str
    matchings: Tuple[Matching, ...]
    tracepoints: Tuple[Optional[Tracepoint], ...] = field(default_factory=tuple)

    @property
    def confidence(self) -> float:
        return self.matchings[0].confidence if self.matchings else 0.0

    def matched_indices(self) -> List[int]:
        return [i for i, tp in enumerate(self.tracepoints) if tp is not None]

    def unmatched_indices(self) -> List[int]:
        return [i for i, tp in enumerate(self.tracepoints) if tp is None]


@dataclass(frozen=True, slots=True)
class ExtractedStreet:
    """Street name aggregated from matching steps."""

    name: str
    distance_m: float
    points_count: int
    coordinates: Tuple[LonLat, ...] = ()


def decode_geometry(geometry: Any) -> Tuple[LonLat, ...]:
    """Decode a polyline6 string or GeoJSON LineString into ``(lon, lat)`` pairs."""

    if not geometry:
        return ()
    if isinstance(geometry, str):
        try:
            decoded = polyline_decode(geometry, POLYLINE_PRECISION)
        except (ValueError, TypeError, IndexError) as exc:
            raise ValueError("Unable to decode polyline geometry") from exc
        return tuple((float(lon), float(lat)) for lat, lon in decoded)
    if isinstance(geometry, Mapping):
        return tuple(
            (float(c[0]), float(c[1])) for c in geometry.get("coordinates") or []
        )
    raise ValueError(f"Unsupported geometry type {type(geometry).__name__}")


def parse_match_response(payload: Mapping[str, Any]) -> MatchResponse:
    matchings = []
    for raw in payload.get("matchings") or []:
        legs = []
        for raw_leg in raw.get("legs") or []:
            steps = tuple(
                Step(
                    name=str(raw_step.get("name") or ""),
                    distance_m=float(raw_step.get("distance") or 0.0),
                    duration_s=float(raw_step.get("duration") or 0.0),
                    coordinates=decode_geometry(raw_step.get("geometry")),
                )
                for raw_step in raw_leg.get("steps") or []
            )
            legs.append(
                Leg(
                    steps=steps,
                    distance_m=float(raw_leg.get("distance") or 0.0),
                    duration_s=float(raw_leg.get("duration") or 0.0),
                )
            )
        matchings.append(
            Matching(
                confidence=float(raw.get("confidence") or 0.0),
                coordinates=decode_geometry(raw.get("geometry")),
                legs=tuple(legs),
                distance_m=float(raw.get("distance") or 0.0),
                duration_s=float(raw.get("duration") or 0.0),
            )
        )
    tracepoints: List[Optional[Tracepoint]] = []
    for raw_tp in payload.get("tracepoints") or []:
        if raw_tp is None:
            tracepoints.append(None)
            continue
        location = raw_tp.get("location") or (0.0, 0.0)
        tracepoints.append(
            Tracepoint(
                name=str(raw_tp.get("name") or ""),
                location=(float(location[0]), float(location[1])),
                waypoint_index=raw_tp.get("waypoint_index"),
                matchings_index=int(raw_tp.get("matchings_index") or 0),
            )
        )
    return MatchResponse(
        code=str(payload.get("code") or ""),
        matchings=tuple(matchings),
        tracepoints=tuple(tracepoints),
    )


def chunk_windows(count: int, size: int, overlap: int) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` windows of at most ``size`` points sharing ``overlap``."""

    if size < 2:
        raise ValueError("size must be >= 2")
    if not 0 <= overlap < size:
        raise ValueError("overlap must be in [0, size)")
    if count <= size:
        return [(0, count)] if count >= 2 else []
    windows: List[Tuple[int, int]] = []
    step = size - overlap
    for start in range(0, count, step):
        end = min(start + size, count)
        if end - start >= 2:
            windows.append((start, end))
        if end >= count:
            break
    return windows


def _coords_equal(a: LonLat, b: LonLat) -> bool:
    return (
        abs(a[0] - b[0]) < COORDINATE_TOLERANCE_DEG
        and abs(a[1] - b[1]) < COORDINATE_TOLERANCE_DEG
    )


def merge_geometries(parts: Sequence[Sequence[LonLat]]) -> Tuple[LonLat, ...]:
    """Concatenate line geometries, dropping a duplicated joint vertex."""

    merged: List[LonLat] = []
    for part in parts:
        for position, coord in enumerate(part):
            if position == 0 and merged and _coords_equal(merged[-1], coord):
                continue
            merged.append(coord)
    return tuple(merged)


def merge_responses(
    responses: Sequence[MatchResponse], windows: Sequence[Tuple[int, int]]
) -> MatchResponse:
    """Combine chunk responses into one matching with aligned tracepoints."""

    if not responses:
        raise MapMatchingError(
            MapMatchingErrorKind.REQUEST_FAILED, "No chunk responses to merge"
        )
    if len(responses) == 1:
        return responses[0]

    matchings = [m for response in responses for m in response.matchings]
    total_distance = sum(m.distance_m for m in matchings)
    weighted = sum(m.confidence * m.distance_m for m in matchings)
    merged = Matching(
        confidence=weighted / total_distance if total_distance > 0 else 0.0,
        coordinates=merge_geometries([m.coordinates for m in matchings]),
        legs=tuple(leg for m in matchings for leg in m.legs),
        distance_m=total_distance,
        duration_s=sum(m.duration_s for m in matchings),
    )

    tracepoints: List[Optional[Tracepoint]] = []
    covered = 0
    for response, (start, end) in zip(responses, windows):
        skip = max(0, covered - start)
        for tp in response.tracepoints[skip:]:
            if tp is None:
                tracepoints.append(None)
            else:
                tracepoints.append(
                    Tracepoint(
                        name=tp.name,
                        location=tp.location,
                        waypoint_index=None,
                        matchings_index=0,
                    )
                )
        covered = max(covered, end)
    return MatchResponse(code="Ok", matchings=(merged,), tracepoints=tuple(tracepoints))


def extract_streets_from_match(response: MatchResponse) -> List[ExtractedStreet]:
    """Aggregate step distances by street name, longest first."""

    distances: Dict[str, float] = {}
    geometries: Dict[str, List[Tuple[LonLat, ...]]] = {}
    for matching in response.matchings:
        for leg in matching.legs:
            for step in leg.steps:
                name = step.name or UNNAMED_ROAD
                distances[name] = distances.get(name, 0.0) + step.distance_m
                geometries.setdefault(name, []).append(step.coordinates)
    points: Dict[str, int] = {}
    for tp in response.tracepoints:
        if tp is None:
            continue
        name = tp.name or UNNAMED_ROAD
        if name in distances:
            points[name] = points.get(name, 0) + 1
    streets = [
        ExtractedStreet(
            name=name,
            distance_m=round(distance, 2),
            points_count=points.get(name) or 1,
            coordinates=merge_geometries(geometries.get(name, [])),
        )
        for name, distance in distances.items()
    ]
    streets.sort(key=lambda street: street.distance_m, reverse=True)
    return streets


def _timestamp_seconds(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return str(int(value.timestamp()))


class MapboxMatchingClient:
    """Snap GPS traces to the road network through the Map Matching API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        session: Optional[Session] = None,
        throttle: Optional[RequestThrottle] = None,
        base_url: str = config.MAPBOX_MATCHING_URL,
        profile: str = config.MAPBOX_PROFILE,
        timeout_s: float = config.MAPBOX_TIMEOUT_S,
        max_coordinates: int = config.MAPBOX_MAX_COORDINATES,
        chunk_overlap: int = config.MAPBOX_CHUNK_OVERLAP,
        radius_m: float = config.MAPBOX_RADIUS_M,
    ) -> None:
        self.access_token = (
            access_token if access_token is not None else config.MAPBOX_ACCESS_TOKEN
        )
        self.session = session or create_matching_session()
        self.throttle = throttle
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout_s = timeout_s
        self.max_coordinates = max_coordinates
        self.chunk_overlap = chunk_overlap
        self.radius_m = radius_m

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    def match_trace(self, points: Sequence[GpsPoint]) -> MatchResponse:
        """Match a full trace, chunking it when it exceeds the coordinate cap.

        Raises :class:`MapMatchingError` for every failure; a failing chunk
        aborts the whole call.
        """

        if not self.is_configured:
            raise MapMatchingError(
                MapMatchingErrorKind.MISSING_TOKEN,
                "Mapbox access token is not configured",
            )
        if len(points) < 2:
            raise MapMatchingError(
                MapMatchingErrorKind.INSUFFICIENT_POINTS,
                f"Map matching needs at least 2 points, got {len(points)}",
            )
        windows = chunk_windows(len(points), self.max_coordinates, self.chunk_overlap)
        if len(windows) > 1:
            LOGGER.info(
                "Large trace: splitting %d points into %d chunks",
                len(points),
                len(windows),
            )
        responses = []
        for number, (start, end) in enumerate(windows, start=1):
            LOGGER.debug(
                "Requesting chunk %d/%d (%d points)", number, len(windows), end - start
            )
            responses.append(self._request(points[start:end]))
        merged = merge_responses(responses, windows)
        confidence = merged.confidence
        if confidence < config.MAPBOX_LOW_CONFIDENCE_WARNING:
            LOGGER.warning("Low confidence match: %.1f%%", confidence * 100)
        LOGGER.info("Match successful (confidence %.1f%%)", confidence * 100)
        return merged

    def _build_params(self, points: Sequence[GpsPoint]) -> Dict[str, str]:
        params = {
            "access_token": self.access_token,
            "geometries": "polyline6",
            "overview": "full",
            "steps": "true",
            "tidy": "false",
            "radiuses": ";".join(f"{self.radius_m:g}" for _ in points),
        }
        if points[0].timestamp is not None:
            params["timestamps"] = ";".join(
                _timestamp_seconds(p.timestamp) for p in points
            )
        return params

    def _build_url(self, points: Sequence[GpsPoint]) -> str:
        coordinates = ";".join(f"{p.lon:.6f},{p.lat:.6f}" for p in points)
        return f"{self.base_url}/{self.profile}/{coordinates}.json"

    def _request(self, points: Sequence[GpsPoint]) -> MatchResponse:
        context = "Mapbox map matching"
        if self.throttle is not None:
            self.throttle.acquire()
        try:
            response = self.session.get(
                self._build_url(points),
                params=self._build_params(points),
                timeout=self.timeout_s,
            )
        except requests.Timeout as exc:
            raise MapMatchingError(
                MapMatchingErrorKind.REQUEST_FAILED,
                f"{context} timed out after {self.timeout_s:.0f}s",
            ) from exc
        except requests.RequestException as exc:
            raise MapMatchingError(
                MapMatchingErrorKind.REQUEST_FAILED, f"{context} failed: {exc}"
            ) from exc

        error = classify_matching_status(response, context)
        if error is not None:
            raise error
        payload = json_object(response, context)
        code = str(payload.get("code") or "")
        if code == "NoMatch":
            raise MapMatchingError(
                MapMatchingErrorKind.NO_MATCH,
                f"{context} found no match",
                status_code=response.status_code,
                provider_code=code,
            )
        if code != "Ok":
            raise MapMatchingError(
                MapMatchingErrorKind.REQUEST_FAILED,
                f"{context} returned code {code or '?'}",
                status_code=response.status_code,
                provider_code=code or None,
            )
        try:
            parsed = parse_match_response(payload)
        except (ValueError, TypeError, KeyError) as exc:
            raise MapMatchingError(
                MapMatchingErrorKind.REQUEST_FAILED,
                f"{context} returned a malformed body: {exc}",
                status_code=response.status_code,
            ) from exc
        if not parsed.matchings:
            raise MapMatchingError(
                MapMatchingErrorKind.NO_MATCH,
                "No valid route match found",
                status_code=response.status_code,
                provider_code=code,
            )
        return parsed


__all__ = [
    "ExtractedStreet",
    "Leg",
    "MapboxMatchingClient",
    "MatchResponse",
    "Matching",
    "Step",
    "Tracepoint",
    "chunk_windows",
    "decode_geometry",
    "extract_streets_from_match",
    "merge_geometries",
    "merge_responses",
    "parse_match_response",
]
