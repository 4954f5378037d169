"""Dataclasses describing GPS traces, street catalogs and coverage results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

LonLat = Tuple[float, float]
CoverageInterval = Tuple[int, int]

# Bump when the StreetCatalog layout changes in a way older readers cannot load.
CATALOG_SCHEMA_VERSION = 1
UNNAMED_ROAD = "Unnamed Road"


class CompletionStatus(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


@dataclass(frozen=True, slots=True)
class GpsPoint:
    """Single GPS fix. Position in the trace is its original index."""

    lat: float
    lon: float
    elevation: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class IndexedPoint:
    """GPS point paired with its position in the original trace."""

    point: GpsPoint
    index: int


@dataclass(frozen=True, slots=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float


@dataclass(frozen=True, slots=True)
class StreetSegment:
    """Street centerline and metadata supplied by the catalog collaborator."""

    street_id: str
    name: str
    highway_type: str
    length_m: float
    coordinates: Tuple[LonLat, ...]
    alt_names: Tuple[str, ...] = ()
    surface: Optional[str] = None
    access: Optional[str] = None
    ref: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StreetCatalog:
    """Versioned set of streets for one query area."""

    streets: Tuple[StreetSegment, ...]
    version: int = CATALOG_SCHEMA_VERSION
    bbox: Optional[BoundingBox] = None
    source: str = "unknown"

    def __post_init__(self) -> None:
        if self.version != CATALOG_SCHEMA_VERSION:
            raise ValueError(
                f"Unsupported street catalog version {self.version} "
                f"(expected {CATALOG_SCHEMA_VERSION})"
            )

    def __len__(self) -> int:
        return len(self.streets)

    def by_id(self) -> Dict[str, StreetSegment]:
        return {street.street_id: street for street in self.streets}

    @classmethod
    def from_streets(
        cls, streets: Sequence[StreetSegment], **kwargs: Any
    ) -> "StreetCatalog":
        return cls(streets=tuple(streets), **kwargs)

    @classmethod
    def from_geojson(cls, payload: Mapping[str, Any]) -> "StreetCatalog":
        """Build a catalog from a GeoJSON FeatureCollection of LineStrings.

        Feature properties may carry ``id``, ``name``, ``highway`` and
        ``length_m``; a missing length is measured from the geometry.
        """

        from .matching.geometry import polyline_length_m

        version = int(payload.get("version", CATALOG_SCHEMA_VERSION))
        streets: List[StreetSegment] = []
        for position, feature in enumerate(payload.get("features") or []):
            geometry = feature.get("geometry") or {}
            if geometry.get("type") != "LineString":
                continue
            coords = tuple(
                (float(lon), float(lat))
                for lon, lat, *_rest in geometry.get("coordinates") or []
            )
            if len(coords) < 2:
                continue
            props = feature.get("properties") or {}
            street_id = str(
                props.get("id") or feature.get("id") or f"street/{position}"
            )
            length = props.get("length_m")
            streets.append(
                StreetSegment(
                    street_id=street_id,
                    name=props.get("name") or UNNAMED_ROAD,
                    highway_type=props.get("highway") or "unknown",
                    length_m=(
                        float(length)
                        if length is not None
                        else polyline_length_m(coords)
                    ),
                    coordinates=coords,
                    alt_names=tuple(props.get("alt_names") or ()),
                    surface=props.get("surface"),
                    access=props.get("access"),
                    ref=props.get("ref"),
                )
            )
        bbox_values = payload.get("bbox")
        bbox = None
        if bbox_values and len(bbox_values) == 4:
            west, south, east, north = (float(v) for v in bbox_values)
            bbox = BoundingBox(south=south, west=west, north=north, east=east)
        return cls(
            streets=tuple(streets),
            version=version,
            bbox=bbox,
            source=str(payload.get("source", "geojson")),
        )

    def to_geojson(self) -> Dict[str, Any]:
        features = []
        for street in self.streets:
            features.append(
                {
                    "type": "Feature",
                    "id": street.street_id,
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [list(c) for c in street.coordinates],
                    },
                    "properties": {
                        "id": street.street_id,
                        "name": street.name,
                        "highway": street.highway_type,
                        "length_m": street.length_m,
                        "alt_names": list(street.alt_names),
                        "surface": street.surface,
                        "access": street.access,
                        "ref": street.ref,
                    },
                }
            )
        payload: Dict[str, Any] = {
            "type": "FeatureCollection",
            "version": self.version,
            "source": self.source,
            "features": features,
        }
        if self.bbox is not None:
            payload["bbox"] = [
                self.bbox.west,
                self.bbox.south,
                self.bbox.east,
                self.bbox.north,
            ]
        return payload


@dataclass(frozen=True, slots=True)
class StreetCandidate:
    """Street near a GPS point, awaiting disambiguation."""

    street_id: str
    distance_m: float
    bearing_deg: float


@dataclass(slots=True)
class CoverageResult:
    """Coverage of one street produced by a single matching invocation."""

    street_id: str
    name: str
    highway_type: str
    length_m: float
    distance_covered_m: float
    projected_distance_covered_m: float
    coverage_ratio: float
    projected_coverage_ratio: float
    completion_status: CompletionStatus
    matched_points_count: int
    coverage_interval: Optional[CoverageInterval] = None
    geometry: Tuple[LonLat, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "street_id": self.street_id,
            "name": self.name,
            "highway_type": self.highway_type,
            "length_m": self.length_m,
            "distance_covered_m": self.distance_covered_m,
            "projected_distance_covered_m": self.projected_distance_covered_m,
            "coverage_ratio": self.coverage_ratio,
            "projected_coverage_ratio": self.projected_coverage_ratio,
            "completion_status": self.completion_status.value,
            "matched_points_count": self.matched_points_count,
            "coverage_interval": (
                list(self.coverage_interval) if self.coverage_interval else None
            ),
            "geometry": [list(c) for c in self.geometry],
        }


PointAssignment = List[Optional[str]]
