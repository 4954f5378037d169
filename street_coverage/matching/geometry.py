"""Geodesic and local-metric geometry helpers for street matching."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Geod, Transformer
from shapely.geometry import LineString

from ..models import BoundingBox, GpsPoint, LonLat, StreetSegment

MetricArray = NDArray[np.float64]

_GEOD = Geod(ellps="WGS84")

# Rough metres per degree of latitude, used only for bounding box buffers.
METERS_PER_DEGREE = 111_000.0


@dataclass(frozen=True, slots=True)
class Projection:
    """Closest point on a street centerline for one GPS point."""

    distance_m: float
    segment_index: int
    fraction: float
    along_m: float


@dataclass(slots=True)
class PreparedStreet:
    """Street with reusable metric and geodesic representations."""

    street: StreetSegment
    metric_points: MetricArray
    line: LineString
    cumulative_m: MetricArray
    segment_lengths_m: MetricArray
    segment_bearings: MetricArray

    @property
    def total_length_m(self) -> float:
        return float(self.cumulative_m[-1]) if len(self.cumulative_m) else 0.0


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Geodesic distance in metres between two WGS84 positions."""

    _fwd, _back, dist = _GEOD.inv(lon1, lat1, lon2, lat2)
    return float(dist)


def path_length_m(points: Sequence[GpsPoint]) -> float:
    """Sum of geodesic distances between successive points."""

    if len(points) < 2:
        return 0.0
    lons = [p.lon for p in points]
    lats = [p.lat for p in points]
    return float(_GEOD.line_length(lons, lats))


def polyline_length_m(coordinates: Sequence[LonLat]) -> float:
    """Geodesic length of a ``(lon, lat)`` polyline."""

    if len(coordinates) < 2:
        return 0.0
    lons = [c[0] for c in coordinates]
    lats = [c[1] for c in coordinates]
    return float(_GEOD.line_length(lons, lats))


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Forward azimuth from the first position to the second in ``[0, 360)``."""

    forward, _back, _dist = _GEOD.inv(lon1, lat1, lon2, lat2)
    return float(forward) % 360.0


def bearing_difference(a: float, b: float) -> float:
    """Angle between two bearings ignoring travel direction, in ``[0, 90]``."""

    diff = abs(a - b) % 360.0
    diff = min(diff, 360.0 - diff)
    return min(diff, 180.0 - diff)


def trajectory_bearing(points: Sequence[GpsPoint], index: int) -> float:
    """Direction of travel at ``index`` inferred from neighbouring points."""

    count = len(points)
    if count < 2:
        return 0.0
    start = max(index - 1, 0)
    end = min(index + 1, count - 1)
    a = points[start]
    b = points[end]
    return bearing_deg(a.lat, a.lon, b.lat, b.lon)


def build_local_transformer(latlon: Sequence[Tuple[float, float]]) -> Transformer:
    """Build a local UTM transformer centred on the provided (lat, lon) pairs."""

    if not latlon:
        raise ValueError("Cannot build a local frame from no coordinates")
    mean_lat = float(np.mean([pt[0] for pt in latlon]))
    mean_lon = float(np.mean([pt[1] for pt in latlon]))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    epsg = 32600 + zone if mean_lat >= 0 else 32700 + zone
    return Transformer.from_crs(
        CRS.from_epsg(4326), CRS.from_epsg(epsg), always_xy=True
    )


def project_lonlat(
    coordinates: Sequence[LonLat], transformer: Transformer
) -> MetricArray:
    """Project ``(lon, lat)`` pairs through an existing transformer."""

    if not coordinates:
        return np.empty((0, 2), dtype=float)
    lons = np.asarray([c[0] for c in coordinates], dtype=float)
    lats = np.asarray([c[1] for c in coordinates], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


def project_gps_points(
    points: Sequence[GpsPoint], transformer: Transformer
) -> MetricArray:
    return project_lonlat([(p.lon, p.lat) for p in points], transformer)


def prepare_street(street: StreetSegment, transformer: Transformer) -> PreparedStreet:
    """Return metric and geodesic artefacts for one street centerline."""

    coords = list(street.coordinates)
    metric = project_lonlat(coords, transformer)
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    if len(coords) >= 2:
        forward, _back, lengths = _GEOD.inv(lons[:-1], lats[:-1], lons[1:], lats[1:])
        segment_lengths = np.asarray(lengths, dtype=float).reshape(-1)
        bearings = np.mod(np.asarray(forward, dtype=float).reshape(-1), 360.0)
    else:
        segment_lengths = np.empty(0, dtype=float)
        bearings = np.empty(0, dtype=float)
    cumulative = np.concatenate(([0.0], np.cumsum(segment_lengths)))
    line = LineString(metric) if len(metric) >= 2 else LineString()
    return PreparedStreet(
        street=street,
        metric_points=metric,
        line=line,
        cumulative_m=cumulative,
        segment_lengths_m=segment_lengths,
        segment_bearings=bearings,
    )


def project_onto_street(point_xy: Sequence[float], prepared: PreparedStreet) -> Projection:
    """Project a metric point onto a prepared street centerline."""

    vertices = prepared.metric_points
    p = np.asarray(point_xy, dtype=float)
    if len(vertices) == 0:
        return Projection(math.inf, 0, 0.0, 0.0)
    if len(vertices) == 1:
        return Projection(float(np.linalg.norm(p - vertices[0])), 0, 0.0, 0.0)

    starts = vertices[:-1]
    deltas = vertices[1:] - starts
    seg_len_sq = np.einsum("ij,ij->i", deltas, deltas)
    rel = p - starts
    dots = np.einsum("ij,ij->i", rel, deltas)
    safe = np.where(seg_len_sq > 0.0, seg_len_sq, 1.0)
    t = np.clip(np.where(seg_len_sq > 0.0, dots / safe, 0.0), 0.0, 1.0)
    closest = starts + deltas * t[:, None]
    distances = np.linalg.norm(closest - p, axis=1)
    idx = int(np.argmin(distances))
    fraction = float(t[idx])
    along = float(
        prepared.cumulative_m[idx] + fraction * prepared.segment_lengths_m[idx]
    )
    return Projection(
        distance_m=float(distances[idx]),
        segment_index=idx,
        fraction=fraction,
        along_m=along,
    )


def street_bearing_at(prepared: PreparedStreet, projection: Projection) -> float:
    """Bearing of the street segment closest to a projected point."""

    if len(prepared.segment_bearings) == 0:
        return 0.0
    return float(prepared.segment_bearings[projection.segment_index])


def track_bounding_box(
    points: Iterable[GpsPoint], buffer_m: float = 0.0
) -> BoundingBox:
    """Bounding box around a track expanded by ``buffer_m`` metres."""

    pts: List[GpsPoint] = list(points)
    if not pts:
        raise ValueError("Cannot compute a bounding box for an empty track")
    buffer_deg = buffer_m / METERS_PER_DEGREE
    return BoundingBox(
        south=min(p.lat for p in pts) - buffer_deg,
        west=min(p.lon for p in pts) - buffer_deg,
        north=max(p.lat for p in pts) + buffer_deg,
        east=max(p.lon for p in pts) + buffer_deg,
    )


__all__ = [
    "PreparedStreet",
    "Projection",
    "bearing_deg",
    "bearing_difference",
    "build_local_transformer",
    "distance_m",
    "path_length_m",
    "polyline_length_m",
    "prepare_street",
    "project_gps_points",
    "project_lonlat",
    "project_onto_street",
    "street_bearing_at",
    "track_bounding_box",
    "trajectory_bearing",
]
