"""Load GPS traces from GPX or JSON files."""

from __future__ import annotations

from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional

import gpxpy

from .models import GpsPoint

LOGGER = logging.getLogger(__name__)


def parse_gpx(content: str | bytes) -> List[GpsPoint]:
    """Return every track point (then route point) of a GPX document, in order."""

    gpx = gpxpy.parse(content)
    points: List[GpsPoint] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for p in segment.points:
                points.append(
                    GpsPoint(
                        lat=float(p.latitude),
                        lon=float(p.longitude),
                        elevation=p.elevation,
                        timestamp=p.time,
                    )
                )
    if not points:
        for route in gpx.routes:
            for p in route.points:
                points.append(
                    GpsPoint(
                        lat=float(p.latitude),
                        lon=float(p.longitude),
                        elevation=p.elevation,
                        timestamp=p.time,
                    )
                )
    return points


def _parse_time(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value).astimezone()
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_json_trace(payload: Any) -> List[GpsPoint]:
    """Accept a list of ``{lat, lon|lng, elevation?, time?}`` objects.

    A mapping with a ``points`` key is unwrapped first.
    """

    if isinstance(payload, Mapping):
        payload = payload.get("points") or []
    points: List[GpsPoint] = []
    for position, item in enumerate(payload):
        try:
            lon = item["lon"] if "lon" in item else item["lng"]
            points.append(
                GpsPoint(
                    lat=float(item["lat"]),
                    lon=float(lon),
                    elevation=(
                        float(item["elevation"])
                        if item.get("elevation") is not None
                        else None
                    ),
                    timestamp=_parse_time(item.get("time") or item.get("timestamp")),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid trace point at position {position}: {exc}") from exc
    return points


def load_trace(path: str | Path) -> List[GpsPoint]:
    """Load a trace, choosing the parser from the file extension."""

    source = Path(path)
    text = source.read_text(encoding="utf-8")
    if source.suffix.lower() == ".gpx":
        points = parse_gpx(text)
    else:
        points = parse_json_trace(json.loads(text))
    LOGGER.info("Loaded %d points from %s", len(points), source)
    return points


__all__ = ["load_trace", "parse_gpx", "parse_json_trace"]
