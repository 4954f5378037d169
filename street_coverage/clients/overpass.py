"""Overpass API client that builds street catalogs for a query area."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence

import requests
from requests import Session

from .. import config
from ..errors import CatalogErrorKind, StreetCatalogError
from ..matching.geometry import polyline_length_m
from ..models import UNNAMED_ROAD, BoundingBox, StreetCatalog, StreetSegment
from .response_handling import classify_catalog_status, safe_json
from .session import create_catalog_session
from .throttle import RequestThrottle

LOGGER = logging.getLogger(__name__)

ALT_NAME_TAGS = ("alt_name", "name:en", "old_name", "loc_name")
NAME_FALLBACK_TAGS = ("name", "alt_name", "name:en")


def backoff_delay(attempt: int, cap_s: float = config.OVERPASS_BACKOFF_MAX_S) -> float:
    """Delay before retry ``attempt`` (1-based): 1s, 2s, 4s... capped."""

    if attempt <= 0:
        return 0.0
    return min(float(2 ** (attempt - 1)), cap_s)


def build_bbox_query(
    bbox: BoundingBox,
    highway_types: Sequence[str],
    timeout_s: int = config.OVERPASS_QUERY_TIMEOUT_S,
) -> str:
    highway_filter = "|".join(highway_types)
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f'way["highway"~"^({highway_filter})$"]\n'
        f"  ({bbox.south},{bbox.west},{bbox.north},{bbox.east});\n"
        "out body geom;\n"
    )


def build_radius_query(
    lat: float,
    lon: float,
    radius_m: float,
    highway_types: Sequence[str],
    *,
    named_only: bool = True,
    timeout_s: int = config.OVERPASS_QUERY_TIMEOUT_S,
) -> str:
    highway_filter = "|".join(highway_types)
    name_filter = '["name"]' if named_only else ""
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f'way["highway"~"^({highway_filter})$"]{name_filter}\n'
        f"  (around:{radius_m:g},{lat},{lon});\n"
        "out body geom;\n"
    )


def parse_overpass_elements(payload: Mapping[str, Any]) -> List[StreetSegment]:
    """Convert Overpass ``way`` elements with geometry into street segments."""

    streets: List[StreetSegment] = []
    for element in payload.get("elements") or []:
        if element.get("type") != "way":
            continue
        nodes = element.get("geometry") or []
        coordinates = tuple(
            (float(node["lon"]), float(node["lat"]))
            for node in nodes
            if node and "lat" in node and "lon" in node
        )
        if len(coordinates) < 2:
            continue
        tags = element.get("tags") or {}
        name = next((tags[t] for t in NAME_FALLBACK_TAGS if tags.get(t)), UNNAMED_ROAD)
        streets.append(
            StreetSegment(
                street_id=f"way/{element.get('id')}",
                name=name,
                highway_type=tags.get("highway") or "unknown",
                length_m=polyline_length_m(coordinates),
                coordinates=coordinates,
                alt_names=tuple(tags[t] for t in ALT_NAME_TAGS if tags.get(t)),
                surface=tags.get("surface"),
                access=tags.get("access"),
                ref=tags.get("ref"),
            )
        )
    return streets


class OverpassCatalogClient:
    """Fetch street catalogs with per-server retries and server fallback."""

    def __init__(
        self,
        *,
        session: Optional[Session] = None,
        throttle: Optional[RequestThrottle] = None,
        urls: Optional[Sequence[str]] = None,
        timeout_s: float = config.OVERPASS_TIMEOUT_S,
        max_retries: int = config.OVERPASS_MAX_RETRIES,
        highway_types: Optional[Sequence[str]] = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.session = session or create_catalog_session()
        self.throttle = throttle or RequestThrottle(config.OVERPASS_MIN_DELAY_S)
        self.urls = list(urls if urls is not None else config.OVERPASS_URLS)
        if not self.urls:
            raise ValueError("At least one Overpass URL is required")
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.highway_types = list(highway_types or config.OVERPASS_HIGHWAY_TYPES)
        self._sleep = sleeper

    def streets_in_bbox(self, bbox: BoundingBox) -> StreetCatalog:
        query = build_bbox_query(bbox, self.highway_types)
        streets = self.execute(query)
        LOGGER.info("Fetched %d streets for bbox %s", len(streets), bbox)
        return StreetCatalog(streets=tuple(streets), bbox=bbox, source="overpass")

    def streets_in_radius(
        self, lat: float, lon: float, radius_m: float, *, named_only: bool = True
    ) -> StreetCatalog:
        query = build_radius_query(
            lat, lon, radius_m, self.highway_types, named_only=named_only
        )
        streets = self.execute(query)
        LOGGER.info(
            "Fetched %d streets within %.0fm of (%.5f, %.5f)",
            len(streets),
            radius_m,
            lat,
            lon,
        )
        return StreetCatalog(streets=tuple(streets), source="overpass")

    def execute(self, query: str) -> List[StreetSegment]:
        """Run an Overpass QL query against each server until one succeeds."""

        last_error: Optional[StreetCatalogError] = None
        for server_index, url in enumerate(self.urls):
            is_last_server = server_index == len(self.urls) - 1
            for attempt in range(self.max_retries):
                if attempt > 0:
                    self._sleep(backoff_delay(attempt))
                try:
                    payload = self._post(url, query)
                except StreetCatalogError as exc:
                    last_error = exc
                    if not exc.retryable:
                        raise
                    LOGGER.warning(
                        "%s failed (attempt %d/%d): %s",
                        url,
                        attempt + 1,
                        self.max_retries,
                        exc,
                    )
                    continue
                LOGGER.debug("Queried %s (attempt %d)", url, attempt + 1)
                return parse_overpass_elements(payload)
            if not is_last_server:
                LOGGER.warning("%s exhausted retries; trying next server", url)

        kind = last_error.kind if last_error else CatalogErrorKind.REQUEST_FAILED
        raise StreetCatalogError(
            kind,
            f"All Overpass servers failed after {self.max_retries} attempts each. "
            f"Last error: {last_error}",
            status_code=last_error.status_code if last_error else None,
        )

    def _post(self, url: str, query: str) -> Mapping[str, Any]:
        context = f"Overpass query to {url}"
        self.throttle.acquire()
        try:
            response = self.session.post(
                url,
                data=query.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout_s,
            )
        except requests.Timeout as exc:
            raise StreetCatalogError(
                CatalogErrorKind.TIMEOUT,
                f"{context} timed out after {self.timeout_s:.0f}s",
            ) from exc
        except requests.ConnectionError as exc:
            raise StreetCatalogError(
                CatalogErrorKind.UNAVAILABLE, f"{context} could not connect: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise StreetCatalogError(
                CatalogErrorKind.REQUEST_FAILED, f"{context} failed: {exc}"
            ) from exc

        error = classify_catalog_status(response, context)
        if error is not None:
            raise error
        payload = safe_json(response)
        if not isinstance(payload, Mapping):
            raise StreetCatalogError(
                CatalogErrorKind.REQUEST_FAILED,
                f"{context} returned a non-JSON body",
                status_code=response.status_code,
            )
        return payload


__all__ = [
    "OverpassCatalogClient",
    "backoff_delay",
    "build_bbox_query",
    "build_radius_query",
    "parse_overpass_elements",
]
