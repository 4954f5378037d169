"""Shared HTTP response helpers for the external providers."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..errors import (
    CatalogErrorKind,
    MapMatchingError,
    MapMatchingErrorKind,
    StreetCatalogError,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "classify_catalog_status",
    "classify_matching_status",
    "extract_error",
    "json_object",
    "safe_json",
]

RETRYABLE_CATALOG_STATUSES = frozenset({502, 503, 504})


def classify_matching_status(
    response: requests.Response, context: str
) -> Optional[MapMatchingError]:
    """Return the error for a non-success Mapbox status, or None when OK."""

    status = response.status_code
    if status < 400:
        return None
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status in (401, 403):
        return MapMatchingError(
            MapMatchingErrorKind.INVALID_TOKEN,
            with_detail(f"{context} rejected the access token ({status})"),
            status_code=status,
        )
    if status == 429:
        return MapMatchingError(
            MapMatchingErrorKind.RATE_LIMITED,
            with_detail(f"{context} rate limited (429)"),
            status_code=status,
        )
    provider_code = _provider_code(response)
    if provider_code == "NoMatch":
        return MapMatchingError(
            MapMatchingErrorKind.NO_MATCH,
            with_detail(f"{context} found no match"),
            status_code=status,
            provider_code=provider_code,
        )
    return MapMatchingError(
        MapMatchingErrorKind.REQUEST_FAILED,
        with_detail(f"{context} request failed (status {status})"),
        status_code=status,
        provider_code=provider_code,
    )


def classify_catalog_status(
    response: requests.Response, context: str
) -> Optional[StreetCatalogError]:
    """Return the error for a non-success Overpass status, or None when OK."""

    status = response.status_code
    if status < 400:
        return None
    detail = extract_error(response)
    message = f"{context} failed (status {status})"
    if detail:
        message = f"{message} | {detail}"
    if status == 400:
        kind = CatalogErrorKind.BAD_REQUEST
    elif status == 429:
        kind = CatalogErrorKind.RATE_LIMITED
    elif status == 504:
        kind = CatalogErrorKind.TIMEOUT
    elif status in RETRYABLE_CATALOG_STATUSES:
        kind = CatalogErrorKind.UNAVAILABLE
    else:
        kind = CatalogErrorKind.REQUEST_FAILED
    return StreetCatalogError(kind, message, status_code=status)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return a compact description of a provider error body, if any."""

    if resp is None:
        return None
    data = safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts = [
        str(data[key]) for key in ("code", "message", "remark") if data.get(key)
    ]
    return " | ".join(parts) if parts else None


def safe_json(resp: requests.Response) -> Optional[Any]:
    """Parse JSON; return None if parsing fails."""

    try:
        return resp.json()
    except ValueError as exc:
        LOGGER.debug("Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc)
        return None


def _provider_code(resp: requests.Response) -> Optional[str]:
    data = safe_json(resp)
    if isinstance(data, dict):
        code = data.get("code")
        return str(code) if code else None
    return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    """Best-effort plain-text extraction when JSON parsing fails."""

    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


def json_object(resp: requests.Response, context: str) -> Dict[str, Any]:
    """Return the JSON object body or raise a request failure."""

    data = safe_json(resp)
    if not isinstance(data, dict):
        raise MapMatchingError(
            MapMatchingErrorKind.REQUEST_FAILED,
            f"{context} returned a non-JSON body",
            status_code=resp.status_code,
        )
    return data
