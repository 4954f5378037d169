"""Central error types used across the application.

Each external collaborator raises a single exception class tagged with a
closed ``kind`` enum so callers can branch exhaustively on the failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class MapMatchingErrorKind(str, Enum):
    """Failure classes reported by the map-snapping client."""

    MISSING_TOKEN = "NO_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    RATE_LIMITED = "RATE_LIMIT"
    NO_MATCH = "NO_MATCH"
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    REQUEST_FAILED = "REQUEST_FAILED"


class CatalogErrorKind(str, Enum):
    """Failure classes reported by the street catalog client."""

    BAD_REQUEST = "BAD_REQUEST"
    RATE_LIMITED = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    REQUEST_FAILED = "REQUEST_FAILED"


class MapMatchingError(RuntimeError):
    """Raised when the map-snapping service cannot produce a usable match."""

    def __init__(
        self,
        kind: MapMatchingErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        provider_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.provider_code = provider_code

    def __str__(self) -> str:
        base = super().__str__()
        return f"[{self.kind.value}] {base}"


class StreetCatalogError(RuntimeError):
    """Raised when the street catalog provider request fails."""

    def __init__(
        self,
        kind: CatalogErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind in (CatalogErrorKind.TIMEOUT, CatalogErrorKind.UNAVAILABLE)


__all__ = [
    "CatalogErrorKind",
    "MapMatchingError",
    "MapMatchingErrorKind",
    "StreetCatalogError",
]
