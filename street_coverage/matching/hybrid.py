"""Hybrid orchestration between map snapping and local geometric matching.

The snapping service is consulted once per trace. Its confidence decides how
much of its output is trusted; any failure falls back to local-only matching
so callers always receive a result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import List, Optional, Protocol, Sequence

import requests

from ..clients.mapbox import MatchResponse
from ..errors import MapMatchingError, MapMatchingErrorKind
from ..models import CoverageResult, GpsPoint
from .local import StreetSource, match_points_to_streets
from .merge import merge_coverage_results
from .settings import DEFAULT_SETTINGS, MatchingSettings
from .strategies import GeometricCrossReference, MatchingStrategy

LOGGER = logging.getLogger(__name__)


class MatchPath(str, Enum):
    LOCAL_ONLY = "LOCAL_ONLY"
    SNAPPED = "SNAPPED"
    SNAPPED_WITH_FALLBACK = "SNAPPED_WITH_FALLBACK"
    LOW_CONFIDENCE_FALLBACK = "LOW_CONFIDENCE_FALLBACK"
    SERVICE_ERROR_FALLBACK = "SERVICE_ERROR_FALLBACK"


class MatchingClient(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def match_trace(self, points: Sequence[GpsPoint]) -> MatchResponse: ...


@dataclass(slots=True)
class MatchReport:
    """Coverage results plus how they were produced."""

    results: List[CoverageResult]
    path: MatchPath
    confidence: Optional[float] = None
    error_kind: Optional[MapMatchingErrorKind] = None
    unmatched_points: int = 0


class HybridMatcher:
    """Choose between snapped and local matching for one trace at a time."""

    def __init__(
        self,
        client: Optional[MatchingClient] = None,
        strategy: Optional[MatchingStrategy] = None,
        settings: MatchingSettings = DEFAULT_SETTINGS,
    ) -> None:
        self.client = client
        self.strategy = strategy or GeometricCrossReference()
        self.settings = settings

    def match(
        self, points: Sequence[GpsPoint], streets: StreetSource
    ) -> List[CoverageResult]:
        return self.match_with_report(points, streets).results

    def match_with_report(
        self, points: Sequence[GpsPoint], streets: StreetSource
    ) -> MatchReport:
        settings = self.settings
        if self.client is None or not self.client.is_configured:
            LOGGER.info("Map matching not configured; using local matching only")
            return MatchReport(
                results=match_points_to_streets(points, streets, settings),
                path=MatchPath.LOCAL_ONLY,
            )

        try:
            response = self.client.match_trace(points)
        except MapMatchingError as exc:
            LOGGER.warning(
                "Map matching failed (%s, provider code %s): %s; falling back to local matching",
                exc.kind.value,
                exc.provider_code or "-",
                exc,
            )
            return MatchReport(
                results=match_points_to_streets(points, streets, settings),
                path=MatchPath.SERVICE_ERROR_FALLBACK,
                error_kind=exc.kind,
            )
        except requests.RequestException as exc:
            LOGGER.warning(
                "Map matching request failed: %s; falling back to local matching", exc
            )
            return MatchReport(
                results=match_points_to_streets(points, streets, settings),
                path=MatchPath.SERVICE_ERROR_FALLBACK,
                error_kind=MapMatchingErrorKind.REQUEST_FAILED,
            )

        confidence = response.confidence
        LOGGER.info("Map matching confidence %.1f%%", confidence * 100)

        if confidence >= settings.confidence_high:
            return MatchReport(
                results=self.strategy.cross_reference(response, streets, settings),
                path=MatchPath.SNAPPED,
                confidence=confidence,
            )
        if confidence >= settings.confidence_medium:
            LOGGER.warning(
                "Medium confidence (%.1f%%); results may be less accurate",
                confidence * 100,
            )
            return MatchReport(
                results=self.strategy.cross_reference(response, streets, settings),
                path=MatchPath.SNAPPED,
                confidence=confidence,
            )
        if confidence >= settings.confidence_low:
            return self._low_confidence(points, streets, response, confidence)

        LOGGER.info(
            "Very low confidence (%.1f%%); using local matching only", confidence * 100
        )
        return MatchReport(
            results=match_points_to_streets(points, streets, settings),
            path=MatchPath.LOW_CONFIDENCE_FALLBACK,
            confidence=confidence,
        )

    def _low_confidence(
        self,
        points: Sequence[GpsPoint],
        streets: StreetSource,
        response: MatchResponse,
        confidence: float,
    ) -> MatchReport:
        settings = self.settings
        snapped = self.strategy.cross_reference(response, streets, settings)
        # Tracepoints beyond the response length count as unmatched.
        matched = set(response.matched_indices())
        unmatched_indices = [i for i in range(len(points)) if i not in matched]
        unmatched = [points[i] for i in unmatched_indices]
        if not unmatched:
            return MatchReport(
                results=snapped,
                path=MatchPath.SNAPPED,
                confidence=confidence,
            )
        LOGGER.info(
            "Low confidence (%.1f%%): %d points matched, %d unmatched; merging with local matching",
            confidence * 100,
            len(matched),
            len(unmatched),
        )
        local = match_points_to_streets(
            unmatched, streets, settings, indices=unmatched_indices
        )
        return MatchReport(
            results=merge_coverage_results(snapped, local, settings),
            path=MatchPath.SNAPPED_WITH_FALLBACK,
            confidence=confidence,
            unmatched_points=len(unmatched),
        )


__all__ = ["HybridMatcher", "MatchPath", "MatchReport", "MatchingClient"]
