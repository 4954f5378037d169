"""FULL/PARTIAL classification for a single street."""

from __future__ import annotations

import logging
from typing import Optional

from ..models import CompletionStatus, CoverageInterval
from .settings import DEFAULT_SETTINGS, MatchingSettings

LOGGER = logging.getLogger(__name__)


def completion_threshold(
    length_m: float, settings: MatchingSettings = DEFAULT_SETTINGS
) -> float:
    """Length-dependent ratio needed for a FULL classification."""

    return settings.completion_threshold(length_m)


def determine_completion_status(
    coverage_ratio: float,
    length_m: float,
    coverage_interval: Optional[CoverageInterval],
    matched_points_count: int,
    settings: MatchingSettings = DEFAULT_SETTINGS,
) -> CompletionStatus:
    """Classify a street as FULL or PARTIAL.

    ``coverage_ratio`` is the uncapped projected ratio. A ratio above 1.0 is
    treated as measurement inflation and only counts as FULL when the
    coverage interval spans the street with small end gaps.
    """

    if matched_points_count < settings.min_points_for_full:
        return CompletionStatus.PARTIAL

    threshold = completion_threshold(length_m, settings)
    if min(coverage_ratio, 1.0) < threshold:
        return CompletionStatus.PARTIAL

    if coverage_ratio <= 1.0:
        return CompletionStatus.FULL

    if coverage_interval is None:
        LOGGER.warning(
            "Ratio %.2f > 1.0 but no coverage interval to verify; marking PARTIAL",
            coverage_ratio,
        )
        return CompletionStatus.PARTIAL

    start, end = coverage_interval
    max_gap = settings.max_end_gap_percent
    if start > max_gap:
        LOGGER.warning(
            "Ratio %.2f > 1.0 but coverage starts at %d%% (max gap %.0f%%); marking PARTIAL",
            coverage_ratio,
            start,
            max_gap,
        )
        return CompletionStatus.PARTIAL
    if 100 - end > max_gap:
        LOGGER.warning(
            "Ratio %.2f > 1.0 but coverage ends at %d%% (max gap %.0f%%); marking PARTIAL",
            coverage_ratio,
            end,
            max_gap,
        )
        return CompletionStatus.PARTIAL
    span = end - start
    if span < threshold * 100.0:
        LOGGER.warning(
            "Ratio %.2f > 1.0 but interval span %d%% is below %.0f%%; marking PARTIAL",
            coverage_ratio,
            span,
            threshold * 100.0,
        )
        return CompletionStatus.PARTIAL

    LOGGER.warning(
        "Ratio %.2f > 1.0 verified by coverage interval [%d, %d]; marking FULL",
        coverage_ratio,
        start,
        end,
    )
    return CompletionStatus.FULL


__all__ = ["completion_threshold", "determine_completion_status"]
