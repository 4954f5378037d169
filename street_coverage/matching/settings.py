"""Tunables for one matching invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .. import config


@dataclass(slots=True)
class MatchingSettings:
    """Engine thresholds with defaults taken from :mod:`street_coverage.config`."""

    max_distance_m: float = config.STREET_MATCH_MAX_DISTANCE_M
    min_points_for_full: int = config.STREET_MATCH_MIN_POINTS_PER_STREET
    min_result_points: int = config.STREET_MATCH_MIN_RESULT_POINTS
    max_end_gap_percent: float = config.STREET_MATCH_MAX_END_GAP_PERCENT
    distance_weight: float = config.STREET_MATCH_DISTANCE_WEIGHT
    alignment_weight: float = config.STREET_MATCH_ALIGNMENT_WEIGHT
    continuity_bonus: float = config.STREET_MATCH_CONTINUITY_BONUS
    completion_thresholds: Tuple[Tuple[float, float], ...] = field(
        default_factory=lambda: tuple(config.COMPLETION_THRESHOLDS)
    )
    completion_threshold_long: float = config.COMPLETION_THRESHOLD_LONG
    confidence_high: float = config.CONFIDENCE_HIGH
    confidence_medium: float = config.CONFIDENCE_MEDIUM
    confidence_low: float = config.CONFIDENCE_LOW
    distance_decimals: int = config.DISTANCE_DECIMALS
    ratio_decimals: int = config.RATIO_DECIMALS

    def __post_init__(self) -> None:
        if self.max_distance_m <= 0:
            raise ValueError("max_distance_m must be positive")
        if not (
            0.0 <= self.confidence_low <= self.confidence_medium <= self.confidence_high
        ):
            raise ValueError("confidence thresholds must be ordered low <= medium <= high")

    def completion_threshold(self, length_m: float) -> float:
        """Ratio a street of ``length_m`` metres must reach to count as FULL."""

        for upper_bound, ratio in self.completion_thresholds:
            if length_m < upper_bound:
                return ratio
        return self.completion_threshold_long


DEFAULT_SETTINGS = MatchingSettings()

__all__ = ["DEFAULT_SETTINGS", "MatchingSettings"]
