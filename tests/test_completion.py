"""FULL/PARTIAL classification rules."""

from __future__ import annotations

import logging

import pytest

from street_coverage.matching.completion import (
    completion_threshold,
    determine_completion_status,
)
from street_coverage.matching.settings import MatchingSettings
from street_coverage.models import CompletionStatus

FULL = CompletionStatus.FULL
PARTIAL = CompletionStatus.PARTIAL


@pytest.mark.parametrize(
    "length,expected",
    [
        (10.0, 0.85),
        (49.9, 0.85),
        (50.0, 0.90),
        (99.0, 0.90),
        (100.0, 0.95),
        (299.0, 0.95),
        (300.0, 0.98),
        (5000.0, 0.98),
    ],
)
def test_completion_threshold_by_length(length, expected):
    assert completion_threshold(length) == expected


@pytest.mark.parametrize(
    "ratio,length,interval,points,expected",
    [
        (0.96, 200.0, None, 10, FULL),
        (0.94, 200.0, None, 10, PARTIAL),
        (0.30, 40.0, None, 5, PARTIAL),
        (0.99, 500.0, None, 2, PARTIAL),
        (0.99, 500.0, None, 3, FULL),
        (1.0, 500.0, (0, 100), 10, FULL),
        (0.86, 40.0, (0, 86), 3, FULL),
    ],
)
def test_determine_completion_status(ratio, length, interval, points, expected):
    assert determine_completion_status(ratio, length, interval, points) is expected


def test_inflated_ratio_verified_by_interval(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    status = determine_completion_status(1.2, 200.0, (2, 99), 10)
    assert status is FULL
    [record] = caplog.records
    assert record.levelno == logging.WARNING
    assert "verified" in record.getMessage()


def test_inflated_ratio_with_late_start(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    assert determine_completion_status(1.2, 200.0, (10, 100), 10) is PARTIAL
    assert "starts at 10%" in caplog.text


def test_inflated_ratio_with_early_end(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    assert determine_completion_status(1.5, 200.0, (0, 60), 10) is PARTIAL
    assert "ends at 60%" in caplog.text


def test_inflated_ratio_with_short_span(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    assert determine_completion_status(1.1, 200.0, (5, 95), 10) is PARTIAL
    assert "span 90%" in caplog.text


def test_inflated_ratio_without_interval(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    assert determine_completion_status(1.3, 200.0, None, 10) is PARTIAL
    assert "no coverage interval" in caplog.text


def test_too_few_points_short_circuits_interval_check(caplog):
    caplog.set_level(logging.WARNING, logger="street_coverage.matching.completion")
    assert determine_completion_status(1.3, 200.0, None, 2) is PARTIAL
    assert caplog.records == []


def test_classification_is_deterministic():
    args = (1.05, 250.0, (1, 99), 7)
    first = determine_completion_status(*args)
    assert all(determine_completion_status(*args) is first for _ in range(5))


def test_custom_settings_change_thresholds():
    settings = MatchingSettings(
        min_points_for_full=1,
        completion_thresholds=((1000.0, 0.5),),
        completion_threshold_long=0.6,
    )
    assert determine_completion_status(0.55, 200.0, None, 1, settings) is FULL
    assert determine_completion_status(0.55, 2000.0, None, 1, settings) is PARTIAL


def test_settings_validation():
    with pytest.raises(ValueError):
        MatchingSettings(max_distance_m=0)
    with pytest.raises(ValueError):
        MatchingSettings(confidence_low=0.5, confidence_medium=0.3)
