"""
Property-based tests for retention windows, conditions and cutoffs.
"""
import pytest
from hypothesis import given, settings, strategies as st
from datetime import datetime, timedelta

from app.core.domain.retention import (
    ArchiveCriteria,
    ArchiveMatch,
    RetentionWindow,
    RuleConditions,
)
from app.core.errors import ValidationError
from app.core.retention.rule_evaluator import build_match, compute_cutoff
from app.db.models import ErrorType, RetentionUnit, Severity

NOW = datetime(2026, 3, 1, 12, 0, 0)

severities = st.sampled_from([s.value for s in Severity])
error_types = st.sampled_from([e.value for e in ErrorType])
services = st.sampled_from(["auth", "billing", "search", "web"])


# Feature: retention, Property 1: Unit conversion
@given(n=st.integers(min_value=1, max_value=10_000))
@settings(max_examples=100)
def test_unit_conversion_equivalence(n):
    """
    Feature: retention, Property 1: Unit conversion

    60·n minutes, n hours and n/24 days describe the same window, so they
    must produce the same cutoff.
    """
    minutes = RetentionWindow.from_input(retention_duration=60 * n, retention_unit="minutes")
    hours = RetentionWindow.from_input(retention_duration=n, retention_unit="hours")
    assert compute_cutoff(minutes, NOW) == compute_cutoff(hours, NOW)

    days = RetentionWindow.from_input(retention_duration=24 * n, retention_unit="hours")
    in_days = RetentionWindow.from_input(retention_duration=n, retention_unit="days")
    assert compute_cutoff(days, NOW) == compute_cutoff(in_days, NOW)


def test_unit_milliseconds():
    assert RetentionWindow(1, RetentionUnit.MINUTES).milliseconds == 60_000
    assert RetentionWindow(1, RetentionUnit.HOURS).milliseconds == 3_600_000
    assert RetentionWindow(1, RetentionUnit.DAYS).milliseconds == 86_400_000
    assert compute_cutoff(RetentionWindow(10, RetentionUnit.MINUTES), NOW) == NOW - timedelta(minutes=10)


# Feature: retention, Property 2: Longer windows reach further back
@given(
    shorter=st.integers(min_value=1, max_value=5000),
    extra=st.integers(min_value=1, max_value=5000),
    unit=st.sampled_from(["minutes", "hours", "days"]),
)
@settings(max_examples=100)
def test_cutoff_monotonic(shorter, extra, unit):
    short_window = RetentionWindow.from_input(retention_duration=shorter, retention_unit=unit)
    long_window = RetentionWindow.from_input(retention_duration=shorter + extra, retention_unit=unit)
    assert compute_cutoff(long_window, NOW) < compute_cutoff(short_window, NOW) < NOW


def test_zero_window_cutoff_is_now():
    window = RetentionWindow.from_input(retention_duration=0, allow_zero=True)
    assert compute_cutoff(window, NOW) == NOW


@pytest.mark.parametrize("kwargs", [
    {"retention_duration": 1_000_000, "retention_unit": "days"},
    {"retention_days": 1_000_000},
    {"retention_duration": 1e30, "retention_unit": "minutes"},
])
def test_huge_window_clamps_to_earliest_datetime(kwargs):
    window = RetentionWindow.from_input(**kwargs)
    cutoff = compute_cutoff(window, NOW)

    assert cutoff == datetime.min
    # Nothing can be older than that
    assert not ArchiveMatch(cutoff=cutoff).matches("low", "web", "browser", False, datetime(1970, 1, 1))


def test_window_just_inside_range_is_not_clamped():
    days = (NOW - datetime.min).days - 1
    window = RetentionWindow.from_input(retention_days=days)
    assert compute_cutoff(window, NOW) == NOW - timedelta(days=days)


def test_legacy_retention_days_normalized():
    window = RetentionWindow.from_input(retention_days=30)
    assert window == RetentionWindow(30.0, RetentionUnit.DAYS)

    # retentionDuration wins over the legacy field
    window = RetentionWindow.from_input(retention_duration=5, retention_unit="hours", retention_days=30)
    assert window == RetentionWindow(5.0, RetentionUnit.HOURS)

    # Missing unit means days
    assert RetentionWindow.from_input(retention_duration=2).unit == RetentionUnit.DAYS


@pytest.mark.parametrize("kwargs", [
    {},
    {"retention_duration": -1},
    {"retention_days": -5},
    {"retention_duration": 0},
    {"retention_duration": "soon"},
    {"retention_duration": float("nan")},
    {"retention_duration": True},
    {"retention_duration": 3, "retention_unit": "weeks"},
])
def test_invalid_windows_rejected(kwargs):
    with pytest.raises(ValidationError):
        RetentionWindow.from_input(**kwargs)


def test_conditions_validated_and_deduplicated():
    conditions = RuleConditions.from_input(
        severity=["critical", "low", "critical"],
        service=["auth", "auth", ""],
        error_type=["server"],
    )
    assert conditions.severity == (Severity.CRITICAL, Severity.LOW)
    assert conditions.service == ("auth",)
    assert conditions.error_type == (ErrorType.SERVER,)
    assert conditions.as_lists() == {
        "severity": ["critical", "low"],
        "service": ["auth"],
        "errorType": ["server"],
    }

    with pytest.raises(ValidationError):
        RuleConditions.from_input(severity=["fatal"])
    with pytest.raises(ValidationError):
        RuleConditions.from_input(error_type=["network"])


# Feature: retention, Property 3: Empty conditions match everything old enough
@given(
    severity=severities,
    service=services,
    error_type=error_types,
    age_minutes=st.integers(min_value=0, max_value=10_000),
)
@settings(max_examples=200)
def test_empty_conditions_match_all_old_records(severity, service, error_type, age_minutes):
    match = build_match(RuleConditions(), RetentionWindow(60, RetentionUnit.MINUTES), NOW)
    created_at = NOW - timedelta(minutes=age_minutes)

    assert match.matches(severity, service, error_type, False, created_at) == (age_minutes > 60)
    # Archived records are never selected
    assert not match.matches(severity, service, error_type, True, created_at)


# Feature: retention, Property 4: Conjunction across, disjunction within dimensions
@given(
    wanted_severities=st.lists(severities, max_size=4, unique=True),
    wanted_services=st.lists(services, max_size=4, unique=True),
    wanted_types=st.lists(error_types, max_size=3, unique=True),
    severity=severities,
    service=services,
    error_type=error_types,
)
@settings(max_examples=200)
def test_condition_semantics(wanted_severities, wanted_services, wanted_types, severity, service, error_type):
    conditions = RuleConditions.from_input(
        severity=wanted_severities,
        service=wanted_services,
        error_type=wanted_types,
    )
    match = ArchiveMatch(cutoff=NOW, conditions=conditions)
    old = NOW - timedelta(days=1)

    expected = (
        (not wanted_severities or severity in wanted_severities)
        and (not wanted_services or service in wanted_services)
        and (not wanted_types or error_type in wanted_types)
    )
    assert match.matches(severity, service, error_type, False, old) == expected


def test_cutoff_boundary_is_exclusive():
    match = ArchiveMatch(cutoff=NOW)
    assert not match.matches("low", "web", "browser", False, NOW)
    assert match.matches("low", "web", "browser", False, NOW - timedelta(microseconds=1))


def test_archive_criteria_single_value_filters():
    criteria = ArchiveCriteria.from_input(retention_days=30, severity="low")
    assert criteria.window == RetentionWindow(30.0, RetentionUnit.DAYS)
    assert criteria.conditions == RuleConditions(severity=(Severity.LOW,))

    # One-off requests accept a zero window
    assert ArchiveCriteria.from_input(retention_duration=0).window.duration == 0
    # Same unit default as rules
    assert ArchiveCriteria.from_input(retention_duration=2).window.unit == RetentionUnit.DAYS

    with pytest.raises(ValidationError):
        ArchiveCriteria.from_input(severity="low")
    with pytest.raises(ValidationError):
        ArchiveCriteria.from_input(retention_days=1, error_type="mobile")
