"""
Unit tests for the issue detection heuristic and history reconciliation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from rxdesk.services.issueDetector import (
    CheckStatus,
    DetectedIssue,
    HealthCheckResult,
    Severity,
    detect_issues,
    format_duration,
    history_entry,
    overall_status,
    reconcile_history,
    summarize_checks,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _check(name: str, status: CheckStatus, error: str | None = None) -> HealthCheckResult:
    return HealthCheckResult(
        name=name,
        category="external",
        status=status,
        response_time_ms=120,
        last_checked=NOW,
        error=error,
    )


# ---------------------------------------------------------------------------
# Error logs
# ---------------------------------------------------------------------------


class TestErrorThreshold:

    def test_six_errors_flagged(self):
        issues = detect_issues([], 6, 0)

        assert [i.key for i in issues] == ["multiple-errors"]
        assert issues[0].severity == Severity.WARNING
        assert issues[0].description == "6 errors logged in the last hour."

    def test_exactly_threshold_not_flagged(self):
        assert detect_issues([], 5, 0) == []

    def test_custom_threshold(self):
        assert [i.key for i in detect_issues([], 3, 0, error_threshold=2)] == ["multiple-errors"]


# ---------------------------------------------------------------------------
# Stuck prescriptions
# ---------------------------------------------------------------------------


class TestStuckPrescriptions:

    def test_none_stuck(self):
        assert detect_issues([], 0, 0) == []

    def test_single_prescription(self):
        issues = detect_issues([], 0, 1)

        assert issues[0].key == "stuck-prescriptions"
        assert "1 prescription submitted more than 24 hours ago" in issues[0].description

    def test_plural_and_custom_hours(self):
        issues = detect_issues([], 0, 3, stuck_hours=48)

        assert "3 prescriptions submitted more than 48 hours ago" in issues[0].description


# ---------------------------------------------------------------------------
# Health checks
# ---------------------------------------------------------------------------


class TestHealthCheckIssues:

    def test_error_and_degraded_keys(self):
        checks = [
            _check("Stripe Payment API", CheckStatus.ERROR, "Stripe API key not configured"),
            _check("DigitalRx Pharmacy API", CheckStatus.DEGRADED),
            _check("Database", CheckStatus.OPERATIONAL),
        ]
        issues = detect_issues(checks, 0, 0)

        assert [(i.key, i.severity) for i in issues] == [
            ("api-error-Stripe Payment API", Severity.CRITICAL),
            ("api-degraded-DigitalRx Pharmacy API", Severity.WARNING),
        ]
        assert issues[0].description == "Stripe API key not configured"

    def test_overall_status(self):
        assert overall_status([_check("a", CheckStatus.OPERATIONAL)]) == "operational"
        assert overall_status(
            [_check("a", CheckStatus.OPERATIONAL), _check("b", CheckStatus.DEGRADED)]
        ) == "degraded"
        assert overall_status(
            [_check("a", CheckStatus.DEGRADED), _check("b", CheckStatus.ERROR)]
        ) == "critical"

    def test_summary_counts(self):
        checks = [
            _check("a", CheckStatus.OPERATIONAL),
            _check("b", CheckStatus.OPERATIONAL),
            _check("c", CheckStatus.DEGRADED),
            _check("d", CheckStatus.ERROR),
        ]
        assert summarize_checks(checks) == {"total": 4, "operational": 2, "degraded": 1, "error": 1}


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


STRIPE_DOWN = DetectedIssue(
    key="api-error-Stripe Payment API",
    severity=Severity.CRITICAL,
    title="Stripe Payment API is down",
    description="HTTP 503",
)
TOO_MANY_ERRORS = DetectedIssue(
    key="multiple-errors",
    severity=Severity.WARNING,
    title="Multiple errors detected",
    description="8 errors logged in the last hour.",
)


class TestReconcileHistory:

    def test_new_issue_starts_now(self):
        tracked, new_history = reconcile_history([STRIPE_DOWN], {}, NOW)

        assert len(tracked) == 1
        assert tracked[0].detected_at == NOW
        assert tracked[0].is_resolved is False
        assert tracked[0].duration == "0s"
        assert new_history[STRIPE_DOWN.key]["first_seen"] == NOW.isoformat()

    def test_first_seen_carried_over(self):
        first = NOW - timedelta(hours=3, minutes=5)
        history = {STRIPE_DOWN.key: history_entry(STRIPE_DOWN, first, NOW - timedelta(seconds=30))}

        tracked, new_history = reconcile_history([STRIPE_DOWN], history, NOW)

        assert tracked[0].detected_at == first
        assert tracked[0].last_seen_at == NOW
        assert tracked[0].duration == "3h 5m"
        assert new_history[STRIPE_DOWN.key]["first_seen"] == first.isoformat()
        assert new_history[STRIPE_DOWN.key]["last_seen"] == NOW.isoformat()

    def test_vanished_issue_reported_resolved_and_pruned(self):
        first = NOW - timedelta(minutes=40)
        last = NOW - timedelta(minutes=10)
        history = {TOO_MANY_ERRORS.key: history_entry(TOO_MANY_ERRORS, first, last)}

        tracked, new_history = reconcile_history([STRIPE_DOWN], history, NOW)

        assert [t.key for t in tracked] == [STRIPE_DOWN.key, TOO_MANY_ERRORS.key]
        resolved = tracked[1]
        assert resolved.is_resolved is True
        assert resolved.severity == Severity.WARNING
        assert resolved.duration == "30m"
        assert resolved.last_seen_at == last
        assert set(new_history) == {STRIPE_DOWN.key}

    def test_nothing_detected_clears_history(self):
        history = {STRIPE_DOWN.key: history_entry(STRIPE_DOWN, NOW - timedelta(days=1), NOW)}
        tracked, new_history = reconcile_history([], history, NOW)

        assert tracked[0].is_resolved is True
        assert new_history == {}

    def test_naive_history_timestamps_treated_as_utc(self):
        history = {
            STRIPE_DOWN.key: {
                "severity": "critical",
                "title": STRIPE_DOWN.title,
                "description": "",
                "first_seen": "2025-03-01T11:00:00",
                "last_seen": "2025-03-01T11:59:00",
            }
        }
        tracked, _ = reconcile_history([STRIPE_DOWN], history, NOW)
        assert tracked[0].duration == "1h 0m"


class TestFormatDuration:

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=45), "45s"),
            (timedelta(minutes=12, seconds=30), "12m"),
            (timedelta(hours=3, minutes=5), "3h 5m"),
            (timedelta(days=2, hours=4, minutes=59), "2d 4h"),
            (timedelta(seconds=-5), "0s"),
        ],
    )
    def test_format(self, delta, expected):
        assert format_duration(delta) == expected
