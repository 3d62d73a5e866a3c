"""
Security Monitor Tests
======================

Created: 2025-12-12
Author: jetgause
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from crm_security.monitor import (
    SecurityEvent,
    SecurityEventType,
    SecurityMonitor,
    Severity,
    seconds_until_midnight,
)
from crm_security.rate_limiter import RateLimiter
from crm_security.sanitizer import ThreatDetector


@pytest.fixture
def monitor(demo_config, clock):
    return SecurityMonitor(RateLimiter(clock=clock), config=demo_config, clock=clock)


class ExplodingDetector(ThreatDetector):
    def detect_xss(self, text):
        raise RuntimeError("boom")

    def detect_sql_injection(self, text):
        raise RuntimeError("boom")


class TestInputMonitoring:
    """Test monitor_input classification."""

    def test_script_payload_yields_one_xss_event(self, monitor):
        events = monitor.monitor_input("<script>alert(1)</script>", "form.name")

        assert len(events) == 1
        assert events[0].type == SecurityEventType.XSS_ATTEMPT
        assert events[0].severity == Severity.HIGH
        assert monitor.events == events

    def test_sql_injection_event(self, monitor):
        events = monitor.monitor_input("1 UNION SELECT password FROM users", "search")
        assert [e.type for e in events] == [SecurityEventType.SQL_INJECTION]
        assert events[0].severity == Severity.HIGH

    def test_long_input_event(self, monitor):
        events = monitor.monitor_input("a" * 10001)
        assert [e.type for e in events] == [SecurityEventType.SUSPICIOUS_ACTIVITY]
        assert events[0].severity == Severity.MEDIUM

    def test_threshold_is_exclusive(self, monitor):
        assert monitor.monitor_input("a" * 10000) == []

    def test_clean_and_empty_input(self, monitor):
        assert monitor.monitor_input("hello world") == []
        assert monitor.monitor_input("") == []
        assert monitor.monitor_input(None) == []
        assert monitor.events == []

    def test_details_are_sanitized_and_truncated(self, monitor):
        payload = "<script>" + "x" * 500
        event = monitor.monitor_input(payload, "notes")[0]
        assert "<script>" not in event.details
        assert "notes" in event.details
        assert "x" * 101 not in event.details

    def test_disabled_monitoring_records_nothing(self, monitor):
        assert monitor.toggle_monitoring() is False
        assert monitor.monitor_input("<script>") == []
        assert monitor.toggle_monitoring() is True
        assert len(monitor.monitor_input("<script>")) == 1

    def test_toggle_only_gates_input_inspection(self, monitor):
        monitor.toggle_monitoring()
        for _ in range(5):
            assert monitor.monitor_rate_limit("user@uniga.com", "login")
        assert monitor.monitor_rate_limit("user@uniga.com", "login") is False
        assert monitor.monitor_invalid_token("bad signature") is not None

        types = [e.type for e in monitor.events]
        assert types == [SecurityEventType.INVALID_TOKEN, SecurityEventType.RATE_LIMIT_EXCEEDED]

    def test_detector_failure_is_contained(self, demo_config, clock):
        monitor = SecurityMonitor(
            RateLimiter(clock=clock), config=demo_config,
            detector=ExplodingDetector(), clock=clock
        )
        assert monitor.monitor_input("<script>") == []

    def test_events_are_logged_by_severity(self, monitor, caplog):
        with caplog.at_level(logging.INFO, logger="crm_security.monitor"):
            monitor.monitor_input("<script>")
        assert any(r.levelno == logging.ERROR and "xss_attempt" in r.getMessage()
                   for r in caplog.records)


class TestRateLimitMonitoring:
    """Test the rate-limit gate."""

    def test_denial_records_event(self, monitor):
        results = [monitor.monitor_rate_limit("user@uniga.com", "login") for _ in range(6)]

        assert results == [True] * 5 + [False]
        events = monitor.get_events_by_type(SecurityEventType.RATE_LIMIT_EXCEEDED)
        assert len(events) == 1
        assert events[0].severity == Severity.MEDIUM
        assert "login" in events[0].details

    def test_invalid_token_event(self, monitor):
        event = monitor.monitor_invalid_token("signature mismatch")
        assert event.type == SecurityEventType.INVALID_TOKEN
        assert event.severity == Severity.HIGH


class TestEventRing:
    """Test event retention and metrics."""

    def test_newest_first_and_capped(self, demo_config, clock):
        config = demo_config.with_overrides(max_events=3)
        monitor = SecurityMonitor(RateLimiter(clock=clock), config=config, clock=clock)
        for i in range(5):
            monitor.add_security_event(SecurityEventType.SUSPICIOUS_ACTIVITY, f"event {i}", Severity.LOW)

        assert [e.details for e in monitor.events] == ["event 4", "event 3", "event 2"]
        assert monitor.metrics.total_events == 5

    def test_metrics(self, monitor):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "a", Severity.HIGH)
        last = monitor.add_security_event(SecurityEventType.INVALID_TOKEN, "b", Severity.CRITICAL)

        metrics = monitor.metrics
        assert metrics.total_events == 2
        assert metrics.today_events == 2
        assert metrics.critical_events == 1
        assert metrics.last_event == last

    def test_event_ids_are_unique(self, monitor):
        ids = {monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x").id for _ in range(10)}
        assert len(ids) == 10

    def test_events_are_immutable(self, monitor):
        event = monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x")
        with pytest.raises(AttributeError):
            event.details = "changed"

    def test_queries(self, monitor, clock):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "old", Severity.HIGH)
        clock.advance(25 * 60 * 60)
        monitor.add_security_event(SecurityEventType.SQL_INJECTION, "new", Severity.LOW)

        assert [e.details for e in monitor.get_events_by_type(SecurityEventType.XSS_ATTEMPT)] == ["old"]
        assert [e.details for e in monitor.get_events_by_severity(Severity.LOW)] == ["new"]
        assert [e.details for e in monitor.get_recent_events()] == ["new"]
        assert len(monitor.get_recent_events(hours=48)) == 2

    def test_clear_old_events(self, monitor, clock):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "old")
        clock.advance(8 * 24 * 60 * 60)
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "new")

        assert monitor.clear_old_events() == 1
        assert [e.details for e in monitor.events] == ["new"]
        assert monitor.metrics.total_events == 2

    def test_clear_all_events(self, monitor):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x", Severity.CRITICAL)
        monitor.clear_all_events()
        assert monitor.events == []
        assert monitor.metrics.total_events == 0
        assert monitor.metrics.critical_events == 0
        assert monitor.metrics.last_event is None

    def test_reset_daily_counter(self, monitor):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x")
        monitor.reset_daily_counter()
        assert monitor.metrics.today_events == 0
        assert monitor.metrics.total_events == 1


class TestReport:
    """Test report export."""

    def test_export_report(self, monitor):
        monitor.monitor_input("<script>alert(1)</script>")
        monitor.monitor_input("' OR 1=1 --")
        monitor.monitor_invalid_token("bad")

        report = monitor.export_report()
        assert report.events_by_type == {
            "xss_attempts": 1,
            "sql_injections": 1,
            "rate_limits": 0,
            "invalid_tokens": 1,
            "suspicious_activities": 0,
        }
        assert report.events_by_severity == {"low": 0, "medium": 0, "high": 3, "critical": 0}
        assert len(report.recent_events) == 3
        assert report.metrics.total_events == 3

    def test_report_is_a_snapshot(self, monitor):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x")
        report = monitor.export_report()
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "y")
        assert report.metrics.total_events == 1
        assert len(report.recent_events) == 1

    def test_report_to_dict(self, monitor):
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "x", Severity.HIGH)
        data = monitor.export_report().to_dict()
        assert data["metrics"]["last_event"]["type"] == "xss_attempt"
        assert data["recent_events"][0]["severity"] == "high"
        assert data["recent_events"][0]["source"] == "client-side"


class TestHousekeeping:
    """Test background housekeeping."""

    def test_seconds_until_midnight(self):
        now = datetime(2025, 6, 15, 23, 0, 0)
        assert seconds_until_midnight(now) == 3600

    def test_seconds_until_midnight_keeps_timezone(self):
        now = datetime(2025, 12, 31, 12, 30, 0, tzinfo=timezone.utc)
        assert seconds_until_midnight(now) == timedelta(hours=11, minutes=30).total_seconds()

    def test_start_and_stop(self, monitor):
        async def scenario():
            await monitor.start()
            assert monitor.is_running
            await monitor.start()
            assert len(monitor._tasks) == 2
            await monitor.stop()
            assert not monitor.is_running

        asyncio.run(scenario())

    def test_purge_loop_runs(self, demo_config, clock):
        config = demo_config.with_overrides(purge_interval_seconds=0)
        monitor = SecurityMonitor(RateLimiter(clock=clock), config=config, clock=clock)
        monitor.add_security_event(SecurityEventType.XSS_ATTEMPT, "old")
        clock.advance(8 * 24 * 60 * 60)

        async def scenario():
            await monitor.start()
            for _ in range(5):
                await asyncio.sleep(0)
            await monitor.stop()

        asyncio.run(scenario())
        assert monitor.events == []

    def test_event_to_dict(self):
        event = SecurityEvent(
            id="sec_0_1",
            type=SecurityEventType.INVALID_TOKEN,
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            details="d",
            severity=Severity.HIGH,
        )
        assert event.to_dict()["timestamp"] == "2025-01-01T00:00:00+00:00"
