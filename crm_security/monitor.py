"""
Security Event Monitoring
=========================

Classifies input and rate-limit outcomes into severity-tagged security
events, keeps rolling metrics and exports reports for a diagnostics surface.

Features:
- Input monitoring (XSS, SQL injection, oversized input)
- Rate-limit gate with event recording
- Capped newest-first event ring (default 100)
- Daily counter reset at local midnight and weekly retention purge
- Report export

Monitoring must never break a primary user flow, so no public method raises.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import asyncio
import itertools
import logging
import platform
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from crm_security.config import SecurityConfig
from crm_security.rate_limiter import RateLimiter
from crm_security.sanitizer import Sanitizer, ThreatDetector, default_detector

logger = logging.getLogger(__name__)

INPUT_PREVIEW_LENGTH = 100


class SecurityEventType(str, Enum):
    """Security event types"""
    XSS_ATTEMPT = "xss_attempt"
    SQL_INJECTION = "sql_injection"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INVALID_TOKEN = "invalid_token"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


class Severity(str, Enum):
    """Event severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_LOG_LEVELS = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}

# Report keys for event counts by type
REPORT_TYPE_KEYS = {
    SecurityEventType.XSS_ATTEMPT: "xss_attempts",
    SecurityEventType.SQL_INJECTION: "sql_injections",
    SecurityEventType.RATE_LIMIT_EXCEEDED: "rate_limits",
    SecurityEventType.INVALID_TOKEN: "invalid_tokens",
    SecurityEventType.SUSPICIOUS_ACTIVITY: "suspicious_activities",
}


@dataclass(frozen=True)
class SecurityEvent:
    """A recorded security event. Never mutated after creation."""
    id: str
    type: SecurityEventType
    timestamp: datetime
    details: str
    severity: Severity
    user_agent: str = ""
    source: str = "client-side"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
            "severity": self.severity.value,
            "user_agent": self.user_agent,
            "source": self.source,
        }


@dataclass
class SecurityMetrics:
    """Aggregate counters; they outlive evicted events."""
    total_events: int = 0
    today_events: int = 0
    critical_events: int = 0
    last_event: Optional[SecurityEvent] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_events": self.total_events,
            "today_events": self.today_events,
            "critical_events": self.critical_events,
            "last_event": self.last_event.to_dict() if self.last_event else None,
        }


@dataclass
class SecurityReport:
    """Point-in-time export of the monitor state."""
    generated_at: datetime
    metrics: SecurityMetrics
    recent_events: List[SecurityEvent] = field(default_factory=list)
    events_by_type: Dict[str, int] = field(default_factory=dict)
    events_by_severity: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "metrics": self.metrics.to_dict(),
            "recent_events": [e.to_dict() for e in self.recent_events],
            "events_by_type": dict(self.events_by_type),
            "events_by_severity": dict(self.events_by_severity),
        }


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from `now` until the next midnight in the same timezone."""
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (tomorrow - now).total_seconds()


class SecurityMonitor:
    """
    Security event monitor.

    Detection goes through a ThreatDetector; rate limiting through the shared
    RateLimiter owned by the SecurityContext.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        config: Optional[SecurityConfig] = None,
        detector: Optional[ThreatDetector] = None,
        clock: Optional[Callable[[], float]] = None,
        user_agent: Optional[str] = None
    ):
        """
        Args:
            rate_limiter: Limiter consulted by monitor_rate_limit
            config: Security configuration (ring size, thresholds, retention)
            detector: Threat detection strategy
            clock: Returns the current time in seconds (defaults to time.time)
            user_agent: Agent string attached to events
        """
        self.config = config or SecurityConfig()
        self.rate_limiter = rate_limiter
        self.detector = detector or default_detector
        self._clock = clock or time.time
        self.user_agent = user_agent or f"python/{platform.python_version()}"

        self._events: deque = deque(maxlen=self.config.max_events)
        self._metrics = SecurityMetrics()
        self._monitoring = True
        self._ids = itertools.count()
        self._lock = threading.Lock()
        self._tasks: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    @property
    def events(self) -> List[SecurityEvent]:
        """Recorded events, newest first."""
        with self._lock:
            return list(self._events)

    @property
    def metrics(self) -> SecurityMetrics:
        with self._lock:
            m = self._metrics
            return SecurityMetrics(m.total_events, m.today_events, m.critical_events, m.last_event)

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def add_security_event(
        self,
        event_type: SecurityEventType,
        details: str,
        severity: Severity = Severity.MEDIUM
    ) -> Optional[SecurityEvent]:
        """
        Build and record an event with sanitized details.

        Returns:
            The recorded event, or None if recording failed
        """
        try:
            now = self._now()
            event = SecurityEvent(
                id=f"sec_{next(self._ids)}_{int(now.timestamp() * 1000)}",
                type=SecurityEventType(event_type),
                timestamp=now,
                details=Sanitizer.sanitize(details),
                severity=Severity(severity),
                user_agent=self.user_agent,
            )
            self.record(event)
            return event
        except Exception as e:
            logger.error(f"Failed to record security event: {type(e).__name__}: {e}")
            return None

    def record(self, event: SecurityEvent):
        """Prepend an event to the ring and update the counters."""
        with self._lock:
            self._events.appendleft(event)
            self._metrics.total_events += 1
            self._metrics.today_events += 1
            if event.severity == Severity.CRITICAL:
                self._metrics.critical_events += 1
            self._metrics.last_event = event

        logger.log(
            SEVERITY_LOG_LEVELS[event.severity],
            f"Security event [{event.severity.value.upper()}] {event.type.value}: {event.details}"
        )

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def monitor_input(self, value: Any, context: str = "unknown") -> List[SecurityEvent]:
        """
        Run threat detection on an input without altering it.

        Args:
            value: Raw input
            context: Where the input came from (e.g. "login.email")

        Returns:
            Events recorded for this input (empty when clean or monitoring is off)
        """
        if not self._monitoring or not value:
            return []

        recorded: List[SecurityEvent] = []
        try:
            text = value if isinstance(value, str) else str(value)
            preview = text[:INPUT_PREVIEW_LENGTH]

            if self.detector.detect_xss(text):
                recorded.append(self.add_security_event(
                    SecurityEventType.XSS_ATTEMPT,
                    f"XSS attempt detected in context: {context}. Input: {preview}...",
                    Severity.HIGH
                ))

            if self.detector.detect_sql_injection(text):
                recorded.append(self.add_security_event(
                    SecurityEventType.SQL_INJECTION,
                    f"SQL injection attempt detected in context: {context}. Input: {preview}...",
                    Severity.HIGH
                ))

            if len(text) > self.config.long_input_threshold:
                recorded.append(self.add_security_event(
                    SecurityEventType.SUSPICIOUS_ACTIVITY,
                    f"Oversized input detected in context: {context}. Length: {len(text)}",
                    Severity.MEDIUM
                ))
        except Exception as e:
            logger.error(f"Input monitoring failed: {type(e).__name__}")

        return [event for event in recorded if event is not None]

    def monitor_rate_limit(self, identifier: str, action: str) -> bool:
        """
        Gate an action through the rate limiter.

        Returns:
            False (and records an event) if the identifier is over its limit
        """
        allowed = self.rate_limiter.is_allowed(
            identifier,
            max_attempts=self.config.rate_limit_attempts,
            window_ms=self.config.rate_limit_window_ms
        )
        if not allowed:
            self.add_security_event(
                SecurityEventType.RATE_LIMIT_EXCEEDED,
                f"Rate limit exceeded for {identifier} on action: {action}",
                Severity.MEDIUM
            )
        return allowed

    def monitor_invalid_token(self, details: str) -> Optional[SecurityEvent]:
        """Record an invalid token event."""
        return self.add_security_event(
            SecurityEventType.INVALID_TOKEN,
            f"Invalid token detected: {details}",
            Severity.HIGH
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_events_by_type(self, event_type: SecurityEventType) -> List[SecurityEvent]:
        return [e for e in self.events if e.type == event_type]

    def get_events_by_severity(self, severity: Severity) -> List[SecurityEvent]:
        return [e for e in self.events if e.severity == severity]

    def get_recent_events(self, hours: float = 24) -> List[SecurityEvent]:
        """Events newer than `hours` ago."""
        cutoff = self._now() - timedelta(hours=hours)
        return [e for e in self.events if e.timestamp > cutoff]

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def toggle_monitoring(self) -> bool:
        """Flip input monitoring on/off. Returns the new state."""
        self._monitoring = not self._monitoring
        logger.info(f"Security monitoring {'enabled' if self._monitoring else 'disabled'}")
        return self._monitoring

    def clear_all_events(self):
        """Drop every event and zero the counters."""
        with self._lock:
            self._events.clear()
            self._metrics = SecurityMetrics()
        logger.info("Security events cleared")

    def clear_old_events(self) -> int:
        """
        Drop events older than the retention period (7 days by default).

        Returns:
            Number of events removed
        """
        try:
            cutoff = self._now() - timedelta(seconds=self.config.event_retention_seconds)
            with self._lock:
                kept = [e for e in self._events if e.timestamp > cutoff]
                removed = len(self._events) - len(kept)
                self._events = deque(kept, maxlen=self.config.max_events)
            if removed:
                logger.info(f"Purged {removed} security events older than retention")
            return removed
        except Exception as e:
            logger.error(f"Event purge failed: {type(e).__name__}")
            return 0

    def reset_daily_counter(self):
        with self._lock:
            self._metrics.today_events = 0
        logger.debug("Daily security event counter reset")

    def export_report(self) -> SecurityReport:
        """Snapshot of metrics, last-24h events and per-type/per-severity counts."""
        events = self.events
        return SecurityReport(
            generated_at=self._now(),
            metrics=self.metrics,
            recent_events=self.get_recent_events(),
            events_by_type={
                key: sum(1 for e in events if e.type == event_type)
                for event_type, key in REPORT_TYPE_KEYS.items()
            },
            events_by_severity={
                severity.value: sum(1 for e in events if e.severity == severity)
                for severity in Severity
            },
        )

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def _purge_loop(self):
        while True:
            await asyncio.sleep(self.config.purge_interval_seconds)
            self.clear_old_events()

    async def _midnight_loop(self):
        while True:
            local_now = datetime.fromtimestamp(self._clock()).astimezone()
            await asyncio.sleep(seconds_until_midnight(local_now))
            self.reset_daily_counter()

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self):
        """Launch the purge and midnight-reset tasks on the running loop."""
        if self.is_running:
            return
        self._tasks = [
            asyncio.create_task(self._purge_loop()),
            asyncio.create_task(self._midnight_loop()),
        ]
        logger.info("Security monitor housekeeping started")

    async def stop(self):
        """Cancel housekeeping tasks and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Security monitor housekeeping stopped")


__all__ = [
    'SecurityEventType',
    'Severity',
    'SecurityEvent',
    'SecurityMetrics',
    'SecurityReport',
    'SecurityMonitor',
    'seconds_until_midnight',
]
