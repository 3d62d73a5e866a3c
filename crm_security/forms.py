"""
Secure Form Guard
=================

Per-form helper that runs every field through the security monitor and
remembers which fields looked suspicious. It annotates; it never blocks a
submission or alters the value.

Author: jetgause
Created: 2025-12-12
"""

import logging
from typing import Any, FrozenSet, Set

from crm_security.monitor import SecurityMonitor
from crm_security.sanitizer import Sanitizer

logger = logging.getLogger(__name__)


class SecureFormGuard:
    """Suspicious-field tracking for one form"""

    def __init__(self, monitor: SecurityMonitor, form_context: str = "form"):
        self.monitor = monitor
        self.form_context = form_context
        self._suspicious: Set[str] = set()

    def validate_field(self, name: str, value: Any) -> bool:
        """
        Monitor a field value.

        Args:
            name: Field name
            value: Raw field value

        Returns:
            True if no security event was recorded for the value
        """
        events = self.monitor.monitor_input(value, f"{self.form_context}.{name}")
        if events:
            self._suspicious.add(name)
            logger.debug(f"Field {self.form_context}.{name} flagged ({len(events)} events)")
            return False
        self._suspicious.discard(name)
        return True

    def sanitize_field(self, value: Any, **options) -> str:
        return Sanitizer.sanitize(value, **options)

    def is_field_suspicious(self, name: str) -> bool:
        return name in self._suspicious

    def clear_suspicious_flags(self):
        self._suspicious.clear()

    @property
    def suspicious_fields(self) -> FrozenSet[str]:
        return frozenset(self._suspicious)

    @property
    def suspicious_fields_count(self) -> int:
        return len(self._suspicious)


__all__ = ['SecureFormGuard']
