"""
Security Context
================

Composition root: builds every security service once from a resolved
SecurityConfig and hands out references. Nothing in the package keeps
module-level mutable state; consumers receive the context (or one of its
services) explicitly.

Author: jetgause
Created: 2025-12-12
"""

import logging
import threading
import time
from typing import Awaitable, Callable, Optional

from crm_security.config import SecurityConfig
from crm_security.crypto import build_cipher
from crm_security.forms import SecureFormGuard
from crm_security.identity import IdentityCatalog
from crm_security.logging_config import configure_logging
from crm_security.monitor import SecurityMonitor
from crm_security.rate_limiter import RateLimiter
from crm_security.sanitizer import ThreatDetector
from crm_security.session import SessionController
from crm_security.storage import SecureStore, StorageBackend, build_backend
from crm_security.tokens import TokenService

logger = logging.getLogger(__name__)


class SecurityContext:
    """Owns the rate limiter, store, token service, monitor and session."""

    def __init__(
        self,
        config: Optional[SecurityConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        identities: Optional[IdentityCatalog] = None,
        backend: Optional[StorageBackend] = None,
        detector: Optional[ThreatDetector] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        """
        Args:
            config: Resolved configuration (demo defaults if omitted)
            clock: Shared time source in seconds (defaults to time.time)
            identities: Identity catalog (seeded demo catalog if omitted)
            backend: Storage backend (from config.storage_path if omitted)
            detector: Threat detection strategy for the monitor
            sleep: Awaitable used for the simulated login delay
        """
        self.config = (config or SecurityConfig()).validate()
        self.clock = clock or time.time

        self.rate_limiter = RateLimiter(
            max_attempts=self.config.rate_limit_attempts,
            window_ms=self.config.rate_limit_window_ms,
            clock=self.clock
        )
        self.tokens = TokenService(self.config, clock=self.clock)
        self.monitor = SecurityMonitor(
            self.rate_limiter,
            config=self.config,
            detector=detector,
            clock=self.clock
        )
        self.identities = identities or IdentityCatalog.seeded(rounds=self.config.bcrypt_rounds)

        self._backend = backend
        self._sleep = sleep
        self._store: Optional[SecureStore] = None
        self._session: Optional[SessionController] = None
        self._lock = threading.Lock()

        logger.info(f"Security context ready ({self.config.mode.value} mode)")

    @property
    def secure_store(self) -> SecureStore:
        """The single SecureStore, created on first access."""
        with self._lock:
            if self._store is None:
                backend = self._backend or build_backend(self.config.storage_path)
                self._store = SecureStore(backend, build_cipher(self.config))
            return self._store

    @property
    def session(self) -> SessionController:
        if self._session is None:
            self._session = SessionController(
                self.config,
                self.secure_store,
                self.tokens,
                self.monitor,
                self.identities,
                self.rate_limiter,
                sleep=self._sleep
            )
        return self._session

    def form_guard(self, form_context: str = "form") -> SecureFormGuard:
        """New guard for one form, reporting to this context's monitor."""
        return SecureFormGuard(self.monitor, form_context)

    async def start(self):
        await self.monitor.start()

    async def stop(self):
        await self.monitor.stop()


def create_security_context(
    config: Optional[SecurityConfig] = None,
    env_file: Optional[str] = None,
    json_logs: bool = False,
    **kwargs
) -> SecurityContext:
    """
    Resolve configuration, configure logging and build the context.

    Args:
        config: Explicit configuration (loaded from the environment if omitted)
        env_file: Optional .env file for SecurityConfig.from_env
        json_logs: Emit JSON log lines on the console
        **kwargs: Forwarded to SecurityContext

    Returns:
        SecurityContext instance
    """
    config = config or SecurityConfig.from_env(env_file)
    configure_logging(config.log_level, config.log_file, json_format=json_logs)
    return SecurityContext(config, **kwargs)


__all__ = [
    'SecurityContext',
    'create_security_context',
]
