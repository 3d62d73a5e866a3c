"""
Security Configuration
======================

Resolves the environment mode (demo vs. hardened) once at startup into an
immutable SecurityConfig that is passed into every service constructor.
Nothing else in the package reads the environment.

Author: jetgause
Created: 2025-12-12
"""

import os
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from crm_security.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EnvironmentMode(str, Enum):
    """Environment modes"""
    DEMO = "demo"
    HARDENED = "hardened"


# Aliases accepted for CRM_ENVIRONMENT
MODE_ALIASES = {
    "demo": EnvironmentMode.DEMO,
    "development": EnvironmentMode.DEMO,
    "dev": EnvironmentMode.DEMO,
    "hardened": EnvironmentMode.HARDENED,
    "production": EnvironmentMode.HARDENED,
    "prod": EnvironmentMode.HARDENED,
}

# Signing key used in demo mode when none is configured
DEMO_SECRET_KEY = "crm-demo-signing-key-not-for-production-use"

WEAK_KEYS = [
    "your-secret-key-change-in-production",
    "change-this-in-production",
    "secret",
    "password",
    "secret-key",
    "test",
    "admin",
    DEMO_SECRET_KEY,
]

MIN_SECRET_KEY_LENGTH = 32

MODE_DEFAULTS: Dict[EnvironmentMode, Dict[str, Any]] = {
    EnvironmentMode.DEMO: {
        "token_ttl_seconds": 24 * 60 * 60,
        "refresh_token_ttl_seconds": 7 * 24 * 60 * 60,
        "rate_limit_attempts": 5,
        "rate_limit_window_ms": 15 * 60 * 1000,
        "login_delay_seconds": 0.8,
    },
    EnvironmentMode.HARDENED: {
        "token_ttl_seconds": 60 * 60,
        "refresh_token_ttl_seconds": 24 * 60 * 60,
        "rate_limit_attempts": 5,
        "rate_limit_window_ms": 15 * 60 * 1000,
        "login_delay_seconds": 0.0,
    },
}


def parse_mode(value: Optional[str]) -> EnvironmentMode:
    """Map an environment string to an EnvironmentMode."""
    if value is None or not value.strip():
        return EnvironmentMode.DEMO
    mode = MODE_ALIASES.get(value.strip().lower())
    if mode is None:
        raise ConfigurationError(
            f"Unknown environment mode: {value!r}",
            details={"accepted": sorted(MODE_ALIASES)}
        )
    return mode


@dataclass(frozen=True)
class SecurityConfig:
    """Immutable security configuration shared by all services."""

    mode: EnvironmentMode = EnvironmentMode.DEMO
    secret_key: str = DEMO_SECRET_KEY
    encryption_key: Optional[str] = None
    issuer: str = "crm-app"

    # Tokens
    token_ttl_seconds: int = 24 * 60 * 60
    refresh_token_ttl_seconds: int = 7 * 24 * 60 * 60

    # Rate limiting
    rate_limit_attempts: int = 5
    rate_limit_window_ms: int = 15 * 60 * 1000

    # Monitoring
    max_events: int = 100
    long_input_threshold: int = 10000
    event_retention_seconds: int = 7 * 24 * 60 * 60
    purge_interval_seconds: int = 24 * 60 * 60

    # Session
    login_delay_seconds: float = 0.8
    bcrypt_rounds: int = 12

    # Encryption
    pbkdf2_iterations: int = 100000
    key_salt: str = "crm-secure-store"

    # Storage and logging
    storage_path: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Diagnostics API
    diagnostics_host: str = "127.0.0.1"
    diagnostics_port: int = 8765

    @property
    def is_hardened(self) -> bool:
        return self.mode == EnvironmentMode.HARDENED

    @classmethod
    def for_mode(cls, mode: EnvironmentMode = EnvironmentMode.DEMO, **overrides) -> 'SecurityConfig':
        """
        Build a configuration from the defaults of a mode.

        Args:
            mode: Environment mode
            **overrides: Field values replacing the mode defaults

        Returns:
            SecurityConfig instance
        """
        values = dict(MODE_DEFAULTS[mode])
        values.update(overrides)
        return cls(mode=mode, **values)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'SecurityConfig':
        """
        Load configuration from the environment (and a .env file).

        Args:
            env_file: Optional path to a .env file

        Returns:
            Validated SecurityConfig instance
        """
        load_dotenv(env_file)

        mode = parse_mode(os.getenv("CRM_ENVIRONMENT"))
        overrides: Dict[str, Any] = {}

        secret_key = os.getenv("CRM_SECRET_KEY")
        if secret_key:
            overrides["secret_key"] = secret_key
        elif mode == EnvironmentMode.DEMO:
            logger.warning("CRM_SECRET_KEY not set, using the demo signing key")

        encryption_key = os.getenv("CRM_ENCRYPTION_KEY")
        if encryption_key:
            overrides["encryption_key"] = encryption_key

        overrides["storage_path"] = os.getenv("CRM_STORAGE_PATH") or None
        overrides["log_level"] = os.getenv("CRM_LOG_LEVEL", "INFO").upper()
        overrides["log_file"] = os.getenv("CRM_LOG_FILE") or None
        overrides["diagnostics_host"] = os.getenv("CRM_DIAGNOSTICS_HOST", "127.0.0.1")

        try:
            if os.getenv("CRM_RATE_LIMIT_ATTEMPTS"):
                overrides["rate_limit_attempts"] = int(os.getenv("CRM_RATE_LIMIT_ATTEMPTS"))
            if os.getenv("CRM_RATE_LIMIT_WINDOW_MS"):
                overrides["rate_limit_window_ms"] = int(os.getenv("CRM_RATE_LIMIT_WINDOW_MS"))
            if os.getenv("CRM_LOGIN_DELAY"):
                overrides["login_delay_seconds"] = float(os.getenv("CRM_LOGIN_DELAY"))
            if os.getenv("CRM_BCRYPT_ROUNDS"):
                overrides["bcrypt_rounds"] = int(os.getenv("CRM_BCRYPT_ROUNDS"))
            if os.getenv("CRM_DIAGNOSTICS_PORT"):
                overrides["diagnostics_port"] = int(os.getenv("CRM_DIAGNOSTICS_PORT"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")

        config = cls.for_mode(mode, **overrides)
        config.validate()
        return config

    def validate(self) -> 'SecurityConfig':
        """
        Check the configuration for unsafe values.

        Raises:
            ConfigurationError: if the configuration is unsafe in its mode
        """
        if self.token_ttl_seconds <= 0 or self.refresh_token_ttl_seconds <= 0:
            raise ConfigurationError("Token TTLs must be positive")

        if self.rate_limit_attempts <= 0 or self.rate_limit_window_ms <= 0:
            raise ConfigurationError("Rate limit attempts and window must be positive")

        if not 4 <= self.bcrypt_rounds <= 31:
            raise ConfigurationError("bcrypt rounds must be between 4 and 31")

        if not self.is_hardened:
            return self

        if not self.secret_key:
            raise ConfigurationError("CRM_SECRET_KEY is required in hardened mode")

        if self.secret_key.lower() in WEAK_KEYS:
            raise ConfigurationError("CRM_SECRET_KEY is using a default/weak value")

        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ConfigurationError(
                f"CRM_SECRET_KEY is too short ({len(self.secret_key)} characters, "
                f"{MIN_SECRET_KEY_LENGTH}+ required)"
            )

        if self.encryption_key is not None and len(self.encryption_key) < MIN_SECRET_KEY_LENGTH:
            raise ConfigurationError("CRM_ENCRYPTION_KEY is too short")

        return self

    def with_overrides(self, **changes) -> 'SecurityConfig':
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


__all__ = [
    'EnvironmentMode',
    'SecurityConfig',
    'MODE_DEFAULTS',
    'WEAK_KEYS',
    'DEMO_SECRET_KEY',
    'parse_mode',
]
