"""
CRM Security Core
=================

Trust and security layer for the CRM dashboard: input sanitization and
threat detection, rate limiting, signed session tokens, encrypted local
storage, security event monitoring and the session controller.

Author: jetgause
Version: 1.0.0
"""

__version__ = "1.0.0"

from crm_security.config import EnvironmentMode, SecurityConfig
from crm_security.context import SecurityContext, create_security_context
from crm_security.exceptions import (
    CRMSecurityError,
    ValidationError,
    AuthenticationError,
    TokenError,
    StorageError,
    CipherError,
    ConfigurationError,
)
from crm_security.models import Claims, UserProfile, UserRole
from crm_security.monitor import SecurityEvent, SecurityEventType, SecurityMonitor, Severity
from crm_security.rate_limiter import RateLimiter
from crm_security.sanitizer import Sanitizer, detect_sql_injection, detect_xss, sanitize
from crm_security.session import SessionController, SessionState
from crm_security.storage import SecureStore
from crm_security.tokens import Token, TokenService

__all__ = [
    "EnvironmentMode",
    "SecurityConfig",
    "SecurityContext",
    "create_security_context",
    "CRMSecurityError",
    "ValidationError",
    "AuthenticationError",
    "TokenError",
    "StorageError",
    "CipherError",
    "ConfigurationError",
    "Claims",
    "UserProfile",
    "UserRole",
    "SecurityEvent",
    "SecurityEventType",
    "SecurityMonitor",
    "Severity",
    "RateLimiter",
    "Sanitizer",
    "sanitize",
    "detect_xss",
    "detect_sql_injection",
    "SessionController",
    "SessionState",
    "SecureStore",
    "Token",
    "TokenService",
]
