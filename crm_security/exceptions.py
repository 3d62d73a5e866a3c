"""
CRM Security Exceptions
=======================

Error taxonomy for the security core. Sanitizer, SecureStore and
SecurityMonitor never let these escape; TokenService and SessionController
raise them only at the authentication boundary with messages that are safe
to show a user.

Author: jetgause
Created: 2025-12-12
"""

from typing import Optional, Dict, Any, List


class CRMSecurityError(Exception):
    """Base exception for all security core errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details (never shown to users)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(CRMSecurityError):
    """Malformed input; carries field-level messages for the caller"""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.errors = errors or []


class AuthenticationError(CRMSecurityError):
    """
    Credentials rejected or login throttled.

    The message never distinguishes an unknown user from a wrong password.
    """

    def __init__(
        self,
        message: str,
        rate_limited: bool = False,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.rate_limited = rate_limited


class TokenError(CRMSecurityError):
    """Expired or tampered token. Recovered internally, never surfaced raw."""
    pass


class StorageError(CRMSecurityError):
    """Persistent area unavailable or over quota"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.key = key
        if key:
            self.details['key'] = key


class CipherError(CRMSecurityError):
    """Decryption failed: wrong key, corrupt payload or foreign format"""
    pass


class ConfigurationError(CRMSecurityError):
    """Invalid or unsafe configuration"""
    pass


__all__ = [
    'CRMSecurityError',
    'ValidationError',
    'AuthenticationError',
    'TokenError',
    'StorageError',
    'CipherError',
    'ConfigurationError',
]
