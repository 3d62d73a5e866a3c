"""
Security Core Models
====================

Shared pydantic models: roles, token claims and the sanitized user profile.

Author: jetgause
Created: 2025-12-12
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserRole(str, Enum):
    """User role enumeration for RBAC"""
    ADMIN = "admin"
    MANAGER = "manager"
    SALESPERSON = "salesperson"


class TokenType(str, Enum):
    """Token type enumeration"""
    ACCESS = "access"
    REFRESH = "refresh"


class Claims(BaseModel):
    """Verified token payload. Immutable; a new login issues new claims."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    subject_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    role: Optional[UserRole] = None
    issued_at: int
    expires_at: int
    issuer: str
    token_type: TokenType = TokenType.ACCESS

    @model_validator(mode='after')
    def check_lifetime(self) -> 'Claims':
        if self.expires_at <= self.issued_at:
            raise ValueError('expires_at must be later than issued_at')
        return self


class UserProfile(BaseModel):
    """Non-sensitive user data kept in the session and in storage"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: UserRole


__all__ = [
    'UserRole',
    'TokenType',
    'Claims',
    'UserProfile',
]
