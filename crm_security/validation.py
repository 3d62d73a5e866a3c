"""
Schema Validation
=================

Pydantic schemas for the data the security core accepts (login, user
management, company settings) and a validate_data() helper that turns
validation failures into field-level messages.

Author: jetgause
Created: 2025-12-12
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Type

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from crm_security.models import UserRole
from crm_security.sanitizer import Sanitizer

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'^[a-zA-ZÀ-ÿ\s]*$')
DOMAIN_PATTERN = re.compile(r'^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
HEX_COLOR_PATTERN = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def validate_password_strength(password: str) -> List[str]:
    """
    Check password complexity.

    Args:
        password: Candidate password

    Returns:
        List of unmet requirements (empty if strong enough)
    """
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        problems.append("Password is too long")
    if not re.search(r'[a-z]', password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r'[A-Z]', password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r'\d', password):
        problems.append("Password must contain at least one digit")
    return problems


class LoginData(BaseModel):
    """Login form. Only the shape is checked; complexity applies at account creation."""
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class UserData(BaseModel):
    """User creation/edit form"""
    id: Optional[str] = None
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    role: UserRole
    password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not NAME_PATTERN.match(v):
            raise ValueError('Name must contain only letters and spaces')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if v is None:
            return v
        problems = validate_password_strength(v)
        if problems:
            raise ValueError(problems[0])
        return v

    @model_validator(mode='after')
    def passwords_match(self) -> 'UserData':
        if self.password and self.confirm_password and self.password != self.confirm_password:
            raise ValueError('Passwords do not match')
        return self


class CompanySettingsData(BaseModel):
    """Company settings form"""
    company_name: str = Field(..., min_length=2, max_length=100)
    company_email: EmailStr
    company_domain: str = Field(..., min_length=3, max_length=100)
    primary_color: str
    secondary_color: str
    accent_color: str
    logo_url: Optional[str] = None

    @field_validator('company_domain')
    @classmethod
    def validate_domain(cls, v):
        if not DOMAIN_PATTERN.match(v):
            raise ValueError('Invalid domain')
        return v

    @field_validator('primary_color', 'secondary_color', 'accent_color')
    @classmethod
    def validate_color(cls, v):
        if not HEX_COLOR_PATTERN.match(v):
            raise ValueError('Invalid color')
        return v

    @field_validator('logo_url')
    @classmethod
    def validate_logo_url(cls, v):
        if not v:
            return None
        url = Sanitizer.sanitize_url(v)
        if url is None:
            raise ValueError('Invalid URL')
        return url


@dataclass
class ValidationResult:
    """Outcome of validate_data()."""
    success: bool
    data: Optional[BaseModel] = None
    errors: List[str] = field(default_factory=list)


def _format_error(error: dict) -> str:
    message = error.get('msg', 'Invalid value')
    if message.startswith('Value error, '):
        message = message[len('Value error, '):]
    location = ".".join(str(part) for part in error.get('loc', ()))
    return f"{location}: {message}" if location else message


def validate_data(schema: Type[BaseModel], data: Any) -> ValidationResult:
    """
    Validate data against a schema without raising.

    Args:
        schema: Pydantic model class
        data: Mapping to validate

    Returns:
        ValidationResult with the parsed model or field-level messages
    """
    try:
        return ValidationResult(success=True, data=schema.model_validate(data))
    except PydanticValidationError as e:
        return ValidationResult(
            success=False,
            errors=[_format_error(err) for err in e.errors()]
        )
    except Exception as e:
        logger.error(f"Unexpected validation failure: {type(e).__name__}")
        return ValidationResult(success=False, errors=["Unexpected validation error"])


__all__ = [
    'LoginData',
    'UserData',
    'CompanySettingsData',
    'ValidationResult',
    'validate_data',
    'validate_password_strength',
]
