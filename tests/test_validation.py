"""
Schema Validation Tests
=======================

Created: 2025-12-12
Author: jetgause
"""

import pytest

from crm_security.models import UserRole
from crm_security.validation import (
    CompanySettingsData,
    LoginData,
    UserData,
    validate_data,
    validate_password_strength,
)

VALID_SETTINGS = {
    "company_name": "Uniga",
    "company_email": "info@uniga.com",
    "company_domain": "uniga.com",
    "primary_color": "#1a2b3c",
    "secondary_color": "#fff",
    "accent_color": "#ABCDEF",
}


class TestLoginSchema:
    """Test login shape validation."""

    def test_valid_login(self):
        result = validate_data(LoginData, {"email": "admin@x.com", "password": "admin123"})
        assert result.success
        assert result.data.email == "admin@x.com"
        assert result.errors == []

    def test_simple_password_accepted_at_login(self):
        assert validate_data(LoginData, {"email": "a@uniga.com", "password": "abcdef"}).success

    @pytest.mark.parametrize("data", [
        {"email": "bad", "password": "admin123"},
        {"email": "a@uniga.com", "password": "12345"},
        {"email": "a@uniga.com"},
        {},
        None,
    ])
    def test_invalid_login(self, data):
        result = validate_data(LoginData, data)
        assert not result.success
        assert result.data is None
        assert result.errors

    def test_errors_name_the_field(self):
        result = validate_data(LoginData, {"email": "a@uniga.com", "password": "1"})
        assert result.errors[0].startswith("password:")


class TestUserSchema:
    """Test user management validation."""

    def test_valid_user(self):
        result = validate_data(UserData, {
            "name": "Ana Silva",
            "email": "ana@uniga.com",
            "role": "manager",
            "password": "Secret123",
            "confirm_password": "Secret123",
        })
        assert result.success
        assert result.data.role == UserRole.MANAGER

    def test_password_optional(self):
        assert validate_data(UserData, {
            "name": "Ana", "email": "ana@uniga.com", "role": "salesperson"
        }).success

    def test_weak_password_rejected(self):
        result = validate_data(UserData, {
            "name": "Ana", "email": "ana@uniga.com", "role": "admin", "password": "secret123"
        })
        assert not result.success
        assert any("uppercase" in e for e in result.errors)

    def test_password_mismatch(self):
        result = validate_data(UserData, {
            "name": "Ana",
            "email": "ana@uniga.com",
            "role": "admin",
            "password": "Secret123",
            "confirm_password": "Secret124",
        })
        assert not result.success
        assert any("do not match" in e for e in result.errors)

    @pytest.mark.parametrize("name", ["A", "Ana<script>", "R2D2"])
    def test_invalid_names(self, name):
        assert not validate_data(UserData, {
            "name": name, "email": "ana@uniga.com", "role": "admin"
        }).success

    def test_invalid_role(self):
        assert not validate_data(UserData, {
            "name": "Ana", "email": "ana@uniga.com", "role": "superuser"
        }).success


class TestCompanySettingsSchema:
    """Test company settings validation."""

    def test_valid_settings(self):
        result = validate_data(CompanySettingsData, VALID_SETTINGS)
        assert result.success
        assert result.data.logo_url is None

    def test_logo_url(self):
        data = dict(VALID_SETTINGS, logo_url="https://cdn.uniga.com/logo.png")
        assert validate_data(CompanySettingsData, data).data.logo_url == "https://cdn.uniga.com/logo.png"

        data = dict(VALID_SETTINGS, logo_url="javascript:alert(1)")
        assert not validate_data(CompanySettingsData, data).success

    @pytest.mark.parametrize("field, value", [
        ("company_domain", "localhost"),
        ("primary_color", "red"),
        ("accent_color", "#12345"),
        ("company_email", "nope"),
        ("company_name", "U"),
    ])
    def test_invalid_settings(self, field, value):
        assert not validate_data(CompanySettingsData, dict(VALID_SETTINGS, **{field: value})).success


class TestPasswordStrength:
    """Test password strength rules."""

    def test_strong_password(self):
        assert validate_password_strength("Secret123") == []

    def test_reports_each_problem(self):
        problems = validate_password_strength("abc")
        assert len(problems) == 3
