"""Shared fixtures: a controllable clock and fast test configurations."""

import pytest

from crm_security.config import EnvironmentMode, SecurityConfig
from crm_security.identity import IdentityCatalog
from crm_security.models import UserRole

# 2025-06-15 12:00:00 UTC
START_TIME = 1750000000.0

HARDENED_SECRET = "k3Rz9vQ2mW8xL5nB7tY4pC6hJ1dF0sGa"


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def demo_config():
    return SecurityConfig.for_mode(
        EnvironmentMode.DEMO,
        login_delay_seconds=0,
        bcrypt_rounds=4,
    )


@pytest.fixture
def hardened_config():
    return SecurityConfig.for_mode(
        EnvironmentMode.HARDENED,
        secret_key=HARDENED_SECRET,
        bcrypt_rounds=4,
        pbkdf2_iterations=1000,
    )


@pytest.fixture
def identities():
    catalog = IdentityCatalog.seeded(rounds=4)
    catalog.add("admin@x.com", "admin123", role=UserRole.ADMIN, name="Admin", id="42")
    return catalog
