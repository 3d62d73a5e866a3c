"""
Identity Catalog
================

Known identities for the local session controller. Passwords are kept only
as bcrypt hashes; unknown emails still pay for one bcrypt check so response
timing does not reveal which accounts exist.

Author: jetgause
Created: 2025-12-12
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

import bcrypt

from crm_security.models import UserProfile, UserRole

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72

# Demo accounts available out of the box
SEED_IDENTITIES = (
    ("1", "Administrador", "admin@uniga.com", "admin123", UserRole.ADMIN),
    ("2", "Gerente", "gerente@uniga.com", "gerente123", UserRole.MANAGER),
    ("3", "Vendedor", "vendedor@uniga.com", "vendedor123", UserRole.SALESPERSON),
)


def _password_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


@dataclass(frozen=True)
class Identity:
    """Catalog entry: profile plus password hash."""
    profile: UserProfile
    password_hash: bytes


class IdentityCatalog:
    """In-memory identity set keyed by lowercased email"""

    def __init__(self, rounds: int = 12):
        """
        Args:
            rounds: bcrypt cost factor (4-31)
        """
        self.rounds = rounds
        self._identities: Dict[str, Identity] = {}
        self._lock = threading.Lock()
        self._dummy_hash = bcrypt.hashpw(b"crm-dummy-password", bcrypt.gensalt(rounds=rounds))

    def _hash(self, password: str) -> bytes:
        return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=self.rounds))

    def add(
        self,
        email: str,
        password: str,
        role: UserRole = UserRole.SALESPERSON,
        name: Optional[str] = None,
        id: Optional[str] = None
    ) -> UserProfile:
        """
        Register an identity (replacing any with the same email).

        Returns:
            The stored profile
        """
        key = email.strip().lower()
        profile = UserProfile(
            id=id or str(uuid.uuid4()),
            name=name or key.split("@")[0],
            email=key,
            role=role,
        )
        with self._lock:
            self._identities[key] = Identity(profile=profile, password_hash=self._hash(password))
        logger.debug(f"Identity registered: {profile.id} ({profile.role.value})")
        return profile

    def remove(self, email: str) -> bool:
        with self._lock:
            return self._identities.pop(email.strip().lower(), None) is not None

    def get(self, email: str) -> Optional[UserProfile]:
        identity = self._identities.get(email.strip().lower())
        return identity.profile if identity else None

    def authenticate(self, email: str, password: str) -> Optional[UserProfile]:
        """
        Match credentials.

        Args:
            email: Login email (case-insensitive)
            password: Plain text password

        Returns:
            The matching profile, or None
        """
        identity = self._identities.get(email.strip().lower())
        password_bytes = _password_bytes(password)

        if identity is None:
            bcrypt.checkpw(password_bytes, self._dummy_hash)
            return None

        try:
            if bcrypt.checkpw(password_bytes, identity.password_hash):
                return identity.profile
        except ValueError as e:
            logger.error(f"Password verification failed: {e}")
        return None

    def __len__(self) -> int:
        return len(self._identities)

    def __contains__(self, email: str) -> bool:
        return email.strip().lower() in self._identities

    @classmethod
    def seeded(cls, rounds: int = 12) -> 'IdentityCatalog':
        """Catalog preloaded with the admin, manager and salesperson demo accounts."""
        catalog = cls(rounds=rounds)
        for id_, name, email, password, role in SEED_IDENTITIES:
            catalog.add(email, password, role=role, name=name, id=id_)
        return catalog


__all__ = [
    'Identity',
    'IdentityCatalog',
    'SEED_IDENTITIES',
]
