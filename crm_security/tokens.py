"""
Session Token Service
=====================

Issues and verifies signed, expiring session claims as three-part
`header.payload.signature` tokens (HS256 via python-jose).

Limitation: signing and verification run in the same process with the same
key. The scheme catches accidental tampering and enforces expiry and
structure; it does not protect against anyone who can read the running code
and extract the key. It is not a substitute for a trusted backend.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from jose import jwt, JOSEError
from pydantic import ValidationError as PydanticValidationError

from crm_security.config import SecurityConfig
from crm_security.exceptions import TokenError
from crm_security.models import Claims, TokenType

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Token:
    """Opaque three-part token; each part base64url-encoded."""
    header: str
    payload: str
    signature: str

    @property
    def encoded(self) -> str:
        return f"{self.header}.{self.payload}.{self.signature}"

    def __str__(self) -> str:
        return self.encoded

    @classmethod
    def parse(cls, value: Any) -> Optional['Token']:
        """Split a serialized token; None unless it has three non-empty parts."""
        if not isinstance(value, str):
            return None
        parts = value.split(".")
        if len(parts) != 3 or not all(parts):
            return None
        return cls(*parts)


class TokenService:
    """Token issuance and verification"""

    def __init__(self, config: SecurityConfig, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            config: Resolved security configuration (key, TTLs, issuer)
            clock: Returns the current time in seconds (defaults to time.time)
        """
        self.config = config
        self._key = config.secret_key
        self._clock = clock or time.time

    def _now(self) -> int:
        return int(self._clock())

    def _sign(self, claims: Dict[str, Any]) -> Token:
        encoded = jwt.encode(claims, self._key, algorithm=ALGORITHM)
        return Token.parse(encoded)

    @staticmethod
    def _to_jwt_claims(payload: Dict[str, Any]) -> Dict[str, Any]:
        claims = dict(payload)
        if "subject_id" in claims:
            claims["sub"] = str(claims.pop("subject_id"))
        if "token_type" in claims:
            claims["type"] = claims.pop("token_type")
        for name, value in list(claims.items()):
            if hasattr(value, "value"):
                claims[name] = value.value
        return claims

    def generate_token(self, payload: Dict[str, Any], ttl_seconds: Optional[int] = None) -> Token:
        """
        Issue a signed token.

        Args:
            payload: Caller claims (subject_id, email, role, ...)
            ttl_seconds: Lifetime override (defaults to the configured TTL)

        Returns:
            Signed Token
        """
        now = self._now()
        ttl = ttl_seconds if ttl_seconds is not None else self.config.token_ttl_seconds

        claims = self._to_jwt_claims(payload)
        claims.setdefault("type", TokenType.ACCESS.value)
        claims.update({
            "iat": now,
            "exp": now + ttl,
            "iss": self.config.issuer,
        })

        token = self._sign(claims)
        logger.debug(f"Issued {claims['type']} token for subject {claims.get('sub')}")
        return token

    def generate_refresh_token(self, subject_id: str) -> Token:
        """Issue a refresh token with the longer refresh TTL."""
        return self.generate_token(
            {"subject_id": subject_id, "token_type": TokenType.REFRESH},
            ttl_seconds=self.config.refresh_token_ttl_seconds
        )

    def _decode(self, token: Union[Token, str]) -> Claims:
        parsed = token if isinstance(token, Token) else Token.parse(token)
        if parsed is None:
            raise TokenError("Malformed token")

        try:
            decoded = jwt.decode(
                parsed.encoded,
                self._key,
                algorithms=[ALGORITHM],
                issuer=self.config.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except (JOSEError, ValueError) as e:
            raise TokenError("Token rejected") from e

        try:
            claims = Claims(
                subject_id=decoded.get("sub") or "",
                email=decoded.get("email"),
                role=decoded.get("role"),
                issued_at=decoded.get("iat"),
                expires_at=decoded.get("exp"),
                issuer=decoded.get("iss"),
                token_type=decoded.get("type", TokenType.ACCESS.value),
            )
        except PydanticValidationError as e:
            raise TokenError("Token claims rejected") from e

        if claims.expires_at <= self._now():
            raise TokenError("Token expired")

        return claims

    def verify_token(self, token: Union[Token, str, None]) -> Optional[Claims]:
        """
        Verify signature, structure and expiry.

        Every failure returns None; the reason is not surfaced.

        Args:
            token: Token or serialized token

        Returns:
            Claims if valid, otherwise None
        """
        if token is None:
            return None
        try:
            return self._decode(token)
        except TokenError as e:
            logger.debug(f"Token verification failed: {e.message}")
            return None


__all__ = [
    'Token',
    'TokenService',
    'ALGORITHM',
]
