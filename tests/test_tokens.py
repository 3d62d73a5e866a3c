"""
Token Service Tests
===================

Created: 2025-12-12
Author: jetgause
"""

import base64
import json

import pytest

from crm_security.models import TokenType, UserRole
from crm_security.tokens import Token, TokenService


def _b64(data: dict) -> str:
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


@pytest.fixture
def service(demo_config, clock):
    return TokenService(demo_config, clock=clock)


class TestTokenIssuance:
    """Test token generation."""

    def test_verify_immediately(self, service, clock):
        token = service.generate_token({"subject_id": "7", "email": "a@uniga.com", "role": UserRole.ADMIN})
        claims = service.verify_token(token)

        assert claims is not None
        assert claims.subject_id == "7"
        assert claims.email == "a@uniga.com"
        assert claims.role == UserRole.ADMIN
        assert claims.issuer == "crm-app"
        assert claims.token_type == TokenType.ACCESS
        assert claims.expires_at > clock()

    def test_three_part_format(self, service):
        token = service.generate_token({"subject_id": "7"})
        assert len(token.encoded.split(".")) == 3
        assert str(token) == token.encoded

    def test_demo_ttl_is_24_hours(self, service):
        claims = service.verify_token(service.generate_token({"subject_id": "7"}))
        assert claims.expires_at - claims.issued_at == 24 * 60 * 60

    def test_hardened_ttl_is_1_hour(self, hardened_config, clock):
        service = TokenService(hardened_config, clock=clock)
        claims = service.verify_token(service.generate_token({"subject_id": "7"}))
        assert claims.expires_at - claims.issued_at == 60 * 60

    def test_ttl_override(self, service):
        claims = service.verify_token(service.generate_token({"subject_id": "7"}, ttl_seconds=60))
        assert claims.expires_at - claims.issued_at == 60

    def test_refresh_token(self, service):
        claims = service.verify_token(service.generate_refresh_token("7"))
        assert claims.token_type == TokenType.REFRESH
        assert claims.subject_id == "7"
        assert claims.role is None
        assert claims.expires_at - claims.issued_at == 7 * 24 * 60 * 60

    def test_verify_accepts_serialized_string(self, service):
        token = service.generate_token({"subject_id": "7"})
        assert service.verify_token(token.encoded).subject_id == "7"


class TestTokenVerification:
    """Test that every failure returns None."""

    def test_expired_token_rejected(self, service, clock):
        token = service.generate_token({"subject_id": "7"})
        clock.advance(24 * 60 * 60 - 1)
        assert service.verify_token(token) is not None
        clock.advance(1)
        assert service.verify_token(token) is None

    def test_tampered_payload_rejected(self, service):
        token = service.generate_token({"subject_id": "7", "role": "salesperson"})
        forged = Token(token.header, _b64({"sub": "7", "role": "admin"}), token.signature)
        assert service.verify_token(forged) is None

    def test_foreign_signature_rejected(self, service):
        a = service.generate_token({"subject_id": "1"})
        b = service.generate_token({"subject_id": "2"})
        assert service.verify_token(Token(a.header, a.payload, b.signature)) is None

    def test_other_key_rejected(self, service, demo_config, clock):
        other = TokenService(demo_config.with_overrides(secret_key="another-signing-key"), clock=clock)
        assert other.verify_token(service.generate_token({"subject_id": "7"})) is None

    def test_other_issuer_rejected(self, service, demo_config, clock):
        other = TokenService(demo_config.with_overrides(issuer="someone-else"), clock=clock)
        assert other.verify_token(service.generate_token({"subject_id": "7"})) is None

    @pytest.mark.parametrize("value", [None, "", "a.b", "a..c", "a.b.c.d", "x.y.z", 42])
    def test_malformed_rejected(self, service, value):
        assert service.verify_token(value) is None

    def test_missing_subject_rejected(self, service):
        assert service.verify_token(service.generate_token({"email": "a@uniga.com"})) is None


class TestTokenParse:
    """Test Token.parse."""

    def test_parse_three_parts(self):
        assert Token.parse("a.b.c") == Token("a", "b", "c")

    @pytest.mark.parametrize("value", ["a.b", "a.b.c.d", ".b.c", "", None, 1])
    def test_parse_rejects(self, value):
        assert Token.parse(value) is None
