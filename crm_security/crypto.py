"""
Symmetric Encryption Primitives
===============================

Two ciphers behind one interface, selected explicitly from configuration:
- ReversibleEncodingCipher: demo mode. A tagged base64 encoding that is easy
  to inspect while debugging. It is NOT a security boundary.
- AESGCMCipher: hardened mode. AES-256-GCM with a key derived by PBKDF2
  from the configured secret.

build_cipher() never falls back from the hardened cipher to the encoding.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import base64
import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from crm_security.config import SecurityConfig, EnvironmentMode
from crm_security.exceptions import CipherError, ConfigurationError

logger = logging.getLogger(__name__)

NONCE_SIZE = 12  # bytes, GCM standard
KEY_SIZE = 32  # bytes, AES-256


class Cipher(ABC):
    """Symmetric string cipher."""

    name = "abstract"

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt text into an ASCII-safe string."""

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a string produced by encrypt().

        Raises:
            CipherError: on wrong key or corrupt input
        """


class ReversibleEncodingCipher(Cipher):
    """Demo-mode encoding: base64(plaintext + '::' + key fingerprint)."""

    name = "reversible-encoding"
    SEPARATOR = "::"

    def __init__(self, key: str):
        self._fingerprint = hashlib.sha256(key.encode('utf-8')).hexdigest()[:16]

    def encrypt(self, plaintext: str) -> str:
        combined = f"{plaintext}{self.SEPARATOR}{self._fingerprint}"
        return base64.urlsafe_b64encode(combined.encode('utf-8')).decode('ascii')

    def decrypt(self, ciphertext: str) -> str:
        try:
            decoded = base64.urlsafe_b64decode(ciphertext.encode('ascii')).decode('utf-8')
        except (ValueError, UnicodeError) as e:
            raise CipherError("Malformed encoded payload") from e

        text, sep, fingerprint = decoded.rpartition(self.SEPARATOR)
        if not sep or not hmac.compare_digest(fingerprint, self._fingerprint):
            raise CipherError("Payload was encoded under a different key")
        return text


class AESGCMCipher(Cipher):
    """AES-256-GCM; output is urlsafe base64 of nonce || ciphertext+tag."""

    name = "aes-256-gcm"

    def __init__(self, key: bytes):
        """
        Args:
            key: 32-byte encryption key
        """
        if len(key) != KEY_SIZE:
            raise ValueError("AES-256 requires a 32-byte key")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_secret(cls, secret: str, salt: str, iterations: int = 100000) -> 'AESGCMCipher':
        """Derive the AES key from a secret with PBKDF2-HMAC-SHA256."""
        return cls(derive_key(secret, salt.encode('utf-8'), iterations))

    def encrypt(self, plaintext: str) -> str:
        nonce = secrets.token_bytes(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)
        return base64.urlsafe_b64encode(nonce + ciphertext).decode('ascii')

    def decrypt(self, ciphertext: str) -> str:
        try:
            raw = base64.urlsafe_b64decode(ciphertext.encode('ascii'))
        except (ValueError, UnicodeError) as e:
            raise CipherError("Malformed ciphertext") from e

        if len(raw) <= NONCE_SIZE:
            raise CipherError("Ciphertext too short")

        nonce, body = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            return self._aesgcm.decrypt(nonce, body, None).decode('utf-8')
        except (InvalidTag, UnicodeDecodeError) as e:
            raise CipherError("Decryption failed - invalid ciphertext or key") from e


def derive_key(secret: str, salt: bytes, iterations: int = 100000, length: int = KEY_SIZE) -> bytes:
    """
    Derive an encryption key from a secret using PBKDF2.

    Args:
        secret: Secret to derive from
        salt: Salt value
        iterations: PBKDF2 iteration count
        length: Desired key length in bytes

    Returns:
        Derived key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret.encode('utf-8'))


def build_cipher(config: SecurityConfig) -> Cipher:
    """
    Select the cipher for the configured mode.

    Raises:
        ConfigurationError: if hardened mode has no key material
    """
    if config.mode == EnvironmentMode.HARDENED:
        secret = config.encryption_key or config.secret_key
        if not secret:
            raise ConfigurationError("Hardened mode requires an encryption key")
        logger.info("Using AES-256-GCM storage cipher")
        return AESGCMCipher.from_secret(secret, config.key_salt, config.pbkdf2_iterations)

    logger.warning("Using reversible storage encoding (demo mode, not encryption)")
    return ReversibleEncodingCipher(config.encryption_key or config.secret_key)


__all__ = [
    'Cipher',
    'ReversibleEncodingCipher',
    'AESGCMCipher',
    'derive_key',
    'build_cipher',
]
