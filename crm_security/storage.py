"""
Secure Key-Value Storage
========================

SecureStore persists JSON-serializable values under string keys, optionally
encrypted with the cipher selected from configuration. The persistent area is
a pluggable backend:
- MemoryStorage: in-process dict, with an optional byte quota
- FileStorage: a single JSON file, rewritten atomically on every mutation

SecureStore never raises; failures are logged and reported as False/None.
FileStorage assumes a single writer. Two processes sharing one file get no
ordering guarantee.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import os
import json
import logging
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from crm_security.crypto import Cipher
from crm_security.exceptions import CipherError, StorageError

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Persistent string area owned by a SecureStore."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the raw value, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Write a raw value. Raises StorageError on failure."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key if present."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every key."""


class MemoryStorage(StorageBackend):
    """In-memory storage for development/testing."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = len(key.encode('utf-8')) + len(value.encode('utf-8'))
        for k, v in self._data.items():
            if k != key:
                total += len(k.encode('utf-8')) + len(v.encode('utf-8'))
        return total

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageError("Storage quota exceeded", key=key)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self):
        return list(self._data)


class FileStorage(StorageBackend):
    """JSON-file storage. Every write replaces the file atomically."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read storage file: {type(e).__name__}") from e
        if not isinstance(data, dict):
            raise StorageError("Storage file is not a JSON object")
        return data

    def _dump(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix='.crm-store-')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write storage file: {type(e).__name__}") from e

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)

    def clear(self) -> None:
        self._dump({})


class SecureStore:
    """Encrypted JSON values over a StorageBackend"""

    def __init__(self, backend: StorageBackend, cipher: Cipher):
        """
        Args:
            backend: Persistent area (memory or file)
            cipher: Cipher selected for the environment mode
        """
        self.backend = backend
        self.cipher = cipher
        self._lock = threading.Lock()

    @staticmethod
    def _serialize(value: Any) -> str:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        return json.dumps(value)

    def set_item(self, key: str, value: Any, encrypt: bool = True) -> bool:
        """
        Store a value.

        Args:
            key: Storage key
            value: JSON-serializable value or pydantic model
            encrypt: Encrypt with the configured cipher

        Returns:
            True if the value was written
        """
        try:
            raw = self._serialize(value)
            if encrypt:
                raw = self.cipher.encrypt(raw)
            with self._lock:
                self.backend.set(key, raw)
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"Value for key '{key}' is not serializable: {e}")
        except StorageError as e:
            logger.error(f"Failed to store key '{key}': {e.message}")
        return False

    def get_item(
        self,
        key: str,
        encrypted: bool = True,
        model: Optional[Type[BaseModel]] = None
    ) -> Any:
        """
        Read a value.

        Args:
            key: Storage key
            encrypted: Whether the value was stored encrypted
            model: Optional pydantic model to validate the value into

        Returns:
            The stored value, or None if absent or unreadable
        """
        try:
            with self._lock:
                raw = self.backend.get(key)
            if raw is None:
                return None
            if encrypted:
                raw = self.cipher.decrypt(raw)
            value = json.loads(raw)
            if model is not None:
                return model.model_validate(value)
            return value
        except CipherError:
            logger.warning(f"Failed to decrypt key '{key}'")
        except (ValueError, PydanticValidationError):
            logger.warning(f"Stored value for key '{key}' is corrupt")
        except StorageError as e:
            logger.error(f"Failed to read key '{key}': {e.message}")
        return None

    def remove_item(self, key: str):
        """Remove a value. Failures are logged, never raised."""
        try:
            with self._lock:
                self.backend.remove(key)
        except StorageError as e:
            logger.error(f"Failed to remove key '{key}': {e.message}")

    def clear(self):
        """Remove every value. Failures are logged, never raised."""
        try:
            with self._lock:
                self.backend.clear()
        except StorageError as e:
            logger.error(f"Failed to clear storage: {e.message}")


def build_backend(storage_path: Optional[str] = None) -> StorageBackend:
    """File storage when a path is configured, memory otherwise."""
    if storage_path:
        return FileStorage(storage_path)
    return MemoryStorage()


__all__ = [
    'StorageBackend',
    'MemoryStorage',
    'FileStorage',
    'SecureStore',
    'build_backend',
]
