"""
Object Storage
==============

Filesystem-backed store for case documents (issued award PDFs).

Objects are written once: `put` refuses to replace an existing key, so every
issuance produces a new object and older ones stay available. Download links
are time-limited JWT tokens naming the key.
"""

import hashlib
import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import jwt

from .config import get_settings

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


class StorageError(Exception):
    """Raised when an object cannot be stored or read."""


class ObjectExistsError(StorageError):
    """Raised when writing to a key that already holds an object."""


@dataclass
class StorageMetadata:
    key: str
    size_bytes: int
    sha256: str
    content_type: str


class LocalStorage:
    """Object store rooted at a local directory"""

    def __init__(self, base_path: str, signing_secret: Optional[str] = None):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.signing_secret = signing_secret or get_settings().signing_secret

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    @staticmethod
    def generate_key(*parts: str) -> str:
        """Join path components into a storage key."""
        return "/".join(str(p).strip("/") for p in parts if p)

    @staticmethod
    def award_key(dispute_id: str, issued_at: Optional[datetime] = None) -> str:
        """Key for a newly issued award: <dispute>/award-<epoch ms>-<suffix>.pdf"""
        if issued_at is not None and issued_at.tzinfo is None:
            # Naive datetimes are UTC throughout the service
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        millis = int((issued_at.timestamp() if issued_at else time.time()) * 1000)
        return LocalStorage.generate_key(dispute_id, f"award-{millis}-{uuid.uuid4().hex[:8]}.pdf")

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> StorageMetadata:
        path = self._path_for(key)
        if path.exists():
            raise ObjectExistsError(f"Object already exists: {key}")

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # 'xb' fails if another writer created the file in the meantime
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise ObjectExistsError(f"Object already exists: {key}") from e
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        logger.info(f"Stored {key} ({len(data)} bytes)")
        return StorageMetadata(
            key=key,
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
        )

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise StorageError(f"Object not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def signed_token(self, key: str, expires_in: int) -> str:
        """Create a token granting read access to `key` for `expires_in` seconds."""
        payload = {
            "key": key,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            "type": "download",
        }
        return jwt.encode(payload, self.signing_secret, algorithm=TOKEN_ALGORITHM)

    def resolve_signed_token(self, token: str) -> Optional[str]:
        """Return the key named by a valid, unexpired token, else None."""
        try:
            payload = jwt.decode(token, self.signing_secret, algorithms=[TOKEN_ALGORITHM])
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected download token: {e}")
            return None
        if payload.get("type") != "download":
            return None
        return payload.get("key")


_storage: Optional[LocalStorage] = None


def get_storage() -> LocalStorage:
    """Storage for the configured STORAGE_PATH (recreated when the path changes)."""
    global _storage
    settings = get_settings()
    base_path = os.environ.get("STORAGE_PATH", settings.storage_path)
    if _storage is None or _storage.base_path != Path(base_path).resolve():
        _storage = LocalStorage(base_path, settings.signing_secret)
    return _storage
