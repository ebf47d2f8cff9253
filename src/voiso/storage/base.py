"""
Object storage interface and URL signing.

Stored objects are addressed by slash-separated keys such as
``generations/<user_id>/<uuid>.mp3``. Reads from outside the service go
through signed URLs: an HMAC-SHA256 over ``"<key>:<expires>"`` with the
configured secret, checked by verify_signature() before any bytes are
served.

Voices keep their reference audio as a ``storage://<key>`` location so a
fresh URL can be minted each time the provider needs it.
"""
from __future__ import annotations

import hashlib
import hmac
import re
from abc import ABC, abstractmethod
from typing import Optional

STORAGE_SCHEME = "storage://"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*(/[A-Za-z0-9][A-Za-z0-9._-]*)*$")


def is_valid_key(key: str) -> bool:
    """Keys are relative, slash-separated and contain no ``..`` segments."""
    return bool(_KEY_PATTERN.match(key)) and ".." not in key.split("/")


_SAFE_SEGMENT = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{0,63}")


def owner_segment(user_id: str) -> str:
    """
    Key segment for a user id.

    Ids that already form a valid segment (UUIDs and the like) are used
    as-is; anything else (``auth0|abc``, e-mail addresses) is replaced by
    its SHA-256 hex digest.
    """
    if _SAFE_SEGMENT.fullmatch(user_id):
        return user_id
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def storage_ref(key: str) -> str:
    return STORAGE_SCHEME + key


def parse_storage_ref(location: Optional[str]) -> Optional[str]:
    """Key of a ``storage://`` location, None for anything else."""
    if location and location.startswith(STORAGE_SCHEME):
        return location[len(STORAGE_SCHEME):]
    return None


def sign(secret: str, key: str, expires: int) -> str:
    message = f"{key}:{expires}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(secret: str, key: str, expires: int, signature: str, now: float) -> bool:
    """True when the signature matches and ``expires`` is still in the future."""
    if expires < now:
        return False
    return hmac.compare_digest(sign(secret, key, expires), signature)


class ObjectStorage(ABC):
    """Blob store with time-limited signed URLs."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store data under key and return the key."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return stored bytes; FileNotFoundError if missing."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete an object; False if it did not exist."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether key is stored."""

    @abstractmethod
    def get_url(self, key: str, expires_in: int = 3600) -> str:
        """Mint a signed URL valid for expires_in seconds."""

    @abstractmethod
    def verify(self, key: str, expires: int, signature: str) -> bool:
        """Check a signed URL's query parameters."""

    def content_type(self, key: str) -> str:
        return "application/octet-stream"

    def resolve_location(self, location: str, expires_in: int = 3600) -> str:
        """Turn a ``storage://`` location into a signed URL; other URLs pass through."""
        key = parse_storage_ref(location)
        if key is None:
            return location
        return self.get_url(key, expires_in)
