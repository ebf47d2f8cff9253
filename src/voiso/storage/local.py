"""
Filesystem-backed object storage.

Objects live at ``<base_dir>/<key>``. Writes go to a temporary file that
is renamed into place, so a reader never sees a partial object. Signed
URLs point back at this service's ``/v1/storage/{key}`` route.
"""
from __future__ import annotations

import mimetypes
import os
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from voiso.core.logging import debug, get_logger
from voiso.storage.base import ObjectStorage, is_valid_key, sign, verify_signature

_LOG = get_logger("voiso.storage")

_CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".webm": "audio/webm",
    ".flac": "audio/flac",
}


class LocalObjectStorage(ObjectStorage):
    """
    Local directory store with HMAC-signed URLs.

    Args:
        base_dir: Root directory, created if missing.
        signing_secret: HMAC key for signed URLs.
        public_base_url: Externally reachable base URL of this service.
        clock: Returns the current unix time; injectable for tests.
    """

    def __init__(
        self,
        base_dir: str | Path,
        signing_secret: str,
        public_base_url: str = "http://localhost:8000",
        clock: Optional[Callable[[], float]] = None,
    ):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._secret = signing_secret
        self._public_base_url = public_base_url.rstrip("/")
        self._clock = clock or time.time

    def _path(self, key: str) -> Path:
        if not is_valid_key(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.base_dir / key

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)
        debug(_LOG, "object_stored", key=key, bytes=len(data), content_type=content_type)
        return key

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(f"Key not found: {key}")
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def get_url(self, key: str, expires_in: int = 3600) -> str:
        if not is_valid_key(key):
            raise ValueError(f"invalid storage key: {key!r}")
        expires = int(self._clock()) + int(expires_in)
        query = urlencode({"expires": expires, "signature": sign(self._secret, key, expires)})
        return f"{self._public_base_url}/v1/storage/{quote(key)}?{query}"

    def verify(self, key: str, expires: int, signature: str) -> bool:
        if not is_valid_key(key):
            return False
        return verify_signature(self._secret, key, expires, signature, self._clock())

    def content_type(self, key: str) -> str:
        suffix = Path(key).suffix.lower()
        if suffix in _CONTENT_TYPES:
            return _CONTENT_TYPES[suffix]
        guessed, _ = mimetypes.guess_type(key)
        return guessed or "application/octet-stream"
