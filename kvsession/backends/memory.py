"""In-process session payloads, for development and testing."""

import threading
import time
from typing import Dict, Optional, Tuple

from .base import KeyValueBackend
from ..exceptions import BackendError, NotFound

Entry = Tuple[bytes, Optional[float]]

_buckets: Dict[str, Dict[str, Entry]] = {}
_lock = threading.RLock()


class MemoryBackend(KeyValueBackend):
    """
    Holds payloads in a dict, shared by all instances for the same bucket.

    Expired entries are dropped when they are next read, and swept from the
    bucket whenever a payload is stored.
    """

    def _entries(self) -> Dict[str, Entry]:
        try:
            return _buckets[self.bucket]
        except KeyError as e:
            raise BackendError(f'No such bucket: {self.bucket}') from e

    def ensure_bucket(self) -> None:
        """Create the bucket, if it does not already exist."""
        with _lock:
            _buckets.setdefault(self.bucket, {})

    def get(self, key: str) -> bytes:
        """Get the payload for ``key``."""
        with _lock:
            entries = self._entries()
            try:
                value, expires = entries[key]
            except KeyError as e:
                raise NotFound(f'No such session: {key}') from e
            if expires is not None and expires <= time.monotonic():
                del entries[key]
                raise NotFound(f'No such session: {key}')
        return value

    def put(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        """Set the payload for ``key``."""
        now = time.monotonic()
        expires = now + ttl if ttl is not None else None
        with _lock:
            entries = self._entries()
            for stale in [k for k, (_, exp) in entries.items()
                          if exp is not None and exp <= now]:
                del entries[stale]
            entries[key] = (value, expires)

    def delete(self, key: str) -> None:
        """Delete ``key``, if present."""
        with _lock:
            self._entries().pop(key, None)

    def drop_bucket(self) -> None:
        """Remove the bucket and everything in it."""
        with _lock:
            _buckets.pop(self.bucket, None)
