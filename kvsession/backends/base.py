"""Interface to the key-value service that holds session payloads."""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueBackend(ABC):
    """
    A durable mapping from session identifier to an opaque payload.

    Each store uses one bucket, named after the application. Implementations
    must be safe for concurrent use, must not retry failed operations, and
    must raise :class:`.BackendError` for I/O, connectivity or timeout
    failures.
    """

    def __init__(self, bucket: str) -> None:
        self.bucket = bucket

    @abstractmethod
    def ensure_bucket(self) -> None:
        """
        Create the bucket if it does not already exist.

        Must be idempotent, and must tolerate concurrent attempts to create
        the same bucket.
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Get the payload stored under ``key``.

        Raises
        ------
        :class:`.NotFound`
            Raised if there is no entry for ``key``.
        :class:`.BackendError`

        """

    @abstractmethod
    def put(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        """
        Store ``value`` under ``key``, overwriting any existing entry.

        Parameters
        ----------
        key : str
        value : bytes
        ttl : int
            If given, the entry expires after this many seconds.

        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the entry for ``key``; an absent key is not an error."""

    def __repr__(self) -> str:
        return f'{type(self).__name__}(bucket={self.bucket!r})'
