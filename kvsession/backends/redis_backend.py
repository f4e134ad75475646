"""
Session payloads in Redis.

Redis has no notion of buckets, so a bucket is a key namespace: the payload
for session ``abc`` in bucket ``myapp_sessions`` lives at
``myapp_sessions:abc``. Provisioning the bucket writes a metadata marker with
``SET NX``, which is atomic; concurrent store instances may race to create
the same bucket without clobbering one another.

The client instance is thread safe, and connections are attached at the time
a command is executed.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import redis
from pytz import UTC

from .base import KeyValueBackend
from ..exceptions import BackendError, NotFound

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except redis.exceptions.ConnectionError as e:
        raise BackendError(f'{action}: connection failed: {e}') from e
    except redis.exceptions.TimeoutError as e:
        raise BackendError(f'{action}: timed out: {e}') from e
    except (redis.exceptions.RedisError,
            redis.exceptions.RedisClusterException) as e:
        raise BackendError(f'{action}: {e}') from e


class RedisBackend(KeyValueBackend):
    """Stores session payloads as Redis strings, with optional expiry."""

    MARKER = '__bucket__'

    def __init__(self, bucket: str, host: str = 'localhost',
                 port: int = 6379, db: int = 0, cluster: bool = False,
                 password: Optional[str] = None,
                 socket_timeout: Optional[float] = None) -> None:
        """
        Open the connection to Redis.

        Parameters
        ----------
        bucket : str
            Namespace for session keys.
        host : str
        port : int
        db : int
            Logical database; ignored in cluster mode.
        cluster : bool
            If True, connect to a Redis cluster.
        password : str
        socket_timeout : float
            Seconds to wait on a command before giving up. Timeouts are
            raised as :class:`.BackendError`.

        """
        super(RedisBackend, self).__init__(bucket)
        logger.debug('New Redis connection at %s, port %s', host, port)
        with _translate_errors('Could not connect to Redis'):
            if cluster:
                self.r = redis.RedisCluster(host=host, port=port,
                                            password=password,
                                            socket_timeout=socket_timeout)
            else:
                self.r = redis.StrictRedis(host=host, port=port, db=db,
                                           password=password,
                                           socket_timeout=socket_timeout)

    def _key(self, key: str) -> str:
        return f'{self.bucket}:{key}'

    def ensure_bucket(self) -> None:
        """Write the bucket marker, unless another instance already has."""
        metadata = json.dumps({
            'bucket': self.bucket,
            'created': datetime.now(tz=UTC).isoformat()
        })
        with _translate_errors(f'Failed to provision bucket {self.bucket}'):
            created = self.r.set(self._key(self.MARKER), metadata, nx=True)
        if created:
            logger.info('Created session bucket %s', self.bucket)
        else:
            logger.debug('Session bucket %s already exists', self.bucket)

    def get(self, key: str) -> bytes:
        """Get the payload for ``key``."""
        with _translate_errors(f'Failed to get {key}'):
            value: Optional[bytes] = self.r.get(self._key(key))
        if value is None:
            raise NotFound(f'No such session: {key}')
        return value

    def put(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        """Set the payload for ``key``, replacing any existing value."""
        with _translate_errors(f'Failed to put {key}'):
            self.r.set(self._key(key), value, ex=ttl)

    def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key has no effect."""
        with _translate_errors(f'Failed to delete {key}'):
            self.r.delete(self._key(key))
