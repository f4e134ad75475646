"""
Adapters for the key-value service that holds session payloads.

The store asks a backend factory for a backend bound to its bucket; see
:func:`backend_factory`.
"""

from functools import partial
from typing import Any, Callable, Mapping

from .base import KeyValueBackend
from .memory import MemoryBackend
from .redis_backend import RedisBackend
from ..exceptions import ConfigurationError

BackendFactory = Callable[[str], KeyValueBackend]


def backend_factory(config: Mapping[str, Any]) -> BackendFactory:
    """
    Get a callable that builds the configured backend for a bucket.

    Parameters
    ----------
    config : dict-like
        Uses ``SESSION_BACKEND`` (``redis`` or ``memory``) and, for Redis,
        ``REDIS_HOST``, ``REDIS_PORT``, ``REDIS_DATABASE``, ``REDIS_CLUSTER``,
        ``REDIS_PASSWORD`` and ``REDIS_TIMEOUT``.

    Returns
    -------
    callable
        Accepts a bucket name, and returns a :class:`.KeyValueBackend`.

    """
    kind = str(config.get('SESSION_BACKEND', 'redis')).lower()
    if kind == 'memory':
        return MemoryBackend
    if kind != 'redis':
        raise ConfigurationError(f'Unknown session backend: {kind}')
    try:
        port = int(config.get('REDIS_PORT', '6379'))
        db = int(config.get('REDIS_DATABASE', '0'))
        timeout = config.get('REDIS_TIMEOUT') or None
        socket_timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f'Invalid Redis parameter: {e}') from e
    return partial(RedisBackend,
                   host=config.get('REDIS_HOST', 'localhost'),
                   port=port,
                   db=db,
                   cluster=str(config.get('REDIS_CLUSTER', '0')) == '1',
                   password=config.get('REDIS_PASSWORD') or None,
                   socket_timeout=socket_timeout)
