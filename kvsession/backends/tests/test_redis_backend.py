"""Tests for :mod:`kvsession.backends.redis_backend`."""

import json
from unittest import TestCase, mock

from redis import exceptions as redis_exceptions

from .. import redis_backend
from ...exceptions import BackendError, NotFound


class RedisTestCase(TestCase):
    """Redis is mocked at the module level."""

    def setUp(self):
        """Patch the redis client."""
        patcher = mock.patch(f'{redis_backend.__name__}.redis')
        self.mock_redis = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_redis.exceptions = redis_exceptions
        self.connection = mock.MagicMock()
        self.mock_redis.StrictRedis.return_value = self.connection
        self.mock_redis.RedisCluster.return_value = self.connection


class TestConnect(RedisTestCase):
    """The backend opens a connection to Redis."""

    def test_standalone(self):
        """By default, a standalone Redis server is used."""
        backend = redis_backend.RedisBackend('foo_sessions', host='redis',
                                             port=1234, db=4)
        self.mock_redis.StrictRedis.assert_called_once_with(
            host='redis', port=1234, db=4, password=None,
            socket_timeout=None
        )
        self.assertIs(backend.r, self.connection)
        self.assertEqual(self.mock_redis.RedisCluster.call_count, 0)

    def test_cluster(self):
        """A Redis cluster may be used instead."""
        redis_backend.RedisBackend('foo_sessions', host='redis', port=7000,
                                   cluster=True, socket_timeout=2.0)
        self.mock_redis.RedisCluster.assert_called_once_with(
            host='redis', port=7000, password=None, socket_timeout=2.0
        )

    def test_cluster_unavailable(self):
        """Failure to reach the cluster is a :class:`.BackendError`."""
        self.mock_redis.RedisCluster.side_effect = \
            redis_exceptions.RedisClusterException('no nodes')
        with self.assertRaises(BackendError):
            redis_backend.RedisBackend('foo_sessions', cluster=True)


class TestEnsureBucket(RedisTestCase):
    """The bucket is provisioned with an atomic marker."""

    def test_create(self):
        """The marker is written only if absent."""
        self.connection.set.return_value = True
        redis_backend.RedisBackend('foo_sessions').ensure_bucket()
        args, kwargs = self.connection.set.call_args
        self.assertEqual(args[0], 'foo_sessions:__bucket__')
        self.assertEqual(json.loads(args[1])['bucket'], 'foo_sessions')
        self.assertEqual(kwargs, {'nx': True})

    def test_already_exists(self):
        """Another instance having created the bucket is not an error."""
        self.connection.set.return_value = None
        redis_backend.RedisBackend('foo_sessions').ensure_bucket()

    def test_connection_failed(self):
        """:class:`.BackendError` is raised if Redis is unreachable."""
        self.connection.set.side_effect = redis_exceptions.ConnectionError
        with self.assertRaises(BackendError):
            redis_backend.RedisBackend('foo_sessions').ensure_bucket()


class TestOperations(RedisTestCase):
    """Get, put and delete are namespaced by bucket."""

    def setUp(self):
        """Create a backend."""
        super(TestOperations, self).setUp()
        self.backend = redis_backend.RedisBackend('foo_sessions')

    def test_get(self):
        """The stored payload is returned."""
        self.connection.get.return_value = b'{"cart": "3"}'
        self.assertEqual(self.backend.get('fooid'), b'{"cart": "3"}')
        self.connection.get.assert_called_once_with('foo_sessions:fooid')

    def test_get_missing(self):
        """:class:`.NotFound` is raised for a missing key."""
        self.connection.get.return_value = None
        with self.assertRaises(NotFound):
            self.backend.get('fooid')

    def test_put(self):
        """The payload is set with an expiry."""
        self.backend.put('fooid', b'{}', ttl=60)
        self.connection.set.assert_called_once_with('foo_sessions:fooid',
                                                    b'{}', ex=60)

    def test_put_without_expiry(self):
        """An entry without a TTL does not expire."""
        self.backend.put('fooid', b'{}')
        self.connection.set.assert_called_once_with('foo_sessions:fooid',
                                                    b'{}', ex=None)

    def test_delete(self):
        """The key is deleted."""
        self.connection.delete.return_value = 0
        self.backend.delete('fooid')
        self.connection.delete.assert_called_once_with('foo_sessions:fooid')

    def test_timeout(self):
        """A timeout is a :class:`.BackendError`, and is not retried."""
        self.connection.set.side_effect = redis_exceptions.TimeoutError
        with self.assertRaises(BackendError):
            self.backend.put('fooid', b'{}')
        self.assertEqual(self.connection.set.call_count, 1)

    def test_other_failure(self):
        """Any other Redis failure is a :class:`.BackendError`."""
        self.connection.get.side_effect = redis_exceptions.ResponseError
        with self.assertRaises(BackendError):
            self.backend.get('fooid')
