"""Integration tests for the session store with Redis."""

import os
import uuid
from unittest import TestCase

from werkzeug.wrappers import Response

from ..redis_backend import RedisBackend
from ...domain import KeyPair
from ...exceptions import NotFound
from ...store import SessionStore


class TestRedisIntegration(TestCase):
    """
    Test integration with a running Redis.

    Start one with ``docker run -d -p 6379:6379 redis``, and run with
    ``WITH_INTEGRATION=1``.
    """

    __test__ = int(bool(os.environ.get('WITH_INTEGRATION', False)))

    def setUp(self):
        """Create a store in a bucket of its own."""
        host = os.environ.get('REDIS_HOST', 'localhost')
        port = int(os.environ.get('REDIS_PORT', '6379'))
        self.store = SessionStore(
            f'test{uuid.uuid4().hex}',
            [KeyPair(b'authkey', b'enckey')],
            lambda bucket: RedisBackend(bucket, host=host, port=port)
        )

    def test_lifecycle(self):
        """A session is created, loaded, and deleted."""
        record = self.store.new({}, 'sid')
        record.values['cart'] = '3'
        response = Response()
        self.store.save(record, response)
        token = response.headers['Set-Cookie'].split(';')[0].split('=', 1)[1]

        loaded = self.store.new({'sid': token}, 'sid')
        self.assertFalse(loaded.is_fresh)
        self.assertEqual(loaded.values, {'cart': '3'})
        self.assertGreater(self.store.backend.r.ttl(
            f'{self.store.backend.bucket}:{record.identifier}'
        ), 0)

        loaded.expire()
        self.store.save(loaded, Response())
        with self.assertRaises(NotFound):
            self.store.backend.get(record.identifier)

    def test_ensure_bucket_twice(self):
        """Provisioning an existing bucket is harmless."""
        self.store.backend.ensure_bucket()
