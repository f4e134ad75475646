"""Default configuration for the session store, read from the environment."""

import os
from typing import Any, Dict

SESSION_BACKEND = os.environ.get('SESSION_BACKEND', 'redis')
"""Which key-value service holds sessions: ``redis`` or ``memory``."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')
REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD')
REDIS_TIMEOUT = os.environ.get('REDIS_TIMEOUT')
"""Seconds to wait on a Redis command. Blank means wait indefinitely."""

SESSION_KEY_PREFIX = os.environ.get('SESSION_KEY_PREFIX', 'app')
"""Sessions are kept in the bucket ``<SESSION_KEY_PREFIX>_sessions``."""

SESSION_KEY_PAIRS = os.environ.get('SESSION_KEY_PAIRS')
"""
Secrets used to seal session cookies, separated by commas or whitespace.

Given as ``auth,enc`` pairs, newest first: ``auth1,enc1,auth0,enc0``. Put a
new pair at the front to rotate keys; drop the last pair once cookies sealed
with it have expired.
"""

SESSION_DURATION = os.environ.get('SESSION_DURATION', str(86400 * 30))
"""Default session lifetime in seconds."""

SESSION_JSON_LOGS = os.environ.get('SESSION_JSON_LOGS', '0')


def defaults() -> Dict[str, Any]:
    """Get the default configuration as a dict."""
    return {key: value for key, value in globals().items() if key.isupper()}
