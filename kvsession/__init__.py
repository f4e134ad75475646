"""
Server-side web sessions, kept in a key-value store.

Session data never leaves the server: the client holds only a cookie with a
sealed (encrypted and signed) session identifier. See :mod:`.store`.
"""

from .domain import CookieOptions, KeyPair, SessionRecord
from .codec import IdentifierCodec, key_pairs_from_secrets
from .store import SessionStore

__all__ = ('CookieOptions', 'IdentifierCodec', 'KeyPair', 'SessionRecord',
           'SessionStore', 'key_pairs_from_secrets')
