"""Core concepts of the session store: records, cookie options, key pairs."""

from typing import Any, Dict, List, NamedTuple, Optional, Union

JSONValue = Union[None, bool, int, float, str,
                  List['JSONValue'], Dict[str, 'JSONValue']]
"""A value that survives a round trip through JSON."""

SessionValues = Dict[str, JSONValue]

DEFAULT_MAX_AGE = 86400 * 30
"""Thirty days, in seconds."""


class CookieOptions(NamedTuple):
    """Attributes of the session cookie, and the session expiry policy."""

    path: str = '/'
    domain: Optional[str] = None

    max_age: int = DEFAULT_MAX_AGE
    """
    Lifetime of the session in seconds.

    Applies both to the cookie and to the backend entry. Zero or less means
    that the session should be deleted immediately.
    """

    secure: bool = False
    http_only: bool = True
    same_site: Optional[str] = None

    def replace(self, **changes: Any) -> 'CookieOptions':
        """Get a copy of these options with some attributes changed."""
        return self._replace(**changes)


class KeyPair(NamedTuple):
    """Symmetric keys used to authenticate and encrypt session tokens."""

    auth_key: bytes
    enc_key: bytes


class SessionRecord(object):
    """
    The mutable state of one session, for the duration of one request.

    A record is owned by exactly one request handler. It is created by
    :meth:`.SessionStore.new`, mutated by the handler, and written back (or
    deleted) by :meth:`.SessionStore.save`.
    """

    def __init__(self, name: str, options: CookieOptions,
                 identifier: str = '',
                 values: Optional[SessionValues] = None,
                 is_fresh: bool = True) -> None:
        self.name = name
        self.options = options
        self.values: SessionValues = values if values is not None else {}
        self.is_fresh = is_fresh
        self.deleted = False
        self._identifier = identifier

    @property
    def identifier(self) -> str:
        """Opaque session ID; empty until the session is first saved."""
        return self._identifier

    @identifier.setter
    def identifier(self, value: str) -> None:
        if self._identifier and value != self._identifier:
            raise ValueError('Session identifier cannot be changed')
        self._identifier = value

    @property
    def max_age(self) -> int:
        """Expiry policy, in seconds. Zero or less means delete."""
        return self.options.max_age

    @max_age.setter
    def max_age(self, value: int) -> None:
        self.options = self.options.replace(max_age=value)

    def expire(self) -> None:
        """Mark the session for deletion on the next save (e.g. on logout)."""
        self.max_age = 0

    def __repr__(self) -> str:
        return (f'SessionRecord(name={self.name!r}, fresh={self.is_fresh},'
                f' keys={sorted(map(str, self.values))!r})')
