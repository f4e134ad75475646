"""
Server-side session store.

Session state is kept in a key-value service; only a sealed session
identifier travels to the client, in a cookie. A session is acquired at the
start of a request with :meth:`SessionStore.new`, mutated by the request
handler, and written back with :meth:`SessionStore.save`.

Acquisition is maximally tolerant: a missing, forged, expired, or orphaned
cookie yields a fresh session rather than an error. Saving is strict: any
failure is raised, and the cookie is only written once the session has been
persisted.

There is no locking around a session identifier. If two requests load and
save the same session concurrently, the last save wins, and changes made by
the other request are lost.
"""

import json
import logging
import re
from typing import Any, Mapping, Optional, Sequence

from . import config as default_config
from .backends import BackendFactory, KeyValueBackend, backend_factory
from .codec import IdentifierCodec, generate_identifier, \
    key_pairs_from_secrets
from .domain import CookieOptions, DEFAULT_MAX_AGE, KeyPair, SessionRecord
from .exceptions import CredentialError, DecodeError, EncodeError, \
    NotFound, SessionStoreError, ConfigurationError

logger = logging.getLogger(__name__)


class SessionStore(object):
    """
    Mints, loads, saves and deletes sessions.

    All attributes are fixed at construction, so a single instance may be
    shared by all request threads without locking.
    """

    def __init__(self, key_prefix: str, key_pairs: Sequence[KeyPair],
                 backend: BackendFactory,
                 options: Optional[CookieOptions] = None) -> None:
        """
        Set up the codec, and provision the session bucket.

        Parameters
        ----------
        key_prefix : str
            Namespace root; sessions are kept in ``<key_prefix>_sessions``.
        key_pairs : list
            Of :class:`.KeyPair`, primary first.
        backend : callable
            Accepts a bucket name and returns a :class:`.KeyValueBackend`.
        options : :class:`.CookieOptions`
            Defaults for new sessions, including the expiry policy.

        Raises
        ------
        :class:`.BackendError`
            Raised if the bucket cannot be provisioned.

        """
        if not key_prefix:
            raise ConfigurationError('A key prefix is required')
        self._key_prefix = key_prefix
        self._options = options if options is not None else CookieOptions()
        default_max_age = self._options.max_age
        if default_max_age <= 0:
            default_max_age = DEFAULT_MAX_AGE
        self._codec = IdentifierCodec(key_pairs, max_age=default_max_age)
        self._backend = backend(f'{key_prefix}_sessions')
        self._backend.ensure_bucket()

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) \
            -> 'SessionStore':
        """
        Build a store from configuration parameters.

        Parameters
        ----------
        config : dict-like
            Defaults to :mod:`kvsession.config`. Cookie attributes are read
            from the ``SESSION_COOKIE_*`` parameters used by Flask.

        """
        if config is None:
            config = default_config.defaults()
        raw = config.get('SESSION_KEY_PAIRS') or ''
        if isinstance(raw, (str, bytes)):
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8')
            secrets = [s for s in re.split(r'[\s,]+', raw) if s]
        else:
            secrets = list(raw)
        try:
            duration = int(config.get('SESSION_DURATION', DEFAULT_MAX_AGE))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'Invalid session duration: {e}') from e
        options = CookieOptions(
            path=config.get('SESSION_COOKIE_PATH') or '/',
            domain=config.get('SESSION_COOKIE_DOMAIN') or None,
            max_age=duration,
            secure=bool(config.get('SESSION_COOKIE_SECURE', False)),
            http_only=bool(config.get('SESSION_COOKIE_HTTPONLY', True)),
            same_site=config.get('SESSION_COOKIE_SAMESITE') or None
        )
        return cls(config.get('SESSION_KEY_PREFIX', 'app'),
                   key_pairs_from_secrets(*secrets),
                   backend_factory(config),
                   options)

    @property
    def key_prefix(self) -> str:
        """Namespace root for this application."""
        return self._key_prefix

    @property
    def options(self) -> CookieOptions:
        """Default cookie attributes and expiry policy."""
        return self._options

    @property
    def backend(self) -> KeyValueBackend:
        """The backend bound to this store's bucket."""
        return self._backend

    @property
    def codec(self) -> IdentifierCodec:
        """Seals and unseals session identifiers."""
        return self._codec

    def new(self, cookies: Mapping[str, str], name: str) -> SessionRecord:
        """
        Get the session for a request.

        Parameters
        ----------
        cookies : dict-like
            Cookies sent with the request.
        name : str
            Name of the session cookie.

        Returns
        -------
        :class:`.SessionRecord`
            The stored session if the cookie is valid and the session exists;
            otherwise a fresh session with no identifier. This method never
            raises.

        """
        token = cookies.get(name)
        if not token:
            logger.debug('No session cookie %s', name)
            return self._fresh(name)

        try:
            identifier = self._codec.unseal(name, token)
            record = self.load(SessionRecord(name, self._options,
                                             identifier=identifier,
                                             is_fresh=False))
        except CredentialError as e:
            logger.debug('Invalid session cookie %s: %s', name, e)
        except (NotFound, DecodeError) as e:
            logger.debug('Could not load session: %s', e)
        except SessionStoreError as e:
            logger.error('Could not load session; starting a new one: %s', e)
        else:
            return record
        return self._fresh(name)

    def load(self, record: SessionRecord) -> SessionRecord:
        """
        Load stored values into ``record``.

        The record must have an identifier, and its values should be empty:
        stored values are merged in, and existing keys are not cleared.

        Raises
        ------
        :class:`.NotFound`
            Raised if there is no stored session for the identifier.
        :class:`.DecodeError`
            Raised if the stored payload is not a JSON object.
        :class:`.BackendError`

        """
        payload = self._backend.get(record.identifier)
        try:
            values = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise DecodeError(f'Corrupted session {record.identifier}') from e
        if not isinstance(values, dict):
            raise DecodeError(f'Session {record.identifier} is not a mapping')
        record.values.update(values)
        return record

    def save(self, record: SessionRecord, response: Any) -> None:
        """
        Persist ``record`` and write its cookie to ``response``.

        If the record's expiry policy is zero or less, the session is deleted
        instead (see :meth:`.delete`).

        Parameters
        ----------
        record : :class:`.SessionRecord`
        response : object
            Anything with the ``set_cookie`` method of a werkzeug response.

        Raises
        ------
        :class:`.EncodeError`
            Raised if the session values cannot be encoded as JSON.
        :class:`.BackendError`
            Raised if the session cannot be stored. No cookie is written.

        """
        if record.max_age <= 0:
            self.delete(record, response)
            return
        if record.deleted:
            raise SessionStoreError('Cannot save a deleted session')

        if not record.identifier:
            record.identifier = generate_identifier()
        payload = self._encode(record)
        self._backend.put(record.identifier, payload, ttl=record.max_age)
        token = self._codec.seal(record.name, record.identifier,
                                 max_age=record.max_age)
        logger.debug('Saved session %s', record.identifier)
        self._set_cookie(response, record.name, token, record.options)

    def delete(self, record: SessionRecord, response: Any) -> None:
        """
        Delete the stored session, and clear its cookie.

        Deleting a session that is not (or no longer) stored is not an error.
        """
        if record.identifier:
            self._backend.delete(record.identifier)
            logger.debug('Deleted session %s', record.identifier)
        record.deleted = True
        self._set_cookie(response, record.name, '',
                         record.options.replace(max_age=0))

    def _fresh(self, name: str) -> SessionRecord:
        return SessionRecord(name, self._options)

    def _encode(self, record: SessionRecord) -> bytes:
        values = {}
        for key, value in record.values.items():
            if isinstance(key, str):
                values[key] = value
            else:
                logger.warning('Dropped session value with %s key',
                               type(key).__name__)
        try:
            return json.dumps(values).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise EncodeError(f'Cannot encode session values: {e}') from e

    def _set_cookie(self, response: Any, name: str, value: str,
                    options: CookieOptions) -> None:
        response.set_cookie(name, value,
                            max_age=options.max_age,
                            path=options.path,
                            domain=options.domain,
                            secure=options.secure,
                            httponly=options.http_only,
                            samesite=options.same_site)
