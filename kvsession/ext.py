"""Flask integration: keeps ``flask.session`` in the session store."""

import logging
from typing import Any, Optional

from flask import Flask, Request, current_app
from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict

from . import app_logging, config
from .domain import SessionRecord
from .exceptions import ConfigurationError
from .store import SessionStore

logger = logging.getLogger(__name__)

EXTENSION = 'kvsession'


class ServerSideSession(CallbackDict, SessionMixin):
    """A Flask session backed by a :class:`.SessionRecord`."""

    def __init__(self, record: SessionRecord) -> None:
        def on_update(session: 'ServerSideSession') -> None:
            session.modified = True

        super(ServerSideSession, self).__init__(record.values, on_update)
        self.record = record
        self.new = record.is_fresh
        self.modified = False


class KVSessionInterface(SessionInterface):
    """Opens and saves Flask sessions with a :class:`.SessionStore`."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def open_session(self, app: Flask, request: Request) -> ServerSideSession:
        """Load the session for ``request``; this never fails."""
        record = self.store.new(request.cookies, self.get_cookie_name(app))
        return ServerSideSession(record)

    def save_session(self, app: Flask, session: SessionMixin,
                     response: Any) -> None:
        """
        Write the session back to the store, if anything changed.

        A session that was cleared during the request is deleted, and its
        cookie expired. Store errors are raised, so that the request fails
        rather than sending a cookie for a session that was not saved.
        """
        record: SessionRecord = session.record    # type: ignore
        if not session.modified and record.max_age > 0:
            return
        if not session and not record.identifier:
            return      # Nothing stored, and nothing to store.
        if not session:
            record.expire()
        record.values = dict(session)
        self.store.save(record, response)
        response.vary.add('Cookie')


class KVSessions(object):
    """
    Keeps Flask sessions in a key-value store.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from kvsession.ext import KVSessions


       def create_web_app() -> Flask:
           app = Flask('someapp')
           app.config.from_pyfile('config.py')
           KVSessions(app)     # Replaces the cookie session interface.
           return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Build the session store and install it on ``app``.

        Parameters not set on the application config are taken from
        :mod:`kvsession.config`. The store (and its bucket) is set up once,
        here, and shared by all requests.
        """
        for key, value in config.defaults().items():
            app.config.setdefault(key, value)
        if str(app.config['SESSION_JSON_LOGS']) == '1':
            app_logging.setup_logger()
        store = SessionStore.from_config(app.config)
        logger.debug('Sessions for %s are kept in %r', app.name,
                     store.backend)
        app.extensions[EXTENSION] = store
        app.session_interface = KVSessionInterface(store)


def current_store() -> SessionStore:
    """Get the :class:`.SessionStore` of the current application."""
    try:
        store: SessionStore = current_app.extensions[EXTENSION]
    except KeyError as e:
        raise ConfigurationError('KVSessions is not set up for this app') \
            from e
    return store
