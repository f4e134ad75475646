"""Exceptions raised by the session store."""


class SessionStoreError(RuntimeError):
    """Base class for all session store errors."""


class ConfigurationError(SessionStoreError):
    """A required configuration parameter is missing or malformed."""


class CredentialError(SessionStoreError):
    """The inbound session cookie is missing, malformed, or not authentic."""


class IntegrityError(CredentialError):
    """A sealed token failed authentication against every known key pair."""


class ExpiredToken(CredentialError):
    """A sealed token is authentic, but is past its expiry."""


class NotFound(SessionStoreError):
    """The backend has no entry for the requested session identifier."""


class DecodeError(SessionStoreError):
    """A stored session payload could not be decoded."""


class EncodeError(SessionStoreError):
    """Session values could not be encoded for storage."""


class BackendError(SessionStoreError):
    """Failed to communicate with the key-value service."""
