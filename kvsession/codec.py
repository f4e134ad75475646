"""
Generation and sealing of session identifiers.

A session identifier never travels to the client in the clear. It is
encrypted with AES-256-GCM (bound to the cookie name as associated data), and
the ciphertext is carried in a JSON web token signed with HMAC-SHA256. The
audience claim of the token is the cookie name, so a token issued for one
cookie is not accepted for another.

Key material is an ordered list of :class:`.KeyPair`. Tokens are always sealed
with the first (primary) pair; unsealing tries each pair in turn, so that
keys can be rotated without invalidating outstanding cookies.
"""

import binascii
import hashlib
import os
import secrets
import uuid
from base64 import urlsafe_b64decode, urlsafe_b64encode
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

import jwt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pytz import UTC

from .domain import DEFAULT_MAX_AGE, KeyPair
from .exceptions import ConfigurationError, ExpiredToken, IntegrityError

ALGORITHM = 'HS256'
NONCE_SIZE = 12


def generate_identifier() -> str:
    """
    Generate a new, unguessable session identifier.

    Uniqueness is probabilistic (UUID4); identifiers are not checked against
    the backend for collisions.
    """
    return str(uuid.uuid4())


def generate_secret(nbytes: int = 32) -> str:
    """Generate a random URL-safe secret suitable for use as key material."""
    return secrets.token_urlsafe(nbytes)


def key_pairs_from_secrets(*keys: Union[str, bytes]) -> List[KeyPair]:
    """
    Build key pairs from a flat sequence of secrets.

    Parameters
    ----------
    keys : str or bytes
        Authentication and encryption keys, alternating: ``auth0, enc0,
        auth1, enc1, ...``. The first pair is the primary pair.

    Returns
    -------
    list
        Of :class:`.KeyPair`, in the order given.

    Raises
    ------
    :class:`.ConfigurationError`
        Raised if no keys are given, or if the keys do not come in pairs.

    """
    if not keys:
        raise ConfigurationError('At least one key pair is required')
    if len(keys) % 2:
        raise ConfigurationError('Keys must be given as (auth, enc) pairs')
    material = [_to_bytes(key) for key in keys]
    return [KeyPair(auth, enc)
            for auth, enc in zip(material[::2], material[1::2])]


class IdentifierCodec(object):
    """
    Seals and unseals session identifiers.

    The codec holds no mutable state after construction, and may be shared
    freely between threads.
    """

    def __init__(self, key_pairs: Sequence[KeyPair],
                 max_age: int = DEFAULT_MAX_AGE) -> None:
        """
        Derive working keys from the configured key pairs.

        Parameters
        ----------
        key_pairs : list
            Of :class:`.KeyPair`, primary first. Each key is stretched with
            SHA-256, so keys of any length may be used.
        max_age : int
            Default lifetime of sealed tokens, in seconds.

        """
        if not key_pairs:
            raise ConfigurationError('At least one key pair is required')
        self._keys: Tuple[Tuple[bytes, AESGCM], ...] = tuple(
            (_stretch(pair.auth_key), AESGCM(_stretch(pair.enc_key)))
            for pair in key_pairs
        )
        self._max_age = max_age

    def seal(self, name: str, identifier: str,
             max_age: Optional[int] = None) -> str:
        """
        Seal ``identifier`` into a token for the cookie ``name``.

        Parameters
        ----------
        name : str
            Name of the cookie that will carry the token.
        identifier : str
            Session identifier.
        max_age : int
            Lifetime of the token in seconds. If not given (or not positive),
            the default lifetime of the codec is used.

        Returns
        -------
        str
            An opaque, URL-safe token. Sealing the same identifier twice
            yields different tokens.

        """
        auth_key, cipher = self._keys[0]
        nonce = os.urandom(NONCE_SIZE)
        sealed = nonce + cipher.encrypt(nonce, identifier.encode('utf-8'),
                                        name.encode('utf-8'))
        if max_age is None or max_age <= 0:
            max_age = self._max_age
        # No "iat": readers with a slower clock would reject the token.
        claims = {
            'aud': name,
            'sid': urlsafe_b64encode(sealed).decode('ascii').rstrip('='),
            'exp': datetime.now(tz=UTC) + timedelta(seconds=max_age)
        }
        return jwt.encode(claims, auth_key, algorithm=ALGORITHM)

    def unseal(self, name: str, token: str) -> str:
        """
        Recover the session identifier from a token.

        Parameters
        ----------
        name : str
            Name of the cookie that carried the token.
        token : str
            A token produced by :meth:`.seal`.

        Returns
        -------
        str
            The session identifier.

        Raises
        ------
        :class:`.IntegrityError`
            Raised if the token is malformed, was issued for a different
            cookie, or is not authentic under any of the key pairs.
        :class:`.ExpiredToken`
            Raised if the token is authentic but has expired.

        """
        _check_encoding(token)
        for auth_key, cipher in self._keys:
            try:
                claims = jwt.decode(token, auth_key, algorithms=[ALGORITHM],
                                    audience=name,
                                    options={'require': ['aud', 'sid', 'exp']})
            except jwt.exceptions.InvalidSignatureError:
                continue    # Try the next (older) key pair.
            except jwt.exceptions.ExpiredSignatureError as e:
                raise ExpiredToken('Session token has expired') from e
            except jwt.exceptions.InvalidTokenError as e:
                raise IntegrityError(f'Malformed session token: {e}') from e
            return _open(cipher, name, claims['sid'])
        raise IntegrityError('Session token does not match any known key')


def seal(name: str, identifier: str, key_pairs: Sequence[KeyPair]) -> str:
    """Seal ``identifier`` for the cookie ``name`` with the primary key pair."""
    return IdentifierCodec(key_pairs).seal(name, identifier)


def unseal(name: str, token: str, key_pairs: Sequence[KeyPair]) -> str:
    """Unseal a token for the cookie ``name``, trying each key pair."""
    return IdentifierCodec(key_pairs).unseal(name, token)


def _check_encoding(token: str) -> None:
    # Each segment must be canonical base64url, so that no two spellings of
    # one signature are both accepted.
    if not isinstance(token, str) or token.count('.') != 2:
        raise IntegrityError('Malformed session token')
    for segment in token.split('.'):
        try:
            canonical = jwt.utils.base64url_encode(
                jwt.utils.base64url_decode(segment)
            )
        except (TypeError, ValueError, binascii.Error) as e:
            raise IntegrityError('Malformed session token') from e
        if canonical != segment.encode('utf-8'):
            raise IntegrityError('Malformed session token')


def _open(cipher: AESGCM, name: str, sealed: str) -> str:
    try:
        data = urlsafe_b64decode(sealed + '=' * (-len(sealed) % 4))
        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        return cipher.decrypt(nonce, ciphertext,
                              name.encode('utf-8')).decode('utf-8')
    except (TypeError, ValueError, binascii.Error, InvalidTag) as e:
        raise IntegrityError('Session token failed decryption') from e


def _stretch(key: bytes) -> bytes:
    return hashlib.sha256(key).digest()


def _to_bytes(key: Union[str, bytes]) -> bytes:
    if isinstance(key, str):
        return key.encode('utf-8')
    return key
