"""
Guarded secret values.

A `GuardedString` keeps a secret (typically a password) encrypted in memory
and only hands out the plaintext to a callback:

    password = GuardedString('s3cret')
    password.access(lambda clear: cursor.execute(sql, (clear,)))

The plaintext exists only for the duration of the callback.
"""
import base64
import hashlib
import hmac
import logging
import os
from collections.abc import Callable
from typing import Any

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

Accessor = Callable[[str], None]

KEY_BITS = 256
NONCE_LENGTH = 12  # 96-bit GCM nonce


class GuardedString:
    """Secret string whose plaintext is only exposed inside `access`.

    The characters are stored UTF-8 encoded and AES-GCM encrypted with a
    random per-instance key. Every write re-encrypts under a fresh nonce.
    `repr` and `str` never reveal the content.
    """

    def __init__(self, chars: str | None = None) -> None:
        self._cipher: AESGCM | None = AESGCM(AESGCM.generate_key(bit_length=KEY_BITS))
        self._nonce = b''
        self._data = b''
        self._read_only = False
        self._disposed = False
        self._encrypt(chars.encode('utf-8') if chars else b'')

    def _encrypt(self, clear_bytes: bytes | bytearray) -> None:
        self._nonce = os.urandom(NONCE_LENGTH)
        self._data = self._cipher.encrypt(self._nonce, bytes(clear_bytes), None)

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise ValueError('Illegal state: GuardedString is disposed')

    def _check_writeable(self) -> None:
        self._check_not_disposed()
        if self._read_only:
            raise ValueError('Illegal state: GuardedString is read-only')

    def _clear_bytes(self) -> bytearray:
        self._check_not_disposed()
        return bytearray(self._cipher.decrypt(self._nonce, self._data, None))

    def access(self, accessor: Accessor) -> None:
        """Invoke `accessor` once with the plaintext.

        Exceptions raised by the accessor propagate unchanged. Nothing the
        accessor returns is passed back to the caller.

        :param accessor: Callable receiving the plaintext as a `str`.
        """
        self._check_not_disposed()
        clear_bytes = self._clear_bytes()
        try:
            clear = clear_bytes.decode('utf-8')
        finally:
            clear_bytes[:] = bytes(len(clear_bytes))
        try:
            accessor(clear)
        finally:
            del clear

    def append_char(self, ch: str) -> None:
        """Append one character to the secret.
        """
        self._check_writeable()
        clear_bytes = self._clear_bytes()
        try:
            clear_bytes += ch.encode('utf-8')
            self._encrypt(clear_bytes)
        finally:
            clear_bytes[:] = bytes(len(clear_bytes))

    def make_read_only(self) -> None:
        """Prevent further modification.
        """
        self._check_not_disposed()
        self._read_only = True

    def is_read_only(self) -> bool:
        self._check_not_disposed()
        return self._read_only

    def copy(self) -> 'GuardedString':
        """Return a writeable copy with its own key.
        """
        self._check_not_disposed()
        clone = GuardedString()
        clear_bytes = self._clear_bytes()
        try:
            clone._encrypt(clear_bytes)
        finally:
            clear_bytes[:] = bytes(len(clear_bytes))
        return clone

    def dispose(self) -> None:
        """Drop the key and the stored secret. Any further use raises `ValueError`.
        """
        self._cipher = None
        self._nonce = b''
        self._data = b''
        self._disposed = True

    def verify_base64_sha1_hash(self, hash_value: str) -> bool:
        """Check the secret against a base64 encoded SHA-1 digest.
        """
        return hmac.compare_digest(self._base64_sha1(), hash_value)

    def _base64_sha1(self) -> str:
        self._check_not_disposed()
        clear_bytes = self._clear_bytes()
        try:
            digest = hashlib.sha1(clear_bytes).digest()
        finally:
            clear_bytes[:] = bytes(len(clear_bytes))
        return base64.b64encode(digest).decode('ascii')

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, GuardedString):
            return NotImplemented
        mine, theirs = self._clear_bytes(), other._clear_bytes()
        try:
            return hmac.compare_digest(bytes(mine), bytes(theirs))
        finally:
            mine[:] = bytes(len(mine))
            theirs[:] = bytes(len(theirs))

    def __hash__(self) -> int:
        return hash(self._base64_sha1())

    def __repr__(self) -> str:
        return 'GuardedString(***)'

    __str__ = __repr__

    def __reduce__(self) -> Any:
        raise TypeError('GuardedString cannot be pickled')


def as_guarded(value: 'GuardedString | str | None') -> 'GuardedString | None':
    """Return `value` as a GuardedString, wrapping a plain string.
    """
    if value is None or isinstance(value, GuardedString):
        return value
    guarded = GuardedString(value)
    guarded.make_read_only()
    return guarded
