"""KeyedCipher, the one object callers work with.

Binds an engine holding RSA key material to the operations the key may perform: anyone may encrypt and verify,
only a handle with the private key may decrypt and sign. Text helpers layer an encoding and Base64 over the binary
operations.

Typical usage example:

    cipher = KeyedCipher.from_blob(blob)
    c = cipher.encrypt_text("Hi there!")
    r = cipher.decrypt_text(c)
    sig = cipher.sign(b"payload")
    cipher.public_only().verify(b"payload", sig)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import binascii
import logging

from rsacipher.engine import BackendType
from rsacipher.engine import DEFAULT_DIGEST
from rsacipher.engine import DEFAULT_ENCODING
from rsacipher.engine import resolve_digest
from rsacipher.engine import RSAEngine
from rsacipher.errors import InvalidArgument
from rsacipher.errors import InvalidKey
from rsacipher.errors import Unauthorized
from rsacipher.keys import RSAKeyParameters
from rsacipher.native import NativeEngine

logger = logging.getLogger(__name__)


def _require_bytes(value, name: str) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidArgument(f"{name} must be bytes, not {type(value).__name__}.")
    return bytes(value)


class KeyedCipher:
    """RSA key handle gating operations on private key availability.

    The handle is either PublicOnly or PrivateCapable, decided at construction and never changed. Operations are
    delegated to the engine, which may be shared between threads as the handle never mutates it.

    Attributes:
        engine: The engine owning the key material.
        has_private: Whether the key includes its private component.
    """

    def __init__(self, engine: RSAEngine) -> None:
        """Wraps an already initialized engine.

        Args:
            engine: The engine holding the key.

        Raises:
            InvalidArgument: If the engine is None or does not implement RSAEngine.
        """
        if engine is None:
            raise InvalidArgument("Engine handle must not be None.")
        if not isinstance(engine, RSAEngine):
            raise InvalidArgument(f"{type(engine).__name__} does not implement the RSA engine protocol.")
        self._engine = engine
        self._has_private = not engine.public_only
        logger.debug("Created %d-bit %s key handle on %s", engine.key_size,
                     "private" if self._has_private else "public", type(engine).__name__)

    @classmethod
    def from_engine(cls, engine: RSAEngine) -> "KeyedCipher":
        """Same as calling the class, named for symmetry with the other constructors."""
        return cls(engine)

    @classmethod
    def from_key(cls, key: RSAKeyParameters, backend: BackendType = NativeEngine) -> "KeyedCipher":
        """Creates a handle from structured key fields.

        Args:
            key: The public or private key descriptor.
            backend: The engine class to load the key into.

        Returns:
            The handle, private-capable iff the descriptor is private.

        Raises:
            InvalidKey: If the engine rejects the fields.
        """
        engine = backend.from_parameters(key)
        if engine.public_only == key.is_private:
            raise InvalidKey("Engine disagrees with the key descriptor on private key availability.")
        return cls(engine)

    @classmethod
    def from_blob(cls, blob: bytes, backend: BackendType = NativeEngine) -> "KeyedCipher":
        """Creates a handle from an exported key blob.

        Args:
            blob: The key as produced by export().
            backend: The engine class to load the key into.

        Returns:
            The handle, private-capable iff the blob holds the private key.

        Raises:
            InvalidKey: If the blob is None or malformed.
        """
        return cls(backend.import_blob(blob))

    @property
    def engine(self) -> RSAEngine:
        return self._engine

    @property
    def has_private(self) -> bool:
        return self._has_private

    @property
    def key_size(self) -> int:
        """Modulus length in bits."""
        return self._engine.key_size

    @property
    def block_size(self) -> int:
        """Modulus length in bytes, the length of every ciphertext and signature."""
        return (self._engine.key_size + 7) // 8

    def encrypt(self, data: bytes) -> bytes:
        """Encrypts with the public key using the engine's default padding.

        Args:
            data: The plaintext.

        Returns:
            The ciphertext.
        """
        return self._engine.encrypt(_require_bytes(data, "data"))

    def encrypt_text(self, text: str, encoding: str = DEFAULT_ENCODING) -> str:
        """Encrypts text.

        Args:
            text: The plaintext.
            encoding: Text encoding used to turn the plaintext into bytes.

        Returns:
            The Base64 encoded ciphertext.
        """
        if not isinstance(text, str):
            raise InvalidArgument(f"text must be str, not {type(text).__name__}.")
        return base64.b64encode(self.encrypt(text.encode(encoding))).decode("ascii")

    def decrypt(self, data: bytes) -> bytes:
        """Decrypts with the private key.

        Args:
            data: The ciphertext.

        Returns:
            The plaintext.

        Raises:
            Unauthorized: If the handle is public-only.
        """
        if not self._has_private:
            raise Unauthorized("Cannot decrypt with a public-only key.")
        return self._engine.decrypt(_require_bytes(data, "data"))

    def decrypt_text(self, text: str, encoding: str = DEFAULT_ENCODING) -> str:
        """Decrypts Base64 encoded ciphertext back to text.

        Args:
            text: The Base64 encoded ciphertext.
            encoding: Text encoding of the plaintext.

        Returns:
            The plaintext.

        Raises:
            Unauthorized: If the handle is public-only.
            InvalidArgument: If the ciphertext is not valid Base64.
        """
        if not self._has_private:
            raise Unauthorized("Cannot decrypt with a public-only key.")
        if not isinstance(text, str):
            raise InvalidArgument(f"text must be str, not {type(text).__name__}.")
        try:
            data = base64.b64decode(text.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise InvalidArgument("Ciphertext is not valid Base64.") from exc
        return self.decrypt(data).decode(encoding)

    def sign(self, data: bytes, digest: str = DEFAULT_DIGEST) -> bytes:
        """Signs with the private key, PKCS#1 v1.5 style.

        Args:
            data: The message to sign.
            digest: The digest algorithm name.

        Returns:
            The signature, block_size bytes long.

        Raises:
            Unauthorized: If the handle is public-only.
            InvalidArgument: If the digest is not supported.
        """
        if not self._has_private:
            raise Unauthorized("Cannot sign with a public-only key.")
        return self._engine.sign(_require_bytes(data, "data"), resolve_digest(digest))

    def verify(self, data: bytes, signature: bytes, digest: str = DEFAULT_DIGEST) -> bool:
        """Verifies a signature with the public key.

        A signature that is malformed (wrong length, out of range, bad padding) is simply not a match.

        Args:
            data: The signed message.
            signature: The signature to check.
            digest: The digest algorithm name.

        Returns:
            True if the signature matches, False otherwise.

        Raises:
            InvalidArgument: If an argument is not bytes or the digest is not supported.
        """
        return self._engine.verify(_require_bytes(data, "data"), resolve_digest(digest),
                                   _require_bytes(signature, "signature"))

    def export(self) -> bytes:
        """Exports the key blob, with the private component iff the handle has it."""
        return self._engine.export(self._has_private)

    def public_only(self) -> "KeyedCipher":
        """A public-only handle for the same key, on the same engine class.

        Raises:
            InvalidArgument: If the engine class cannot import blobs (no ``import_blob`` classmethod).
        """
        backend = type(self._engine)
        if not callable(getattr(backend, "import_blob", None)):
            raise InvalidArgument(f"{backend.__name__} cannot import key blobs.")
        return type(self).from_blob(self._engine.export(False), backend=backend)

    def __repr__(self) -> str:
        return f"<KeyedCipher {self.key_size}-bit {'private' if self._has_private else 'public'}>"
