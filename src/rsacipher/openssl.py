"""RSA engine backed by the cryptography package.

Adapts cryptography's RSA key objects to the RSAEngine protocol, using the same padding schemes and the same PKCS#1
DER blobs as NativeEngine, so keys, ciphertexts and signatures move freely between the two.

Typical usage example:

    eng = CryptographyEngine(rsa_private_key)
    cipher = KeyedCipher(eng)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric import rsa

from rsacipher.engine import resolve_digest
from rsacipher.errors import InvalidArgument
from rsacipher.errors import InvalidKey
from rsacipher.keys import RSAKeyParameters

logger = logging.getLogger(__name__)


def _hash(digest: str) -> hashes.HashAlgorithm:
    return getattr(hashes, resolve_digest(digest).upper())()


class CryptographyEngine:
    """RSA engine wrapping a cryptography RSAPrivateKey or RSAPublicKey.

    Attributes:
        private_key: The wrapped private key, None for public-only engines.
        public_key: The public half of the key.
    """

    def __init__(self, key: rsa.RSAPrivateKey | rsa.RSAPublicKey) -> None:
        if isinstance(key, rsa.RSAPrivateKey):
            self.private_key = key
            self.public_key = key.public_key()
        elif isinstance(key, rsa.RSAPublicKey):
            self.private_key = None
            self.public_key = key
        else:
            raise InvalidArgument(f"Expected a cryptography RSA key, not {type(key).__name__}.")

    @classmethod
    def from_parameters(cls, key: RSAKeyParameters) -> "CryptographyEngine":
        """Builds an engine from structured key fields.

        Args:
            key: The key descriptor. Missing primes and CRT components are derived.

        Returns:
            The engine holding the key.

        Raises:
            InvalidKey: If cryptography rejects the fields.
        """
        if not isinstance(key, RSAKeyParameters):
            raise InvalidKey(f"Expected RSAKeyParameters, not {type(key).__name__}.")
        try:
            pubs = rsa.RSAPublicNumbers(key.public_exponent, key.modulus)
            if not key.is_private:
                if any(v is not None for v in key[3:]):
                    raise InvalidKey("Private key components given without a private exponent.")
                return cls(pubs.public_key())
            d = key.private_exponent
            p, q = key.prime1, key.prime2
            if p is None and q is None:
                p, q = rsa.rsa_recover_prime_factors(key.modulus, key.public_exponent, d)
            elif p is None or q is None:
                raise InvalidKey("Both primes must be given, or neither.")
            dmp1 = key.exponent1 if key.exponent1 is not None else rsa.rsa_crt_dmp1(d, p)
            dmq1 = key.exponent2 if key.exponent2 is not None else rsa.rsa_crt_dmq1(d, q)
            iqmp = key.coefficient if key.coefficient is not None else rsa.rsa_crt_iqmp(p, q)
            return cls(rsa.RSAPrivateNumbers(p, q, d, dmp1, dmq1, iqmp, pubs).private_key())
        except InvalidKey:
            raise
        except (ValueError, TypeError) as exc:
            raise InvalidKey(f"Key parameters rejected: {exc}") from exc

    @classmethod
    def import_blob(cls, blob: bytes) -> "CryptographyEngine":
        """Imports a PKCS#1 DER key, private or public.

        Args:
            blob: The DER encoded key.

        Returns:
            The engine holding the key.

        Raises:
            InvalidKey: If the blob is missing or not an RSA key.
        """
        if blob is None:
            raise InvalidKey("Invalid key, key is null.")
        if not isinstance(blob, (bytes, bytearray, memoryview)):
            raise InvalidKey(f"Key blob must be bytes, not {type(blob).__name__}.")
        blob = bytes(blob)
        try:
            key = serialization.load_der_private_key(blob, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm):
            try:
                key = serialization.load_der_public_key(blob)
            except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
                raise InvalidKey("Key blob is not a PKCS#1 RSA key.") from exc
        if not isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
            raise InvalidKey(f"Key blob holds a {type(key).__name__}, not an RSA key.")
        logger.debug("Imported %s RSA key blob (%d bytes)",
                     "private" if isinstance(key, rsa.RSAPrivateKey) else "public", len(blob))
        return cls(key)

    @property
    def public_only(self) -> bool:
        return self.private_key is None

    @property
    def key_size(self) -> int:
        return self.public_key.key_size

    def encrypt(self, data: bytes) -> bytes:
        return self.public_key.encrypt(data, padding.PKCS1v15())

    def decrypt(self, data: bytes) -> bytes:
        if self.private_key is None:
            raise RuntimeError("Private key material is not available.")
        return self.private_key.decrypt(data, padding.PKCS1v15())

    def sign(self, data: bytes, digest: str) -> bytes:
        if self.private_key is None:
            raise RuntimeError("Private key material is not available.")
        return self.private_key.sign(data, padding.PKCS1v15(), _hash(digest))

    def verify(self, data: bytes, digest: str, signature: bytes) -> bool:
        try:
            self.public_key.verify(signature, data, padding.PKCS1v15(), _hash(digest))
        except InvalidSignature:
            return False
        return True

    def export(self, include_private: bool) -> bytes:
        if not include_private:
            return self.public_key.public_bytes(serialization.Encoding.DER, serialization.PublicFormat.PKCS1)
        if self.private_key is None:
            raise RuntimeError("Private key material is not available.")
        return self.private_key.private_bytes(serialization.Encoding.DER,
                                              serialization.PrivateFormat.TraditionalOpenSSL,
                                              serialization.NoEncryption())

    def __repr__(self) -> str:
        return f"<CryptographyEngine {self.key_size}-bit {'public' if self.public_only else 'private'}>"
