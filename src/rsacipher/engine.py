"""The engine protocol and the digest algorithms every engine understands.

An engine owns RSA key material and performs the actual math. KeyedCipher talks to engines only through RSAEngine,
so any backend implementing it can be plugged in. Engines are named after what they wrap; the shipped ones live in
rsacipher.native and rsacipher.openssl.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import hashlib
import typing

from pyasn1.type import univ
from pyasn1_modules import rfc4055
from pyasn1_modules import rfc8017

from rsacipher.errors import InvalidArgument
from rsacipher.keys import RSAKeyParameters

DEFAULT_DIGEST = "sha256"
DEFAULT_ENCODING = "utf-8"

# SHA-1 lives under the OIW arc, not the NIST hashAlgs one.
id_sha1 = univ.ObjectIdentifier("1.3.14.3.2.26")

DIGESTS = {
    "sha1": (hashlib.sha1, id_sha1),
    "sha224": (hashlib.sha224, rfc4055.id_sha224),
    "sha256": (hashlib.sha256, rfc8017.id_sha256),
    "sha384": (hashlib.sha384, rfc8017.id_sha384),
    "sha512": (hashlib.sha512, rfc8017.id_sha512),
}


def resolve_digest(name: str) -> str:
    """Normalizes a digest algorithm name.

    Lookup is case-insensitive and ignores dashes and underscores, so "SHA-256", "sha_256" and "sha256" are the same.

    Args:
        name: The digest algorithm name.

    Returns:
        The canonical key into DIGESTS.

    Raises:
        InvalidArgument: If the digest is not supported.
    """
    if not isinstance(name, str):
        raise InvalidArgument(f"Digest algorithm must be a name, not {type(name).__name__}.")
    canon = name.lower().replace("-", "").replace("_", "")
    if canon not in DIGESTS:
        raise InvalidArgument(f"Unsupported digest algorithm: {name}")
    return canon


@typing.runtime_checkable
class RSAEngine(typing.Protocol):
    """What KeyedCipher needs from an RSA backend.

    Padding is the engine's own business: encrypt/decrypt and sign/verify must agree with each other and with other
    engines speaking the same scheme. Backends are also expected to provide the ``from_parameters`` and
    ``import_blob`` classmethods, see BackendType.
    """

    @property
    def public_only(self) -> bool:
        """True if the engine holds no private key material."""

    @property
    def key_size(self) -> int:
        """Modulus length in bits."""

    def encrypt(self, data: bytes) -> bytes:
        ...

    def decrypt(self, data: bytes) -> bytes:
        ...

    def sign(self, data: bytes, digest: str) -> bytes:
        ...

    def verify(self, data: bytes, digest: str, signature: bytes) -> bool:
        ...

    def export(self, include_private: bool) -> bytes:
        ...


class BackendType(typing.Protocol):
    """Class-level side of an engine: the two ways of loading key material."""

    def from_parameters(self, key: RSAKeyParameters) -> RSAEngine:
        ...

    def import_blob(self, blob: bytes) -> RSAEngine:
        ...
