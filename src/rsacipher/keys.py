"""Structured RSA key descriptor.

RSAKeyParameters carries the numeric fields of an RSA key using the PKCS#1 naming. It is deliberately dumb: whether
the fields describe a usable key is decided by the engine importing them.

Typical usage example:

    key = RSAKeyParameters(n, e, d, p, q)
    pub = key.public()
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import typing


class RSAKeyParameters(typing.NamedTuple):
    """Numeric fields of an RSA public key or key pair.

    Attributes:
        modulus: The modulus of the keypair.
        public_exponent: The public exponent.
        private_exponent: The private exponent, None for a public key.
        prime1: Private Prime 1.
        prime2: Private Prime 2.
        exponent1: CRT Component dmp1.
        exponent2: CRT Component dmq1.
        coefficient: CRT Component iqmp.
    """
    modulus: int
    public_exponent: int
    private_exponent: int | None = None
    prime1: int | None = None
    prime2: int | None = None
    exponent1: int | None = None
    exponent2: int | None = None
    coefficient: int | None = None

    @property
    def is_private(self) -> bool:
        """Whether the descriptor carries the private exponent."""
        return self.private_exponent is not None

    def public(self) -> "RSAKeyParameters":
        """Strips everything but the modulus and the public exponent."""
        return RSAKeyParameters(self.modulus, self.public_exponent)
