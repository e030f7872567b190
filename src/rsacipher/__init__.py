"""A small RSA facade: one key handle, four operations.

Provides KeyedCipher, which binds RSA key material held by an engine to what the key may do: encrypt and verify with
any key, decrypt and sign only with a private one. Keys come from structured parameters, from an exported PKCS#1 DER
blob, or from an engine the caller already set up. Text helpers handle encodings and Base64.

Typical usage example:

    cipher = KeyedCipher.from_key(RSAKeyParameters(n, e, d, p, q))
    c = cipher.encrypt_text("Hi there!")
    r = cipher.decrypt_text(c)
    pub = KeyedCipher.from_blob(cipher.public_only().export())
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsacipher.cipher import KeyedCipher
from rsacipher.engine import DEFAULT_DIGEST
from rsacipher.engine import DEFAULT_ENCODING
from rsacipher.engine import RSAEngine
from rsacipher.errors import InvalidArgument
from rsacipher.errors import InvalidKey
from rsacipher.errors import RSACipherError
from rsacipher.errors import Unauthorized
from rsacipher.keys import RSAKeyParameters
from rsacipher.native import NativeEngine
from rsacipher.openssl import CryptographyEngine
from rsacipher.pem import load_cipher
from rsacipher.pem import read_pem
from rsacipher.pem import save_cipher
from rsacipher.pem import write_pem

__version__ = "0.1.0"
__all__ = [
    "KeyedCipher",
    "RSAKeyParameters",
    "RSAEngine",
    "NativeEngine",
    "CryptographyEngine",
    "RSACipherError",
    "InvalidKey",
    "InvalidArgument",
    "Unauthorized",
    "DEFAULT_DIGEST",
    "DEFAULT_ENCODING",
    "load_cipher",
    "save_cipher",
    "read_pem",
    "write_pem",
]
