"""Pure-Python RSA engine.

Facilitates RSA on plain integers: the public and CRT-accelerated private primitives, PKCS#1 v1.5 padding for
encryption and signatures, and PKCS#1 DER key blobs encoded with pyasn1. This is the default engine of KeyedCipher.

Typical usage example:

    eng = NativeEngine.from_parameters(RSAKeyParameters(n, e, d, p, q))
    c = eng.encrypt(b"Hi there!")
    r = eng.decrypt(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import hmac
import logging
import math
from secrets import token_bytes

from pyasn1 import error
from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1.codec.native import encoder as localize
from pyasn1.type import univ
from pyasn1_modules import rfc8017

from rsacipher.engine import DIGESTS
from rsacipher.engine import resolve_digest
from rsacipher.errors import InvalidKey
from rsacipher.keys import RSAKeyParameters

logger = logging.getLogger(__name__)

# Minimum PKCS#1 v1.5 padding overhead: 0x00 0x02 <8 bytes of PS> 0x00
PKCS1_OVERHEAD = 11


class NativeEngine:
    """RSA engine working directly on the key integers.

    Instances are immutable once built; every operation is a pure function of the key and its arguments, so a single
    engine may be shared between threads.

    Attributes:
        key: The complete key descriptor, CRT components filled in for private keys.
        bsize: The modulus length in bytes.
    """

    def __init__(self, key: RSAKeyParameters) -> None:
        """Initialize the engine from a descriptor.

        Prefer from_parameters, which validates the descriptor first.

        Args:
            key: A validated key descriptor.
        """
        self.key = key
        self.bsize = (key.modulus.bit_length() + 7) // 8

    @classmethod
    def from_parameters(cls, key: RSAKeyParameters) -> "NativeEngine":
        """Builds an engine from structured key fields.

        Missing CRT components are derived, and missing primes are recovered from the private exponent.

        Args:
            key: The key descriptor.

        Returns:
            The engine holding the key.

        Raises:
            InvalidKey: If the fields are structurally inconsistent.
        """
        return cls(complete_key(key))

    @classmethod
    def import_blob(cls, blob: bytes) -> "NativeEngine":
        """Imports a PKCS#1 DER key.

        Private keys are RSAPrivateKey structures (two-prime only), public keys RSAPublicKey structures. Which one
        the blob holds is detected from its outer sequence.

        Args:
            blob: The DER encoded key.

        Returns:
            The engine holding the key.

        Raises:
            InvalidKey: If the blob is missing or not a supported key.
        """
        if blob is None:
            raise InvalidKey("Invalid key, key is null.")
        if not isinstance(blob, (bytes, bytearray, memoryview)):
            raise InvalidKey(f"Key blob must be bytes, not {type(blob).__name__}.")
        blob = bytes(blob)
        try:
            outer, rest = decoder.decode(blob)
            if rest or not isinstance(outer, (univ.Sequence, univ.SequenceOf)):
                raise InvalidKey("Key blob is not a single DER sequence.")
            if len(outer) not in (2, 9, 10):
                raise InvalidKey("Key blob is not a PKCS#1 RSA key.")
            if len(outer) == 2:
                keydata, _ = decoder.decode(blob, asn1Spec=rfc8017.RSAPublicKey())
                pykeyd = localize.encode(keydata)
                key = RSAKeyParameters(pykeyd["modulus"], pykeyd["publicExponent"])
            else:
                keydata, _ = decoder.decode(blob, asn1Spec=rfc8017.RSAPrivateKey())
                if keydata["version"] != 0:
                    raise InvalidKey("Multi-prime keys are not supported.")
                pykeyd = localize.encode(keydata)
                key = RSAKeyParameters(pykeyd["modulus"], pykeyd["publicExponent"], pykeyd["privateExponent"],
                                       pykeyd["prime1"], pykeyd["prime2"], pykeyd["exponent1"], pykeyd["exponent2"],
                                       pykeyd["coefficient"])
        except InvalidKey:
            raise
        except (error.PyAsn1Error, KeyError, TypeError, ValueError, OverflowError) as exc:
            raise InvalidKey("Key blob is not a PKCS#1 RSA key.") from exc
        logger.debug("Imported %s RSA key blob (%d bytes)", "private" if key.is_private else "public", len(blob))
        return cls.from_parameters(key)

    @property
    def public_only(self) -> bool:
        return not self.key.is_private

    @property
    def key_size(self) -> int:
        return self.key.modulus.bit_length()

    def c_rsa(self, message: int) -> int:
        """Performs the public RSA operation. (Encrypt/Verify)

        Args:
            message: The int-marshalled message.

        Returns:
            The transformed message.

        Raises:
            ValueError: If the message is out of range for the current key.
        """
        if not 0 <= message < self.key.modulus:
            raise ValueError("Message representative must be in range [0, mod-1]")
        return pow(message, self.key.public_exponent, self.key.modulus)

    def c_rsa_private(self, message: int) -> int:
        """Performs the private RSA operation accelerated with CRT. (Decrypt/Sign)

        Args:
            message: The int-marshalled message.

        Returns:
            The transformed message.

        Raises:
            ValueError: If the message is out of range for the current key.
            RuntimeError: If the engine holds no private key.
        """
        if self.public_only:
            raise RuntimeError("Private key material is not available.")
        if not 0 <= message < self.key.modulus:
            raise ValueError("Message representative must be in range [0, mod-1]")
        k = self.key
        m_1 = pow(message, k.exponent1, k.prime1)
        m_2 = pow(message, k.exponent2, k.prime2)
        h = ((m_1 - m_2) * k.coefficient) % k.prime1
        return m_2 + k.prime2 * h

    def encrypt(self, data: bytes) -> bytes:
        """Encrypts according to RSAES-PKCS1-v1_5.

        Args:
            data: Message to be encrypted.

        Returns:
            Padded and encrypted message, bsize bytes long.

        Raises:
            ValueError: If the message is too long for the key.
        """
        if len(data) > self.bsize - PKCS1_OVERHEAD:
            raise ValueError("Message too long for the current key.")
        ps = nonzero_bytes(self.bsize - len(data) - 3)
        em = bytes_to_integer(b"\x00\x02" + ps + b"\x00" + data)
        return integer_to_bytes(self.c_rsa(em), self.bsize)

    def decrypt(self, data: bytes) -> bytes:
        """Decrypts according to RSAES-PKCS1-v1_5.

        All padding failures surface as the same error, so the caller learns nothing about which check failed.

        Args:
            data: Ciphertext, bsize bytes long.

        Returns:
            Decrypted message.

        Raises:
            RuntimeError: If decryption fails.
        """
        if len(data) != self.bsize or self.bsize < PKCS1_OVERHEAD:
            raise RuntimeError("Message does not match expected length.")
        try:
            em = integer_to_bytes(self.c_rsa_private(bytes_to_integer(data)), self.bsize)
        except ValueError as exc:
            raise RuntimeError("Decryption error.") from exc
        sep = em.find(b"\x00", 2)
        if em[0:2] != b"\x00\x02" or sep < 10:
            raise RuntimeError("Decryption error.")
        return em[sep + 1:]

    def sign(self, data: bytes, digest: str) -> bytes:
        """Signs according to RSASSA-PKCS1-v1_5.

        Args:
            data: Message to sign.
            digest: The digest algorithm name.

        Returns:
            The signature, bsize bytes long.
        """
        em = emsa_pkcs1_v15(data, digest, self.bsize)
        return integer_to_bytes(self.c_rsa_private(bytes_to_integer(em)), self.bsize)

    def verify(self, data: bytes, digest: str, signature: bytes) -> bool:
        """Verify the signature of the message.

        Malformed signatures, whether by length, range or padding, are reported as a mismatch.

        Args:
            data: The message to verify the signature against.
            digest: The digest algorithm name.
            signature: The raw signature.

        Returns:
            True if the signature matches the message, False otherwise.
        """
        expected = emsa_pkcs1_v15(data, digest, self.bsize)
        if len(signature) != self.bsize:
            return False
        try:
            rec = integer_to_bytes(self.c_rsa(bytes_to_integer(signature)), self.bsize)
        except ValueError:
            return False
        return hmac.compare_digest(rec, expected)

    def export(self, include_private: bool) -> bytes:
        """Exports the key as PKCS#1 DER.

        Args:
            include_private: Export the RSAPrivateKey structure instead of the RSAPublicKey one.

        Returns:
            The DER encoded key.

        Raises:
            RuntimeError: If private export is requested from a public key.
        """
        k = self.key
        if not include_private:
            keydata = rfc8017.RSAPublicKey()
            keydata["modulus"] = k.modulus
            keydata["publicExponent"] = k.public_exponent
            return encoder.encode(keydata)
        if self.public_only:
            raise RuntimeError("Private key material is not available.")
        interkey = rfc8017.RSAPrivateKey()
        interkey["version"] = 0
        interkey["modulus"] = k.modulus
        interkey["publicExponent"] = k.public_exponent
        interkey["privateExponent"] = k.private_exponent
        interkey["prime1"] = k.prime1
        interkey["prime2"] = k.prime2
        interkey["exponent1"] = k.exponent1
        interkey["exponent2"] = k.exponent2
        interkey["coefficient"] = k.coefficient
        return encoder.encode(interkey)

    def __repr__(self) -> str:
        return f"<NativeEngine {self.key_size}-bit {'public' if self.public_only else 'private'}>"


def complete_key(key: RSAKeyParameters) -> RSAKeyParameters:
    """Validates a key descriptor and fills in what can be derived.

    Args:
        key: The key descriptor.

    Returns:
        A descriptor with primes and CRT components present, or the public descriptor.

    Raises:
        InvalidKey: If the fields are structurally inconsistent.
    """
    if not isinstance(key, RSAKeyParameters):
        raise InvalidKey(f"Expected RSAKeyParameters, not {type(key).__name__}.")
    for name, value in key._asdict().items():
        if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
            raise InvalidKey(f"Key field {name} must be an integer.")
    n, e, d = key.modulus, key.public_exponent, key.private_exponent
    if n is None or e is None:
        raise InvalidKey("Modulus and public exponent are required.")
    if n < 3 or n % 2 == 0:
        raise InvalidKey("Modulus must be an odd integer greater than 2.")
    if not 1 < e < n or e % 2 == 0:
        raise InvalidKey("Public exponent must be odd and in range (1, mod).")
    if d is None:
        if any(v is not None for v in key[3:]):
            raise InvalidKey("Private key components given without a private exponent.")
        return key
    if not 1 < d < n:
        raise InvalidKey("Private exponent must be in range (1, mod).")
    p, q = key.prime1, key.prime2
    if (p is None) != (q is None):
        raise InvalidKey("Both primes must be given, or neither.")
    if p is None:
        p, q = recover_primes(n, e, d)
    if p < 2 or q < 2 or p == q or p * q != n:
        raise InvalidKey("Primes do not multiply to the modulus.")
    if (e * d - 1) % math.lcm(p - 1, q - 1) != 0:
        raise InvalidKey("Private exponent does not invert the public exponent.")
    exp1, exp2, coeff = d % (p - 1), d % (q - 1), pow(q, -1, p)
    for name, given, derived in (("exponent1", key.exponent1, exp1), ("exponent2", key.exponent2, exp2),
                                 ("coefficient", key.coefficient, coeff)):
        if given is not None and given != derived:
            raise InvalidKey(f"CRT component {name} does not match the primes.")
    return RSAKeyParameters(n, e, d, p, q, exp1, exp2, coeff)


def recover_primes(n: int, e: int, d: int) -> tuple[int, int]:
    """Recovers the prime factors of the modulus from the key exponents.

    Follows the probabilistic method of NIST SP 800-56B, Appendix C: k = d*e - 1 is a multiple of lambda(n), so
    some a**(k / 2**t) is a non-trivial square root of 1, which yields a factor.

    Args:
        n: The modulus.
        e: The public exponent.
        d: The private exponent.

    Returns:
        The primes, larger first.

    Raises:
        InvalidKey: If no factorization could be found.
    """
    ktot = d * e - 1
    t = ktot
    while t > 0 and t % 2 == 0:
        t //= 2
    a = 2
    while t > 0 and a < 1000:
        k = t
        while k < ktot:
            cand = pow(a, k, n)
            if cand not in (1, n - 1) and pow(cand, 2, n) == 1:
                p = math.gcd(cand + 1, n)
                q, r = divmod(n, p)
                if r == 0 and 1 < p < n:
                    return max(p, q), min(p, q)
            k *= 2
        a += 2
    raise InvalidKey("Unable to compute factors p and q from exponent d.")


def emsa_pkcs1_v15(data: bytes, digest: str, emlen: int) -> bytes:
    """Builds the EMSA-PKCS1-v1_5 encoded message.

    Args:
        data: The message to encode.
        digest: The digest algorithm name.
        emlen: Intended length of the encoded message.

    Returns:
        0x00 0x01 PS 0x00 DigestInfo, emlen bytes long.

    Raises:
        ValueError: If the key is too small for the digest.
    """
    hasher, ident = DIGESTS[resolve_digest(digest)]
    algid = rfc8017.DigestAlgorithm()
    algid["algorithm"] = ident
    algid["parameters"] = univ.Null("")
    payload = rfc8017.DigestInfo()
    payload["digestAlgorithm"] = algid
    payload["digest"] = hasher(data).digest()
    encoded = encoder.encode(payload)
    if emlen < len(encoded) + PKCS1_OVERHEAD:
        raise ValueError("Hash function too large for current key.")
    ps = b"\xff" * (emlen - len(encoded) - 3)
    return b"\x00\x01" + ps + b"\x00" + encoded


def nonzero_bytes(length: int) -> bytes:
    """Random bytes none of which is zero.

    Args:
        length: The number of bytes.

    Returns:
        The random byte string.
    """
    out = b""
    while len(out) < length:
        out += token_bytes(length - len(out)).replace(b"\x00", b"")
    return out


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to an integer (OS2IP)."""
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int) -> bytes:
    """Converts an integer to a fixed-length byte string (I2OSP)."""
    return msg.to_bytes(fixedlen, byteorder="big", signed=False)
