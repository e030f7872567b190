# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import threading

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
import pytest

import rsacipher
from rsacipher import KeyedCipher

standard_payload = "The quick brown fox jumps over the lazy dog1234567890!@#$%^&*()-_=+[{}];:\\|<>,./?~`'\""
text_payloads = ["", "Hi there!", standard_payload, "Zażółć gęślą jaźń", "日本語のテキスト", "emoji \U0001F510"]


def test_private_flag(private_cipher, public_cipher):
    assert private_cipher.has_private
    assert not private_cipher.engine.public_only
    assert not public_cipher.has_private
    assert public_cipher.engine.public_only


def test_sizes(private_cipher, crypto_key):
    assert private_cipher.key_size == crypto_key.key_size
    assert private_cipher.block_size == crypto_key.key_size // 8


@pytest.mark.parametrize("payload", [b"", b"\x00", b"ABC", b"\x00\x00leading zeroes", b"A" * 245])
def test_encrypt_decrypt(private_cipher, payload):
    ciphtext = private_cipher.encrypt(payload)
    assert len(ciphtext) == private_cipher.block_size
    assert private_cipher.decrypt(ciphtext) == payload


def test_encrypt_probabilistic(private_cipher):
    assert private_cipher.encrypt(b"ABC") != private_cipher.encrypt(b"ABC")


def test_encrypt_too_long(private_cipher):
    with pytest.raises(ValueError):
        private_cipher.encrypt(b"A" * (private_cipher.block_size - 10))


def test_public_encrypts_private_decrypts(private_cipher, public_cipher):
    assert private_cipher.decrypt(public_cipher.encrypt(b"ABC")) == b"ABC"


@pytest.mark.parametrize("text", text_payloads)
def test_encrypt_decrypt_text(private_cipher, text):
    ciphtext = private_cipher.encrypt_text(text)
    assert len(base64.b64decode(ciphtext)) == private_cipher.block_size
    assert private_cipher.decrypt_text(ciphtext) == text


@pytest.mark.parametrize("encoding", ["utf-16", "latin-1", "cp1252"])
def test_encrypt_decrypt_text_encoding(private_cipher, encoding):
    text = "Grüße aus Köln"
    ciphtext = private_cipher.encrypt_text(text, encoding)
    assert private_cipher.decrypt(base64.b64decode(ciphtext)) == text.encode(encoding)
    assert private_cipher.decrypt_text(ciphtext, encoding) == text


def test_decrypt_text_validates(private_cipher):
    with pytest.raises(rsacipher.InvalidArgument, match="not valid Base64"):
        private_cipher.decrypt_text("not base64!")
    with pytest.raises(rsacipher.InvalidArgument):
        private_cipher.decrypt_text(b"QUJD")
    with pytest.raises(rsacipher.InvalidArgument):
        private_cipher.encrypt_text(b"ABC")


def test_public_cannot_decrypt(public_cipher, mocker):
    spy = mocker.spy(public_cipher.engine, "decrypt")
    with pytest.raises(rsacipher.Unauthorized, match="Cannot decrypt with a public-only key."):
        public_cipher.decrypt(b"\x00" * public_cipher.block_size)
    with pytest.raises(rsacipher.Unauthorized, match="Cannot decrypt with a public-only key."):
        public_cipher.decrypt_text(public_cipher.encrypt_text("ABC"))
    spy.assert_not_called()


def test_public_cannot_sign(public_cipher, mocker):
    spy = mocker.spy(public_cipher.engine, "sign")
    with pytest.raises(rsacipher.Unauthorized, match="Cannot sign with a public-only key."):
        public_cipher.sign(b"ABC")
    with pytest.raises(PermissionError):
        public_cipher.sign(b"ABC", "sha512")
    spy.assert_not_called()


@pytest.mark.parametrize("digest", ["sha1", "sha224", "sha256", "sha384", "sha512"])
def test_sign_verify(private_cipher, public_cipher, digest):
    signature = private_cipher.sign(standard_payload.encode(), digest)
    assert len(signature) == private_cipher.block_size
    assert private_cipher.verify(standard_payload.encode(), signature, digest)
    assert public_cipher.verify(standard_payload.encode(), signature, digest)


def test_sign_default_digest_is_sha256(private_cipher, crypto_key):
    signature = private_cipher.sign(b"ABC")
    crypto_key.public_key().verify(signature, b"ABC", padding.PKCS1v15(), hashes.SHA256())
    assert private_cipher.sign(b"ABC") == private_cipher.sign(b"ABC", "SHA-256")


def test_verify_mismatch_fails(private_cipher, public_cipher):
    signature = private_cipher.sign(b"\x41\x42\x43")
    assert public_cipher.verify(b"\x41\x42\x43", signature)
    assert not public_cipher.verify(b"\x41\x42\x44", signature)
    assert not public_cipher.verify(b"\x41\x42\x43", signature, "sha384")


def test_verify_other_key_fails(private_cipher, other_crypto_key, backend, localize):
    other = KeyedCipher.from_key(localize(other_crypto_key), backend)
    assert not private_cipher.verify(b"ABC", other.sign(b"ABC"))


@pytest.mark.parametrize("mangle", [
    lambda s: s[:-1],
    lambda s: s + b"\x00",
    lambda s: b"",
    lambda s: b"\xff" * len(s),
    lambda s: bytes([s[0] ^ 1]) + s[1:],
])
def test_verify_malformed_signature_is_false(private_cipher, public_cipher, mangle):
    signature = private_cipher.sign(b"ABC")
    assert public_cipher.verify(b"ABC", mangle(signature)) is False


def test_verify_validates_arguments(public_cipher):
    with pytest.raises(rsacipher.InvalidArgument):
        public_cipher.verify(b"ABC", None)
    with pytest.raises(rsacipher.InvalidArgument):
        public_cipher.verify("ABC", b"\x00")
    with pytest.raises(rsacipher.InvalidArgument, match="Unsupported digest algorithm"):
        public_cipher.verify(b"ABC", b"\x00", "md5")


def test_sign_validates_digest(private_cipher):
    with pytest.raises(rsacipher.InvalidArgument, match="Unsupported digest algorithm"):
        private_cipher.sign(b"ABC", "whirlpool")


def test_operations_validate_data(private_cipher):
    with pytest.raises(rsacipher.InvalidArgument):
        private_cipher.encrypt("ABC")
    with pytest.raises(rsacipher.InvalidArgument):
        private_cipher.decrypt(None)
    with pytest.raises(rsacipher.InvalidArgument):
        private_cipher.sign(12)


def test_export_import_private(private_cipher, backend):
    blob = private_cipher.export()
    clone = KeyedCipher.from_blob(blob, backend)
    assert clone.has_private
    assert clone.decrypt(clone.encrypt(b"ABC")) == b"ABC"
    assert clone.decrypt(private_cipher.encrypt(b"ABC")) == b"ABC"
    assert clone.export() == blob


def test_export_import_public(public_cipher, private_cipher, backend):
    blob = public_cipher.export()
    assert blob == private_cipher.public_only().export()
    clone = KeyedCipher.from_blob(blob, backend)
    assert not clone.has_private
    assert private_cipher.decrypt(clone.encrypt(b"ABC")) == b"ABC"


def test_public_only(private_cipher):
    pub = private_cipher.public_only()
    assert not pub.has_private
    assert type(pub.engine) is type(private_cipher.engine)
    assert pub.verify(b"ABC", private_cipher.sign(b"ABC"))


@pytest.mark.parametrize("blob", [None, b"", b"\x30\x00", b"garbage", "a string",
                                  bytes.fromhex("0588913e4b33aabb56c5c336d07fe81c25")])
def test_from_blob_rejects(backend, blob):
    with pytest.raises(rsacipher.InvalidKey):
        KeyedCipher.from_blob(blob, backend)


def test_from_key_rejects(backend, priv_params):
    with pytest.raises(rsacipher.InvalidKey):
        KeyedCipher.from_key(priv_params._replace(prime1=priv_params.prime1 + 2), backend)
    with pytest.raises(rsacipher.InvalidKey):
        KeyedCipher.from_key(priv_params._replace(prime2=None), backend)


def test_from_key_without_crt(backend, crypto_key, localize):
    cipher = KeyedCipher.from_key(localize(crypto_key, crt=False), backend)
    full = KeyedCipher.from_key(localize(crypto_key), backend)
    assert cipher.has_private
    assert cipher.decrypt(full.encrypt(b"ABC")) == b"ABC"
    assert cipher.sign(b"ABC") == full.sign(b"ABC")


def test_from_engine(private_cipher):
    wrapped = KeyedCipher.from_engine(private_cipher.engine)
    assert wrapped.has_private
    assert wrapped.engine is private_cipher.engine
    assert wrapped.decrypt(private_cipher.encrypt(b"ABC")) == b"ABC"


def test_from_engine_cryptography_key(crypto_key):
    cipher = KeyedCipher(rsacipher.CryptographyEngine(crypto_key))
    assert cipher.has_private
    assert not KeyedCipher(rsacipher.CryptographyEngine(crypto_key.public_key())).has_private


@pytest.mark.parametrize("engine", [None, object(), b"blob"])
def test_from_engine_rejects(engine):
    with pytest.raises(rsacipher.InvalidArgument):
        KeyedCipher.from_engine(engine)


class StubEngine:
    """Records calls instead of doing any math."""
    key_size = 2048

    def __init__(self, public_only):
        self.public_only = public_only
        self.calls = []

    def encrypt(self, data):
        self.calls.append(("encrypt", data))
        return b"ciphertext"

    def decrypt(self, data):
        self.calls.append(("decrypt", data))
        return b"plaintext"

    def sign(self, data, digest):
        self.calls.append(("sign", data, digest))
        return b"signature"

    def verify(self, data, digest, signature):
        self.calls.append(("verify", data, digest, signature))
        return True

    def export(self, include_private):
        self.calls.append(("export", include_private))
        return b"blob"


@pytest.mark.parametrize("public_only", [True, False])
def test_from_engine_derives_flag(public_only):
    engine = StubEngine(public_only)
    cipher = KeyedCipher(engine)
    assert cipher.has_private is not public_only
    assert cipher.encrypt(b"ABC") == b"ciphertext"
    assert cipher.verify(b"ABC", b"sig", "SHA-512")
    assert cipher.export() == b"blob"
    if public_only:
        with pytest.raises(rsacipher.Unauthorized):
            cipher.decrypt(b"ABC")
        with pytest.raises(rsacipher.Unauthorized):
            cipher.sign(b"ABC")
    else:
        assert cipher.decrypt(b"ABC") == b"plaintext"
        assert cipher.sign(b"ABC") == b"signature"
    expected = [("encrypt", b"ABC"), ("verify", b"ABC", "sha512", b"sig"), ("export", not public_only)]
    if not public_only:
        expected += [("decrypt", b"ABC"), ("sign", b"ABC", "sha256")]
    assert engine.calls == expected


def test_engine_errors_propagate(private_cipher):
    with pytest.raises((RuntimeError, ValueError)):
        private_cipher.decrypt(b"\x01" * (private_cipher.block_size - 1))


def test_concrete_scenario(crypto_key, priv_params, backend):
    handle = KeyedCipher.from_key(priv_params, backend)
    data = bytes([0x41, 0x42, 0x43])
    c = handle.encrypt(data)
    assert handle.decrypt(c) == data
    signature = handle.sign(data)
    assert len(signature) == crypto_key.key_size // 8
    assert handle.verify(data, signature)
    assert not handle.verify(bytes([0x41, 0x42, 0x44]), signature)


def test_concurrent_use(private_cipher):
    errors = []

    def worker(n):
        try:
            payload = f"worker {n}".encode()
            for _ in range(5):
                assert private_cipher.decrypt(private_cipher.encrypt(payload)) == payload
                assert private_cipher.verify(payload, private_cipher.sign(payload))
        except Exception as exc:  # pylint: disable=broad-except
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors


def test_sized_keys(sized_key, backend, localize):
    cipher = KeyedCipher.from_key(localize(sized_key), backend)
    assert cipher.decrypt_text(cipher.encrypt_text(standard_payload)) == standard_payload
    assert cipher.public_only().verify(b"ABC", cipher.sign(b"ABC", "sha512"), "sha512")


def test_repr(private_cipher, public_cipher):
    assert repr(private_cipher) == "<KeyedCipher 2048-bit private>"
    assert repr(public_cipher) == "<KeyedCipher 2048-bit public>"


class LyingBackend:
    """Loads every descriptor into an engine claiming the opposite capability."""

    @classmethod
    def from_parameters(cls, key):
        return StubEngine(public_only=key.is_private)


@pytest.mark.parametrize("public", [True, False])
def test_from_key_rejects_disagreeing_engine(priv_params, public):
    key = priv_params.public() if public else priv_params
    with pytest.raises(rsacipher.InvalidKey, match="Engine disagrees"):
        KeyedCipher.from_key(key, LyingBackend)


def test_public_only_requires_blob_import():
    cipher = KeyedCipher(StubEngine(public_only=False))
    with pytest.raises(rsacipher.InvalidArgument, match="StubEngine cannot import key blobs."):
        cipher.public_only()
