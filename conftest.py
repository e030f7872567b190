"""Configures pytest further and provides the shared key fixtures."""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import functools

from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

import rsacipher

TARGET_SIZES = [1024, 2048, pytest.param(4096, marks=pytest.mark.slow)]
BACKENDS = [rsacipher.NativeEngine, rsacipher.CryptographyEngine]
e = 65537


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--skip-slow"):
        return
    skip = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


@functools.cache
def make_key(size: int) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=e, key_size=size)


def localize_key(pk: rsa.RSAPrivateKey, crt: bool = True) -> rsacipher.RSAKeyParameters:
    privs = pk.private_numbers()
    pubs = pk.public_key().public_numbers()
    if crt:
        return rsacipher.RSAKeyParameters(pubs.n, pubs.e, privs.d, privs.p, privs.q, privs.dmp1, privs.dmq1, privs.iqmp)
    return rsacipher.RSAKeyParameters(pubs.n, pubs.e, privs.d)


@pytest.fixture(scope="session", params=TARGET_SIZES)
def sized_key(request) -> rsa.RSAPrivateKey:
    return make_key(request.param)


@pytest.fixture(scope="session")
def crypto_key() -> rsa.RSAPrivateKey:
    return make_key(2048)


@pytest.fixture(scope="session")
def other_crypto_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=e, key_size=2048)


@pytest.fixture(scope="session")
def priv_params(crypto_key) -> rsacipher.RSAKeyParameters:
    return localize_key(crypto_key)


@pytest.fixture(scope="session")
def pub_params(priv_params) -> rsacipher.RSAKeyParameters:
    return priv_params.public()


@pytest.fixture(params=BACKENDS, ids=["native", "cryptography"])
def backend(request):
    return request.param


@pytest.fixture
def private_cipher(priv_params, backend) -> rsacipher.KeyedCipher:
    return rsacipher.KeyedCipher.from_key(priv_params, backend)


@pytest.fixture
def public_cipher(pub_params, backend) -> rsacipher.KeyedCipher:
    return rsacipher.KeyedCipher.from_key(pub_params, backend)


@pytest.fixture(scope="session")
def localize():
    return localize_key
