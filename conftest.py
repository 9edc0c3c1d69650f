"""Configures pytest further, and provides the shared key material."""
import math
import random

from cryptography.hazmat.primitives.asymmetric import rsa
import pytest
import sympy

from rsablock import keygen
from rsablock.rsa import RSAPrivKey


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")
    parser.addoption("--run-extreme", action="store_true", default=False, help="run extreme value extremely slow tests")


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: slower tests, skipped by --skip-slow")
    config.addinivalue_line("markers", "extreme: extremely slow tests, run only with --run-extreme")


def pytest_collection_modifyitems(config, items):
    skipdict = {}
    if config.getoption("--skip-slow"):
        skipdict["slow"] = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    if not config.getoption("--run-extreme"):
        skipdict["extreme"] = pytest.mark.skip(reason="Extreme test: needs --run-extreme option")
    if not skipdict:
        return
    for item in items:
        for k, v in skipdict.items():
            if k in item.keywords:
                item.add_marker(v)


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(20250917)


@pytest.fixture(scope="session")
def small_primes() -> tuple[int, int]:
    """Two fixed 64 bit primes."""
    return sympy.nextprime(2**63 + 1234567), sympy.nextprime(2**63 + 987654321)


@pytest.fixture(scope="session")
def small_key(small_primes) -> RSAPrivKey:
    """A deterministic key over a ~128 bit modulus, built without running the prime search."""
    p, q = small_primes
    phi = (p - 1) * (q - 1)
    e = keygen.choose_public_exponent(phi, 64, random.Random(7))
    assert math.gcd(e, phi) == 1
    return RSAPrivKey(p * q, e, pow(e, -1, phi))


@pytest.fixture(scope="session")
def large_key() -> RSAPrivKey:
    """A 2048 bit reference key, as generated by `cryptography`."""
    pk = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pubs = pk.public_key().public_numbers()
    return RSAPrivKey(pubs.n, pubs.e, pk.private_numbers().d)
