# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import binascii
import random

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

import rsablock
import rsablock.rsa as rsau

TARGET_SIZES = [1024, 2048]
known_keys = {size: rsa.generate_private_key(public_exponent=65537, key_size=size) for size in TARGET_SIZES}


@pytest.fixture(scope="module", params=TARGET_SIZES)
def keyset(request) -> rsa.RSAPrivateKey:
    return known_keys[request.param]


def localize_keys(pk: rsa.RSAPrivateKey) -> tuple[rsau.RSAPubKey, rsau.RSAPrivKey]:
    privs = pk.private_numbers()
    pubs = pk.public_key().public_numbers()
    return rsau.RSAPubKey(pubs.n, pubs.e), rsau.RSAPrivKey(pubs.n, pubs.e, privs.d)


def test_private_generation(mocker, small_key):
    mocker.patch("rsablock.keygen.generate_key_pair",
                 return_value=((small_key.mod, small_key.pub.expo), (small_key.mod, small_key.pub.expo,
                                                                     small_key.expo)))
    reskey = rsau.RSAPrivKey.generate(64)
    assert reskey == small_key
    rsablock.keygen.generate_key_pair.assert_called_once_with(64, None, None)


@pytest.mark.filterwarnings("ignore:Primes below")
def test_private_generation_functional(seeded_rng):
    key = rsau.RSAPrivKey.generate(64, seeded_rng)
    assert key.mod.bit_length() in (127, 128)
    for m in (0, 1, 2, 1234567890, key.mod - 1):
        assert key.decrypt_block(key.encrypt_block(m)) == m


def test_block_inverse(keyset):
    pubkey, priv = localize_keys(keyset)
    rng = random.Random(99)
    for m in [0, 1, 2, pubkey.mod - 1] + [rng.randrange(pubkey.mod) for _ in range(10)]:
        c = pubkey.encrypt_block(m)
        assert 0 <= c < pubkey.mod
        assert priv.decrypt_block(c) == m
        assert priv.encrypt_block(m) == c


def test_block_matches_reference(keyset):
    pubkey, priv = localize_keys(keyset)
    pubs = keyset.public_key().public_numbers()
    m = 17092025232642
    assert pubkey.encrypt_block(m) == pow(m, pubs.e, pubs.n)
    assert priv.decrypt_block(m) == pow(m, keyset.private_numbers().d, pubs.n)


@pytest.mark.parametrize("flow", [-1, 1])
def test_overflow_underflow_c_rsa(keyset, flow):
    pubkey, priv = localize_keys(keyset)
    with pytest.raises(ValueError):
        priv.c_rsa(priv.mod * flow)
    with pytest.raises(ValueError):
        pubkey.encrypt_block(pubkey.mod * flow)
    with pytest.raises(ValueError):
        priv.decrypt_block(priv.mod + 5)


def test_public_cannot_decrypt(small_key):
    assert not hasattr(small_key.pub, "decrypt_block")
    assert isinstance(small_key.pub, rsau.RSAPubKey)
    assert not isinstance(small_key.pub, rsau.RSAPrivKey)


def test_sizes(keyset):
    pubkey, priv = localize_keys(keyset)
    bits = keyset.key_size
    assert pubkey.bsize == priv.bsize == bits // 8
    assert pubkey.block_size == priv.block_size == (bits - 1) // 8
    assert 256**pubkey.block_size - 1 < pubkey.mod


@pytest.mark.parametrize("mod,expo", [(2, 3), (0, 3), (-15, 3), (15, 0), (15, -3)])
def test_key_validates(mod, expo):
    with pytest.raises(ValueError):
        rsau.RSAPubKey(mod, expo)


def test_keys_immutable(small_key):
    with pytest.raises(AttributeError):
        small_key.mod = 15
    with pytest.raises(AttributeError):
        small_key.pub.expo = 3
    with pytest.raises(AttributeError):
        small_key.pub = small_key.pub
    with pytest.raises(AttributeError):
        del small_key.expo


def test_key_equality(small_key):
    clone = rsau.RSAPrivKey(small_key.mod, small_key.pub.expo, small_key.expo)
    assert clone == small_key
    assert hash(clone) == hash(small_key)
    assert clone.pub == rsau.RSAPubKey(small_key.mod, small_key.pub.expo)
    assert clone != clone.pub
    assert str(small_key.expo) not in repr(small_key)


@pytest.mark.parametrize("value", [0, 1, 65537, 2**2048 + 12345])
def test_integer_save_load(value, tmp_path):
    target = tmp_path / "value.txt"
    rsau.save_integer(value, target)
    assert target.read_text(encoding="ascii") == str(value)
    assert rsau.load_integer(target) == value


def test_integer_load_tolerates_whitespace(tmp_path):
    target = tmp_path / "value.txt"
    target.write_text("  4242\n", encoding="ascii")
    assert rsau.load_integer(target) == 4242


@pytest.mark.parametrize("content", ["", "abc", "-5", "+5", "12 34", "1.5", "0x1F", "1_000", "٣"])
def test_integer_load_validates(content, tmp_path):
    target = tmp_path / "value.txt"
    target.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError, match="not formatted correctly"):
        rsau.load_integer(target)


def test_integer_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        rsau.load_integer(tmp_path / "nValue.txt")


def test_integer_save_validates(tmp_path):
    with pytest.raises(ValueError):
        rsau.save_integer(-1, tmp_path / "value.txt")
    assert not (tmp_path / "value.txt").exists()


def test_private_export_import(small_key, tmp_path):
    files = [tmp_path / name for name in ("nValue.txt", "eValue.txt", "dValue.txt")]
    small_key.export(*files)
    assert files[0].read_text(encoding="ascii") == str(small_key.mod)
    assert files[1].read_text(encoding="ascii") == str(small_key.pub.expo)
    assert files[2].read_text(encoding="ascii") == str(small_key.expo)
    assert rsau.RSAPrivKey.import_key(*files) == small_key


def test_public_export_import(small_key, tmp_path):
    files = [tmp_path / "n", tmp_path / "e"]
    small_key.pub.export(*files)
    assert rsau.RSAPubKey.import_key(*files) == small_key.pub


def test_load_key(small_key, tmp_path):
    files = [tmp_path / name for name in ("nValue.txt", "eValue.txt", "dValue.txt")]
    small_key.export(*files)
    pub = rsau.load_key(files[0], files[1])
    assert type(pub) is rsau.RSAPubKey
    assert pub == small_key.pub
    priv = rsau.load_key(*files)
    assert type(priv) is rsau.RSAPrivKey
    assert priv == small_key


def test_load_key_corrupt(small_key, tmp_path):
    files = [tmp_path / name for name in ("nValue.txt", "eValue.txt", "dValue.txt")]
    small_key.export(*files)
    files[2].write_text("not a number", encoding="ascii")
    with pytest.raises(ValueError):
        rsau.load_key(*files)


def test_public_export_pem(keyset, tmp_path):
    pubs = keyset.public_key().public_numbers()
    key = rsau.RSAPubKey(pubs.n, pubs.e)
    des = tmp_path / "testkey.pub"
    key.export_pem(des)
    with open(des, "rb") as fi:
        interkey = serialization.load_pem_public_key(fi.read())
    assert interkey.public_numbers() == pubs


def test_public_import_pem(keyset, tmp_path):
    pubs = keyset.public_key().public_numbers()
    src = tmp_path / "testkey.pub"
    src.write_bytes(keyset.public_key().public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.PKCS1))
    pubkey = rsau.RSAPubKey.import_pem(src)
    assert pubkey.mod == pubs.n
    assert pubkey.expo == pubs.e


def test_public_pem_round(small_key, tmp_path):
    des = tmp_path / "small.pub"
    small_key.pub.export_pem(des)
    assert rsau.RSAPubKey.import_pem(des) == small_key.pub


def test_public_import_pem_validates(tmp_path):
    pld = tmp_path / "testpem.pem"
    rsau.write_pem(pld, "PKCS1_PUB", b"\x01\x02\x03")
    with pytest.raises(IOError):
        rsau.RSAPubKey.import_pem(pld)


@pytest.mark.parametrize("payload", [b"", b"Quick!", b"A" * 64, b"\x00\xff" * 100])
def test_pem_read_write(payload, tmp_path):
    pld = tmp_path / "testpem.pem"
    rsau.write_pem(pld, "PKCS1_PUB", payload)
    res = rsau.read_pem(pld, "PKCS1_PUB")
    assert res == payload


def test_pem_read_validates_subtype(tmp_path):
    pld = tmp_path / "testpem.pem"
    with open(pld, "w", encoding="ascii") as fi:
        fi.write("-----BEGIN GARBAGE DATA-----\n")
        fi.write("This is a thesis on the legality of... hm... legality of what?\n")
        fi.write("-----END RSA PUBLIC KEY-----\n")
    with pytest.raises(IOError):
        rsau.read_pem(pld, "PKCS1_PUB")


def test_pem_read_validates_end(tmp_path):
    pld = tmp_path / "testpem.pem"
    with open(pld, "w", encoding="ascii") as fi:
        fi.write("-----BEGIN RSA PUBLIC KEY-----\n")
        fi.write("Does the carpet?\n")
        fi.write("\n" * 80)
        fi.write("Bye now.")
    with pytest.raises(IOError):
        rsau.read_pem(pld, "PKCS1_PUB")


def test_pem_read_nonbase64(tmp_path):
    pld = tmp_path / "testpem.pem"
    with open(pld, "w", encoding="ascii") as fi:
        fi.write("-----BEGIN RSA PUBLIC KEY-----\n")
        fi.write("woah woah woah\n")
        fi.write("-----END RSA PUBLIC KEY-----\n")
    with pytest.raises(binascii.Error):
        rsau.read_pem(pld, "PKCS1_PUB")


@pytest.mark.parametrize("msg,fixedlen,expected", [
    (0, None, b""),
    (0, 3, b"\x00\x00\x00"),
    (1, None, b"\x01"),
    (256, None, b"\x01\x00"),
    (256, 4, b"\x00\x00\x01\x00"),
])
def test_integer_to_bytes(msg, fixedlen, expected):
    assert rsau.integer_to_bytes(msg, fixedlen) == expected
    assert rsau.bytes_to_integer(expected) == msg


def test_integer_to_bytes_overflow():
    with pytest.raises(OverflowError):
        rsau.integer_to_bytes(256, 1)
