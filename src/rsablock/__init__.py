"""Textbook RSA Block Cipher Utilities in an Academic Sense.

Provides Solovay-Strassen based probable prime and RSA key generation, key storage as plain decimal value files
(and PKCS1 PEM for the public half), and a raw block cipher turning arbitrary byte streams into decimal ciphertext
lines and back. No padding is ever applied, this is textbook RSA and not fit to protect real data.

Typical usage example:

    pk = RSAPrivKey.generate(1024)
    lines = encode(b"Hi there!", pk.pub)
    r = decode(lines, pk)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsablock.codec import decode
from rsablock.codec import decrypt_file
from rsablock.codec import encode
from rsablock.codec import encrypt_file
from rsablock.keygen import check_prime
from rsablock.keygen import GenerationCancelledError
from rsablock.keygen import generate_key_pair
from rsablock.keygen import generate_probable_prime
from rsablock.keygen import jacobi
from rsablock.rsa import load_key
from rsablock.rsa import MissingPrivateKeyError
from rsablock.rsa import RSAPrivKey
from rsablock.rsa import RSAPubKey

__version__ = "0.0.1"
__all__ = [
    "RSAPrivKey",
    "RSAPubKey",
    "MissingPrivateKeyError",
    "GenerationCancelledError",
    "load_key",
    "jacobi",
    "check_prime",
    "generate_probable_prime",
    "generate_key_pair",
    "encode",
    "decode",
    "encrypt_file",
    "decrypt_file",
]
