"""Provides the RSA key material and its block-level encryption and decryption primitives.

Facilitates core RSA, solely under "textbook" RSA conditions: no padding is ever applied, a block integer is raised
straight to the exponent. Handles the general key handling as well as the supporting key storage functions, one
decimal integer per file for the modulus and each exponent, and PKCS1 PEM interchange of the public half.

A key able to decrypt is a `RSAPrivKey`, a key which can only encrypt is a `RSAPubKey`. Both are immutable.

Typical usage example:

    pk = RSAPrivKey.generate(1024)
    c = pk.pub.encrypt_block(42)
    r = pk.decrypt_block(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import logging
import pathlib
import random
import re
import threading

from pyasn1 import error
from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1.codec.native import encoder as localize
from pyasn1_modules import rfc8017

from rsablock import keygen

logger = logging.getLogger(__name__)

PEM_TYPES = {
    "PKCS1_PUB": ("-----BEGIN RSA PUBLIC KEY-----", "-----END RSA PUBLIC KEY-----"),
}

_KEY_VALUE = re.compile(r"[0-9]+")


class MissingPrivateKeyError(RuntimeError):
    """Raised when decryption is requested from a key that holds no private exponent."""


class RSAKey:
    """The overall RSA key class implementation.

    Acts mostly as a template for the "core" components of a RSA Key that are strictly mandatory in both a public
    and a private key. Instances are immutable once created.

    Attributes:
        mod: The modulus of the keypair.
        expo: The exponent of the key, whether private or public.
        bsize: Byte length of the modulus.
        block_size: Largest plaintext block, in bytes, whose every value stays below the modulus.
    """

    def __init__(self, mod: int, expo: int) -> None:
        if mod < 3:
            raise ValueError("Modulus must be at least 3.")
        if expo < 1:
            raise ValueError("Exponent must be positive.")
        object.__setattr__(self, "_mod", mod)
        object.__setattr__(self, "_expo", expo)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable.")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} is immutable.")

    @property
    def mod(self) -> int:
        return self._mod

    @property
    def expo(self) -> int:
        return self._expo

    @property
    def bsize(self) -> int:
        return (self._mod.bit_length() + 7) // 8

    @property
    def block_size(self) -> int:
        return (self._mod.bit_length() - 1) // 8

    def c_rsa(self, message: int) -> int:
        """Performs core RSA operation. (Encrypt/Decrypt).

        Baseline RSA Primitive, exponentiation modulo the key's modulus.

        Args:
            message: The int-marshalled message to transform.

        Returns:
            The transformed message.

        Raises:
            ValueError: If the message is out of range for the current key.
        """
        if not 0 <= message < self._mod:
            raise ValueError("Message representative must be in range [0, mod-1]")
        return pow(message, self._expo, self._mod)


class RSAPubKey(RSAKey):
    """A rather straightforward subclass of RSAKey, for Public Keys.

    The init is not overwritten as a Public Key consists solely of a modulus and exponent.
    But provides the general functions expected of a public key.
    """

    def __eq__(self, other):
        if not isinstance(other, RSAPubKey):
            return NotImplemented
        return (self.mod, self.expo) == (other.mod, other.expo)

    def __hash__(self):
        return hash((self.mod, self.expo))

    def __repr__(self):
        return f"RSAPubKey(<{self.mod.bit_length()} bit modulus>)"

    def encrypt_block(self, message: int) -> int:
        """Encrypts a single block representative."""
        return self.c_rsa(message)

    def export(self, mod_file: pathlib.Path, expo_file: pathlib.Path) -> None:
        """Export the Public RSA key, one decimal value per file.

        Args:
            mod_file: The file to write the modulus to.
            expo_file: The file to write the public exponent to.
        """
        save_integer(self.mod, mod_file)
        save_integer(self.expo, expo_file)

    @classmethod
    def import_key(cls, mod_file: pathlib.Path, expo_file: pathlib.Path) -> "RSAPubKey":
        """Import the Public RSA key from its value files.

        Args:
            mod_file: The file holding the modulus.
            expo_file: The file holding the public exponent.

        Returns:
            An RSAPubKey object with the imported public key.
        """
        return cls(load_integer(mod_file), load_integer(expo_file))

    def export_pem(self, file: pathlib.Path) -> None:
        """Export the Public RSA key to a PEM file.

        We use the PKCS1 export standard for the public key, due to its lack of information regarding identity.

        Args:
            file: The file to export the public key to.
        """
        keydata = rfc8017.RSAPublicKey()
        keydata["modulus"] = self.mod
        keydata["publicExponent"] = self.expo
        encdata = encoder.encode(keydata)
        write_pem(file, "PKCS1_PUB", encdata)

    @classmethod
    def import_pem(cls, file: pathlib.Path) -> "RSAPubKey":
        """Import the Public RSA key from a PKCS1 PEM file.

        Args:
            file: The file to import the public key from.

        Returns:
            An RSAPubKey object with the imported public key.

        Raises:
            IOError: If the file is not a valid PKCS1 public key.
        """
        payload = read_pem(file, "PKCS1_PUB")
        try:
            keydata, rest = decoder.decode(payload, asn1Spec=rfc8017.RSAPublicKey())
        except error.PyAsn1Error as exc:
            raise IOError(f"{file} does not hold a PKCS1 public key.") from exc
        if rest:
            raise IOError(f"{file} holds trailing data after the public key.")
        pykeyd = localize.encode(keydata)
        return cls(pykeyd["modulus"], pykeyd["publicExponent"])


class RSAPrivKey(RSAKey):
    """RSA Private Key class implementation.

    Modifies the baseline RSAKey class to carry the private exponent, and exposes its connected public key.
    Encryption is delegated to the public key, so a private key can serve both directions.

    Attributes:
        mod: The modulus of the keypair.
        expo: The private exponent of the key.
        pub: The public key of the key.
    """

    def __init__(self, mod: int, pub_exp: int, priv_exp: int) -> None:
        """Initialize the RSA Private Key.

        Args:
            mod: The modulus of the keypair.
            pub_exp: The public exponent of the key.
            priv_exp: The private exponent of the key.
        """
        super().__init__(mod, priv_exp)
        object.__setattr__(self, "_pub", RSAPubKey(mod, pub_exp))

    def __eq__(self, other):
        if not isinstance(other, RSAPrivKey):
            return NotImplemented
        return (self.pub, self.expo) == (other.pub, other.expo)

    def __hash__(self):
        return hash((self.pub, self.expo))

    def __repr__(self):
        return f"RSAPrivKey(<{self.mod.bit_length()} bit modulus>)"

    @property
    def pub(self) -> RSAPubKey:
        return self._pub

    def encrypt_block(self, message: int) -> int:
        """Encrypts a single block representative with the public half."""
        return self.pub.encrypt_block(message)

    def decrypt_block(self, ciphertext: int) -> int:
        """Decrypts a single block representative."""
        return self.c_rsa(ciphertext)

    def export(self, mod_file: pathlib.Path, pub_file: pathlib.Path, priv_file: pathlib.Path) -> None:
        """Exports the RSA Private Key, one decimal value per file.

        Args:
            mod_file: The file to write the modulus to.
            pub_file: The file to write the public exponent to.
            priv_file: The file to write the private exponent to.
        """
        self.pub.export(mod_file, pub_file)
        save_integer(self.expo, priv_file)

    @classmethod
    def import_key(cls, mod_file: pathlib.Path, pub_file: pathlib.Path, priv_file: pathlib.Path) -> "RSAPrivKey":
        """Imports the RSA Private Key from its three value files.

        Args:
            mod_file: The file holding the modulus.
            pub_file: The file holding the public exponent.
            priv_file: The file holding the private exponent.

        Returns:
            The imported RSA Private Key.
        """
        return cls(load_integer(mod_file), load_integer(pub_file), load_integer(priv_file))

    @classmethod
    def generate(cls,
                 size: int,
                 rng: random.Random | None = None,
                 cancel: threading.Event | None = None) -> "RSAPrivKey":
        """Generates an RSA Private Key, and it's respective Public Key.

        Args:
            size: The size of each of the two generating primes.
            rng: Source of randomness. Defaults to the system CSPRNG.
            cancel: Optional event aborting the prime search.

        Returns:
            A new generated RSA Private Key.
        """
        _, (n, e, d) = keygen.generate_key_pair(size, rng, cancel)
        return cls(n, e, d)


def load_key(mod_file: pathlib.Path,
             pub_file: pathlib.Path,
             priv_file: pathlib.Path | None = None) -> RSAPubKey | RSAPrivKey:
    """Loads a key from its value files, private if a private exponent file is given.

    Args:
        mod_file: The file holding the modulus.
        pub_file: The file holding the public exponent.
        priv_file: Optional file holding the private exponent.

    Returns:
        A RSAPrivKey if `priv_file` is given, a RSAPubKey otherwise.
    """
    if priv_file is None:
        key = RSAPubKey.import_key(mod_file, pub_file)
    else:
        key = RSAPrivKey.import_key(mod_file, pub_file, priv_file)
    logger.debug("Loaded %r.", key)
    return key


def load_integer(file: pathlib.Path) -> int:
    """Reads a non-negative decimal integer from a key value file.

    Args:
        file: The file to read.

    Returns:
        The stored integer.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold exactly one unsigned decimal integer.
    """
    with open(file, "r", encoding="ascii", errors="replace") as f:
        content = f.read().strip()
    if not _KEY_VALUE.fullmatch(content):
        raise ValueError(f"File {pathlib.Path(file).name} is not formatted correctly.")
    return int(content)


def save_integer(value: int, file: pathlib.Path) -> None:
    """Writes a non-negative integer to a key value file as decimal digits.

    Args:
        value: The integer to store.
        file: The file to write, replaced if it exists.

    Raises:
        ValueError: If `value` is negative.
    """
    if value < 0:
        raise ValueError("Key values must be non-negative.")
    with open(file, "w", encoding="ascii") as f:
        f.write(str(value))


def read_pem(file: pathlib.Path, subtype: str) -> bytes:
    """Reads a PEM encoded file.

    Handles reading of PEM files to allow for more copiable keys!

    Args:
        file: The file to read.
        subtype: The subtype of PEM encoding to accept.

    Returns:
        The decoded PEM encoded file.

    Raises:
        IOError: If the file has invalid PEM encoding.
    """
    curr_type = PEM_TYPES[subtype]
    with open(file, "r", encoding="ascii") as f:
        headline = f.readline().strip()
        if headline != curr_type[0]:
            raise IOError(f"PEM Headline {headline} does not match {curr_type[0]}")
        parcel = []
        while True:
            line = f.readline().strip()
            if not line:
                raise IOError(f"PEM File does not contain footer: {curr_type[1]}")
            if line == curr_type[1]:
                break
            parcel.append(line)
    return base64.b64decode("".join(parcel), validate=True)


def write_pem(file: pathlib.Path, subtype: str, data: bytes) -> None:
    """Writes a PEM encoded file.

    Args:
        file: The file to write.
        subtype: The subtype of PEM encoding to write.
        data: The data to write.
    """
    curr_type = PEM_TYPES[subtype]
    payload = base64.b64encode(data).decode()
    with open(file, "w", encoding="ascii") as f:
        f.write(curr_type[0] + "\n")
        res = "\n".join(payload[i:i + 64] for i in range(0, len(payload), 64))
        res += "\n" if res else ""
        f.write(res)
        f.write(curr_type[1] + "\n")


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to its unsigned big-endian integer.

    Args:
        msg: The bytes (AKA Octet String) to convert.

    Returns:
        The representative integer.
    """
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int | None = None) -> bytes:
    """Converts an integer to bytes, using a fixed-length or minimal big-endian representation.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string. Minimal length if not provided.

    Returns:
        The representative bytes. (AKA Octet String)

    Raises:
        OverflowError: If `msg` does not fit in `fixedlen` bytes.
    """
    if fixedlen is None:
        fixedlen = (msg.bit_length() + 7) // 8
    return msg.to_bytes(fixedlen, byteorder="big", signed=False)
