"""Block codec turning byte streams into decimal ciphertext lines and back.

A stream is cut into blocks of the key's `block_size` bytes, followed by one trailing block holding the remainder
(which is empty when the stream length is a multiple of the block size). Every block is read as an unsigned
big-endian integer and raised through the key, one ciphertext line per block, in stream order.

The trailing block carries a single 0x01 marker byte in front of its payload, so the exact length of every block is
known on the way back: full blocks have a fixed width, the trailing one ends right after its marker. Zero bytes are
never filtered out of a decrypted block.

Typical usage example:

    lines = encode(b"HELLO", pk.pub)
    assert decode(lines, pk) == b"HELLO"
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from collections.abc import Iterable
import logging
import pathlib
import re

from rsablock.rsa import bytes_to_integer
from rsablock.rsa import integer_to_bytes
from rsablock.rsa import MissingPrivateKeyError
from rsablock.rsa import RSAPrivKey
from rsablock.rsa import RSAPubKey

logger = logging.getLogger(__name__)

_MARKER = b"\x01"
_DECIMAL = re.compile(r"0|[1-9][0-9]*")


def _resolve_block_size(key: RSAPubKey | RSAPrivKey, block_size: int | None) -> int:
    if block_size is None:
        block_size = key.block_size
    if block_size < 1:
        raise ValueError("Block size must be at least one byte, the key is too small.")
    if block_size > key.block_size:
        raise ValueError(f"Block size {block_size} exceeds the {key.block_size} bytes the modulus can hold.")
    return block_size


def split_blocks(data: bytes, block_size: int) -> list[bytes]:
    """Cuts `data` into full blocks plus one trailing (possibly empty) remainder block.

    Args:
        data: The stream to cut.
        block_size: The size of a full block in bytes.

    Returns:
        The blocks in stream order. There are always `len(data) // block_size + 1` of them.
    """
    full = len(data) // block_size
    blocks = [data[i * block_size:(i + 1) * block_size] for i in range(full)]
    blocks.append(data[full * block_size:])
    return blocks


def encode(data: bytes, key: RSAPubKey | RSAPrivKey, block_size: int | None = None) -> list[str]:
    """Encrypts a byte stream into decimal ciphertext blocks.

    Args:
        data: The plaintext bytes, of any length.
        key: Any key able to encrypt.
        block_size: Full block size in bytes. Defaults to the largest the key supports.

    Returns:
        One base-10 ciphertext string per block, in stream order.

    Raises:
        ValueError: If `block_size` does not fit the key.
    """
    block_size = _resolve_block_size(key, block_size)
    blocks = split_blocks(bytes(data), block_size)
    blocks[-1] = _MARKER + blocks[-1]
    lines = [str(key.encrypt_block(bytes_to_integer(block))) for block in blocks]
    logger.debug("Encoded %d bytes into %d blocks of %d bytes.", len(data), len(lines), block_size)
    return lines


def _parse_line(line: str, index: int) -> int:
    line = line.strip()
    if not _DECIMAL.fullmatch(line):
        raise ValueError(f"Ciphertext line {index + 1} is not a decimal integer.")
    return int(line)


def decode(lines: Iterable[str], key: RSAPrivKey, block_size: int | None = None) -> bytes:
    """Decrypts decimal ciphertext blocks back into the byte stream.

    Args:
        lines: The ciphertext blocks, in stream order.
        key: A key holding the private exponent.
        block_size: Full block size in bytes, as used for encoding. Defaults to the largest the key supports.

    Returns:
        The original plaintext bytes.

    Raises:
        MissingPrivateKeyError: If `key` cannot decrypt.
        ValueError: If a line is not a decimal integer, there are no lines or `block_size` does not fit the key.
        RuntimeError: If a block does not decrypt to a valid block for this key.
    """
    if not isinstance(key, RSAPrivKey):
        raise MissingPrivateKeyError("This key does not have a private exponent to decode with.")
    block_size = _resolve_block_size(key, block_size)
    values = [_parse_line(line, i) for i, line in enumerate(lines)]
    if not values:
        raise ValueError("Ciphertext contains no blocks.")
    parts = []
    for value in values[:-1]:
        try:
            parts.append(integer_to_bytes(key.decrypt_block(value), block_size))
        except OverflowError as exc:
            raise RuntimeError("Decryption error: block exceeds the block size.") from exc
    tail = integer_to_bytes(key.decrypt_block(values[-1]))
    if tail[:1] != _MARKER or len(tail) > block_size:
        raise RuntimeError("Decryption error: trailing block is malformed.")
    parts.append(tail[1:])
    result = b"".join(parts)
    logger.debug("Decoded %d blocks into %d bytes.", len(values), len(result))
    return result


def write_ciphertext(lines: Iterable[str], file: pathlib.Path) -> None:
    """Writes ciphertext blocks to a text file, one per line."""
    with open(file, "w", encoding="utf-8", newline="\n") as f:
        for line in lines:
            f.write(line + "\n")


def read_ciphertext(file: pathlib.Path) -> list[str]:
    """Reads ciphertext blocks from a text file, one per line."""
    with open(file, "r", encoding="utf-8") as f:
        return f.read().splitlines()


def encrypt_file(source: pathlib.Path,
                 destination: pathlib.Path,
                 key: RSAPubKey | RSAPrivKey,
                 block_size: int | None = None) -> int:
    """Encrypts the file at `source` into a ciphertext file at `destination`.

    Returns:
        The number of ciphertext blocks written.
    """
    with open(source, "rb") as f:
        data = f.read()
    lines = encode(data, key, block_size)
    write_ciphertext(lines, destination)
    logger.info("Encrypted %s into %s.", source, destination)
    return len(lines)


def decrypt_file(source: pathlib.Path,
                 destination: pathlib.Path,
                 key: RSAPrivKey,
                 block_size: int | None = None) -> int:
    """Decrypts the ciphertext file at `source` into `destination`.

    The whole ciphertext is decoded before `destination` is opened, a failure leaves no partial output behind.

    Returns:
        The number of plaintext bytes written.
    """
    if not isinstance(key, RSAPrivKey):
        raise MissingPrivateKeyError("This key does not have a private exponent to decode with.")
    data = decode(read_ciphertext(source), key, block_size)
    with open(destination, "wb") as f:
        f.write(data)
    logger.info("Decrypted %s into %s.", source, destination)
    return len(data)
