"""Core Key Generation Utility, focusing on the generation of random large probable primes.

This module is responsible for generating textbook RSA key pairs. Primality is decided by the Solovay-Strassen test,
which pits the Euler criterion against a locally computed Jacobi symbol. Witnesses are drawn until the probability of
having accepted a composite falls below a fixed target.

All randomness is drawn from an injectable `random.Random` compatible generator. By default that is the operating
system's CSPRNG (`secrets.SystemRandom`), but a seeded `random.Random` makes every function here reproducible.

Typical usage example:

    p = generate_probable_prime(1024)
    check_prime(p)
    (n, e), (n, e, d) = generate_key_pair(2048)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import math
import random
import secrets
import threading
from typing import Literal, overload
import warnings

logger = logging.getLogger(__name__)

CONFIDENCE_TARGET: float = 1e-14
INSECURE_KEYSIZE: int = 1024
MINIMUM_PRIME_SIZE: int = 3


class GenerationCancelledError(RuntimeError):
    """Raised when a prime search is cancelled between two candidate attempts."""


def _get_rng(rng: random.Random | None) -> random.Random:
    if rng is None:
        return secrets.SystemRandom()
    return rng


def jacobi(w: int, p: int) -> int:
    """Computes the Jacobi symbol (w/p).

    Iteratively strips the factors of two (each odd count of them contributing -1 when `p` is 3 or 5 mod 8), then
    applies quadratic reciprocity to swap the arguments, flipping the sign when both are 3 mod 4.

    Args:
        w: Any integer.
        p: An odd positive integer.

    Returns:
        The Jacobi symbol, one of -1, 0 or 1. Zero means `w` and `p` share a factor.

    Raises:
        ValueError: If `p` is not an odd positive integer.
    """
    if p <= 0 or p % 2 == 0:
        raise ValueError("p must be an odd positive integer")
    w %= p
    sign = 1
    while w:
        twos = (w & -w).bit_length() - 1
        w >>= twos
        if twos % 2 and p % 8 in (3, 5):
            sign = -sign
        if w % 4 == 3 and p % 4 == 3:
            sign = -sign
        w, p = p % w, w
    return sign if p == 1 else 0


def confidence(bit_length: int, witnesses: int) -> float:
    """Probability that a `bit_length` bit number surviving `witnesses` Euler witnesses is composite.

    Args:
        bit_length: The bit length of the candidate.
        witnesses: The number of witnesses the candidate passed.

    Returns:
        The remaining probability of error.
    """
    base = bit_length * math.log(2) - 2
    return base / (base + 2.0**(witnesses - 1))


def _still_prime(candidate: int, witness: int) -> bool:
    """Checks a single Euler witness against the candidate.

    Args:
        candidate: Odd integer greater than 2 to be tested.
        witness: The witness, in range [1, candidate - 1].

    Returns:
        False if the witness proves `candidate` composite, True otherwise.
    """
    if math.gcd(candidate, witness) != 1:
        return False
    euler = pow(witness, (candidate - 1) // 2, candidate)
    if euler == candidate - 1:
        euler = -1
    elif euler != 1:
        return False
    return jacobi(witness, candidate) == euler


def _required_witnesses(bit_length: int, target: float = CONFIDENCE_TARGET) -> int:
    witnesses = 0
    while confidence(bit_length, witnesses) > target:
        witnesses += 1
    return witnesses


def _solovay_strassen(candidate: int, rng: random.Random, target: float) -> bool:
    """Perform the Solovay-Strassen primality test.

    Draws witnesses until the confidence bound for the candidate's bit length drops to `target`. A single failing
    witness is proof of compositeness, so we give up on the candidate right away.

    Args:
        candidate: Odd integer greater than 3 to be tested.
        rng: Source of the witnesses.
        target: Acceptable probability of reporting a composite as prime.

    Returns:
        True if `candidate` is probably prime, False otherwise.
    """
    for _ in range(_required_witnesses(candidate.bit_length(), target)):
        if not _still_prime(candidate, rng.randrange(1, candidate)):
            return False
    return True


def check_prime(candidate: int, rng: random.Random | None = None, target: float = CONFIDENCE_TARGET) -> bool:
    """Decides whether `candidate` is a probable prime.

    Args:
        candidate: The candidate prime to test.
        rng: Witness source. Defaults to the system CSPRNG.
        target: Acceptable probability of reporting a composite as prime. Defaults to `CONFIDENCE_TARGET`.

    Returns:
        True if `candidate` is probably prime, False if it is certainly composite.
    """
    if candidate < 2:
        return False
    if candidate in (2, 3):
        return True
    if candidate % 2 == 0:
        return False
    return _solovay_strassen(candidate, _get_rng(rng), target)


def _random_candidate(size: int, rng: random.Random) -> int:
    # Top bit guarantees the length, bottom bit the oddness.
    return rng.getrandbits(size) | (1 << (size - 1)) | 1


def generate_probable_prime(size: int,
                            rng: random.Random | None = None,
                            cancel: threading.Event | None = None,
                            max_candidates: int | None = None) -> int:
    """Generate a probable prime number of the specified bit size.

    Keeps drawing fresh random candidates until one exhausts the confidence bound. A candidate caught by a witness is
    thrown away, never incremented, as one failure already proves it composite.

    Args:
        size: The size of the prime to generate in bits. Must be at least `MINIMUM_PRIME_SIZE`.
        rng: Source of candidates and witnesses. Defaults to the system CSPRNG.
        cancel: Optional event, checked before each candidate. Setting it aborts the search.
        max_candidates: Optional cap on the number of candidates tried. Unbounded by default.

    Returns:
        A probable prime of exactly `size` bits.

    Raises:
        ValueError: If `size` is too small.
        GenerationCancelledError: If `cancel` was set.
        RuntimeError: If `max_candidates` candidates were tried with no prime found.
    """
    if size < MINIMUM_PRIME_SIZE:
        raise ValueError(f"Size must be at least {MINIMUM_PRIME_SIZE}.")
    rng = _get_rng(rng)
    tested = 0
    while max_candidates is None or tested < max_candidates:
        if cancel is not None and cancel.is_set():
            raise GenerationCancelledError(f"Prime search cancelled after {tested} candidates.")
        candidate = _random_candidate(size, rng)
        tested += 1
        if check_prime(candidate, rng):
            witnesses = _required_witnesses(size)
            logger.debug("Prime found! Checked with %d Euler witnesses, %d numbers tested, confidence %s", witnesses,
                         tested, 1 - confidence(size, witnesses))
            return candidate
    raise RuntimeError(f"Tried an improbable {tested} candidates with no prime found. Check the random source.")


def choose_public_exponent(phi: int, size: int, rng: random.Random | None = None) -> int:
    """Chooses a random public exponent coprime to `phi`.

    Args:
        phi: The totient the exponent has to be invertible against.
        size: Bit size of the random draw.
        rng: Source of the exponent. Defaults to the system CSPRNG.

    Returns:
        An exponent `e` with `3 <= e` and `gcd(e, phi) == 1`.
    """
    rng = _get_rng(rng)
    while True:
        e = rng.getrandbits(size)
        if e >= 3 and math.gcd(e, phi) == 1:
            return e


def eea(a: int, b: int) -> tuple[int, int, int]:
    """Implements the Extended Euclidean Algorithm.

    Such that a*s0 + b*t0 = r0 = gcd(a, b).

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        Greatest common divisor of two integers.
        As well as the Bezout coefficients.
    """
    r0, r1 = a, b
    s0, s1, t0, t1 = 1, 0, 0, 1
    while r1 != 0:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        s0, s1 = s1, s0 - q * s1
        t0, t1 = t1, t0 - q * t1
    return r0, s0, t0


def modular_inverse(a: int, m: int) -> int:
    """Computes the inverse of `a` modulo `m`.

    Raises:
        ValueError: If `a` is not invertible modulo `m`.
    """
    g, s, _ = eea(a % m, m)
    if g != 1:
        raise ValueError(f"No modular inverse exists, gcd is {g}.")
    return s % m


def generate_primes(size: int,
                    rng: random.Random | None = None,
                    cancel: threading.Event | None = None) -> tuple[int, int]:
    """Generates a pair of distinct probable primes of `size` bits each.

    Args:
        size: The size of each prime in bits.
        rng: Source of randomness. Defaults to the system CSPRNG.
        cancel: Optional event aborting the search, see `generate_probable_prime`.

    Returns:
        Two distinct probable primes.
    """
    if size < INSECURE_KEYSIZE:
        warnings.warn(f"Primes below {INSECURE_KEYSIZE} bits are unsecure! Please use with care.", RuntimeWarning)
    rng = _get_rng(rng)
    p = generate_probable_prime(size, rng, cancel)
    q = generate_probable_prime(size, rng, cancel)
    while p == q:  # (Un)Likely story.
        q = generate_probable_prime(size, rng, cancel)
    return p, q


@overload
def generate_key_pair(size: int,
                      rng: random.Random | None = None,
                      cancel: threading.Event | None = None,
                      expose_primes: Literal[False] = False) -> tuple[tuple[int, int], tuple[int, int, int]]:
    ...


@overload
def generate_key_pair(size: int,
                      rng: random.Random | None = None,
                      cancel: threading.Event | None = None,
                      expose_primes: Literal[True] = False) -> tuple[tuple[int, int], tuple[int, int, int, int, int]]:
    ...


def generate_key_pair(
    size: int,
    rng: random.Random | None = None,
    cancel: threading.Event | None = None,
    expose_primes: bool = False
) -> tuple[tuple[int, int], tuple[int, int, int]] | tuple[tuple[int, int], tuple[int, int, int, int, int]]:
    """Generates an RSA key pair.

    Fully generates a valid textbook RSA key: modulus, random public exponent and its private counterpart.

    Args:
        size: The size of each of the two primes in bits. The modulus ends up about twice as long.
        rng: Source of randomness. Defaults to the system CSPRNG.
        cancel: Optional event aborting the prime search, see `generate_probable_prime`.
        expose_primes: Whether to return the prime numbers as well or not. Defaults to False.

    Returns:
        A tuple of (public, private) sub-tuples, (modulus, exponent) and (modulus, public exponent, private exponent),
        the latter extended with (p, q) if exposed.
    """
    p, q = generate_primes(size, rng, cancel)
    n = p * q
    phi = (p - 1) * (q - 1)
    e = choose_public_exponent(phi, size, rng)
    d = modular_inverse(e, phi)
    logger.info("Generated %d bit modulus.", n.bit_length())
    if not expose_primes:
        del p, q
        return (n, e), (n, e, d)
    return (n, e), (n, e, d, p, q)
