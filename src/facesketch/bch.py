"""
Binary BCH codec over GF(2^m).

A narrow-sense primitive BCH code of length n = 2^m - 1 that corrects up
to t bit errors. The code is systematic: a codeword is the k payload
bits followed by the ecc bits, where ecc = (data(x) * x^r) mod g(x) and
g(x) is the least common multiple of the minimal polynomials of
alpha^1 .. alpha^2t. Bit 0 of a codeword is the coefficient of x^(n-1).

Decoding runs the textbook pipeline: syndromes, Berlekamp-Massey for
the error locator, and a Chien search for its roots. A received word
is reported uncorrectable (negative error count) when the locator's
degree exceeds t or when it does not have exactly as many distinct roots
as its degree, which is how words with more than t errors show up.

The field tables and generator polynomial are built once per parameter
set and shared read-only between codec instances. Each BCHCodec
serializes its own calls behind a lock.

References:
    Lin & Costello, "Error Control Coding", ch. 6 (binary BCH codes).
    Massey, "Shift-register synthesis and BCH decoding" (1969).
"""

import functools
import logging
import threading
from typing import NamedTuple, Sequence

import numpy as np

from .bits import BitArray, as_bits, bits_to_bytes, bytes_to_bits
from .config import BCHParams
from .exceptions import NotInitializedError

logger = logging.getLogger(__name__)

# Default primitive polynomials for GF(2^m), m = 5..15
PRIMITIVE_POLYNOMIALS = {
    5: 0x25,
    6: 0x43,
    7: 0x83,
    8: 0x11D,
    9: 0x211,
    10: 0x409,
    11: 0x805,
    12: 0x1053,
    13: 0x201B,
    14: 0x402B,
    15: 0x8003,
}

# Error count reported for an uncorrectable word
DECODE_FAILURE = -1


class GaloisField:
    """
    Exponent/logarithm tables for GF(2^m).

    Elements are integers in [0, 2^m). The exp table is doubled in
    length so that log(a) + log(b) can index it without a modulo.
    """

    def __init__(self, m: int, prim_poly: int):
        self.m = m
        self.prim_poly = prim_poly
        self.n = (1 << m) - 1

        exp = np.zeros(2 * self.n, dtype=np.int64)
        log = np.full(self.n + 1, -1, dtype=np.int64)
        x = 1
        for i in range(self.n):
            if log[x] != -1:
                raise ValueError(f"Polynomial {prim_poly:#x} is not primitive for m={m}")
            exp[i] = x
            log[x] = i
            x <<= 1
            if x & (1 << m):
                x ^= prim_poly
        exp[self.n:] = exp[: self.n]
        log[0] = 0  # never read for zero operands

        exp.flags.writeable = False
        log.flags.writeable = False
        self.exp = exp
        self.log = log

    def mul(self, a: int, b: int) -> int:
        if a == 0 or b == 0:
            return 0
        return int(self.exp[self.log[a] + self.log[b]])

    def inv(self, a: int) -> int:
        if a == 0:
            raise ZeroDivisionError("zero has no inverse in GF(2^m)")
        return int(self.exp[self.n - self.log[a]])

    def scale(self, coef: int, vec: np.ndarray) -> np.ndarray:
        """Multiply every element of vec by the scalar coef."""
        out = np.zeros_like(vec)
        if coef == 0:
            return out
        nz = vec != 0
        out[nz] = self.exp[self.log[vec[nz]] + self.log[coef]]
        return out

    def mul_vec(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        out = np.zeros_like(a)
        nz = (a != 0) & (b != 0)
        out[nz] = self.exp[self.log[a[nz]] + self.log[b[nz]]]
        return out

    def minimal_polynomial(self, coset: Sequence[int]) -> int:
        """
        Minimal polynomial of alpha^coset[0], as a GF(2) bitmask.

        The product of (x + alpha^c) over a cyclotomic coset has all of
        its coefficients in GF(2); bit j of the result is the coefficient
        of x^j.
        """
        poly = [1]  # coefficients, lowest degree first
        for c in coset:
            root = int(self.exp[c % self.n])
            shifted = [0] + poly
            for j, coef in enumerate(poly):
                shifted[j] ^= self.mul(coef, root)
            poly = shifted

        mask = 0
        for j, coef in enumerate(poly):
            if coef not in (0, 1):
                raise ArithmeticError("minimal polynomial has non-binary coefficients")
            if coef:
                mask |= 1 << j
        return mask


def _gf2_mul(a: int, b: int) -> int:
    """Carry-less product of two GF(2) polynomials held as ints."""
    result = 0
    while b:
        if b & 1:
            result ^= a
        a <<= 1
        b >>= 1
    return result


def _gf2_mod(a: int, g: int) -> int:
    """Remainder of a GF(2) polynomial division."""
    deg_g = g.bit_length() - 1
    deg_a = a.bit_length() - 1
    while deg_a >= deg_g:
        a ^= g << (deg_a - deg_g)
        deg_a = a.bit_length() - 1
    return a


def _cyclotomic_coset(i: int, n: int) -> list[int]:
    coset = [i]
    x = (i * 2) % n
    while x != i:
        coset.append(x)
        x = (x * 2) % n
    return coset


@functools.lru_cache(maxsize=None)
def galois_field(m: int, prim_poly: int) -> GaloisField:
    return GaloisField(m, prim_poly)


@functools.lru_cache(maxsize=None)
def generator_polynomial(m: int, prim_poly: int, t: int) -> int:
    """
    Generator polynomial of the t-error-correcting BCH code, as a bitmask.

    For a binary code the minimal polynomials of the even powers repeat
    those of the odd ones, so only odd exponents below 2t are visited.
    """
    field = galois_field(m, prim_poly)
    seen: set[int] = set()
    g = 1
    for i in range(1, 2 * t, 2):
        if i in seen:
            continue
        coset = _cyclotomic_coset(i, field.n)
        seen.update(coset)
        g = _gf2_mul(g, field.minimal_polynomial(coset))
    return g


def _bits_to_int(bits: BitArray) -> int:
    pad = (-len(bits)) % 8
    return int.from_bytes(bits_to_bytes(bits), "big") >> pad


def _int_to_bits(value: int, length: int) -> BitArray:
    nbytes = (length + 7) // 8
    return bytes_to_bits(value.to_bytes(nbytes, "big"))[8 * nbytes - length:]


class DecodeResult(NamedTuple):
    """
    Outcome of BCHCodec.decode().

    Attributes:
        error_count: Number of bit errors found, or a negative value when
            the received word is uncorrectable.
        locations: 0-based codeword bit positions of the errors, data bits
            first, in ascending order. Empty on failure.
    """

    error_count: int
    locations: np.ndarray


class BCHCodec:
    """
    Systematic binary BCH encoder/decoder with an owned, lazily built state.

    The codec acquires its field tables and generator polynomial on first
    use (or explicitly with open()) and drops them on close(). It can be
    used as a context manager. All encode/decode calls on one instance
    are serialized; use one instance per thread for parallel work.

    Example:
        >>> with BCHCodec() as codec:
        ...     ecc = codec.encode(data_bits)           # data_bits: k bits
        ...     nerr, locs = codec.decode(noisy_data, ecc)
        ...     if nerr > 0:
        ...         codec.correct(noisy_data, locs, nerr)
    """

    def __init__(self, params: BCHParams | None = None):
        """
        Initialize the codec.

        Args:
            params: Optional code parameters. Uses m=13, t=455 if not provided.
        """
        self.params = params or BCHParams()
        self._lock = threading.RLock()
        self._field: GaloisField | None = None
        self._generator = 0
        self._ecc_bits = 0

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> "BCHCodec":
        """Build (or fetch from cache) the field tables and generator polynomial."""
        with self._lock:
            if self._field is not None:
                return self

            prim_poly = self.params.prim_poly or PRIMITIVE_POLYNOMIALS.get(self.params.m)
            if prim_poly is None:
                raise NotInitializedError(f"No primitive polynomial known for m={self.params.m}")

            try:
                field = galois_field(self.params.m, prim_poly)
                generator = generator_polynomial(self.params.m, prim_poly, self.params.t)
            except (ValueError, ArithmeticError) as e:
                raise NotInitializedError(f"BCH initialization failed: {e}") from e

            ecc_bits = generator.bit_length() - 1
            if ecc_bits >= field.n:
                raise NotInitializedError(
                    f"Generator degree {ecc_bits} leaves no payload bits for n={field.n}"
                )

            self._field = field
            self._generator = generator
            self._ecc_bits = ecc_bits
            logger.debug(
                "BCH codec ready: m=%d t=%d n=%d k=%d ecc_bits=%d",
                self.params.m, self.params.t, field.n, field.n - ecc_bits, ecc_bits,
            )
            return self

    def close(self) -> None:
        with self._lock:
            self._field = None
            self._generator = 0
            self._ecc_bits = 0

    @property
    def closed(self) -> bool:
        return self._field is None

    def __enter__(self) -> "BCHCodec":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ready(self) -> GaloisField:
        if self._field is None:
            self.open()
        return self._field

    # -- parameters --------------------------------------------------------

    @property
    def m(self) -> int:
        return self.params.m

    @property
    def t(self) -> int:
        return self.params.t

    @property
    def n(self) -> int:
        """Codeword length in bits."""
        return self.params.n

    @property
    def ecc_bits(self) -> int:
        """Number of parity bits, the degree of the generator polynomial."""
        with self._lock:
            self._ready()
            return self._ecc_bits

    @property
    def k(self) -> int:
        """Payload length in bits."""
        return self.n - self.ecc_bits

    # -- coding ------------------------------------------------------------

    def encode(self, data: BitArray) -> BitArray:
        """
        Compute the ecc bits of a k-bit payload.

        Args:
            data: k payload bits.

        Returns:
            ecc_bits parity bits; data ++ ecc is a codeword.

        Raises:
            ValueError: If data is not exactly k bits long.
        """
        data = as_bits(data)
        with self._lock:
            self._ready()
            k, r = self.n - self._ecc_bits, self._ecc_bits
            if len(data) != k:
                raise ValueError(f"Expected {k} data bits, got {len(data)}")
            remainder = _gf2_mod(_bits_to_int(data) << r, self._generator)
            return _int_to_bits(remainder, r)

    def decode(self, data: BitArray, ecc: BitArray) -> DecodeResult:
        """
        Locate the bit errors in a received word.

        Args:
            data: k received payload bits.
            ecc: ecc_bits received parity bits.

        Returns:
            DecodeResult(error_count, locations). A negative error_count
            means the word has more errors than the code can correct; the
            caller must treat it as a mismatch, never retry it.
        """
        data = as_bits(data)
        ecc = as_bits(ecc)
        with self._lock:
            field = self._ready()
            k, r = self.n - self._ecc_bits, self._ecc_bits
            if len(data) != k or len(ecc) != r:
                raise ValueError(
                    f"Expected {k} data and {r} ecc bits, got {len(data)} and {len(ecc)}"
                )

            received = np.concatenate([data, ecc])
            syndromes = self._syndromes(field, received)
            if not syndromes.any():
                return DecodeResult(0, np.zeros(0, dtype=np.int64))

            locator, degree = self._berlekamp_massey(field, syndromes)
            if degree > self.t:
                return DecodeResult(DECODE_FAILURE, np.zeros(0, dtype=np.int64))

            powers = self._chien_search(field, locator, degree)
            if len(powers) != degree:
                return DecodeResult(DECODE_FAILURE, np.zeros(0, dtype=np.int64))

            locations = np.sort(self.n - 1 - powers)
            return DecodeResult(degree, locations)

    @staticmethod
    def correct(data: BitArray, locations: Sequence[int], error_count: int) -> None:
        """
        Flip the reported error bits of data in place.

        Locations at or past len(data) fall in the ecc bits, which need no
        correction to recover the payload.
        """
        if error_count <= 0:
            return
        for loc in locations[:error_count]:
            if loc < len(data):
                data[loc] ^= 1

    # -- decoder stages ----------------------------------------------------

    def _syndromes(self, field: GaloisField, received: BitArray) -> np.ndarray:
        """S_1 .. S_2t of the received polynomial; S_2j is S_j squared."""
        two_t = 2 * self.t
        powers = (self.n - 1) - np.flatnonzero(received)
        syndromes = np.zeros(two_t, dtype=np.int64)
        if powers.size == 0:
            return syndromes
        for j in range(1, two_t + 1):
            if j % 2 == 0:
                half = int(syndromes[j // 2 - 1])
                syndromes[j - 1] = field.mul(half, half)
            else:
                values = field.exp[(powers * j) % self.n]
                syndromes[j - 1] = np.bitwise_xor.reduce(values)
        return syndromes

    def _berlekamp_massey(self, field: GaloisField, syndromes: np.ndarray) -> tuple[np.ndarray, int]:
        """Shortest LFSR generating the syndromes: the error locator and its degree."""
        size = len(syndromes) + 1
        locator = np.zeros(size, dtype=np.int64)
        locator[0] = 1
        previous = locator.copy()
        degree = 0
        shift = 1
        last_discrepancy = 1

        for step in range(len(syndromes)):
            discrepancy = int(syndromes[step])
            if degree:
                terms = field.mul_vec(locator[1:degree + 1], syndromes[step - degree:step][::-1])
                discrepancy ^= int(np.bitwise_xor.reduce(terms))

            if discrepancy == 0:
                shift += 1
                continue

            coef = field.mul(discrepancy, field.inv(last_discrepancy))
            shifted = np.zeros(size, dtype=np.int64)
            shifted[shift:] = previous[: size - shift]
            update = locator ^ field.scale(coef, shifted)

            if 2 * degree <= step:
                previous = locator
                degree = step + 1 - degree
                last_discrepancy = discrepancy
                shift = 1
            else:
                shift += 1
            locator = update

        nonzero = np.flatnonzero(locator)
        if nonzero.size and nonzero[-1] != degree:
            # locator degree disagrees with the LFSR length: not decodable
            return locator, self.t + 1
        return locator, degree

    def _chien_search(self, field: GaloisField, locator: np.ndarray, degree: int) -> np.ndarray:
        """
        Error powers p such that alpha^-p is a root of the locator.

        The error at power p sits at codeword bit n - 1 - p.
        """
        p = np.arange(self.n, dtype=np.int64)
        acc = np.zeros(self.n, dtype=np.int64)
        for i in np.flatnonzero(locator[: degree + 1]):
            acc ^= field.exp[(field.log[locator[i]] - p * int(i)) % self.n]
        return np.flatnonzero(acc == 0)
