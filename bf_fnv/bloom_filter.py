"""Bloom filter over 32-bit words using FNV double hashing.

A value is mapped to ``k`` bit locations derived from two base hashes
(Kirsch-Mitzenmacher): one FNV-1a pass over the value plus one extra FNV
round over that result. Bit storage is a flat ``array("I")`` of 32-bit words,
which is also the shape a previously built filter is restored from.

See http://willwhim.wpengine.com/2011/09/03/producing-n-hash-functions-by-hashing-only-once/
"""
from __future__ import annotations

import logging
import math
from array import array
from typing import Any, Iterable, List, Sequence, Union

from .fnv import MASK32, fnv_1a, fnv_1a_b, popcount32, to_int32

logger = logging.getLogger(__name__)

WORD_BITS = 32
MAX_BITS = 1 << 32


def _trunc_rem(x: int, m: int) -> int:
    """Remainder whose sign follows the dividend (C-style ``%``)."""

    r = abs(x) % m
    return -r if x < 0 else r


class BloomFilter:
    """Bloom filter backed by an array of unsigned 32-bit words.

    ``size_spec`` is either the number of bits (rounded up to a multiple of
    32) or a sequence of 32-bit words holding the state of an existing filter.
    ``num_hashes`` is the number of locations derived per value. A filter with
    ``num_hashes == 0`` accepts nothing and reports every value as present;
    that is left to the caller.

    Not thread-safe: concurrent ``add`` calls must be serialized externally.
    """

    __slots__ = ("_size", "_num_hashes", "_bit_array")

    def __init__(self, size_spec: Union[int, Sequence[int]], num_hashes: int) -> None:
        if isinstance(num_hashes, bool) or not isinstance(num_hashes, int):
            raise TypeError("num_hashes must be an int")
        if num_hashes < 0:
            raise ValueError("num_hashes must be non-negative")

        words: Sequence[int] | None = None
        if isinstance(size_spec, bool):
            raise TypeError("size_spec must be a bit count or a sequence of words")
        if isinstance(size_spec, int):
            if size_spec <= 0:
                raise ValueError("size must be positive")
            word_count = -(-size_spec // WORD_BITS)
        else:
            try:
                word_count = len(size_spec)
            except TypeError:
                raise TypeError(
                    "size_spec must be a bit count or a sequence of words"
                ) from None
            if word_count == 0:
                raise ValueError("word sequence must not be empty")
            words = size_spec

        size = word_count * WORD_BITS
        if size > MAX_BITS:
            raise ValueError(f"size must not exceed {MAX_BITS} bits")

        self._size = size
        self._num_hashes = num_hashes
        if words is None:
            self._bit_array = array("I", [0] * word_count)
        else:
            # Words may arrive signed (e.g. serialized from an Int32Array).
            self._bit_array = array("I", (int(w) & MASK32 for w in words))

        logger.debug(
            "BloomFilter created: size=%d bits, num_hashes=%d, words=%d, restored=%s",
            self._size,
            self._num_hashes,
            word_count,
            words is not None,
        )

    @property
    def size(self) -> int:
        """Total bit count (always a multiple of 32)."""
        return self._size

    @property
    def num_hashes(self) -> int:
        return self._num_hashes

    m = size
    k = num_hashes

    def locations(self, value: str) -> List[int]:
        """Return the ``k`` bit positions of ``value``, each in ``[0, m)``.

        A new list is returned on every call.
        """
        m = self._size
        a = fnv_1a(value)
        b = to_int32(fnv_1a_b(a))
        # Base hashes are taken as signed 32-bit values; existing serialized
        # filters were built that way.
        x = _trunc_rem(to_int32(a), m)
        positions = []
        for _ in range(self._num_hashes):
            positions.append(x + m if x < 0 else x)
            x = _trunc_rem(x + b, m)
        return positions

    def add(self, value: Any) -> None:
        """Insert ``value`` (stringified) into the filter."""
        bits = self._bit_array
        for pos in self.locations(str(value)):
            bits[pos >> 5] |= 1 << (pos & 31)

    def update(self, values: Iterable[Any]) -> None:
        """Insert all ``values`` into the filter."""
        for value in values:
            self.add(value)

    def test(self, value: Any) -> bool:
        """Return True if ``value`` may be present, False if definitely absent."""
        bits = self._bit_array
        for pos in self.locations(str(value)):
            if not (bits[pos >> 5] & (1 << (pos & 31))):
                return False
        return True

    def __contains__(self, value: Any) -> bool:
        return self.test(value)

    def popcount(self) -> int:
        """Number of set bits across the whole filter."""
        return sum(popcount32(word) for word in self._bit_array)

    def estimated_cardinality(self) -> float:
        """Estimate how many distinct values have been added.

        Uses ``-(m / k) * ln(1 - p)`` where ``p`` is the fraction of set bits.
        Returns 0.0 for an empty filter and ``math.inf`` for a saturated one
        (every bit set); the saturated case is not clamped. Raises
        ``ValueError`` when ``num_hashes`` is 0 and bits are set.
        """
        bits = self.popcount()
        if bits == 0:
            return 0.0
        if self._num_hashes == 0:
            raise ValueError("cardinality is undefined for num_hashes == 0")
        if bits == self._size:
            return math.inf
        return -self._size * math.log(1 - bits / self._size) / self._num_hashes

    @property
    def bit_array(self) -> array:
        """Expose the internal array('I') for inspection."""
        return self._bit_array

    def to_words(self) -> List[int]:
        """Snapshot the bit array as unsigned ints, ready to pass back to the constructor."""
        return self._bit_array.tolist()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self._size}, num_hashes={self._num_hashes})"
