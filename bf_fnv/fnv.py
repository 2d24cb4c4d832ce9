"""Fowler/Noll/Vo hashing and word-level bit counting for the Bloom filter.

All arithmetic is modulo 2**32. ``fnv_1a`` walks the UTF-16 code units of a
string so that filters built by other runtimes (which index strings by code
unit) produce identical bit positions. The second base hash is not a fresh
pass over the input: ``fnv_1a_b`` runs one more FNV round plus the avalanche
mix over the first hash, which is enough to feed the Kirsch-Mitzenmacher
progression used by the filter.

Mix steps follow Bret Mulvey's FNV finishing mix:
https://web.archive.org/web/20131019013225/http://home.comcast.net/~bretm/hash/6.html
"""

from __future__ import annotations

import struct

MASK32 = 0xFFFFFFFF

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

_M1 = 0x55555555
_M2 = 0x33333333
_M4 = 0x0F0F0F0F
_H01 = 0x01010101


def fnv_multiply(a: int) -> int:
    """Return ``a * 16777619 mod 2**32``."""

    return (a * FNV_PRIME) & MASK32


def fnv_mix(a: int) -> int:
    """Avalanche the low bits of ``a`` across the whole word."""

    a &= MASK32
    a = (a + (a << 13)) & MASK32
    a ^= a >> 7
    a = (a + (a << 3)) & MASK32
    a ^= a >> 17
    a = (a + (a << 5)) & MASK32
    return a


def utf16_code_units(value: str) -> tuple[int, ...]:
    """Split ``value`` into UTF-16 code units (astral characters become pairs)."""

    data = value.encode("utf-16-le", "surrogatepass")
    return tuple(unit for (unit,) in struct.iter_unpack("<H", data))


def fnv_1a(value: str) -> int:
    """32-bit FNV-1a over the code units of ``value``, finished with ``fnv_mix``.

    Each code unit contributes its high byte (only when non-zero) and then its
    low byte, so plain ASCII hashes exactly like byte-oriented FNV-1a.
    """

    a = FNV_OFFSET_BASIS
    for unit in utf16_code_units(value):
        high = unit >> 8
        if high:
            a = fnv_multiply(a ^ high)
        a = fnv_multiply(a ^ (unit & 0xFF))
    return fnv_mix(a)


def fnv_1a_b(a: int) -> int:
    """One additional FNV round over an existing hash."""

    return fnv_mix(fnv_multiply(a))


def to_int32(value: int) -> int:
    """Reinterpret an unsigned 32-bit value as two's-complement signed."""

    value &= MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def popcount32(word: int) -> int:
    """Count set bits in a 32-bit word with the parallel (SWAR) technique.

    See http://graphics.stanford.edu/~seander/bithacks.html#CountBitsSetParallel
    """

    v = word & MASK32
    v -= (v >> 1) & _M1
    v = (v & _M2) + ((v >> 2) & _M2)
    v = (v + (v >> 4)) & _M4
    return ((v * _H01) & MASK32) >> 24
