"""xxHash64 and the "twox" hash family built on it.

``twox_64``, ``twox_128`` and ``twox_256`` concatenate the little-endian
xxHash64 digests of the same input under seeds 0, 1, 2, ... .
"""

from __future__ import annotations

_MASK = 0xFFFFFFFFFFFFFFFF

_P1 = 0x9E3779B185EBCA87
_P2 = 0xC2B2AE3D27D4EB4F
_P3 = 0x165667B19E3779F9
_P4 = 0x85EBCA77C2B2AE63
_P5 = 0x27D4EB2F165667C5


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (64 - bits))) & _MASK


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _P2) & _MASK
    acc = _rotl(acc, 31)
    return (acc * _P1) & _MASK


def _merge(acc: int, value: int) -> int:
    acc ^= _round(0, value)
    return (acc * _P1 + _P4) & _MASK


def xxh64(data: bytes, seed: int = 0) -> int:
    """Return the 64-bit xxHash of ``data`` under ``seed``."""
    buf = bytes(data)
    seed &= _MASK
    length = len(buf)
    offset = 0

    if length >= 32:
        accs = [
            (seed + _P1 + _P2) & _MASK,
            (seed + _P2) & _MASK,
            seed,
            (seed - _P1) & _MASK,
        ]
        stripes_end = length - length % 32
        while offset < stripes_end:
            accs = [
                _round(acc, int.from_bytes(buf[offset + 8 * lane: offset + 8 * lane + 8], "little"))
                for lane, acc in enumerate(accs)
            ]
            offset += 32
        h = (
            _rotl(accs[0], 1) + _rotl(accs[1], 7) + _rotl(accs[2], 12) + _rotl(accs[3], 18)
        ) & _MASK
        for acc in accs:
            h = _merge(h, acc)
    else:
        h = (seed + _P5) & _MASK

    h = (h + length) & _MASK

    while length - offset >= 8:
        h ^= _round(0, int.from_bytes(buf[offset: offset + 8], "little"))
        h = (_rotl(h, 27) * _P1 + _P4) & _MASK
        offset += 8

    if length - offset >= 4:
        h ^= (int.from_bytes(buf[offset: offset + 4], "little") * _P1) & _MASK
        h = (_rotl(h, 23) * _P2 + _P3) & _MASK
        offset += 4

    for byte in buf[offset:]:
        h ^= (byte * _P5) & _MASK
        h = (_rotl(h, 11) * _P1) & _MASK

    h ^= h >> 33
    h = (h * _P2) & _MASK
    h ^= h >> 29
    h = (h * _P3) & _MASK
    h ^= h >> 32
    return h


def _twox(data: bytes, rounds: int) -> bytes:
    buf = bytes(data)
    return b"".join(xxh64(buf, seed).to_bytes(8, "little") for seed in range(rounds))


def twox_64(data: bytes) -> bytes:
    """Return the 8-byte twox hash of ``data``."""
    return _twox(data, 1)


def twox_128(data: bytes) -> bytes:
    """Return the 16-byte twox hash of ``data``."""
    return _twox(data, 2)


def twox_256(data: bytes) -> bytes:
    """Return the 32-byte twox hash of ``data``."""
    return _twox(data, 4)