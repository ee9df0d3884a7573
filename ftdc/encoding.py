"""Low-level helpers for encoding and decoding metric chunk data."""

from __future__ import annotations

import struct
import zlib
from datetime import datetime, timedelta, timezone
from typing import Iterable

_UINT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63
_MAX_VARINT_LEN = 10
_UINT32_MAX = 0xFFFFFFFF

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_int64(value: int) -> int:
    """Wrap an arbitrary integer into the signed 64-bit range."""
    value &= _UINT64_MASK
    return value - (1 << 64) if value >= _INT64_SIGN else value


def get_offset(count: int, sample: int, metric: int) -> int:
    """Return the flat index of a sample in a metric-major matrix."""
    return metric * count + sample


def undelta(value: int, deltas: Iterable[int]) -> list[int]:
    """Rebuild a series from its starting value and successive deltas."""
    out = [value]
    for delta in deltas:
        out.append(_to_int64(out[-1] + delta))
    return out


def undelta_floats(value: int, deltas: Iterable[int]) -> list[int]:
    """Rebuild a float series; float values are stored whole, not as deltas."""
    return [value, *deltas]


def encode_size_value(val: int) -> bytes:
    """Encode a length as a 4-byte little-endian unsigned integer."""
    if not 0 <= val <= _UINT32_MAX:
        raise ValueError(f"size {val} does not fit in 32 bits")
    return struct.pack("<I", val)


def encode_value(val: int) -> bytes:
    """Encode a signed 64-bit integer as an unsigned varint."""
    remaining = val & _UINT64_MASK
    out = bytearray()
    while remaining >= 0x80:
        out.append((remaining & 0x7F) | 0x80)
        remaining >>= 7
    out.append(remaining)
    return bytes(out)


def decode_value(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at ``offset``; return the signed value and the next offset."""
    result = 0
    shift = 0
    chunk = data[offset:offset + _MAX_VARINT_LEN]
    for index, byte in enumerate(chunk):
        if byte < 0x80:
            if index == _MAX_VARINT_LEN - 1 and byte > 1:
                raise ValueError("varint overflows a 64-bit integer")
            return _to_int64(result | byte << shift), offset + index + 1
        result |= (byte & 0x7F) << shift
        shift += 7
    if len(chunk) == _MAX_VARINT_LEN:
        raise ValueError("varint overflows a 64-bit integer")
    raise ValueError("reached unexpected end of encoded integer")


def compress_buffer(data: bytes) -> bytes:
    """Prefix the uncompressed length and zlib-compress the payload."""
    return encode_size_value(len(data)) + zlib.compress(data)


def decompress_buffer(data: bytes) -> bytes:
    """Reverse :func:`compress_buffer`, skipping the 4-byte length prefix."""
    if len(data) < 4:
        raise ValueError("compressed buffer is too short")
    try:
        return zlib.decompress(data[4:])
    except zlib.error as exc:
        raise ValueError("problem decompressing buffer") from exc


def normalize_float(value: float) -> int:
    """Return the IEEE-754 bit pattern of ``value`` as a signed 64-bit integer."""
    return struct.unpack("<q", struct.pack("<d", value))[0]


def restore_float(value: int) -> float:
    """Return the float whose IEEE-754 bit pattern is ``value``."""
    return struct.unpack("<d", struct.pack("<Q", value & _UINT64_MASK))[0]


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch, truncated toward zero.

    Naive datetimes are taken to be in UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    delta = moment - EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    millis = abs(micros) // 1000
    return millis if micros >= 0 else -millis


def time_epoch_ms(ms: int) -> datetime:
    """Return the UTC datetime ``ms`` milliseconds after the Unix epoch."""
    return EPOCH + timedelta(milliseconds=ms)


def is_num(num: int, value: object) -> bool:
    """Report whether ``value`` is a numeric BSON value equal to ``num``."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == num
    return False