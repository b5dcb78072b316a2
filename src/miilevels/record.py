"""
Level entity and its fixed 64-byte big-endian record encoding.

Each record is sixteen 32-bit slots: four unsigned integers followed by
twelve IEEE-754 single-precision floats. The in-memory Level mirrors the
on-disk slots one to one.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .errors import FormatError, TruncatedRecord

RECORD_SIZE = 64

# (field, struct code, byte offset)
LAYOUT: Tuple[Tuple[str, str, int], ...] = (
    ("num_miis", "I", 0),
    ("behavior", "I", 4),
    ("level_type", "I", 8),
    ("map", "I", 12),
    ("zoom_out_max", "f", 16),
    ("zoom_in_max", "f", 20),
    ("unk7", "f", 24),
    ("horiz_dist", "f", 28),
    ("vert_dist", "f", 32),
    ("darkness", "f", 36),
    ("head_size", "f", 40),
    ("unk12", "f", 44),
    ("unk13", "f", 48),
    ("unk14", "f", 52),
    ("unk15", "f", 56),
    ("unk16", "f", 60),
)

FIELD_NAMES: Tuple[str, ...] = tuple(name for name, _, _ in LAYOUT)
INT_FIELDS: Tuple[str, ...] = tuple(name for name, code, _ in LAYOUT if code == "I")
FLOAT_FIELDS: Tuple[str, ...] = tuple(name for name, code, _ in LAYOUT if code == "f")

U32_MAX = 0xFFFF_FFFF

_U32 = struct.Struct(">I")
_F32 = struct.Struct(">f")

_EXP_MASK = 0x7F80_0000
_MANTISSA_MASK = 0x007F_FFFF


class NanBits(float):
    """
    A NaN read from a record, holding its exact single-precision bit pattern.

    Converting an f32 NaN to a Python float sets the quiet bit, so signalling
    NaNs and their payloads would not survive a plain unpack and repack.
    """

    __slots__ = ("bits",)

    def __new__(cls, bits: int) -> "NanBits":
        self = super().__new__(cls, "nan")
        self.bits = bits
        return self

    def __reduce__(self):
        return (type(self), (self.bits,))

    def __repr__(self) -> str:
        return f"NanBits(0x{self.bits:08x})"


@dataclass
class Level:
    num_miis: int = 0
    behavior: int = 0
    level_type: int = 0
    map: int = 0
    zoom_out_max: float = 0.0
    zoom_in_max: float = 0.0
    unk7: float = 0.0
    horiz_dist: float = 0.0
    vert_dist: float = 0.0
    darkness: float = 0.0
    head_size: float = 0.0
    unk12: float = 0.0
    unk13: float = 0.0
    unk14: float = 0.0
    unk15: float = 0.0
    unk16: float = 0.0


def round_f32(value: float) -> float:
    """Nearest value representable as a single-precision float."""
    return _F32.unpack(_F32.pack(value))[0]


def f32_bits(value: float) -> int:
    if isinstance(value, NanBits):
        return value.bits
    return _U32.unpack(_F32.pack(value))[0]


def float_from_bits(bits: int) -> float:
    if bits & _EXP_MASK == _EXP_MASK and bits & _MANTISSA_MASK:
        return NanBits(bits)
    return _F32.unpack(_U32.pack(bits))[0]


def decode_record(data: bytes, offset: int = 0) -> Level:
    remaining = len(data) - offset
    if remaining < RECORD_SIZE:
        raise TruncatedRecord(
            f"record at offset {offset} needs {RECORD_SIZE} bytes, {max(remaining, 0)} remain"
        )
    values: Dict[str, Any] = {}
    for name, code, off in LAYOUT:
        raw = _U32.unpack_from(data, offset + off)[0]
        values[name] = raw if code == "I" else float_from_bits(raw)
    return Level(**values)


def encode_record(level: Level) -> bytes:
    buf = bytearray(RECORD_SIZE)
    for name, code, off in LAYOUT:
        value = getattr(level, name)
        try:
            if code == "I":
                _U32.pack_into(buf, off, value)
            elif isinstance(value, NanBits):
                _U32.pack_into(buf, off, value.bits)
            else:
                _F32.pack_into(buf, off, value)
        except (struct.error, OverflowError) as exc:
            raise FormatError(f"{name}={value!r} does not fit in the record: {exc}") from None
    return bytes(buf)


def level_to_dict(level: Level) -> Dict[str, Any]:
    """
    Plain JSON-ready mapping of a level.

    Non-finite floats are written as their f32 bit pattern in hex
    ("0x7fc00000") since JSON has no NaN or Infinity and a float would
    drop the NaN payload.
    """
    out: Dict[str, Any] = {}
    for name in INT_FIELDS:
        out[name] = int(getattr(level, name))
    for name in FLOAT_FIELDS:
        value = getattr(level, name)
        out[name] = float(value) if math.isfinite(value) else f"0x{f32_bits(value):08x}"
    return out


def _expect_u32(value: Any, *, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"{where}: expected integer, got {type(value).__name__}")
    if value < 0 or value > U32_MAX:
        raise FormatError(f"{where}: {value} out of 32-bit unsigned range")
    return value


def _expect_f32(value: Any, *, where: str) -> float:
    if isinstance(value, str):
        try:
            bits = int(value, 16) if value.lower().startswith("0x") else -1
        except ValueError:
            bits = -1
        if not 0 <= bits <= U32_MAX:
            raise FormatError(f"{where}: expected number or 0x-prefixed f32 bit pattern, got {value!r}")
        return float_from_bits(bits)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatError(f"{where}: expected number, got {type(value).__name__}")
    value = float(value)
    try:
        _F32.pack(value)
    except OverflowError:
        raise FormatError(f"{where}: {value} out of single-precision range") from None
    return value


def level_from_dict(obj: Any, *, where: str = "level") -> Level:
    if not isinstance(obj, dict):
        raise FormatError(f"{where}: expected an object, got {type(obj).__name__}")
    missing = [k for k in FIELD_NAMES if k not in obj]
    if missing:
        raise FormatError(f"{where}: missing required keys: {', '.join(missing)}")
    unknown = sorted(k for k in obj if k not in FIELD_NAMES)
    if unknown:
        raise FormatError(f"{where}: unknown keys: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for name in INT_FIELDS:
        values[name] = _expect_u32(obj[name], where=f"{where}.{name}")
    for name in FLOAT_FIELDS:
        values[name] = _expect_f32(obj[name], where=f"{where}.{name}")
    return Level(**values)

