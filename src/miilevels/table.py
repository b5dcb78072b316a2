"""
Level table framing: N consecutive records, no header, footer or length prefix.
"""

from __future__ import annotations

import json
from typing import BinaryIO, List, Sequence

from .errors import FormatError, TruncatedRecord
from .record import RECORD_SIZE, Level, decode_record, encode_record, level_from_dict, level_to_dict

CANONICAL_LEVEL_COUNT = 99


def decode_table(data: bytes) -> List[Level]:
    tail = len(data) % RECORD_SIZE
    if tail:
        raise TruncatedRecord(
            f"table is {len(data)} bytes; trailing {tail} bytes do not form a {RECORD_SIZE}-byte record"
        )
    return [decode_record(data, off) for off in range(0, len(data), RECORD_SIZE)]


def encode_table(table: Sequence[Level]) -> bytes:
    return b"".join(encode_record(level) for level in table)


def read_table(fp: BinaryIO) -> List[Level]:
    return decode_table(fp.read())


def write_table(fp: BinaryIO, table: Sequence[Level]) -> None:
    fp.write(encode_table(table))


def table_to_text(table: Sequence[Level], *, compact: bool = False) -> str:
    objs = [level_to_dict(level) for level in table]
    if compact:
        return json.dumps(objs, separators=(",", ":"), allow_nan=False)
    return json.dumps(objs, indent=2, allow_nan=False) + "\n"


def table_from_text(text: str, *, source: str = "<string>") -> List[Level]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError(f"{source}: invalid JSON: {exc}") from None
    if not isinstance(data, list):
        raise FormatError(f"{source}: expected a JSON array of levels, got {type(data).__name__}")
    return [level_from_dict(obj, where=f"{source}[{index}]") for index, obj in enumerate(data)]
