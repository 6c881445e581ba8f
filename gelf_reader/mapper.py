"""Map a decoded GELF JSON object onto a :class:`GELFMessage`.

Every recognized key is decoded into a :class:`Field` tagged ABSENT
(missing or null), PRESENT or MISMATCHED. String fields refuse a
mismatched value; numeric fields quietly keep their default.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, NamedTuple

from gelf_reader.errors import FieldTypeError
from gelf_reader.models import GELFMessage

EXTRA_PREFIX = "_"

# Decimal float literal, or inf/infinity/nan; no underscores or surrounding whitespace.
_FLOAT_LITERAL = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)", re.IGNORECASE | re.ASCII,
)


class Outcome(Enum):
    ABSENT = "absent"
    PRESENT = "present"
    MISMATCHED = "mismatched"


class Field(NamedTuple):
    outcome: Outcome
    value: Any = None


_ABSENT = Field(Outcome.ABSENT)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_int32(number: int | float) -> int:
    """Truncate toward zero and wrap into the signed 32-bit range."""
    value = int(number)
    return (value + 2**31) % 2**32 - 2**31


def decode_string(mapped: dict, key: str) -> Field:
    value = mapped.get(key)
    if value is None:
        return _ABSENT
    if isinstance(value, str):
        return Field(Outcome.PRESENT, value)
    return Field(Outcome.MISMATCHED, value)


def decode_float(mapped: dict, key: str) -> Field:
    """Accept a JSON number or a string holding a float literal."""
    value = mapped.get(key)
    if value is None:
        return _ABSENT
    if isinstance(value, str) and not _FLOAT_LITERAL.fullmatch(value):
        return Field(Outcome.MISMATCHED, value)
    if _is_number(value) or isinstance(value, str):
        try:
            return Field(Outcome.PRESENT, float(value))
        except (ValueError, OverflowError):
            pass
    return Field(Outcome.MISMATCHED, value)


def decode_int32(mapped: dict, key: str) -> Field:
    value = mapped.get(key)
    if value is None:
        return _ABSENT
    if isinstance(value, float) and not math.isfinite(value):
        return Field(Outcome.MISMATCHED, value)
    if _is_number(value):
        return Field(Outcome.PRESENT, _to_int32(value))
    return Field(Outcome.MISMATCHED, value)


def _require_string(mapped: dict, key: str) -> str | None:
    decoded = decode_string(mapped, key)
    if decoded.outcome is Outcome.MISMATCHED:
        raise FieldTypeError(key, decoded.value)
    return decoded.value


def extract_extra(mapped: dict) -> dict[str, Any]:
    """Collect ``_``-prefixed, non-null fields under their unprefixed names."""
    return {
        key[len(EXTRA_PREFIX):]: value
        for key, value in mapped.items()
        if key.startswith(EXTRA_PREFIX) and value is not None
    }


def map_message(mapped: dict) -> GELFMessage:
    """Build a message from a decoded GELF object.

    Raises:
        FieldTypeError: If a string field holds a non-string value.
    """
    msg = GELFMessage()

    for key, attr in (("version", "version"), ("host", "host"), ("short_message", "short")):
        value = _require_string(mapped, key)
        if value is not None:
            setattr(msg, attr, value)

    # Empty and absent are the same for these.
    for key, attr in (("full_message", "full"), ("facility", "facility"), ("file", "file")):
        value = _require_string(mapped, key)
        if value:
            setattr(msg, attr, value)

    timestamp = decode_float(mapped, "timestamp")
    if timestamp.outcome is Outcome.PRESENT:
        msg.time_unix = timestamp.value

    level = decode_int32(mapped, "level")
    if level.outcome is Outcome.PRESENT:
        msg.level = level.value

    line = decode_int32(mapped, "line")
    if line.outcome is Outcome.PRESENT:
        msg.line = line.value

    msg.extra = extract_extra(mapped)
    return msg
