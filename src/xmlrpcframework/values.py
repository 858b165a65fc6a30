# xmlrpcframework/values.py
"""
XML-RPC value model.

Maps Python values onto the fixed set of XML-RPC wire types and back.
The encoder and decoder in ``xmlrpcframework.codec`` both dispatch on
``WireType``; classification happens once per value, here.
"""
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from xmlrpcframework.errors import UnsupportedType

MAXINT = 2**31 - 1
MININT = -2**31

DATETIME_FORMAT = "%Y%m%dT%H:%M:%S"
_DATETIME_PARSE_FORMATS = (DATETIME_FORMAT, "%Y-%m-%dT%H:%M:%S", "%Y%m%dT%H%M%S")


# ──────────────────────────────────────────────────────────────
# Wire types
# ──────────────────────────────────────────────────────────────
class WireType(str, Enum):
    INT = "int"
    BOOLEAN = "boolean"
    STRING = "string"
    DOUBLE = "double"
    DATETIME = "dateTime.iso8601"
    BASE64 = "base64"
    ARRAY = "array"
    STRUCT = "struct"
    NIL = "nil"

    def __str__(self):
        return self.value


# Tags accepted on the decode side, including common extensions
INT_TAGS = frozenset({"int", "i4", "i8"})


def wire_type(value: Any, allow_none: bool = False) -> WireType:
    """Classify ``value``; raise UnsupportedType when it has no wire form."""
    # bool first: it is an int subclass
    if isinstance(value, bool):
        return WireType.BOOLEAN
    if isinstance(value, int):
        if not MININT <= value <= MAXINT:
            raise UnsupportedType(
                f"int {value} exceeds XML-RPC 32-bit limits", type_name="int"
            )
        return WireType.INT
    if isinstance(value, str):
        return WireType.STRING
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedType(
                f"double {value!r} has no XML-RPC representation", type_name="float"
            )
        return WireType.DOUBLE
    if isinstance(value, datetime):
        return WireType.DATETIME
    if isinstance(value, (bytes, bytearray, memoryview)):
        return WireType.BASE64
    if isinstance(value, (list, tuple)):
        return WireType.ARRAY
    if isinstance(value, (Mapping, BaseModel)):
        return WireType.STRUCT
    if value is None and allow_none:
        return WireType.NIL
    raise UnsupportedType(
        f"cannot marshal {type(value).__name__} objects",
        type_name=type(value).__name__,
    )


def struct_items(value: Any):
    """Yield (name, member) pairs of a struct-shaped value."""
    if isinstance(value, BaseModel):
        value = value.model_dump()
    for name, member in value.items():
        if not isinstance(name, str):
            raise UnsupportedType(
                f"struct member names must be str, not {type(name).__name__}",
                type_name=type(name).__name__,
            )
        yield name, member


# ──────────────────────────────────────────────────────────────
# dateTime.iso8601
# ──────────────────────────────────────────────────────────────
def format_datetime(value: datetime) -> str:
    # one-second resolution on the wire; microseconds are dropped
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return f"{value.year:04d}{value.month:02d}{value.day:02d}T{value:%H:%M:%S}"


def parse_datetime(text: str) -> datetime:
    """Parse an XML-RPC timestamp; raises ValueError on anything unrecognised."""
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1]
    for fmt in _DATETIME_PARSE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognised dateTime.iso8601 value {text!r}")
