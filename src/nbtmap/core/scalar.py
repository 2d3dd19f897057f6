"""Conversion between primitive values and scalar tags.

Python integers have no fixed width, so the width of an integer member is declared
with one of the annotated aliases below:

```python
@dataclass
class Player:
    level: Annotated[UInt8, TagInfo("lvl")] = 0
```

A value whose declared type carries no width is stored in an `Int` tag when it fits
in 32 bits and in a `Long` tag otherwise.
"""

from __future__ import annotations

from array import array
from decimal import Decimal
from enum import Enum
from typing import Annotated
from typing import Any
from typing import get_args
from typing import get_origin

from nbtmap.common.exceptions import TagTypeError
from nbtmap.core.tag import Byte
from nbtmap.core.tag import ByteArray
from nbtmap.core.tag import Double
from nbtmap.core.tag import Float
from nbtmap.core.tag import Int
from nbtmap.core.tag import IntArray
from nbtmap.core.tag import Long
from nbtmap.core.tag import ScalarTag
from nbtmap.core.tag import Short
from nbtmap.core.tag import String

__all__ = (
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "ScalarKind",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "default_value",
    "from_tag",
    "kind_of_type",
    "kind_of_value",
    "to_tag",
)


class ScalarKind(Enum):
    """The kinds of primitive values that map to a scalar tag."""

    INT = "int"
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    INT32_ARRAY = "int32_array"


Int8 = Annotated[int, ScalarKind.INT8]
"""A signed 8-bit integer."""
UInt8 = Annotated[int, ScalarKind.UINT8]
"""An unsigned 8-bit integer."""
Int16 = Annotated[int, ScalarKind.INT16]
"""A signed 16-bit integer."""
UInt16 = Annotated[int, ScalarKind.UINT16]
"""An unsigned 16-bit integer."""
Int32 = Annotated[int, ScalarKind.INT32]
"""A signed 32-bit integer."""
UInt32 = Annotated[int, ScalarKind.UINT32]
"""An unsigned 32-bit integer."""
Int64 = Annotated[int, ScalarKind.INT64]
"""A signed 64-bit integer."""
UInt64 = Annotated[int, ScalarKind.UINT64]
"""An unsigned 64-bit integer."""
Float32 = Annotated[float, ScalarKind.FLOAT32]
"""A single precision float."""
Float64 = Annotated[float, ScalarKind.FLOAT64]
"""A double precision float."""

_INTEGER_TAGS: dict[ScalarKind, type[ScalarTag]] = {
    ScalarKind.INT8: Byte,
    ScalarKind.UINT8: Byte,
    ScalarKind.INT16: Short,
    ScalarKind.UINT16: Short,
    ScalarKind.INT32: Int,
    ScalarKind.UINT32: Int,
    ScalarKind.INT64: Long,
    ScalarKind.UINT64: Long,
}
_UNSIGNED = frozenset({ScalarKind.UINT8, ScalarKind.UINT16, ScalarKind.UINT32, ScalarKind.UINT64})
_INTEGERS = frozenset({ScalarKind.INT, *_INTEGER_TAGS})
_FLOATS = frozenset({ScalarKind.FLOAT32, ScalarKind.FLOAT64})

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1
_INT32_TYPECODES = frozenset("bBhHi")
"""Array typecodes whose items always fit in a signed 32-bit integer."""


def kind_of_type(tp: Any) -> ScalarKind | None:
    """Return the scalar kind a declared type maps to, if any."""
    if get_origin(tp) is Annotated:
        base, *metadata = get_args(tp)
        for m in metadata:
            if isinstance(m, ScalarKind):
                return m
        return kind_of_type(base)
    if get_origin(tp) is not None or not isinstance(tp, type):
        return None
    if issubclass(tp, bool):
        return ScalarKind.BOOL
    if issubclass(tp, int):
        return ScalarKind.INT
    if issubclass(tp, float):
        return ScalarKind.FLOAT64
    if issubclass(tp, str):
        return ScalarKind.STRING
    if issubclass(tp, (bytes, bytearray)):
        return ScalarKind.BYTES
    if issubclass(tp, array):
        return ScalarKind.INT32_ARRAY
    return None


def kind_of_value(value: Any) -> ScalarKind | None:
    """Return the scalar kind of a runtime value, if any."""
    if isinstance(value, array) and value.typecode not in _INT32_TYPECODES:
        return None
    return kind_of_type(type(value))


def to_tag(name: str | None, value: Any, tp: Any = None) -> ScalarTag | None:
    """Convert a primitive value to a scalar tag.

    The declared type `tp` picks the width of integers and floats when it agrees
    with the value. Returns None if the value has no scalar representation.
    """
    if (value_kind := kind_of_value(value)) is None:
        return None
    kind = value_kind
    if (declared := kind_of_type(tp)) is not None and _accepts(declared, value_kind):
        kind = declared

    match kind:
        case ScalarKind.INT:
            return (Int if _INT32_MIN <= value <= _INT32_MAX else Long)(name, value)
        case ScalarKind.BOOL:
            return Byte(name, 1 if value else 0)
        case ScalarKind.FLOAT32:
            return Float(name, value)
        case ScalarKind.FLOAT64:
            return Double(name, value)
        case ScalarKind.STRING:
            return String(name, value)
        case ScalarKind.BYTES:
            return ByteArray(name, value)
        case ScalarKind.INT32_ARRAY:
            return IntArray(name, value)
        case _:
            tag_cls = _INTEGER_TAGS[kind]
            if kind in _UNSIGNED:
                value = _to_signed(int(value), tag_cls.bits)  # type: ignore[attr-defined]
            return tag_cls(name, value)


def from_tag(tag: Any, tp: Any = None) -> Any:
    """Extract the value of a scalar tag as the declared type `tp`.

    Integer tags are reinterpreted as unsigned when `tp` declares an unsigned kind.
    Returns None if `tag` is not a scalar tag.
    """
    if not isinstance(tag, ScalarTag):
        return None

    kind = kind_of_type(tp)
    match tag:
        case Byte() | Short() | Int() | Long():
            if kind is None or kind in _INTEGERS:
                value: Any = tag.value
                if kind in _UNSIGNED:
                    value &= (1 << tag.bits) - 1
            elif kind is ScalarKind.BOOL:
                value = bool(tag.value)
            else:
                raise _mismatch(tag, tp)
        case Float() | Double():
            if kind is not None and kind not in _FLOATS:
                raise _mismatch(tag, tp)
            value = tag.value
        case String():
            if kind not in (None, ScalarKind.STRING):
                raise _mismatch(tag, tp)
            value = tag.value
        case ByteArray():
            if kind not in (None, ScalarKind.BYTES):
                raise _mismatch(tag, tp)
            value = tag.value
        case IntArray():
            if kind not in (None, ScalarKind.INT32_ARRAY):
                raise _mismatch(tag, tp)
            value = array("i", tag.value)
        case _:
            raise _mismatch(tag, tp)

    return _coerce(value, tp)


def default_value(value: Any) -> Any:
    """Return the default for the kind of the given value.

    Numbers default to zero and booleans to False. Every other kind has no default
    and returns None.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return 0
    return None


def _accepts(declared: ScalarKind, value_kind: ScalarKind) -> bool:
    if declared is ScalarKind.BOOL:
        return value_kind in _INTEGERS or value_kind is ScalarKind.BOOL
    if declared in _INTEGERS:
        return value_kind in _INTEGERS
    if declared in _FLOATS:
        return value_kind in _FLOATS or value_kind in _INTEGERS
    return declared is value_kind


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _coerce(value: Any, tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    if tp is Any:
        return value
    if isinstance(tp, type) and not isinstance(value, tp):
        # e.g. an IntEnum or a bytearray
        return tp(value)
    return value


def _mismatch(tag: ScalarTag, tp: Any) -> TagTypeError:
    msg = f"Cannot read a {type(tag).__name__} tag as {tp!r}."
    return TagTypeError(msg)
