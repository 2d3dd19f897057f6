from __future__ import annotations

from array import array
from collections import abc as cabc
from enum import Enum
from types import NoneType
from types import UnionType
from typing import Annotated
from typing import Any
from typing import Union
from typing import get_args
from typing import get_origin

from nbtmap.core.scalar import kind_of_type
from nbtmap.core.scalar import kind_of_value
from nbtmap.core.tag import Tag

__all__ = (
    "Shape",
    "element_type",
    "item_types",
    "origin_class",
    "resolve_type",
    "shape_of_type",
    "shape_of_value",
)


class Shape(Enum):
    """How a value or declared type is mapped to and from tags."""

    TAG = "tag"
    """Already a tag - passed through unchanged."""
    SCALAR = "scalar"
    """A primitive value stored in a scalar tag."""
    SEQUENCE = "sequence"
    """An ordered collection stored in a list tag."""
    MAPPING = "mapping"
    """A string-keyed collection stored in a compound tag."""
    RECORD = "record"
    """An object whose annotated members are stored in a compound tag."""
    ANY = "any"
    """An undeclared type whose shape is decided by the tag being read."""


def resolve_type(tp: Any) -> Any:
    """Strip `None` from an optional type so what remains can be mapped."""
    origin = get_origin(tp)
    if origin is Union or origin is UnionType:
        args = [a for a in get_args(tp) if a is not NoneType]
        if len(args) == 1:
            return resolve_type(args[0])
        return Any
    if origin is Annotated and get_origin(get_args(tp)[0]) in (Union, UnionType):
        return resolve_type(get_args(tp)[0])
    return tp


def shape_of_value(value: Any) -> Shape:
    """Return the shape of a runtime value."""
    if isinstance(value, Tag):
        return Shape.TAG
    if kind_of_value(value) is not None or isinstance(value, array):
        return Shape.SCALAR
    if isinstance(value, cabc.Mapping):
        return Shape.MAPPING
    if isinstance(value, cabc.Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return Shape.SEQUENCE
    return Shape.RECORD


def shape_of_type(tp: Any) -> Shape:
    """Return the shape of a declared type."""
    if tp is None or tp is Any or tp is object:
        return Shape.ANY
    if kind_of_type(tp) is not None:
        return Shape.SCALAR
    cls = origin_class(tp)
    if not isinstance(cls, type):
        return Shape.ANY
    if issubclass(cls, Tag):
        return Shape.TAG
    if issubclass(cls, cabc.Mapping):
        return Shape.MAPPING
    if issubclass(cls, cabc.Sequence):
        return Shape.SEQUENCE
    return Shape.RECORD


def origin_class(tp: Any) -> Any:
    """Return the runtime class behind a possibly annotated or generic type."""
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return get_origin(tp) or tp


def element_type(tp: Any) -> Any:
    """Return the declared element type of a sequence type, or Any."""
    args = _generic_args(tp)
    if not args:
        return Any
    if origin_class(tp) is tuple and (len(args) != 2 or args[1] is not Ellipsis):  # noqa: PLR2004
        msg = f"Only homogeneous tuples like tuple[int, ...] can be mapped, not {tp!r}."
        raise TypeError(msg)
    return args[0]


def item_types(tp: Any) -> tuple[Any, Any]:
    """Return the declared key and value types of a mapping type, or Any."""
    args = _generic_args(tp)
    if len(args) != 2:  # noqa: PLR2004
        return Any, Any
    return args[0], args[1]


def _generic_args(tp: Any) -> tuple[Any, ...]:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return get_args(tp)
