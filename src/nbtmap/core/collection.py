from __future__ import annotations

from collections import abc as cabc
from inspect import isabstract
from logging import getLogger
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

from typing_extensions import TypeIs

from nbtmap.common.exceptions import TagTypeError
from nbtmap.core.shape import Shape
from nbtmap.core.shape import element_type
from nbtmap.core.shape import item_types
from nbtmap.core.shape import origin_class
from nbtmap.core.shape import shape_of_type
from nbtmap.core.shape import shape_of_value
from nbtmap.core.tag import Compound
from nbtmap.core.tag import ListTag
from nbtmap.core.tag import Tag

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = (
    "DeserializeChild",
    "SerializeChild",
    "fill",
    "from_tag",
    "to_tag",
)

_LOG = getLogger(__name__)


class SerializeChild(Protocol):
    """Converts a value, declared as the given type, to a named tag."""

    def __call__(self, name: str | None, value: Any, tp: Any, /) -> Tag | None: ...


class DeserializeChild(Protocol):
    """Converts a tag to a value of the given type."""

    def __call__(self, tp: Any, tag: Tag, /) -> Any: ...


def to_tag(
    name: str | None,
    value: Any,
    tp: Any,
    serialize_child: SerializeChild,
) -> Tag | None:
    """Convert a sequence to a list tag or a mapping to a compound tag.

    Empty collections and mappings with non-string keys produce no tag.
    """
    match shape_of_value(value):
        case Shape.SEQUENCE:
            return _sequence_to_tag(name, value, tp, serialize_child)
        case Shape.MAPPING:
            return _mapping_to_tag(name, value, tp, serialize_child)
        case shape:
            msg = f"Expected a sequence or mapping, got {type(value).__name__} ({shape})."
            raise TypeError(msg)


def from_tag(tp: Any, tag: Tag, deserialize_child: DeserializeChild) -> Any:
    """Create a new collection of the given type from a list or compound tag."""
    cls = origin_class(tp)
    match shape_of_type(tp):
        case Shape.SEQUENCE:
            items = list(_read_sequence(tp, tag, deserialize_child))
            if isabstract(cls) or cls in (cabc.Sequence, cabc.MutableSequence):
                return items
            if issubclass(cls, cabc.MutableSequence):
                collection = cls()
                collection.extend(items)
                return collection
            if _is_named_tuple(cls):
                return cls(*items)
            return cls(items)
        case Shape.MAPPING:
            items = dict(_read_mapping(tp, tag, deserialize_child))
            if isabstract(cls) or cls in (cabc.Mapping, cabc.MutableMapping):
                return items
            if issubclass(cls, cabc.MutableMapping):
                collection = cls()
                collection.update(items)
                return collection
            return cls(items)
        case shape:
            msg = f"Expected a sequence or mapping type, got {tp!r} ({shape})."
            raise TypeError(msg)


def fill(collection: Any, tp: Any, tag: Tag, deserialize_child: DeserializeChild) -> None:
    """Clear an existing collection and repopulate it from a list or compound tag."""
    match collection:
        case cabc.MutableSequence():
            items = list(_read_sequence(tp, tag, deserialize_child))
            collection.clear()
            collection.extend(items)
        case cabc.MutableMapping():
            items = dict(_read_mapping(tp, tag, deserialize_child))
            collection.clear()
            collection.update(items)
        case _:
            msg = f"Cannot fill an immutable {type(collection).__name__} in place."
            raise TagTypeError(msg)


def _sequence_to_tag(
    name: str | None,
    value: cabc.Sequence[Any],
    tp: Any,
    serialize_child: SerializeChild,
) -> ListTag | None:
    if not value:
        _LOG.debug("Omitting empty sequence %r", name)
        return None

    item_tp = element_type(tp)
    tag = ListTag(name)
    for item in value:
        if (child := serialize_child(None, item, item_tp)) is not None:
            tag.add(child)
    return tag


def _mapping_to_tag(
    name: str | None,
    value: cabc.Mapping[Any, Any],
    tp: Any,
    serialize_child: SerializeChild,
) -> Compound | None:
    if not value:
        _LOG.debug("Omitting empty mapping %r", name)
        return None

    key_tp, value_tp = item_types(tp)
    if not _is_str_type(key_tp) or not all(isinstance(k, str) for k in value):
        _LOG.debug("Omitting mapping %r with non-string keys", name)
        return None

    tag = Compound(name)
    for key, item in value.items():
        if (child := serialize_child(key, item, value_tp)) is not None:
            tag.add(child)
    return tag


def _read_sequence(tp: Any, tag: Tag, deserialize_child: DeserializeChild) -> Iterator[Any]:
    if not isinstance(tag, ListTag):
        msg = f"Expected a list tag for {tp!r}, got {tag!r}."
        raise TagTypeError(msg)
    item_tp = element_type(tp)
    for child in tag:
        yield deserialize_child(item_tp, child)


def _read_mapping(
    tp: Any,
    tag: Tag,
    deserialize_child: DeserializeChild,
) -> Iterator[tuple[Any, Any]]:
    if not isinstance(tag, Compound):
        msg = f"Expected a compound tag for {tp!r}, got {tag!r}."
        raise TagTypeError(msg)
    key_tp, value_tp = item_types(tp)
    if not _is_str_type(key_tp):
        msg = f"Compound tags can only be read into mappings with string keys, not {tp!r}."
        raise TagTypeError(msg)
    key_cls = origin_class(key_tp)
    for child in tag:
        key = child.name if key_cls in (Any, str) else key_cls(child.name)
        yield key, deserialize_child(value_tp, child)


def _is_named_tuple(cls: type) -> bool:
    return issubclass(cls, tuple) and hasattr(cls, "_fields")


def _is_str_type(tp: Any) -> TypeIs[type[str]]:
    if tp is Any:
        return True
    cls = origin_class(tp)
    return isinstance(cls, type) and issubclass(cls, str)
