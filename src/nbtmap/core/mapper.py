from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar

from nbtmap._internal._utils import full_class_name
from nbtmap._internal.settings import NBTMAP_MAX_DEPTH
from nbtmap.common.exceptions import CycleError
from nbtmap.common.exceptions import DepthLimitError
from nbtmap.common.exceptions import TagTypeError
from nbtmap.core import collection
from nbtmap.core import scalar
from nbtmap.core.member import MemberAccess
from nbtmap.core.member import members_of
from nbtmap.core.shape import Shape
from nbtmap.core.shape import origin_class
from nbtmap.core.shape import resolve_type
from nbtmap.core.shape import shape_of_type
from nbtmap.core.shape import shape_of_value
from nbtmap.core.tag import Compound
from nbtmap.core.tag import ListTag
from nbtmap.core.tag import ScalarTag
from nbtmap.core.tag import Tag

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = (
    "TagMapper",
    "deserialize_object",
    "fill_object",
    "serialize_object",
    "tag_mapper",
)

T = TypeVar("T")

_LOG = getLogger(__name__)


class TagMapper:
    """Maps objects to and from tag trees.

    Only members marked with a [`TagInfo`][nbtmap.core.member.TagInfo] take part.
    Each call walks its input independently so one mapper may be shared between
    threads.

    Args:
        max_depth: How deeply objects and tags may nest. Defaults to the
            `NBTMAP_MAX_DEPTH` environment variable or 512.
    """

    def __init__(self, *, max_depth: int | None = None) -> None:
        self.max_depth = max_depth

    def serialize(self, value: Any) -> Compound:
        """Convert an object to a compound tag."""
        if value is None:
            msg = "Cannot serialize None - expected an object."
            raise ValueError(msg)
        tag = self._walk().serialize(None, value, type(value))
        if tag is None and shape_of_value(value) in (Shape.RECORD, Shape.MAPPING):
            # nothing left once defaults and empty members were omitted
            return Compound()
        if not isinstance(tag, Compound):
            msg = f"{full_class_name(type(value))} did not map to a compound tag, got {tag!r}."
            raise TagTypeError(msg)
        return tag

    def deserialize(self, cls: type[T], tag: Tag) -> T:
        """Create a new object of the given type from a tag."""
        return self._walk().deserialize(cls, tag)

    def fill(self, value: Any, tag: Tag) -> None:
        """Populate an existing object from a tag in place."""
        if value is None:
            msg = "Cannot fill None - expected an object."
            raise ValueError(msg)
        if shape_of_value(value) not in (Shape.RECORD, Shape.SEQUENCE, Shape.MAPPING):
            msg = f"Cannot fill a {full_class_name(type(value))} in place."
            raise TypeError(msg)
        self._walk().fill(value, type(value), tag)

    def _walk(self) -> _TreeWalk:
        return _TreeWalk(NBTMAP_MAX_DEPTH() if self.max_depth is None else self.max_depth)


tag_mapper = TagMapper()
"""TagMapper with default settings."""


def serialize_object(value: Any) -> Compound:
    """Convert an object to a compound tag using the default mapper."""
    return tag_mapper.serialize(value)


def deserialize_object(cls: type[T], tag: Tag) -> T:
    """Create a new object of the given type from a tag using the default mapper."""
    return tag_mapper.deserialize(cls, tag)


def fill_object(value: Any, tag: Tag) -> None:
    """Populate an existing object from a tag in place using the default mapper."""
    tag_mapper.fill(value, tag)


class _TreeWalk:
    """The state of a single serialize, deserialize or fill call."""

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self._depth = 0
        self._active: set[int] = set()

    def serialize(self, name: str | None, value: Any, tp: Any = None) -> Tag | None:
        if value is None:
            _LOG.debug("Omitting %r - value is None", name)
            return None

        match shape_of_value(value):
            case Shape.TAG:
                if name is not None:
                    value.name = name
                return value
            case Shape.SCALAR:
                if (tag := scalar.to_tag(name, value, resolve_type(tp))) is None:
                    _LOG.debug("Omitting %r - %r has no scalar tag", name, value)
                return tag
            case Shape.SEQUENCE | Shape.MAPPING:
                with self._enter(value):
                    return collection.to_tag(name, value, resolve_type(tp), self.serialize)
            case _:
                with self._enter(value):
                    return self._serialize_record(name, value)

    def deserialize(self, tp: Any, tag: Tag) -> Any:
        tp = resolve_type(tp)
        match shape_of_type(tp):
            case Shape.TAG:
                if not isinstance(tag, origin_class(tp)):
                    raise _mismatch(tag, tp)
                tag.name = None
                return tag
            case Shape.SCALAR:
                if not isinstance(tag, ScalarTag):
                    raise _mismatch(tag, tp)
                return scalar.from_tag(tag, tp)
            case Shape.SEQUENCE | Shape.MAPPING:
                with self._enter():
                    return collection.from_tag(tp, tag, self.deserialize)
            case Shape.RECORD:
                cls = origin_class(tp)
                obj = cls()
                with self._enter():
                    self._fill_record(obj, tag)
                return obj
            case _:
                return self._deserialize_any(tag)

    def fill(self, value: Any, tp: Any, tag: Tag) -> None:
        tp = resolve_type(tp)
        if isinstance(tag, ScalarTag) or shape_of_type(tp) is Shape.SCALAR:
            _LOG.debug("Nothing to fill in %r from %r", value, tag)
            return
        if value is None:
            msg = f"Cannot fill None from {tag!r} - the member has no setter."
            raise TagTypeError(msg)

        with self._enter():
            match shape_of_value(value):
                case Shape.SEQUENCE | Shape.MAPPING:
                    collection.fill(value, tp, tag, self.deserialize)
                case Shape.RECORD:
                    self._fill_record(value, tag)
                case _:
                    msg = f"Cannot fill a {type(value).__name__} from {tag!r}."
                    raise TagTypeError(msg)

    def _serialize_record(self, name: str | None, value: Any) -> Compound | None:
        compound = Compound(name)
        for member in members_of(type(value)):
            member_value = member.get(value)
            if member.tag_info.hide_default and member_value == scalar.default_value(member_value):
                _LOG.debug("Omitting %s.%s - equals its default", type(value).__name__, member.attr)
                continue
            if (child := self.serialize(member.tag_name, member_value, member.type)) is not None:
                compound.add(child)

        if not len(compound):
            _LOG.debug("Omitting %r - %s has nothing to map", name, type(value).__name__)
            return None
        return compound

    def _fill_record(self, obj: Any, tag: Tag) -> None:
        if not isinstance(tag, Compound):
            raise _mismatch(tag, type(obj))
        for member in members_of(type(obj)):
            if (child := tag.get(member.tag_name)) is None:
                continue
            match member.access:
                case MemberAccess.REPLACE:
                    member.set(obj, self.deserialize(member.type, child))
                case MemberAccess.IN_PLACE:
                    self.fill(member.get(obj), member.type, child)

    def _deserialize_any(self, tag: Tag) -> Any:
        match tag:
            case ScalarTag():
                return scalar.from_tag(tag)
            case ListTag():
                with self._enter():
                    return collection.from_tag(list, tag, self.deserialize)
            case Compound():
                with self._enter():
                    return collection.from_tag(dict, tag, self.deserialize)
            case _:
                tag.name = None
                return tag

    @contextmanager
    def _enter(self, obj: Any = None) -> Iterator[None]:
        if self._depth >= self.max_depth:
            msg = f"Exceeded the maximum depth of {self.max_depth}."
            raise DepthLimitError(msg)
        key = None if obj is None else id(obj)
        if key is not None:
            if key in self._active:
                msg = f"{type(obj).__name__} object refers back to itself."
                raise CycleError(msg)
            self._active.add(key)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if key is not None:
                self._active.discard(key)


def _mismatch(tag: Tag, tp: Any) -> TagTypeError:
    msg = f"Cannot read a {type(tag).__name__} tag as {tp!r}."
    return TagTypeError(msg)
