from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from dataclasses import is_dataclass
from enum import Enum
from inspect import get_annotations
from logging import getLogger
from threading import Lock
from typing import TYPE_CHECKING
from typing import Annotated
from typing import Any
from typing import ClassVar
from typing import get_args
from typing import get_origin
from typing import overload
from weakref import WeakKeyDictionary

from nbtmap._internal._utils import full_class_name

if TYPE_CHECKING:
    from collections.abc import Callable
    from collections.abc import Mapping

__all__ = (
    "MemberAccess",
    "MemberInfo",
    "TagInfo",
    "TagProperty",
    "directive_for",
    "members_of",
    "tag_field",
    "tag_property",
)

_LOG = getLogger(__name__)

TAG_INFO_METADATA_KEY = "nbtmap"
"""The key under which `tag_field` stores a directive in dataclass field metadata."""


@dataclass(frozen=True)
class TagInfo:
    """Marks a member as mapped to and from tags.

    Members without a `TagInfo` are never serialized or deserialized.
    """

    name: str | None = None
    """The name of the member's tag - defaults to the member's own name."""
    hide_default: bool = False
    """Whether to omit the member when its value equals the default for its kind."""


def tag_field(
    name: str | None = None,
    *,
    hide_default: bool = False,
    metadata: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Declare a mapped dataclass field.

    Accepts the same keyword arguments as [`dataclasses.field`][dataclasses.field].
    """
    info = TagInfo(name=name, hide_default=hide_default)
    return field(metadata={**(metadata or {}), TAG_INFO_METADATA_KEY: info}, **kwargs)


class TagProperty(property):
    """A property that is mapped to and from tags.

    A property without a setter cannot be replaced when deserializing - its current
    value is filled in place instead.
    """

    def __init__(
        self,
        fget: Callable[[Any], Any] | None = None,
        fset: Callable[[Any, Any], None] | None = None,
        fdel: Callable[[Any], None] | None = None,
        doc: str | None = None,
        *,
        tag_info: TagInfo | None = None,
    ) -> None:
        super().__init__(fget, fset, fdel, doc)
        self.tag_info = tag_info or TagInfo()

    def getter(self, fget: Callable[[Any], Any]) -> TagProperty:
        return type(self)(fget, self.fset, self.fdel, self.__doc__, tag_info=self.tag_info)

    def setter(self, fset: Callable[[Any, Any], None]) -> TagProperty:
        return type(self)(self.fget, fset, self.fdel, self.__doc__, tag_info=self.tag_info)

    def deleter(self, fdel: Callable[[Any], None]) -> TagProperty:
        return type(self)(self.fget, self.fset, fdel, self.__doc__, tag_info=self.tag_info)


@overload
def tag_property(fget: Callable[[Any], Any], /) -> TagProperty: ...


@overload
def tag_property(
    fget: None = None,
    /,
    *,
    name: str | None = ...,
    hide_default: bool = ...,
) -> Callable[[Callable[[Any], Any]], TagProperty]: ...


def tag_property(
    fget: Callable[[Any], Any] | None = None,
    /,
    *,
    name: str | None = None,
    hide_default: bool = False,
) -> Any:
    """Declare a mapped property - use with or without arguments."""
    info = TagInfo(name=name, hide_default=hide_default)

    def decorator(fget: Callable[[Any], Any]) -> TagProperty:
        return TagProperty(fget, tag_info=info)

    return decorator if fget is None else decorator(fget)


class MemberAccess(Enum):
    """What deserialization is allowed to do with a member."""

    REPLACE = "replace"
    """The member can be assigned a newly deserialized value."""
    IN_PLACE = "in_place"
    """The member cannot be assigned - its current value must be filled in place."""


@dataclass(frozen=True)
class MemberInfo:
    """A mapped member of a record type."""

    attr: str
    """The attribute name of the member."""
    tag_info: TagInfo
    """How the member is mapped."""
    type: Any
    """The declared type of the member."""
    access: MemberAccess
    """Whether the member can be replaced or only filled in place."""
    on_class: bool = False
    """Whether the member lives on the class rather than the instance."""
    frozen: bool = False
    """Whether the member belongs to a frozen dataclass and bypasses its `__setattr__`."""

    @property
    def tag_name(self) -> str:
        """The name of the member's tag."""
        return self.tag_info.name or self.attr

    def get(self, obj: Any) -> Any:
        """Get the member's current value from an instance, or None if it was never set."""
        return getattr(type(obj) if self.on_class else obj, self.attr, None)

    def set(self, obj: Any, value: Any) -> None:
        """Assign the member's value on an instance."""
        if self.on_class:
            setattr(type(obj), self.attr, value)
        elif self.frozen:
            object.__setattr__(obj, self.attr, value)
        else:
            setattr(obj, self.attr, value)


def members_of(cls: type) -> tuple[MemberInfo, ...]:
    """Return the mapped members of a type.

    Properties come first and then fields, each in the order they were declared
    starting from the furthest base class. Results are computed once per type.
    """
    if (members := _MEMBERS_BY_TYPE.get(cls)) is not None:
        return members
    with _MEMBERS_LOCK:
        if (members := _MEMBERS_BY_TYPE.get(cls)) is None:
            members = tuple(m for m, info in _candidate_members(cls) if info is not None)
            _LOG.debug("Found %s mapped members on %s", len(members), full_class_name(cls))
            _MEMBERS_BY_TYPE[cls] = members
    return members


def directive_for(cls: type, attr: str) -> TagInfo | None:
    """Return the directive attached to a member of a type, if any."""
    for member, info in _candidate_members(cls):
        if member.attr == attr:
            return info
    return None


_MEMBERS_BY_TYPE: WeakKeyDictionary[type, tuple[MemberInfo, ...]] = WeakKeyDictionary()
_MEMBERS_LOCK = Lock()
_NO_INFO = TagInfo()


def _candidate_members(cls: type) -> list[tuple[MemberInfo, TagInfo | None]]:
    return [*_property_members(cls), *_field_members(cls)]


def _property_members(cls: type) -> list[tuple[MemberInfo, TagInfo | None]]:
    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        names.update((k, None) for k, v in vars(klass).items() if isinstance(v, property))

    members: list[tuple[MemberInfo, TagInfo | None]] = []
    for name in names:
        prop = _lookup_class_attr(cls, name)
        if not isinstance(prop, property):
            continue
        info = prop.tag_info if isinstance(prop, TagProperty) else None
        hints = _annotations(prop.fget) if info is not None and prop.fget else {}
        member = MemberInfo(
            attr=name,
            tag_info=info or _NO_INFO,
            type=hints.get("return", Any),
            access=MemberAccess.IN_PLACE if prop.fset is None else MemberAccess.REPLACE,
        )
        members.append((member, info))
    return members


def _field_members(cls: type) -> list[tuple[MemberInfo, TagInfo | None]]:
    dataclass_fields = {f.name: f for f in fields(cls)} if is_dataclass(cls) else {}
    frozen = is_dataclass(cls) and cls.__dataclass_params__.frozen  # type: ignore[attr-defined]

    hints: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        hints.update(_annotations(klass))

    members: list[tuple[MemberInfo, TagInfo | None]] = []
    for name, hint in hints.items():
        if isinstance(_lookup_class_attr(cls, name), property):
            continue

        hint, on_class = _strip_class_var(hint)
        info = _annotated_tag_info(hint)
        if info is None and (f := dataclass_fields.get(name)) is not None:
            info = f.metadata.get(TAG_INFO_METADATA_KEY)

        member = MemberInfo(
            attr=name,
            tag_info=info or _NO_INFO,
            type=hint,
            access=MemberAccess.REPLACE,
            on_class=on_class,
            frozen=bool(frozen) and not on_class,
        )
        members.append((member, info))
    return members


def _strip_class_var(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) is ClassVar:
        return get_args(hint)[0], True
    if get_origin(hint) is Annotated:
        base, *metadata = get_args(hint)
        if get_origin(base) is ClassVar:
            return Annotated[(get_args(base)[0], *metadata)], True
    return hint, False


def _annotated_tag_info(hint: Any) -> TagInfo | None:
    if get_origin(hint) is not Annotated:
        return None
    for m in get_args(hint)[1:]:
        if isinstance(m, TagInfo):
            return m
    return None


def _lookup_class_attr(cls: type, name: str) -> Any:
    for klass in cls.__mro__:
        if name in vars(klass):
            return vars(klass)[name]
    return None


def _annotations(obj: Any) -> dict[str, Any]:
    try:
        return get_annotations(obj, eval_str=True)
    except (NameError, AttributeError, TypeError) as error:
        # names only imported for type checking can't refer to a TagInfo
        _LOG.debug("Could not evaluate annotations of %r: %s", obj, error)
        return get_annotations(obj)
