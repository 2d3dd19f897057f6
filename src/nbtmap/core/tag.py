from __future__ import annotations

import abc
from array import array
from struct import Struct
from typing import TYPE_CHECKING
from typing import Any
from typing import ClassVar
from typing import Generic
from typing import TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable
    from collections.abc import Iterator

__all__ = (
    "Byte",
    "ByteArray",
    "Compound",
    "Double",
    "Float",
    "Int",
    "IntArray",
    "ListTag",
    "Long",
    "ScalarTag",
    "Short",
    "String",
    "Tag",
)

V = TypeVar("V")

_FLOAT32 = Struct("<f")


class Tag(abc.ABC):
    """A node in a tag tree.

    The name of a tag is only meaningful while it is the direct child of a
    [`Compound`][nbtmap.core.tag.Compound]. List children and the root of a tree
    usually have no name.
    """

    __slots__ = ("name",)

    def __init__(self, name: str | None = None) -> None:
        self.name = name

    @abc.abstractmethod
    def _payload(self) -> Any:
        """Return what, besides the class and name, makes two tags equal."""
        ...

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.name == other.name and self._payload() == other._payload()  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]


class ScalarTag(Tag, Generic[V]):
    """A leaf tag holding exactly one value."""

    __slots__ = ("value",)

    def __init__(self, name: str | None = None, value: V | None = None) -> None:
        super().__init__(name)
        self.value = self._check(self._default() if value is None else value)

    @abc.abstractmethod
    def _default(self) -> V:
        """Return the value of a tag constructed without one."""
        ...

    def _check(self, value: Any) -> V:
        return value

    def _payload(self) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.value!r})"


class _IntegerTag(ScalarTag[int]):
    __slots__ = ()

    bits: ClassVar[int]
    """The width of the signed integer this tag stores."""

    def _default(self) -> int:
        return 0

    def _check(self, value: Any) -> int:
        value = int(value)
        low = -(1 << (self.bits - 1))
        high = (1 << (self.bits - 1)) - 1
        if not low <= value <= high:
            msg = f"{value} does not fit in a signed {self.bits}-bit {type(self).__name__} tag."
            raise ValueError(msg)
        return value


class Byte(_IntegerTag):
    """A signed 8-bit integer tag."""

    __slots__ = ()
    bits = 8


class Short(_IntegerTag):
    """A signed 16-bit integer tag."""

    __slots__ = ()
    bits = 16


class Int(_IntegerTag):
    """A signed 32-bit integer tag."""

    __slots__ = ()
    bits = 32


class Long(_IntegerTag):
    """A signed 64-bit integer tag."""

    __slots__ = ()
    bits = 64


class Float(ScalarTag[float]):
    """A 32-bit floating point tag."""

    __slots__ = ()

    def _default(self) -> float:
        return 0.0

    def _check(self, value: Any) -> float:
        # stored values are rounded to single precision
        return _FLOAT32.unpack(_FLOAT32.pack(float(value)))[0]


class Double(ScalarTag[float]):
    """A 64-bit floating point tag."""

    __slots__ = ()

    def _default(self) -> float:
        return 0.0

    def _check(self, value: Any) -> float:
        return float(value)


class String(ScalarTag[str]):
    """A UTF-8 string tag."""

    __slots__ = ()

    def _default(self) -> str:
        return ""

    def _check(self, value: Any) -> str:
        if not isinstance(value, str):
            msg = f"Expected a string, got {type(value).__name__}."
            raise TypeError(msg)
        return value


class ByteArray(ScalarTag[bytes]):
    """A tag holding raw bytes."""

    __slots__ = ()

    def _default(self) -> bytes:
        return b""

    def _check(self, value: Any) -> bytes:
        return bytes(value)


class IntArray(ScalarTag["array[int]"]):
    """A tag holding an array of signed 32-bit integers."""

    __slots__ = ()

    def _default(self) -> array[int]:
        return array("i")

    def _check(self, value: Any) -> array[int]:
        return array("i", value)


class Compound(Tag):
    """A tag mapping unique names to child tags in insertion order."""

    __slots__ = ("_children",)

    def __init__(self, name: str | None = None, children: Iterable[Tag] = ()) -> None:
        super().__init__(name)
        self._children: dict[str, Tag] = {}
        for child in children:
            self.add(child)

    def add(self, tag: Tag) -> None:
        """Add a named child tag."""
        if tag.name is None:
            msg = f"Children of a compound tag must be named, got {tag!r}."
            raise ValueError(msg)
        if tag.name in self._children:
            msg = f"Compound tag already has a child named {tag.name!r}."
            raise KeyError(msg)
        self._children[tag.name] = tag

    def get(self, name: str) -> Tag | None:
        """Return the child with the given name, if any."""
        return self._children.get(name)

    def names(self) -> list[str]:
        """Return the names of the children in order."""
        return list(self._children)

    def __getitem__(self, name: str) -> Tag:
        return self._children[name]

    def __contains__(self, name: object) -> bool:
        return name in self._children

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._children.values())

    def __len__(self) -> int:
        return len(self._children)

    def _payload(self) -> Any:
        return list(self._children.items())

    def __repr__(self) -> str:
        return f"Compound({self.name!r}, {list(self._children.values())!r})"


class ListTag(Tag):
    """A tag holding an ordered sequence of unnamed children of one tag class."""

    __slots__ = ("_children",)

    def __init__(self, name: str | None = None, children: Iterable[Tag] = ()) -> None:
        super().__init__(name)
        self._children: list[Tag] = []
        for child in children:
            self.add(child)

    @property
    def list_type(self) -> type[Tag] | None:
        """The class shared by all children, or None if the list is empty."""
        return type(self._children[0]) if self._children else None

    def add(self, tag: Tag) -> None:
        """Append a child tag, clearing its name."""
        if (list_type := self.list_type) is not None and type(tag) is not list_type:
            msg = (
                f"Cannot add a {type(tag).__name__} tag to a list of "
                f"{list_type.__name__} tags."
            )
            raise TypeError(msg)
        tag.name = None
        self._children.append(tag)

    def __getitem__(self, index: int) -> Tag:
        return self._children[index]

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def _payload(self) -> Any:
        return self._children

    def __repr__(self) -> str:
        return f"ListTag({self.name!r}, {self._children!r})"
