import gc
import weakref
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Annotated
from typing import ClassVar

from nbtmap.core.member import MemberAccess
from nbtmap.core.member import TagInfo
from nbtmap.core.member import directive_for
from nbtmap.core.member import members_of
from nbtmap.core.member import tag_field
from nbtmap.core.member import tag_property
from nbtmap.core.scalar import UInt8


@dataclass
class Base:
    base_value: int = tag_field("base", default=0)
    not_mapped: int = 0


@dataclass
class Child(Base):
    _secret: str = tag_field(hide_default=True, default="")
    level: Annotated[UInt8, TagInfo("lvl")] = 0

    @tag_property
    def summary(self) -> str:
        return f"{self.base_value}:{self.level}"


class Plain:
    count: Annotated[int, TagInfo()] = 0
    version: ClassVar[Annotated[int, TagInfo("v")]] = 1
    ignored: int = 0

    def __init__(self) -> None:
        self._label = ""

    @tag_property(name="label", hide_default=True)
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, value: str) -> None:
        self._label = value

    @property
    def unmapped(self) -> int:
        return 0


@dataclass(frozen=True)
class Frozen:
    items: list[int] = tag_field(default_factory=list)


def test_only_members_with_tag_info_are_selected():
    assert [m.attr for m in members_of(Child)] == ["summary", "base_value", "_secret", "level"]
    assert [m.attr for m in members_of(Plain)] == ["label", "count", "version"]


def test_member_names_and_directives():
    by_attr = {m.attr: m for m in members_of(Child)}
    assert by_attr["base_value"].tag_name == "base"
    assert by_attr["_secret"].tag_name == "_secret"
    assert by_attr["_secret"].tag_info.hide_default
    assert by_attr["level"].tag_name == "lvl"
    assert by_attr["level"].type == Annotated[UInt8, TagInfo("lvl")]
    assert by_attr["summary"].type is str


def test_member_access():
    child = {m.attr: m for m in members_of(Child)}
    plain = {m.attr: m for m in members_of(Plain)}
    assert child["summary"].access is MemberAccess.IN_PLACE
    assert child["level"].access is MemberAccess.REPLACE
    assert plain["label"].access is MemberAccess.REPLACE
    assert members_of(Frozen)[0].access is MemberAccess.REPLACE


def test_setter_keeps_tag_info():
    (label,) = [m for m in members_of(Plain) if m.attr == "label"]
    assert label.tag_info == TagInfo(name="label", hide_default=True)


def test_class_level_member():
    (version,) = [m for m in members_of(Plain) if m.attr == "version"]
    assert version.on_class
    assert version.get(Plain()) == 1


def test_member_get_and_set():
    (level,) = [m for m in members_of(Child) if m.attr == "level"]
    obj = Child()
    level.set(obj, 7)
    assert obj.level == 7
    assert level.get(obj) == 7


def test_directive_for():
    assert directive_for(Child, "level") == TagInfo("lvl")
    assert directive_for(Child, "summary") == TagInfo()
    assert directive_for(Child, "not_mapped") is None
    assert directive_for(Plain, "unmapped") is None
    assert directive_for(Plain, "missing") is None


def test_members_are_computed_once_across_threads():
    @dataclass
    class Fresh:
        value: int = tag_field(default=0)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: members_of(Fresh), range(32)))

    assert all(r is results[0] for r in results)


def test_frozen_members_are_assigned():
    (items,) = members_of(Frozen)
    obj = Frozen()
    items.set(obj, [1, 2])
    assert obj.items == [1, 2]


def test_unset_member_reads_as_none():
    class Unset:
        value: Annotated[int, TagInfo()]

    (value,) = members_of(Unset)
    assert value.get(Unset()) is None


def test_member_cache_does_not_keep_types_alive():
    class Temporary:
        value: Annotated[int, TagInfo()] = 0

    assert members_of(Temporary)
    ref = weakref.ref(Temporary)
    del Temporary
    gc.collect()
    assert ref() is None
