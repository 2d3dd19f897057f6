from array import array
from decimal import Decimal
from enum import IntEnum
from typing import Any

import pytest

from nbtmap.common.exceptions import TagTypeError
from nbtmap.core.scalar import Float32
from nbtmap.core.scalar import Int8
from nbtmap.core.scalar import Int16
from nbtmap.core.scalar import Int32
from nbtmap.core.scalar import Int64
from nbtmap.core.scalar import ScalarKind
from nbtmap.core.scalar import UInt8
from nbtmap.core.scalar import UInt16
from nbtmap.core.scalar import UInt32
from nbtmap.core.scalar import UInt64
from nbtmap.core.scalar import default_value
from nbtmap.core.scalar import from_tag
from nbtmap.core.scalar import kind_of_type
from nbtmap.core.scalar import to_tag
from nbtmap.core.tag import Byte
from nbtmap.core.tag import ByteArray
from nbtmap.core.tag import Compound
from nbtmap.core.tag import Double
from nbtmap.core.tag import Float
from nbtmap.core.tag import Int
from nbtmap.core.tag import IntArray
from nbtmap.core.tag import Long
from nbtmap.core.tag import Short
from nbtmap.core.tag import String


class Color(IntEnum):
    RED = 1
    GREEN = 2


@pytest.mark.parametrize(
    ("value", "tp", "expected_tag"),
    [
        (-5, Int8, Byte("v", -5)),
        (255, UInt8, Byte("v", -1)),
        (-1, Int16, Short("v", -1)),
        (65535, UInt16, Short("v", -1)),
        (2**31 - 1, Int32, Int("v", 2**31 - 1)),
        (2**32 - 1, UInt32, Int("v", -1)),
        (-(2**63), Int64, Long("v", -(2**63))),
        (2**64 - 1, UInt64, Long("v", -1)),
        (0.5, Float32, Float("v", 0.5)),
        (0.1, float, Double("v", 0.1)),
        (True, bool, Byte("v", 1)),
        (False, bool, Byte("v", 0)),
        ("héllo", str, String("v", "héllo")),
        (b"\x00\xff", bytes, ByteArray("v", b"\x00\xff")),
        (array("i", [1, -2]), array, IntArray("v", [1, -2])),
        (Color.GREEN, Color, Int("v", 2)),
    ],
    ids=str,
)
def test_scalar_to_tag_and_back(value: Any, tp: Any, expected_tag: Any):
    tag = to_tag("v", value, tp)
    assert tag == expected_tag
    assert from_tag(tag, tp) == value


def test_undeclared_int_width_depends_on_value():
    assert to_tag(None, 42) == Int(None, 42)
    assert to_tag(None, -(2**31)) == Int(None, -(2**31))
    assert to_tag(None, 2**40) == Long(None, 2**40)


def test_declared_width_ignored_when_value_disagrees():
    assert to_tag(None, "text", Int8) == String(None, "text")
    assert to_tag(None, 3, Float32) == Float(None, 3.0)


def test_stored_integers_reinterpreted_by_target_kind():
    tag = Byte(None, -1)
    assert from_tag(tag, UInt8) == 255
    assert from_tag(tag, Int8) == -1
    assert from_tag(tag, int) == -1
    assert from_tag(tag) == -1
    assert from_tag(tag, bool) is True
    assert from_tag(Short(None, -2), UInt8) == 65534


def test_enum_and_bytearray_targets_are_coerced():
    assert from_tag(Int(None, 1), Color) is Color.RED
    loaded = from_tag(ByteArray(None, b"ab"), bytearray)
    assert isinstance(loaded, bytearray)
    assert loaded == bytearray(b"ab")


def test_unsupported_values_have_no_tag():
    assert to_tag(None, Decimal("1.5")) is None
    assert to_tag(None, [1, 2]) is None
    assert to_tag(None, array("d", [1.0])) is None
    assert to_tag(None, array("I", [2**32 - 1]), array) is None
    assert to_tag(None, array("q", [1])) is None
    assert from_tag(Compound(), int) is None


@pytest.mark.parametrize(
    ("tag", "tp"),
    [
        (String(None, "x"), int),
        (Int(None, 1), float),
        (Double(None, 1.0), int),
        (ByteArray(None, b""), str),
        (IntArray(None, [1]), bytes),
    ],
    ids=str,
)
def test_incompatible_kind_is_an_error(tag: Any, tp: Any):
    with pytest.raises(TagTypeError, match="Cannot read"):
        from_tag(tag, tp)


def test_kind_of_type():
    assert kind_of_type(UInt16) is ScalarKind.UINT16
    assert kind_of_type(int) is ScalarKind.INT
    assert kind_of_type(bool) is ScalarKind.BOOL
    assert kind_of_type(bytearray) is ScalarKind.BYTES
    assert kind_of_type(list[int]) is None
    assert kind_of_type(Decimal) is None
    assert kind_of_type(Any) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (5, 0),
        (2.5, 0),
        (True, False),
        (Decimal("3"), 0),
        ("text", None),
        ([], None),
        (None, None),
    ],
    ids=str,
)
def test_default_value(value: Any, expected: Any):
    assert default_value(value) == expected
