from nbtmap.core.mapper import TagMapper
from nbtmap.core.mapper import deserialize_object
from nbtmap.core.mapper import fill_object
from nbtmap.core.mapper import serialize_object
from nbtmap.core.member import TagInfo
from nbtmap.core.member import tag_field
from nbtmap.core.member import tag_property

__all__ = (
    "TagInfo",
    "TagMapper",
    "deserialize_object",
    "fill_object",
    "serialize_object",
    "tag_field",
    "tag_property",
)
