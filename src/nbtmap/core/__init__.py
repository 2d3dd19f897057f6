from nbtmap.core import mapper
from nbtmap.core import member
from nbtmap.core import scalar
from nbtmap.core import tag
from nbtmap.core.mapper import *  # noqa: F403
from nbtmap.core.member import *  # noqa: F403
from nbtmap.core.scalar import *  # noqa: F403
from nbtmap.core.tag import *  # noqa: F403

__all__ = []
__all__.extend(mapper.__all__)
__all__.extend(member.__all__)
__all__.extend(scalar.__all__)
__all__.extend(tag.__all__)
