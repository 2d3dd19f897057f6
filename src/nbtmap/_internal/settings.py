from collections.abc import Callable
from os import environ
from typing import TypeVar

T = TypeVar("T")


def make_setting(
    name: str,
    default: T,
    from_string: Callable[[str], T] = lambda x: x,
) -> Callable[[], T]:
    """Create a setting with a name, default value, and optional conversion function."""
    return lambda: from_string(environ[name]) if name in environ else default


NBTMAP_MAX_DEPTH = make_setting("NBTMAP_MAX_DEPTH", 512, from_string=int)
"""How deep the mapper may recurse into an object graph or tag tree."""
