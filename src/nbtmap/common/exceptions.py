class TagTypeError(TypeError):
    """Raised when a tag's kind does not match the type it is mapped to or from."""


class CycleError(ValueError):
    """Raised when an object refers back to itself while being serialized."""


class DepthLimitError(RecursionError):
    """Raised when an object graph or tag tree nests deeper than allowed."""
