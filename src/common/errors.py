"""
Error types for sculpture generation and export.

ConfigError and IndexOutOfRangeError also derive from the matching builtin
(ValueError / IndexError) so callers catching builtins keep working.
"""


class SculptureError(Exception):
    """Base class for all generation and export errors."""


class ConfigError(SculptureError, ValueError):
    """A parameter is out of range. Raised before any generation work."""


class DegenerateGeometryError(SculptureError):
    """A triangle has no defined normal (zero-length edge or zero area)."""


class IndexOutOfRangeError(SculptureError, IndexError):
    """A face references a vertex that does not exist. Always a bug."""


class MeshTopologyError(SculptureError):
    """A face repeats a vertex index or has the wrong arity."""


class RandomSourceError(SculptureError):
    """The random source failed, ran out, or returned a value outside [0, 1)."""


class CombinerUnavailableError(SculptureError):
    """No boolean combination backend could be used."""
