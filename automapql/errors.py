"""Exceptions raised while deriving a schema from a data model.

Every construction-time fault derives from :class:`ConfigurationError` (a
``ValueError``) so a host application can stop at startup on any of them.
"""
from __future__ import annotations

from typing import Any

__all__ = [
    'AutomapError',
    'ConfigurationError',
    'UnmappedScalarTypeError',
    'PropertyPathError',
    'DuplicateTypeNameError',
]


def _type_label(tp: Any) -> str:
    return getattr(tp, '__qualname__', None) or getattr(tp, '__name__', None) or repr(tp)


class AutomapError(Exception):
    """Base class for AutomapQL errors."""


class ConfigurationError(AutomapError, ValueError):
    """The data model or data context cannot be exposed as declared."""


class UnmappedScalarTypeError(ConfigurationError):
    """A scalar property's declared type has no GraphQL scalar mapping."""

    def __init__(self, entity_type: Any, property_name: str, declared_type: Any):
        self.entity_type = entity_type
        self.property_name = property_name
        self.declared_type = declared_type
        super().__init__(
            f"No GraphQL scalar mapping for type {_type_label(declared_type)} "
            f"of property {_type_label(entity_type)}.{property_name}"
        )


class PropertyPathError(ConfigurationError):
    """A property path segment cannot be read (or cast) on its owner type."""

    def __init__(self, message: str, *, owner: Any = None, segment: str | None = None, path: str | None = None):
        self.owner = owner
        self.segment = segment
        self.path = path
        super().__init__(message)


class DuplicateTypeNameError(ConfigurationError):
    """Two distinct entity types map to the same GraphQL type name."""

    def __init__(self, name: str, first: Any, second: Any):
        self.name = name
        self.first = first
        self.second = second
        super().__init__(
            f"GraphQL type name {name!r} is produced by both "
            f"{_type_label(first)} and {_type_label(second)}"
        )
