"""Explicit table mapping declared Python types to GraphQL scalar annotations."""
from __future__ import annotations

import datetime as _dt
import decimal
import uuid as _py_uuid
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, get_args, get_origin

from strawberry.scalars import JSON as ST_JSON, Base64 as ST_Base64

__all__ = ['DEFAULT_SCALARS', 'ScalarTypeMap']

DEFAULT_SCALARS: Dict[Any, Any] = {
    int: int,
    str: str,
    bool: bool,
    float: float,
    decimal.Decimal: decimal.Decimal,
    _dt.datetime: _dt.datetime,
    _dt.date: _dt.date,
    _dt.time: _dt.time,
    _py_uuid.UUID: _py_uuid.UUID,
    dict: ST_JSON,
    bytes: ST_Base64,
}


class ScalarTypeMap:
    """Registry resolving a declared Python type to its GraphQL annotation.

    ``overrides`` extends (or replaces entries of) :data:`DEFAULT_SCALARS`,
    e.g. ``{datetime.timedelta: MyIntervalScalar}``.
    """

    def __init__(self, overrides: Optional[Mapping[Any, Any]] = None):
        self._table: Dict[Any, Any] = dict(DEFAULT_SCALARS)
        if overrides:
            self._table.update(overrides)

    def register(self, python_type: Any, graphql_type: Any) -> None:
        self._table[python_type] = graphql_type

    @staticmethod
    def is_enum(python_type: Any) -> bool:
        return isinstance(python_type, type) and issubclass(python_type, Enum)

    def resolve(self, python_type: Any) -> Optional[Any]:
        """Return the GraphQL annotation for ``python_type`` or ``None`` if unmapped.

        Enums map to themselves (wrapped as GraphQL enums later); ``List[T]``
        maps element-wise.
        """
        if python_type is None:
            return None
        if self.is_enum(python_type):
            return python_type
        if get_origin(python_type) is list:
            args = get_args(python_type)
            inner = self.resolve(args[0]) if args else None
            return List[inner] if inner is not None else None  # type: ignore[valid-type]
        try:
            return self._table.get(python_type)
        except TypeError:  # unhashable annotation
            return None
