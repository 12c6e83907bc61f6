"""Entity metadata read from SQLAlchemy mappers.

The graph builders never touch SQLAlchemy directly; they ask a metadata
provider for an :class:`EntityMetadata` snapshot per entity type. The default
provider, :class:`ModelMetadataProvider`, reads a declarative model's mappers.
"""
from __future__ import annotations

import datetime as _dt
import decimal
import inspect as _inspect
import logging
import uuid as _py_uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from sqlalchemy import Column
from sqlalchemy.orm import Mapper, RelationshipDirection, registry as SARegistry
from sqlalchemy.sql import sqltypes
from sqlalchemy.types import TypeDecorator

from .errors import ConfigurationError

_logger = logging.getLogger("automapql")

__all__ = [
    'ScalarProperty',
    'Navigation',
    'EntityMetadata',
    'MetadataProvider',
    'ModelMetadataProvider',
    'sa_python_type',
]


@dataclass(frozen=True)
class ScalarProperty:
    """A column-backed property of an entity.

    Attributes:
        name: Mapped attribute name on the entity class.
        python_type: Declared Python type, or ``None`` when SQLAlchemy cannot
            tell (the graph builder rejects such properties).
        nullable: Whether the column accepts NULL.
        column_type: The SQLAlchemy type instance, kept for error reporting.
        description: Column comment or ``info['description']``.
    """

    name: str
    python_type: Any
    nullable: bool
    column_type: Any = None
    description: Optional[str] = None

    @property
    def is_enum(self) -> bool:
        return isinstance(self.python_type, type) and issubclass(self.python_type, Enum)


@dataclass(frozen=True)
class Navigation:
    """A relationship from one entity to another."""

    name: str
    target_type: type
    is_collection: bool
    nullable: bool = True
    description: Optional[str] = None


@dataclass(frozen=True)
class EntityMetadata:
    entity_type: type
    scalar_properties: Tuple[ScalarProperty, ...] = field(default_factory=tuple)
    navigations: Tuple[Navigation, ...] = field(default_factory=tuple)
    description: Optional[str] = None


@runtime_checkable
class MetadataProvider(Protocol):
    def entity_metadata(self, entity_type: Any) -> Optional[EntityMetadata]:
        ...


def sa_python_type(sqlatype: Any) -> Any:
    """Map a SQLAlchemy column type to a Python (annotation) type.

    Returns ``None`` when no Python type can be determined; callers decide
    whether that is fatal.
    """
    if isinstance(sqlatype, Column):
        sqlatype = sqlatype.type
    if isinstance(sqlatype, TypeDecorator):
        # A decorator that declares its own python_type wins over its impl
        if type(sqlatype).python_type is not TypeDecorator.python_type:
            try:
                return sqlatype.python_type
            except NotImplementedError:
                return None
        impl = getattr(sqlatype, 'impl_instance', None) or getattr(sqlatype, 'impl', None)
        if impl is None or impl is sqlatype:
            return None
        return sa_python_type(impl)
    # Untyped SQL expressions (e.g. func.length without type_)
    if isinstance(sqlatype, sqltypes.NullType):
        return None
    # Enum is a String subclass, check it first
    if isinstance(sqlatype, sqltypes.Enum):
        return getattr(sqlatype, 'enum_class', None) or str
    if isinstance(sqlatype, sqltypes.Boolean):
        return bool
    if isinstance(sqlatype, sqltypes.Integer):
        return int
    if isinstance(sqlatype, sqltypes.Float):
        return float
    if isinstance(sqlatype, sqltypes.Numeric):
        return decimal.Decimal if getattr(sqlatype, 'asdecimal', True) else float
    if isinstance(sqlatype, sqltypes.DateTime):
        return _dt.datetime
    if isinstance(sqlatype, sqltypes.Date):
        return _dt.date
    if isinstance(sqlatype, sqltypes.Time):
        return _dt.time
    if isinstance(sqlatype, sqltypes.Interval):
        return _dt.timedelta
    if isinstance(sqlatype, sqltypes.String):
        return str
    if isinstance(sqlatype, sqltypes.Uuid):
        return _py_uuid.UUID if getattr(sqlatype, 'as_uuid', True) else str
    if isinstance(sqlatype, sqltypes.ARRAY):
        inner = sa_python_type(sqlatype.item_type)
        return List[inner] if inner is not None else None  # type: ignore[valid-type]
    if isinstance(sqlatype, sqltypes.JSON):
        return dict
    try:
        return sqlatype.python_type
    except (AttributeError, NotImplementedError):
        return None


def _column_description(col: Any) -> Optional[str]:
    desc = getattr(col, 'comment', None)
    if not desc:
        info = getattr(col, 'info', None) or {}
        desc = info.get('description') or info.get('doc')
    return str(desc) if desc else None


def _model_description(model_cls: type) -> Optional[str]:
    # Prefer the class docstring, then the table comment
    doc = model_cls.__dict__.get('__doc__')
    if not doc:
        doc = getattr(getattr(model_cls, '__table__', None), 'comment', None)
    return str(doc).strip() if doc else None


def _declaration_order(mapper: Mapper, props: Any) -> List[Any]:
    """Order mapped properties as declared on the class (base classes first).

    ``mapper.column_attrs`` lists explicit ``column_property`` attributes ahead
    of table columns; class ``__dict__`` order follows the class body.
    Properties not found on any class keep their mapper order, last.
    """
    position: Dict[str, int] = {}
    for klass in reversed(mapper.class_.__mro__):
        # Annotated attributes (Mapped[...]) first, then plain assignments
        for key in list(_inspect.get_annotations(klass)) + list(vars(klass)):
            position.setdefault(key, len(position))
    fallback = len(position)
    indexed = sorted(enumerate(props), key=lambda ip: (position.get(ip[1].key, fallback), ip[0]))
    return [p for _, p in indexed]


class ModelMetadataProvider:
    """Metadata provider over a SQLAlchemy declarative model.

    Accepts either a declarative base class (anything exposing ``registry``)
    or a :class:`sqlalchemy.orm.registry`. Lookup is by exact class: a type
    that is not itself mapped in the registry has no metadata.
    """

    def __init__(self, model: Any):
        reg = model if isinstance(model, SARegistry) else getattr(model, 'registry', None)
        if not isinstance(reg, SARegistry):
            raise ConfigurationError(f"Expected a declarative base or registry, got {model!r}")
        self.registry = reg
        self._mappers: Optional[Dict[type, Mapper]] = None
        self._cache: Dict[Any, Optional[EntityMetadata]] = {}

    def _mapper_for(self, entity_type: Any) -> Optional[Mapper]:
        if self._mappers is None:
            self.registry.configure()
            self._mappers = {m.class_: m for m in self.registry.mappers}
        try:
            return self._mappers.get(entity_type)
        except TypeError:  # unhashable
            return None

    def entity_metadata(self, entity_type: Any) -> Optional[EntityMetadata]:
        try:
            return self._cache[entity_type]
        except KeyError:
            pass
        except TypeError:
            return None
        mapper = self._mapper_for(entity_type)
        meta = self._read_mapper(mapper) if mapper is not None else None
        self._cache[entity_type] = meta
        return meta

    def _read_mapper(self, mapper: Mapper) -> EntityMetadata:
        scalars: List[ScalarProperty] = []
        for prop in _declaration_order(mapper, mapper.column_attrs):
            col = prop.columns[0]
            nullable = bool(col.nullable) if isinstance(col, Column) else True
            scalars.append(ScalarProperty(
                name=prop.key,
                python_type=sa_python_type(col.type),
                nullable=nullable,
                column_type=col.type,
                description=_column_description(col),
            ))
        navs: List[Navigation] = []
        for rel in _declaration_order(mapper, mapper.relationships):
            nullable = True
            if not rel.uselist and rel.direction is RelationshipDirection.MANYTOONE:
                local = list(rel.local_columns)
                nullable = not local or any(getattr(c, 'nullable', True) for c in local)
            desc = rel.doc or (rel.info or {}).get('description')
            navs.append(Navigation(
                name=rel.key,
                target_type=rel.mapper.class_,
                is_collection=bool(rel.uselist),
                nullable=nullable,
                description=str(desc) if desc else None,
            ))
        _logger.debug("automapql: read metadata for %s (%d scalars, %d navigations)",
                      mapper.class_.__name__, len(scalars), len(navs))
        return EntityMetadata(
            entity_type=mapper.class_,
            scalar_properties=tuple(scalars),
            navigations=tuple(navs),
            description=_model_description(mapper.class_),
        )
