"""Graph nodes and the entity graph builder.

A :class:`GraphNode` is the schema object type generated for one entity type.
:class:`EntityGraphBuilder` produces nodes from entity metadata, recursing into
navigation targets and memoizing one node per entity type so cyclic models
(parent/child back-references, self-references) terminate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

from .context import ResolveFieldContext
from .core.paths import create_resolver
from .core.scalars import ScalarTypeMap
from .errors import ConfigurationError, UnmappedScalarTypeError
from .metadata import EntityMetadata, MetadataProvider

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .service import QueryService

_logger = logging.getLogger("automapql")

__all__ = [
    'ScalarField',
    'NavigationField',
    'GraphField',
    'GraphNode',
    'RootField',
    'RootQuery',
    'EntityGraphBuilder',
    'type_name_for',
]


def _annotation_label(tp: Any) -> str:
    name = getattr(tp, '__name__', None)
    if name and not getattr(tp, '__args__', None):
        return name
    return repr(tp).replace('typing.', '')


@dataclass(frozen=True)
class ScalarField:
    """Field backed by a primitive or enum-typed property.

    ``graphql_type`` is the scalar annotation (for enums, the Python enum
    class, exposed as a GraphQL enum when the schema is materialized).
    """

    name: str
    graphql_type: Any
    nullable: bool
    enum_type: Optional[type] = None
    description: Optional[str] = None

    kind = 'scalar'

    def shape(self) -> Tuple[Any, ...]:
        return (self.name, self.kind, _annotation_label(self.graphql_type), self.nullable, self.enum_type is not None)


@dataclass(frozen=True)
class NavigationField:
    """Field projecting a parent instance onto a related instance or collection."""

    name: str
    target: 'GraphNode'
    is_collection: bool
    nullable: bool
    resolver: Callable[[Any], Any]
    description: Optional[str] = None

    kind = 'navigation'

    def shape(self) -> Tuple[Any, ...]:
        return (self.name, self.kind, self.target.name, self.nullable, self.is_collection)


GraphField = Union[ScalarField, NavigationField]


class GraphNode:
    """Generated object type for one entity type.

    A node is registered in the builder's memo before its fields exist
    (``complete`` is False) and sealed once construction finishes; sealed
    nodes reject further fields.
    """

    def __init__(self, name: str, entity_type: Any, description: Optional[str] = None):
        self.name = name
        self.entity_type = entity_type
        self.description = description
        self.fields: List[GraphField] = []
        self.complete = False

    def add_field(self, gfield: GraphField) -> GraphField:
        if self.complete:
            raise RuntimeError(f"Graph node {self.name} is sealed")
        if any(f.name == gfield.name for f in self.fields):
            raise ConfigurationError(f"Duplicate field {gfield.name!r} on {self.name}")
        self.fields.append(gfield)
        return gfield

    def seal(self) -> None:
        self.complete = True

    def field(self, name: str) -> GraphField:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def scalar_fields(self) -> List[ScalarField]:
        return [f for f in self.fields if isinstance(f, ScalarField)]

    @property
    def navigation_fields(self) -> List[NavigationField]:
        return [f for f in self.fields if isinstance(f, NavigationField)]

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def shape(self) -> Tuple[Any, ...]:
        """Structural signature: name plus each field's name, kind, type and nullability."""
        return (self.name, tuple(f.shape() for f in self.fields))

    def __repr__(self) -> str:
        state = 'complete' if self.complete else 'building'
        return f"<GraphNode {self.name} fields={len(self.fields)} {state}>"


@dataclass(frozen=True)
class RootField:
    name: str
    graph_type: GraphNode
    resolver: Callable[[Any], Any]
    single: bool = False
    description: Optional[str] = None


class RootQuery:
    """The root query type under construction."""

    def __init__(self, name: str = 'Query'):
        self.name = name
        self.fields: List[RootField] = []

    def add_field(self, rfield: RootField) -> RootField:
        if any(f.name == rfield.name for f in self.fields):
            raise ConfigurationError(f"Duplicate root field {rfield.name!r} on {self.name}")
        self.fields.append(rfield)
        return rfield

    def field(self, name: str) -> RootField:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


def type_name_for(entity_type: Any) -> str:
    return getattr(entity_type, '__name__', None) or str(entity_type)


class EntityGraphBuilder:
    """Builds (or returns the memoized) :class:`GraphNode` for an entity type."""

    def __init__(self, metadata: MetadataProvider, service: 'QueryService', scalars: Optional[ScalarTypeMap] = None):
        self.metadata = metadata
        self.service = service
        self.scalars = scalars or ScalarTypeMap()
        self._nodes: Dict[Any, GraphNode] = {}

    @property
    def nodes(self) -> List[GraphNode]:
        """All nodes built so far, in construction order."""
        return list(self._nodes.values())

    def get(self, entity_type: Any) -> Optional[GraphNode]:
        return self._nodes.get(entity_type)

    def build(self, entity_type: Any) -> GraphNode:
        node = self._nodes.get(entity_type)
        if node is not None:
            # Possibly still under construction when reached through a cycle
            return node
        node = GraphNode(type_name_for(entity_type), entity_type)
        mark = len(self._nodes)
        self._nodes[entity_type] = node
        try:
            meta = self.metadata.entity_metadata(entity_type)
            if meta is None:
                _logger.warning("automapql: no entity metadata for %s; exposing an empty type", node.name)
                node.seal()
                return node
            node.description = meta.description
            self._add_scalar_fields(node, meta)
            self._add_navigation_fields(node, meta)
        except Exception:
            # Forget this node and every node built under it; they may reference it
            for key in list(self._nodes)[mark:]:
                del self._nodes[key]
            raise
        node.seal()
        _logger.debug("automapql: built graph node %s with fields %s", node.name, node.field_names)
        return node

    def _add_scalar_fields(self, node: GraphNode, meta: EntityMetadata) -> None:
        for prop in meta.scalar_properties:
            gql_type = self.scalars.resolve(prop.python_type)
            if gql_type is None:
                declared = prop.python_type if prop.python_type is not None else prop.column_type
                raise UnmappedScalarTypeError(node.entity_type, prop.name, declared)
            enum_type = prop.python_type if prop.is_enum else None
            node.add_field(ScalarField(
                name=prop.name,
                graphql_type=gql_type,
                nullable=prop.nullable,
                enum_type=enum_type,
                description=prop.description,
            ))

    def _add_navigation_fields(self, node: GraphNode, meta: EntityMetadata) -> None:
        root_type = ResolveFieldContext[node.entity_type]  # type: ignore[index]
        for nav in meta.navigations:
            cast_to = List[nav.target_type] if nav.is_collection else nav.target_type  # type: ignore[valid-type]
            resolve = create_resolver(root_type, f"source.{nav.name}", cast_to)
            target = self.build(nav.target_type)
            self.service.add_navigation_field(
                node,
                name=nav.name,
                resolve=resolve,
                graph_type=target,
                is_collection=nav.is_collection,
                nullable=nav.nullable,
                description=nav.description or target.description,
            )
