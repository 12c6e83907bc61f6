"""Materialization of graph nodes into Strawberry object types."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import strawberry
from strawberry.types import Info as StrawberryInfo

from .errors import DuplicateTypeNameError
from .graph import GraphNode, NavigationField, RootQuery, ScalarField
from .service import QueryService

_logger = logging.getLogger("automapql")

__all__ = ['StrawberryTypeFactory', 'UNMAPPED_FIELD', 'PING_FIELD']

UNMAPPED_FIELD = '_unmapped'
PING_FIELD = '_ping'

_UNMAPPED_DESC = "Placeholder on types without entity metadata; always true."


def _enum_values_description(enum_cls: type) -> Optional[str]:
    vals = []
    for member in enum_cls:  # type: ignore[attr-defined]
        v = getattr(member, 'value', None)
        vals.append(str(v if v is not None else member.name))
    return f"Values: {', '.join(vals)}" if vals else None


def _reachable(nodes: Iterable[GraphNode]) -> List[GraphNode]:
    out: List[GraphNode] = []
    seen = set()
    stack = list(nodes)[::-1]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        out.append(node)
        for nav in reversed(node.navigation_fields):
            if id(nav.target) not in seen:
                stack.append(nav.target)
    return out


class StrawberryTypeFactory:
    """Turns graph nodes into Strawberry types.

    Works in passes so cyclic references resolve: plain classes are created
    for every node first, then annotated with fields referencing each other,
    then decorated with ``strawberry.type``.
    """

    def __init__(self, service: QueryService):
        self.service = service
        self._types: Dict[int, type] = {}
        self._names: Dict[str, GraphNode] = {}
        self._enums: Dict[type, Any] = {}

    def type_for(self, node: GraphNode) -> type:
        return self._types[id(node)]

    def enum_for(self, enum_cls: type) -> Any:
        st_enum = self._enums.get(enum_cls)
        if st_enum is None:
            st_enum = strawberry.enum(enum_cls, name=enum_cls.__name__)  # type: ignore[arg-type]
            self._enums[enum_cls] = st_enum
        return st_enum

    def materialize(self, nodes: Iterable[GraphNode]) -> Dict[GraphNode, type]:
        """Create Strawberry types for ``nodes`` and every node they reach."""
        all_nodes = _reachable(nodes)
        pending: List[GraphNode] = []
        for node in all_nodes:
            if id(node) in self._types:
                continue
            other = self._names.get(node.name)
            if other is not None and other is not node:
                raise DuplicateTypeNameError(node.name, other.entity_type, node.entity_type)
            self._names[node.name] = node
            cls = type(node.name, (), {'__doc__': node.description or f'Auto-generated type for {node.name}'})
            cls.__module__ = __name__
            self._types[id(node)] = cls
            pending.append(node)
        for node in pending:
            self._populate(node, self._types[id(node)])
        for node in pending:
            cls = self._types[id(node)]
            if node.description:
                self._types[id(node)] = strawberry.type(cls, description=node.description)  # type: ignore
            else:
                self._types[id(node)] = strawberry.type(cls)  # type: ignore
        return {node: self._types[id(node)] for node in all_nodes}

    def _populate(self, node: GraphNode, cls: type) -> None:
        annotations: Dict[str, Any] = {}
        for gfield in node.fields:
            if isinstance(gfield, ScalarField):
                annotations[gfield.name] = self._scalar_annotation(gfield)
                desc = gfield.description
                if gfield.enum_type is not None:
                    values_desc = _enum_values_description(gfield.enum_type)
                    if values_desc:
                        desc = f"{desc} | {values_desc}" if desc else values_desc
                setattr(cls, gfield.name, self.service.scalar_field(gfield, desc))
            elif isinstance(gfield, NavigationField):
                annotation, st_field = self.service.navigation_field(gfield, self.type_for(gfield.target))
                annotations[gfield.name] = annotation
                setattr(cls, gfield.name, st_field)
        if not annotations:
            # GraphQL object types need at least one field
            annotations[UNMAPPED_FIELD] = bool
            setattr(cls, UNMAPPED_FIELD, strawberry.field(resolver=_unmapped_resolver, description=_UNMAPPED_DESC))
        cls.__annotations__ = annotations

    def _scalar_annotation(self, sfield: ScalarField) -> Any:
        base = sfield.graphql_type
        if sfield.enum_type is not None and issubclass(sfield.enum_type, Enum):
            base = self.enum_for(sfield.enum_type)
        return Optional[base] if sfield.nullable else base

    def build_query(self, query: RootQuery) -> type:
        """Create the Strawberry root query type for ``query``'s fields."""
        self.materialize([f.graph_type for f in query.fields])
        if query.name in self._names:
            clash = self._names[query.name]
            raise DuplicateTypeNameError(query.name, clash.entity_type, query)
        annotations: Dict[str, Any] = {}
        QueryPlain = type(query.name, (), {'__doc__': 'Auto-generated root query.'})
        QueryPlain.__module__ = __name__
        for rfield in query.fields:
            annotation, st_field = self.service.root_field(rfield, self.type_for(rfield.graph_type))
            annotations[rfield.name] = annotation
            setattr(QueryPlain, rfield.name, st_field)
        if not annotations:
            annotations[PING_FIELD] = str
            setattr(QueryPlain, PING_FIELD, strawberry.field(resolver=_ping))
        QueryPlain.__annotations__ = annotations
        Query = strawberry.type(QueryPlain)  # type: ignore
        _logger.info("automapql: query %s with %d fields over %d types", query.name, len(query.fields), len(self._types))
        return Query


def _unmapped_resolver(self, info):
    return True


_unmapped_resolver.__annotations__ = {'info': StrawberryInfo}


async def _ping() -> str:  # noqa: D401
    return 'pong'
