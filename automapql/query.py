"""Root query generation: one query field per root collection of a data context."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from .context import ResolveFieldContext, root_collections
from .core.paths import PropertyPath
from .graph import EntityGraphBuilder, RootQuery

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .service import QueryService

_logger = logging.getLogger("automapql")

__all__ = ['RootQueryBuilder']


class RootQueryBuilder:
    """Registers a root query field for every ``EntitySet`` of a data context.

    Each field is named after the collection (unaltered), resolves by reading
    the collection off the request's data context and exposes the element
    type's graph node.
    """

    def __init__(self, context_type: type, service: 'QueryService', graph_builder: EntityGraphBuilder):
        self.context_type = context_type
        self.service = service
        self.graph_builder = graph_builder

    def collection_resolver(self, name: str, element_type: Any) -> Callable[[Any], Any]:
        """Compile ``ctx -> (Iterable[element]) ((ContextType) ctx.user_context).<name>``."""
        path = (
            PropertyPath(ResolveFieldContext)
            .member('user_context')
            .cast(self.context_type)
            .member(name)
            .cast(Iterable[element_type])  # type: ignore[valid-type]
        )
        return path.compile()

    def build(self, query: Optional[RootQuery] = None) -> RootQuery:
        query = query if query is not None else RootQuery()
        for name, element_type in root_collections(self.context_type):
            resolve = self.collection_resolver(name, element_type)
            node = self.graph_builder.build(element_type)
            self.service.add_query_field(
                query,
                name=name,
                resolve=resolve,
                graph_type=node,
                description=node.description,
            )
            _logger.debug("automapql: root field %s -> %s", name, node.name)
        return query
