"""Schema facade: data context in, Strawberry schema out.

Example:
    entity_schema = EntitySchema(BlogContext)
    schema = entity_schema.to_strawberry()
    result = await schema.execute("{ users { id name posts { title } } }",
                                  context_value=BlogContext(session))
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import strawberry
from strawberry.schema.config import StrawberryConfig
from strawberry.schema.name_converter import NameConverter

from .context import root_collections
from .core.scalars import ScalarTypeMap
from .errors import ConfigurationError
from .graph import EntityGraphBuilder, GraphNode, RootQuery
from .metadata import MetadataProvider, ModelMetadataProvider
from .query import RootQueryBuilder
from .service import QueryService
from .types import StrawberryTypeFactory

_logger = logging.getLogger("automapql")

__all__ = ['EntitySchema', 'build_schema']


class _PreserveUnderscoreNameConverter(NameConverter):
    """Name converter keeping names that start with '_' (placeholder fields) untouched."""

    def __init__(self, base: Optional[NameConverter] = None, auto_camel_case: bool = False):
        super().__init__(auto_camel_case=auto_camel_case)
        self._base = base

    def apply_naming_config(self, name: str) -> str:  # type: ignore[override]
        if name.startswith('_'):
            return name
        if self._base is not None:
            return self._base.apply_naming_config(name)
        return super().apply_naming_config(name)


def _resolve_config(strawberry_config: Optional[StrawberryConfig]) -> StrawberryConfig:
    # Default: names exactly as declared on the models and the data context
    if strawberry_config is None:
        return StrawberryConfig(name_converter=_PreserveUnderscoreNameConverter(auto_camel_case=False))
    base = strawberry_config.name_converter
    if isinstance(base, _PreserveUnderscoreNameConverter):
        return strawberry_config
    auto_camel = bool(getattr(base, 'auto_camel_case', False))
    strawberry_config.name_converter = _PreserveUnderscoreNameConverter(base, auto_camel_case=auto_camel)
    return strawberry_config


class EntitySchema:
    """Derives a GraphQL schema from a :class:`~automapql.context.DataContext` subclass.

    Args:
        context_type: The data-context class declaring root collections.
        metadata: Metadata provider; defaults to a
            :class:`~automapql.metadata.ModelMetadataProvider` over
            ``context_type.model``.
        scalars: Extra ``{python_type: graphql_type}`` scalar mappings.

    Graph nodes are built once per instance; ``to_strawberry`` can be called
    repeatedly (for example with different configs) and creates fresh
    Strawberry classes each time.
    """

    def __init__(
        self,
        context_type: type,
        *,
        metadata: Optional[MetadataProvider] = None,
        scalars: Optional[Mapping[Any, Any]] = None,
    ):
        # Validates the context class up front
        root_collections(context_type)
        if metadata is None:
            model = getattr(context_type, 'model', None)
            if model is None:
                raise ConfigurationError(
                    f"{context_type.__name__}.model is not set and no metadata provider was given"
                )
            metadata = ModelMetadataProvider(model)
        self.context_type = context_type
        self.metadata = metadata
        self.service = QueryService()
        self.graph_builder = EntityGraphBuilder(metadata, self.service, ScalarTypeMap(scalars))
        self.query = RootQuery()
        self._built = False

    def build(self) -> RootQuery:
        """Generate the root query fields and every reachable graph node."""
        if not self._built:
            mark = len(self.query.fields)
            try:
                RootQueryBuilder(self.context_type, self.service, self.graph_builder).build(self.query)
            except Exception:
                # Roll back root fields added by the failed build
                del self.query.fields[mark:]
                raise
            self._built = True
        return self.query

    def graph_for(self, entity_type: Any) -> GraphNode:
        return self.graph_builder.build(entity_type)

    @property
    def nodes(self) -> List[GraphNode]:
        return self.graph_builder.nodes

    def to_strawberry(self, *, strawberry_config: Optional[StrawberryConfig] = None) -> strawberry.Schema:
        self.build()
        factory = StrawberryTypeFactory(self.service)
        factory.materialize(self.graph_builder.nodes)
        Query = factory.build_query(self.query)
        schema = strawberry.Schema(query=Query, config=_resolve_config(strawberry_config))
        _logger.info("automapql: schema for %s built (%d root fields, %d graph nodes)",
                     self.context_type.__name__, len(self.query.fields), len(self.nodes))
        return schema


def build_schema(
    context_type: type,
    *,
    metadata: Optional[MetadataProvider] = None,
    scalars: Optional[Mapping[Any, Any]] = None,
    strawberry_config: Optional[StrawberryConfig] = None,
) -> strawberry.Schema:
    """Shortcut for ``EntitySchema(context_type, ...).to_strawberry(...)``."""
    return EntitySchema(context_type, metadata=metadata, scalars=scalars).to_strawberry(
        strawberry_config=strawberry_config
    )
