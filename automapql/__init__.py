"""AutomapQL: GraphQL schemas derived from SQLAlchemy models.

Public API:
- EntitySchema, build_schema
- DataContext, EntitySet, ResolveFieldContext
- ModelMetadataProvider, EntityGraphBuilder, RootQueryBuilder, QueryService
- create_resolver, PropertyPath
"""
from .context import DataContext, EntitySet, ResolveFieldContext, get_data_context, root_collections
from .core.paths import PropertyPath, create_resolver
from .core.scalars import ScalarTypeMap
from .errors import (
    AutomapError,
    ConfigurationError,
    DuplicateTypeNameError,
    PropertyPathError,
    UnmappedScalarTypeError,
)
from .graph import EntityGraphBuilder, GraphNode, NavigationField, RootField, RootQuery, ScalarField
from .metadata import EntityMetadata, MetadataProvider, ModelMetadataProvider, Navigation, ScalarProperty
from .query import RootQueryBuilder
from .schema import EntitySchema, build_schema
from .service import QueryService

__version__ = "0.1.0"

__all__ = [
    'EntitySchema', 'build_schema',
    'DataContext', 'EntitySet', 'ResolveFieldContext', 'get_data_context', 'root_collections',
    'PropertyPath', 'create_resolver', 'ScalarTypeMap',
    'AutomapError', 'ConfigurationError', 'DuplicateTypeNameError', 'PropertyPathError', 'UnmappedScalarTypeError',
    'EntityGraphBuilder', 'GraphNode', 'NavigationField', 'RootField', 'RootQuery', 'ScalarField',
    'EntityMetadata', 'MetadataProvider', 'ModelMetadataProvider', 'Navigation', 'ScalarProperty',
    'RootQueryBuilder', 'QueryService',
]
