# Core subpackage for automapql: property-path resolvers and the scalar registry.
from .paths import PathSegment, PropertyPath, create_resolver, make_cast, member_type
from .scalars import DEFAULT_SCALARS, ScalarTypeMap

__all__ = [
    'PathSegment','PropertyPath','create_resolver','make_cast','member_type',
    'DEFAULT_SCALARS','ScalarTypeMap'
]
