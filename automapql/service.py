"""Field registration service and the Strawberry resolvers behind each field kind.

``add_query_field`` / ``add_single_field`` register root fields,
``add_navigation_field`` registers entity-to-entity fields. At
materialization time the same service turns each registration into a
Strawberry field (annotation + ``strawberry.field``) with standard
pagination semantics for collections.
"""
from __future__ import annotations

import inspect
import logging
from typing import Annotated, Any, Callable, List, Optional, Tuple

import strawberry
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import async_object_session
from sqlalchemy.orm import InstanceState
from strawberry.types import Info as StrawberryInfo

from .context import EntitySet, ResolveFieldContext, session_lock
from .graph import GraphNode, NavigationField, RootField, RootQuery, ScalarField

_logger = logging.getLogger("automapql")

__all__ = ['QueryService', 'materialize', 'run_resolver', 'read_attribute']

_ARG_DESC_LIMIT = (
    "Maximum number of elements to return. Must be non-negative. "
    "Example: limit: 10"
)
_ARG_DESC_OFFSET = (
    "Number of elements to skip before returning results. Must be non-negative. "
    "Example: offset: 20"
)


def _check_window(limit: Optional[int], offset: Optional[int]) -> None:
    if offset is not None and offset < 0:
        raise ValueError("offset must be non-negative")
    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative")


async def materialize(value: Any, *, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Any]:
    """Turn a resolved collection into a list, applying ``limit``/``offset``."""
    _check_window(limit, offset)
    if inspect.isawaitable(value):
        value = await value
    if isinstance(value, EntitySet):
        return await value.fetch(limit=limit, offset=offset)
    if value is None:
        return []
    items = list(value)
    start = offset or 0
    end = start + limit if limit is not None else None
    return items[start:end]


def _async_session_of(obj: Any) -> Any:
    if obj is None:
        return None
    state = sa_inspect(obj, raiseerr=False)
    if not isinstance(state, InstanceState):
        return None
    return async_object_session(obj)


async def run_resolver(resolve: Callable[[Any], Any], ctx: ResolveFieldContext) -> Any:
    """Invoke a synthesized resolver for ``ctx``.

    When the source instance belongs to an ``AsyncSession`` the read runs
    through ``run_sync`` so lazy relationship loads can emit SQL.
    """
    session = _async_session_of(ctx.source)
    if session is not None:
        async with session_lock(session):
            return await session.run_sync(lambda _sync_session: resolve(ctx))
    value = resolve(ctx)
    if inspect.isawaitable(value):
        value = await value
    return value


async def read_attribute(obj: Any, name: str) -> Any:
    """Read ``obj.<name>``, loading it through ``run_sync`` when it is unloaded
    on an ``AsyncSession``-attached instance (deferred or expired columns).
    """
    session = _async_session_of(obj)
    if session is not None and name in sa_inspect(obj).unloaded:
        async with session_lock(session):
            return await session.run_sync(lambda _sync_session: getattr(obj, name))
    return getattr(obj, name)


class QueryService:
    """Registers generated fields and builds their Strawberry counterparts."""

    # ---------- Registration ----------
    def add_query_field(
        self,
        query: RootQuery,
        *,
        name: str,
        resolve: Callable[[Any], Any],
        graph_type: GraphNode,
        description: Optional[str] = None,
    ) -> RootField:
        """Register a root field returning a paginated list of ``graph_type``."""
        return query.add_field(RootField(name=name, graph_type=graph_type, resolver=resolve, description=description))

    def add_single_field(
        self,
        query: RootQuery,
        *,
        name: str,
        resolve: Callable[[Any], Any],
        graph_type: GraphNode,
        description: Optional[str] = None,
    ) -> RootField:
        """Register a root field returning the only element of a collection (or null).

        More than one element is a resolution error.
        """
        return query.add_field(
            RootField(name=name, graph_type=graph_type, resolver=resolve, single=True, description=description)
        )

    def add_navigation_field(
        self,
        node: GraphNode,
        *,
        name: str,
        resolve: Callable[[Any], Any],
        graph_type: GraphNode,
        is_collection: bool,
        nullable: bool = True,
        description: Optional[str] = None,
    ) -> NavigationField:
        nav = NavigationField(
            name=name,
            target=graph_type,
            is_collection=is_collection,
            nullable=nullable,
            resolver=resolve,
            description=description,
        )
        node.add_field(nav)
        return nav

    # ---------- Strawberry fields ----------
    def root_field(self, rfield: RootField, graph_cls: type) -> Tuple[Any, Any]:
        """Return ``(annotation, strawberry field)`` for a registered root field."""
        if rfield.single:
            fn = self._make_single_resolver(rfield.resolver, rfield.name)
            annotation: Any = Optional[graph_cls]
        else:
            fn = self._make_list_resolver(rfield.resolver, rfield.name)
            annotation = List[graph_cls]  # type: ignore[valid-type]
        if rfield.description:
            return annotation, strawberry.field(resolver=fn, description=rfield.description)
        return annotation, strawberry.field(resolver=fn)

    def scalar_field(self, sfield: ScalarField, description: Optional[str] = None) -> Any:
        """Return the strawberry field reading a column attribute."""
        fn = self._make_scalar_resolver(sfield.name)
        if description:
            return strawberry.field(resolver=fn, description=description)
        return strawberry.field(resolver=fn)

    def navigation_field(self, nav: NavigationField, target_cls: type) -> Tuple[Any, Any]:
        """Return ``(annotation, strawberry field)`` for a navigation field."""
        if nav.is_collection:
            annotation: Any = List[target_cls]  # type: ignore[valid-type]
        elif nav.nullable:
            annotation = Optional[target_cls]
        else:
            annotation = target_cls
        fn = self._make_navigation_resolver(nav.resolver, nav.name)
        if nav.description:
            return annotation, strawberry.field(resolver=fn, description=nav.description)
        return annotation, strawberry.field(resolver=fn)

    def _make_list_resolver(self, resolve: Callable[[Any], Any], fname: str):
        async def _resolver(self, info, limit=None, offset=None):
            _check_window(limit, offset)
            value = resolve(ResolveFieldContext(source=self, info=info))
            return await materialize(value, limit=limit, offset=offset)
        _resolver.__name__ = f"_root_{fname}_resolver"
        _resolver.__annotations__ = {
            'info': StrawberryInfo,
            'limit': Annotated[Optional[int], strawberry.argument(description=_ARG_DESC_LIMIT)],
            'offset': Annotated[Optional[int], strawberry.argument(description=_ARG_DESC_OFFSET)],
        }
        return _resolver

    def _make_single_resolver(self, resolve: Callable[[Any], Any], fname: str):
        async def _resolver(self, info):
            value = resolve(ResolveFieldContext(source=self, info=info))
            items = await materialize(value, limit=2)
            if len(items) > 1:
                raise ValueError(f"Field '{fname}' resolved to more than one element")
            return items[0] if items else None
        _resolver.__name__ = f"_single_{fname}_resolver"
        _resolver.__annotations__ = {'info': StrawberryInfo}
        return _resolver

    def _make_scalar_resolver(self, fname: str):
        async def _resolver(self, info):
            return await read_attribute(self, fname)
        _resolver.__name__ = f"_scalar_{fname}_resolver"
        _resolver.__annotations__ = {'info': StrawberryInfo}
        return _resolver

    def _make_navigation_resolver(self, resolve: Callable[[Any], Any], fname: str):
        async def _resolver(self, info):
            return await run_resolver(resolve, ResolveFieldContext(source=self, info=info))
        _resolver.__name__ = f"_nav_{fname}_resolver"
        _resolver.__annotations__ = {'info': StrawberryInfo}
        return _resolver
