"""Data contexts: the typed bag of root collections exposed at the query root.

Example:
    class BlogContext(DataContext):
        model = Base
        users: EntitySet[User]
        posts: EntitySet[Post]

    ctx = BlogContext(session)          # one per request
    await schema.execute(query, context_value=ctx)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar, get_args, get_origin, get_type_hints

from sqlalchemy import inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper

from .errors import ConfigurationError

T = TypeVar('T')
TSource = TypeVar('TSource')

__all__ = [
    'DataContext',
    'EntitySet',
    'ResolveFieldContext',
    'root_collections',
    'get_data_context',
    'session_lock',
]

_SESSION_LOCK_KEY = 'automapql.session_lock'


def session_lock(session: Any) -> asyncio.Lock:
    """Per-session lock serializing reads issued on one AsyncSession.

    Strawberry resolves sibling fields concurrently; an AsyncSession allows a
    single operation at a time.
    """
    lock = session.info.get(_SESSION_LOCK_KEY)
    if lock is None:
        lock = session.info[_SESSION_LOCK_KEY] = asyncio.Lock()
    return lock


class EntitySet(Generic[T]):
    """A root collection of ``element_type`` instances.

    Backed either by a SQLAlchemy session (``select(element_type)``, ordered by
    primary key) or by an in-memory sequence of items. A session-backed set
    over an unmapped element type is empty.
    """

    def __init__(self, element_type: type, *, session: Any = None, items: Optional[Iterable[T]] = None):
        self.element_type = element_type
        self.session = session
        self.items: Optional[List[T]] = list(items) if items is not None else None

    @property
    def mapper(self) -> Optional[Mapper]:
        mapper = sa_inspect(self.element_type, raiseerr=False)
        return mapper if isinstance(mapper, Mapper) else None

    def statement(self):
        mapper = self.mapper
        if mapper is None:
            raise TypeError(f"{getattr(self.element_type, '__name__', self.element_type)} is not a mapped class")
        return select(self.element_type).order_by(*mapper.primary_key)

    def __iter__(self) -> Iterator[T]:
        if self.items is not None:
            return iter(self.items)
        if self.session is None or self.mapper is None:
            return iter(())
        if isinstance(self.session, AsyncSession):
            raise TypeError("EntitySet bound to an AsyncSession must be read with 'await fetch()'")
        return iter(self.session.scalars(self.statement()).all())

    async def fetch(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[T]:
        """Return the collection's elements, honoring ``limit``/``offset``."""
        if offset is not None and offset < 0:
            raise ValueError("offset must be non-negative")
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        # Unmapped element types have nothing to select from the database
        if self.items is not None or self.session is None or self.mapper is None:
            items = self.items or []
            start = offset or 0
            end = start + limit if limit is not None else None
            return list(items[start:end])
        stmt = self.statement()
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        if isinstance(self.session, AsyncSession):
            async with session_lock(self.session):
                result = await self.session.scalars(stmt)
        else:
            result = self.session.scalars(stmt)
        return list(result.all())

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        src = 'items' if self.items is not None else ('session' if self.session is not None else 'empty')
        return f"EntitySet[{getattr(self.element_type, '__name__', self.element_type)}]({src})"


def root_collections(context_type: Any) -> List[Tuple[str, Any]]:
    """Return ``(name, element_type)`` for each ``EntitySet[...]`` annotation.

    Order follows annotation order (base classes first).
    """
    if not isinstance(context_type, type) or not issubclass(context_type, DataContext):
        raise ConfigurationError(f"{context_type!r} is not a DataContext subclass")
    try:
        hints = get_type_hints(context_type)
    except NameError as exc:
        raise ConfigurationError(f"Cannot resolve annotations of {context_type.__name__}: {exc}") from exc
    out: List[Tuple[str, Any]] = []
    for name, hint in hints.items():
        if get_origin(hint) is EntitySet:
            args = get_args(hint)
            if not args:
                raise ConfigurationError(f"{context_type.__name__}.{name} must declare an element type")
            out.append((name, args[0]))
    return out


class DataContext:
    """Base class for request-scoped data contexts.

    Subclasses set ``model`` to their declarative base (or registry) and
    declare root collections as ``name: EntitySet[Element]`` annotations.
    Each instance binds every root collection to the given session, unless an
    in-memory source is passed for it by keyword.
    """

    model: Any = None

    def __init__(self, session: Any = None, **sources: Iterable[Any]):
        self.session = session
        declared = dict(root_collections(type(self)))
        unknown = set(sources) - set(declared)
        if unknown:
            raise TypeError(f"Unknown root collections for {type(self).__name__}: {sorted(unknown)}")
        for name, element_type in declared.items():
            if name in sources:
                setattr(self, name, EntitySet(element_type, items=sources[name]))
            else:
                setattr(self, name, EntitySet(element_type, session=session))


def get_data_context(info_or_ctx: Any) -> Any:
    """Extract the data context from a Strawberry ``Info`` or a raw context.

    The context may be the data context itself, or a mapping/object carrying
    it under ``data_context`` (or ``db_context``).
    """
    if info_or_ctx is None:
        return None
    ctx = getattr(info_or_ctx, 'context', info_or_ctx)
    if ctx is None or isinstance(ctx, DataContext):
        return ctx
    candidates = ('data_context', 'db_context')
    if isinstance(ctx, dict):
        for key in candidates:
            if ctx.get(key) is not None:
                return ctx[key]
        return ctx
    for key in candidates:
        value = getattr(ctx, key, None)
        if value is not None:
            return value
    return ctx


@dataclass(frozen=True)
class ResolveFieldContext(Generic[TSource]):
    """What a synthesized resolver receives: the parent object and the request info."""

    source: TSource
    info: Any = None

    @property
    def user_context(self) -> Any:
        return get_data_context(self.info)
