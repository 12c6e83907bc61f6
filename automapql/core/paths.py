"""Property-path resolvers.

A property path such as ``"source.parent.name"`` is represented as an ordered
tuple of :class:`PathSegment` accessor descriptors. Each segment is checked
against the type produced by the previous one when the path is built, so a
misspelled member fails at schema construction rather than on first use.
``compile()`` turns the path into a plain closure performing the chained
reads (and the optional final cast).

Example:
    resolve = create_resolver(ResolveFieldContext[Parent], "source.children", List[Child])
    resolve(ResolveFieldContext(source=parent))  # -> [Child, ...]
"""
from __future__ import annotations

import collections.abc as _abc
import inspect as _inspect
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar, Union, get_args, get_origin, get_type_hints

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from ..errors import PropertyPathError
from ..metadata import sa_python_type

__all__ = ['PathSegment', 'PropertyPath', 'create_resolver', 'member_type', 'make_cast']

_SEQUENCE_ORIGINS = (list, _abc.Sequence, _abc.MutableSequence)
_ITERABLE_ORIGINS = (_abc.Iterable, _abc.Collection)


def _label(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return repr(tp)


def _strip_optional(tp: Any) -> Any:
    if get_origin(tp) is Union:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _is_unchecked(tp: Any) -> bool:
    return tp is Any or tp is object or tp is None or isinstance(tp, TypeVar)


def _mapper_of(tp: Any) -> Optional[Mapper]:
    if not isinstance(tp, type):
        return None
    mapper = sa_inspect(tp, raiseerr=False)
    return mapper if isinstance(mapper, Mapper) else None


def _hint_of(owner: type, name: str, params: Tuple[Any, ...] = (), args: Tuple[Any, ...] = ()) -> Any:
    try:
        hints = get_type_hints(owner)
    except (NameError, TypeError):
        hints = dict(getattr(owner, '__annotations__', {}) or {})
    if name not in hints:
        raise KeyError(name)
    hint = hints[name]
    if isinstance(hint, TypeVar) and hint in params:
        idx = params.index(hint)
        if idx < len(args):
            return args[idx]
    return hint


def member_type(owner: Any, name: str) -> Any:
    """Return the declared type of member ``name`` on ``owner``.

    Raises ``KeyError`` when ``owner`` has no readable member of that name.
    Mapped SQLAlchemy classes are read through their mapper; other classes
    through annotations, properties and plain class attributes. Generic
    aliases (``Holder[T]``) substitute their type arguments.
    """
    owner = _strip_optional(owner)
    origin = get_origin(owner)
    cls = origin if isinstance(origin, type) else owner
    args = get_args(owner) if origin is not None else ()
    params = tuple(getattr(cls, '__parameters__', ()) or ())
    if not isinstance(cls, type):
        raise KeyError(name)

    mapper = _mapper_of(cls) if origin is None else None
    if mapper is not None:
        if name in mapper.relationships:
            rel = mapper.relationships[name]
            target = rel.mapper.class_
            return List[target] if rel.uselist else Optional[target]
        if name in mapper.column_attrs:
            col = mapper.column_attrs[name].columns[0]
            return sa_python_type(col.type) or Any
        if name in mapper.all_orm_descriptors:
            return Any

    try:
        return _hint_of(cls, name, params, args)
    except KeyError:
        pass
    try:
        static = _inspect.getattr_static(cls, name)
    except AttributeError:
        raise KeyError(name) from None
    if isinstance(static, property):
        fget = static.fget
        try:
            ret = get_type_hints(fget).get('return', Any) if fget is not None else Any
        except (NameError, TypeError):
            ret = Any
        if isinstance(ret, TypeVar) and ret in params:
            idx = params.index(ret)
            return args[idx] if idx < len(args) else Any
        return ret
    if callable(static) or isinstance(static, (staticmethod, classmethod)):
        # Methods are not readable members
        raise KeyError(name)
    return Any if static is None else type(static)


def make_cast(target: Any) -> Optional[Callable[[Any], Any]]:
    """Build the runtime conversion for a cast target.

    - ``None``: no conversion.
    - a class: checked cast, ``None`` passes through.
    - ``List[T]`` / ``Sequence[T]``: materialized list, ``None`` becomes ``[]``.
    - ``Iterable[T]``: iterability check, the value is returned unchanged.

    Mappings (dict-keyed relationship collections) contribute their values.
    """
    if target is None:
        return None
    origin = get_origin(target)
    if origin in _SEQUENCE_ORIGINS:
        def _to_list(value: Any) -> Any:
            if value is None:
                return []
            if isinstance(value, (str, bytes)) or not isinstance(value, _abc.Iterable):
                raise TypeError(f"Cannot cast {type(value).__name__} to {_label(target)}")
            if isinstance(value, _abc.Mapping):
                return list(value.values())
            return list(value)
        return _to_list
    if origin in _ITERABLE_ORIGINS:
        def _to_iterable(value: Any) -> Any:
            if value is None:
                return []
            if isinstance(value, (str, bytes)) or not isinstance(value, _abc.Iterable):
                raise TypeError(f"Cannot cast {type(value).__name__} to {_label(target)}")
            if isinstance(value, _abc.Mapping):
                return value.values()
            return value
        return _to_iterable
    check = origin if isinstance(origin, type) else target
    if not isinstance(check, type):
        raise TypeError(f"Unsupported cast target: {target!r}")

    def _checked(value: Any) -> Any:
        if value is not None and not isinstance(value, check):
            raise TypeError(f"Cannot cast {type(value).__name__} to {check.__name__}")
        return value
    return _checked


def _cast_is_possible(declared: Any, target: Any) -> bool:
    declared = _strip_optional(declared)
    if _is_unchecked(declared):
        return True
    d_origin = get_origin(declared) or declared
    t_origin = get_origin(target) or target
    if not isinstance(d_origin, type) or not isinstance(t_origin, type):
        return True
    return issubclass(d_origin, t_origin) or issubclass(t_origin, d_origin)


@dataclass(frozen=True)
class PathSegment:
    """One member read in a property path.

    Attributes:
        name: Member name to read.
        owner: Type the member is read from.
        value_type: Declared type of the member.
        cast_to: Optional cast target applied to the read value.
    """

    name: str
    owner: Any
    value_type: Any
    cast_to: Any = None

    @property
    def result_type(self) -> Any:
        return self.cast_to if self.cast_to is not None else self.value_type


class PropertyPath:
    """Immutable, validated chain of member reads rooted at ``root_type``."""

    def __init__(self, root_type: Any, segments: Sequence[PathSegment] = (), root_cast: Any = None):
        self.root_type = root_type
        self.segments: Tuple[PathSegment, ...] = tuple(segments)
        self.root_cast = root_cast

    @classmethod
    def parse(cls, root_type: Any, path: str, cast_to: Any = None) -> 'PropertyPath':
        if not path or not path.strip():
            raise PropertyPathError("Property path must not be empty", owner=root_type, path=path)
        pp = cls(root_type)
        for part in path.split('.'):
            pp = pp.member(part.strip(), _path=path)
        if cast_to is not None:
            pp = pp.cast(cast_to)
        return pp

    @property
    def current_type(self) -> Any:
        if self.segments:
            return self.segments[-1].result_type
        return self.root_cast if self.root_cast is not None else self.root_type

    @property
    def dotted(self) -> str:
        return '.'.join(s.name for s in self.segments)

    def member(self, name: str, *, _path: Optional[str] = None) -> 'PropertyPath':
        """Return a new path extended by a read of ``name``."""
        owner = self.current_type
        path = _path or (f"{self.dotted}.{name}" if self.segments else name)
        if not name or not name.isidentifier():
            raise PropertyPathError(f"Invalid path segment {name!r} in {path!r}", owner=owner, segment=name, path=path)
        if _is_unchecked(_strip_optional(owner)):
            value_type: Any = Any
        else:
            try:
                value_type = member_type(owner, name)
            except KeyError:
                raise PropertyPathError(
                    f"Type {_label(owner)} has no readable member {name!r} (path {path!r})",
                    owner=owner, segment=name, path=path,
                ) from None
        return PropertyPath(self.root_type, self.segments + (PathSegment(name, owner, value_type),), self.root_cast)

    def cast(self, target: Any) -> 'PropertyPath':
        """Return a new path whose last value is cast to ``target``."""
        declared = self.current_type
        if not _cast_is_possible(declared, target):
            raise PropertyPathError(
                f"Cannot cast {_label(declared)} to {_label(target)} (path {self.dotted or '<root>'!r})",
                owner=declared, path=self.dotted,
            )
        make_cast(target)  # rejects unsupported targets early
        if not self.segments:
            return PropertyPath(self.root_type, (), target)
        last = self.segments[-1]
        seg = PathSegment(last.name, last.owner, last.value_type, target)
        return PropertyPath(self.root_type, self.segments[:-1] + (seg,), self.root_cast)

    def compile(self) -> Callable[[Any], Any]:
        """Compile the path into a closure ``root -> value``."""
        root_conv = make_cast(self.root_cast)
        steps = tuple((s.name, make_cast(s.cast_to)) for s in self.segments)

        def _resolve(root: Any) -> Any:
            value = root_conv(root) if root_conv is not None else root
            for name, conv in steps:
                value = getattr(value, name)
                if conv is not None:
                    value = conv(value)
            return value

        _resolve.__name__ = f"resolve_{'_'.join(n for n, _ in steps) or 'root'}"
        _resolve.__qualname__ = _resolve.__name__
        return _resolve

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"PropertyPath({_label(self.root_type)}, {self.dotted!r})"


def create_resolver(root_type: Any, path: str, cast_to: Any = None) -> Callable[[Any], Any]:
    """Build a resolver reading a dot-separated ``path`` from a ``root_type`` value.

    Equivalent to ``lambda root: cast_to(root.seg1.seg2...)``. Every segment is
    validated now; a missing member raises :class:`PropertyPathError`.
    """
    return PropertyPath.parse(root_type, path, cast_to).compile()

