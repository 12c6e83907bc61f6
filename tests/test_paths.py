from dataclasses import dataclass
from typing import Iterable, List, Optional

import pytest

from automapql import PropertyPathError, ResolveFieldContext, create_resolver
from automapql.core.paths import PropertyPath, make_cast, member_type
from tests.models import Employee, Post, PostComment, Shelf, ShelfBook, User
from tests.schema import BlogContext


@dataclass
class Address:
    city: str
    zip_code: Optional[str] = None


@dataclass
class Customer:
    name: str
    address: Address

    @property
    def label(self) -> str:
        return f"{self.name} ({self.address.city})"

    def shout(self) -> str:  # not a readable member
        return self.name.upper()


def test_two_segment_path_reads_nested_member():
    resolve = create_resolver(Customer, "address.city")
    assert resolve(Customer("Ann", Address("Oslo"))) == "Oslo"


def test_property_is_readable_member():
    resolve = create_resolver(Customer, "label")
    assert resolve(Customer("Ann", Address("Oslo"))) == "Ann (Oslo)"


def test_missing_member_fails_at_synthesis():
    with pytest.raises(PropertyPathError) as exc:
        create_resolver(Customer, "address.country")
    assert exc.value.segment == "country"
    assert exc.value.owner is Address
    assert "country" in str(exc.value)


def test_methods_are_not_readable_members():
    with pytest.raises(PropertyPathError):
        create_resolver(Customer, "shout")


def test_empty_path_rejected():
    with pytest.raises(PropertyPathError):
        create_resolver(Customer, "")


def test_generic_source_resolves_to_entity_members():
    resolve = create_resolver(ResolveFieldContext[Post], "source.title")
    post = Post(title="Hello")
    assert resolve(ResolveFieldContext(source=post)) == "Hello"


def test_generic_source_validates_entity_members():
    with pytest.raises(PropertyPathError):
        create_resolver(ResolveFieldContext[Post], "source.subtitle")


def test_collection_navigation_cast_to_list():
    resolve = create_resolver(ResolveFieldContext[User], "source.posts", List[Post])
    p1, p2 = Post(title="a"), Post(title="b")
    user = User(name="u", posts=[p1, p2])
    out = resolve(ResolveFieldContext(source=user))
    assert isinstance(out, list)
    assert out == [p1, p2]


def test_single_navigation_cast_passes_none():
    resolve = create_resolver(ResolveFieldContext[PostComment], "source.author", User)
    comment = PostComment(content="x")
    assert resolve(ResolveFieldContext(source=comment)) is None
    u = User(name="u")
    comment.author = u
    assert resolve(ResolveFieldContext(source=comment)) is u


def test_self_reference_paths():
    resolve = create_resolver(ResolveFieldContext[Employee], "source.manager.name")
    boss = Employee(name="Ada")
    assert resolve(ResolveFieldContext(source=Employee(name="Grace", manager=boss))) == "Ada"


def test_cast_between_unrelated_classes_rejected():
    with pytest.raises(PropertyPathError):
        create_resolver(ResolveFieldContext[Post], "source.author", Post)


def test_checked_cast_fails_on_wrong_runtime_type():
    conv = make_cast(User)
    with pytest.raises(TypeError) as exc:
        conv(Post(title="nope"))
    assert "Cannot cast Post to User" in str(exc.value)


def test_iterable_cast_keeps_value_and_maps_none_to_empty():
    conv = make_cast(Iterable[int])
    data = (1, 2, 3)
    assert conv(data) is data
    assert conv(None) == []
    with pytest.raises(TypeError):
        conv(5)


def test_user_context_path_with_context_cast():
    path = (
        PropertyPath(ResolveFieldContext)
        .member('user_context')
        .cast(BlogContext)
        .member('posts')
        .cast(Iterable[Post])
    )
    assert path.dotted == 'user_context.posts'
    resolve = path.compile()
    post = Post(title="t")
    ctx = BlogContext(posts=[post])

    class _Info:
        context = ctx

    out = resolve(ResolveFieldContext(source=None, info=_Info()))
    assert list(out) == [post]


def test_user_context_cast_rejects_foreign_context():
    resolve = (
        PropertyPath(ResolveFieldContext)
        .member('user_context')
        .cast(BlogContext)
        .compile()
    )

    class _Info:
        context = object()

    with pytest.raises(TypeError):
        resolve(ResolveFieldContext(source=None, info=_Info()))


def test_paths_are_immutable():
    base = PropertyPath(Customer).member('address')
    longer = base.member('city')
    assert base.dotted == 'address'
    assert longer.dotted == 'address.city'
    assert [s.owner for s in longer.segments] == [Customer, Address]


def test_member_type_of_mapped_classes():
    assert member_type(User, 'posts') == List[Post]
    assert member_type(Post, 'author') == Optional[User]
    assert member_type(Post, 'title') is str
    with pytest.raises(KeyError):
        member_type(Post, 'nope')


def test_keyed_dict_collection_cast_yields_entities():
    resolve = create_resolver(ResolveFieldContext[Shelf], "source.books", List[ShelfBook])
    dune, emma = ShelfBook(title="Dune"), ShelfBook(title="Emma")
    shelf = Shelf(name="s", books={"Dune": dune, "Emma": emma})
    assert resolve(ResolveFieldContext(source=shelf)) == [dune, emma]


def test_iterable_cast_of_mapping_yields_values():
    conv = make_cast(Iterable[str])
    assert list(conv({"k": "v"})) == ["v"]
