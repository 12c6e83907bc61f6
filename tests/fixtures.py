"""Database fixtures for AutomapQL tests (shared)."""

import pytest
import uuid as _uuid
from datetime import datetime, timezone, timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User, Post, PostComment, Employee, GenericItem, PostStatus


async def create_sample_users(session: AsyncSession):
    """Create and commit the sample users."""
    users = [
        User(name="Alice Johnson", email="alice@example.com", is_admin=True),
        User(name="Bob Smith", email="bob@example.com", is_admin=False),
        User(name="Charlie Brown", email="charlie@example.com", is_admin=False),
        User(name="Dave NoPosts", email="dave@example.com", is_admin=False),
    ]
    session.add_all(users)
    await session.flush()
    await session.commit()
    return users


@pytest.fixture(scope="function")
async def sample_users(db_session: AsyncSession):
    return await create_sample_users(db_session)


async def create_sample_posts(session: AsyncSession, users):
    """Create and commit the sample posts with deterministic timestamps."""
    user1, user2, user3, _ = users
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    posts = [
        Post(
            title="First Post",
            content="Hello world!",
            author_id=user1.id,
            created_at=now - timedelta(minutes=60),
            status=PostStatus.PUBLISHED,
            metadata_json={"tags": ["intro", "hello"], "views": 10},
        ),
        Post(
            title="GraphQL is Great",
            content="I love GraphQL!",
            author_id=user1.id,
            created_at=now - timedelta(minutes=45),
            status=PostStatus.PUBLISHED,
        ),
        Post(
            title="SQLAlchemy Tips",
            content=None,
            author_id=user2.id,
            created_at=now - timedelta(minutes=30),
            status=PostStatus.DRAFT,
        ),
        Post(
            title="Getting Started",
            content="A beginner's guide",
            author_id=user3.id,
            created_at=now - timedelta(minutes=5),
            status=PostStatus.ARCHIVED,
        ),
    ]
    session.add_all(posts)
    await session.flush()
    await session.commit()
    return posts


@pytest.fixture(scope="function")
async def sample_posts(db_session: AsyncSession, sample_users):
    return await create_sample_posts(db_session, sample_users)


async def create_sample_comments(session: AsyncSession, users, posts):
    """Create and commit the sample comments (one anonymous)."""
    user1, user2, user3, _ = users
    post1, post2, post3, _ = posts
    post_comments = [
        PostComment(content="Great post!", post_id=post1.id, author_id=user2.id, rate=2),
        PostComment(content="Thanks for sharing!", post_id=post1.id, author_id=user3.id, rate=1),
        PostComment(content="I agree completely!", post_id=post2.id, author_id=user2.id, rate=3),
        PostComment(content="Anonymous remark", post_id=post3.id, author_id=None, rate=0),
    ]
    session.add_all(post_comments)
    await session.flush()
    await session.commit()
    return post_comments


@pytest.fixture(scope="function")
async def sample_comments(db_session: AsyncSession, sample_users, sample_posts):
    return await create_sample_comments(db_session, sample_users, sample_posts)


async def create_sample_employees(session: AsyncSession):
    """Create a three-level reporting chain: Ada <- Grace <- Linus."""
    ada = Employee(name="Ada")
    session.add(ada)
    await session.flush()
    grace = Employee(name="Grace", manager_id=ada.id)
    session.add(grace)
    await session.flush()
    linus = Employee(name="Linus", manager_id=grace.id)
    session.add(linus)
    await session.flush()
    await session.commit()
    return [ada, grace, linus]


@pytest.fixture(scope="function")
async def sample_employees(db_session: AsyncSession):
    return await create_sample_employees(db_session)


async def seed_populated_db(session: AsyncSession):
    """Seed every table and return the created rows keyed by collection name."""
    users = await create_sample_users(session)
    posts = await create_sample_posts(session, users)
    comments = await create_sample_comments(session, users, posts)
    employees = await create_sample_employees(session)
    items = [
        GenericItem(id=_uuid.uuid4(), name='A', count=1, active=True),
        GenericItem(id=_uuid.uuid4(), name='B', count=2, active=False),
    ]
    session.add_all(items)
    await session.flush()
    await session.commit()
    return {
        'users': users,
        'posts': posts,
        'post_comments': comments,
        'employees': employees,
        'generic_items': items,
    }


@pytest.fixture(scope="function")
async def populated_db(db_session: AsyncSession):
    return await seed_populated_db(db_session)
