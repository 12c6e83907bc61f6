"""
Basic example of using AutomapQL with Strawberry GraphQL and SQLAlchemy.

This example demonstrates:
- Declaring a data context with root collections
- Deriving the whole GraphQL schema from the SQLAlchemy models
- Querying nested relationships with pagination on root fields
"""

import asyncio
import logging
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, relationship

from automapql import DataContext, EntitySchema, EntitySet


# SQLAlchemy Models
class Base(DeclarativeBase):
    pass


class User(Base):
    """Registered users"""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, comment='Login email')
    created_at = Column(DateTime, default=datetime.utcnow)

    posts = relationship("Post", back_populates="author")


class Post(Base):
    """Blog posts"""
    __tablename__ = 'posts'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(String(5000))
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    author = relationship("User", back_populates="posts")


# Data context: one root query field per collection
class BlogContext(DataContext):
    model = Base

    users: EntitySet[User]
    posts: EntitySet[Post]


schema = EntitySchema(BlogContext).to_strawberry()

# Database setup (for demo purposes)
async_engine = create_async_engine("sqlite+aiosqlite:///./example.db", echo=False)
async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


async def setup_database():
    """Setup test database with sample data."""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        user1 = User(name="Alice Johnson", email="alice@example.com")
        user2 = User(name="Bob Smith", email="bob@example.com")
        user3 = User(name="Charlie Brown", email="charlie@example.com")
        session.add_all([user1, user2, user3])
        await session.commit()

        posts = [
            Post(title="First Post", content="Hello world!", author_id=user1.id),
            Post(title="GraphQL is Great", content="I love GraphQL!", author_id=user1.id),
            Post(title="SQLAlchemy Tips", content="Some useful tips...", author_id=user2.id),
            Post(title="Getting Started", content="A beginner's guide", author_id=user3.id),
        ]
        session.add_all(posts)
        await session.commit()


async def main():
    """Main demo function."""
    logging.basicConfig(level=logging.INFO)
    await setup_database()

    print(schema.as_str())

    query = """
    query {
        users(limit: 2) {
            id
            name
            email
            posts {
                title
                author { name }
            }
        }
    }
    """

    async with async_session() as session:
        result = await schema.execute(query, context_value=BlogContext(session))

    if result.errors:
        print("Errors:", result.errors)
    else:
        print("Result:", result.data)

    await async_engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
