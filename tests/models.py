"""Database models for AutomapQL tests (shared)."""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON, Interval, func
from sqlalchemy import Enum as SAEnum
import enum
from sqlalchemy.orm import DeclarativeBase, relationship, column_property, attribute_keyed_dict
from sqlalchemy import Uuid as SA_Uuid


class Base(DeclarativeBase):
    pass


class User(Base):
    """Application users (docstring)"""
    __tablename__ = 'users'
    __table_args__ = {'comment': 'Application users'}

    id = Column(Integer, primary_key=True, comment='User primary key')
    name = Column(String(100), nullable=False, comment='Public display name')
    email = Column(String(255), unique=True, nullable=False, comment='Unique login email')
    is_admin = Column(Boolean, default=False, nullable=False, comment='Administrative flag')
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), comment='Creation timestamp (UTC)')

    posts = relationship("Post", back_populates="author")
    post_comments = relationship("PostComment", back_populates="author")


class PostStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Post(Base):
    """Blog posts (docstring)"""
    __tablename__ = 'posts'
    __table_args__ = {'comment': 'Blog posts'}

    id = Column(Integer, primary_key=True, comment='Post primary key')
    title = Column(String(200), nullable=False, comment='Post title')
    content = Column(String(5000), comment='Post body text')
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False, comment='Author FK to users.id')
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), comment='Creation timestamp (UTC)')
    metadata_json = Column(JSON, nullable=True, comment='Arbitrary metadata (JSON)')
    status = Column(SAEnum(PostStatus, name='post_status'), nullable=False, default=PostStatus.DRAFT)
    # Computed (read-only) column
    content_length = column_property(func.length(content, type_=Integer))

    author = relationship("User", back_populates="posts", doc="Who wrote the post")
    post_comments = relationship("PostComment", back_populates="post")


class PostComment(Base):
    __tablename__ = 'post_comments'
    __table_args__ = {'comment': 'User comments on posts'}

    id = Column(Integer, primary_key=True, comment='Comment primary key')
    content = Column(String(1000), nullable=False, comment='Comment text')
    rate = Column(Integer, nullable=False, default=0, info={'description': 'Simple rating value'})
    post_id = Column(Integer, ForeignKey('posts.id'), nullable=False, comment='FK to posts.id')
    author_id = Column(Integer, ForeignKey('users.id'), nullable=True, comment='FK to users.id (null for anonymous)')

    post = relationship("Post", back_populates="post_comments")
    author = relationship("User", back_populates="post_comments")


class Employee(Base):
    """Self-referencing hierarchy"""
    __tablename__ = 'employees'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    manager_id = Column(Integer, ForeignKey('employees.id'), nullable=True)

    manager = relationship("Employee", remote_side=[id], back_populates="reports")
    reports = relationship("Employee", back_populates="manager")


class GenericItem(Base):
    """Generic test entity with UUID id and assorted typed columns."""
    __tablename__ = 'generic_items'

    id = Column(SA_Uuid(as_uuid=True), primary_key=True, comment='UUID primary key')
    name = Column(String(100), nullable=False, comment='Item name')
    count = Column(Integer, nullable=False, default=0, comment='Numeric counter')
    active = Column(Boolean, nullable=False, default=True, comment='Active flag')


class Shelf(Base):
    """Book shelves; books keyed by title"""
    __tablename__ = 'shelves'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    books = relationship(
        "ShelfBook", collection_class=attribute_keyed_dict("title"), back_populates="shelf",
    )


class ShelfBook(Base):
    __tablename__ = 'shelf_books'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    shelf_id = Column(Integer, ForeignKey('shelves.id'), nullable=False)

    shelf = relationship("Shelf", back_populates="books")


class Note:
    """Plain class, not mapped by any model."""

    def __init__(self, text: str):
        self.text = text


# Separate declarative base holding a column type without a GraphQL scalar
class OtherBase(DeclarativeBase):
    pass


class Shift(OtherBase):
    __tablename__ = 'shifts'

    id = Column(Integer, primary_key=True)
    label = Column(String(50), nullable=False)
    duration = Column(Interval, nullable=False)
