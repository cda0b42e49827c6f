"""
SQLAlchemy ORM models for accounts, tasks, anonymous lists and blobs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


# ``Integer`` primary keys are 32-bit on PostgreSQL.
MAX_ROW_ID = 2**31 - 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_list_id() -> str:
    """Unguessable anonymous list identifier (122 random bits)."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_user_created", "user_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_now)

    user = relationship("User", back_populates="tasks")


class AnonymousList(Base):
    __tablename__ = "anonymous_lists"

    id = Column(String(32), primary_key=True, default=new_list_id)
    list_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now)

    tasks = relationship("AnonymousTask", back_populates="anonymous_list", cascade="all, delete-orphan")


class AnonymousTask(Base):
    __tablename__ = "anonymous_tasks"
    __table_args__ = (Index("ix_anonymous_tasks_list_created", "list_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    list_id = Column(String(32), ForeignKey("anonymous_lists.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now)

    anonymous_list = relationship("AnonymousList", back_populates="tasks")


class Blob(Base):
    __tablename__ = "blobs"

    key = Column(String(512), primary_key=True)
    data = Column(LargeBinary, nullable=False)
    content_type = Column(String(255), nullable=False, default="application/octet-stream")
    size = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now)
