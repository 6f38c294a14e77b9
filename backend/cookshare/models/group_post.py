"""
CookShare Backend — Group Post SQLAlchemy Models
==================================================

What:  ORM models for `group_posts`, `group_post_likes` and
       `group_post_comments`.
Who:   Written and read by the MembershipStore on behalf of the
       GroupPostService.

Table Design:
    - `is_approved` is decided once, at creation, by the authorization
      engine's auto-approval rule. No flow in this service changes it later.
    - Likes are a set: UNIQUE (post_id, user_id). Liking is an
      INSERT ... ON CONFLICT DO NOTHING; unliking is a DELETE whose row
      count tells whether the like existed.
    - Index on (group_id, created_at) serves the group feed query:
      "approved posts of this group, newest first".
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cookshare.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GroupPost(Base):
    """A recipe shared inside a group."""

    __tablename__ = "group_posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Immutable after creation
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # ── Recipe content ────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ingredients: Mapped[str] = mapped_column(Text, nullable=False, default="")
    instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    meat_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Mixed")
    prep_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    servings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    likes: Mapped[List["PostLike"]] = relationship(
        order_by="PostLike.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments: Mapped[List["PostComment"]] = relationship(
        order_by="PostComment.created_at",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_group_posts_group_created", "group_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<GroupPost(id={self.id}, group={self.group_id}, "
            f"title='{self.title}', approved={self.is_approved})>"
        )


class PostLike(Base):
    __tablename__ = "group_post_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_group_post_likes_post_user"),
    )


class PostComment(Base):
    __tablename__ = "group_post_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_name: Mapped[str] = mapped_column(String(200), nullable=False, default="Anonymous User")
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_group_post_comments_post_id", "post_id"),
    )
