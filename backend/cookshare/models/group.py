"""
CookShare Backend — Group SQLAlchemy Models
=============================================

What:  ORM models for `groups`, `group_members` and `group_join_requests`.
Who:   Loaded by the MembershipStore; read by the authorization engine.

Table Design:
    - A group's member list and pending-request list live in child tables
      with a UNIQUE (group_id, user_id) constraint each. "Add to set if not
      already present" is an INSERT ... ON CONFLICT DO NOTHING against that
      constraint, so two concurrent joins cannot both succeed.
    - Members are ordered by their surrogate `id` (insertion order); the
      creator is always the first row.
    - `settings` is a JSON object {allowMemberPosts, requireApproval,
      allowInvites}. Rows imported from the legacy schema have no `settings`
      and carry the three flags as top-level nullable columns instead.
      The engine resolves `settings.X ?? legacy X ?? default`; see
      cookshare.services.authorization.effective_settings.

Membership States (per group, per user):
    non-member ──request──▶ pending ──approve──▶ member
        │                     │ reject/cancel       │ leave (not creator)
        │                     ▼                     ▼
        └──request (open)──▶ member             non-member
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
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


ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_OWNER = "owner"
MEMBER_ROLES = (ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Group(Base):
    """
    A recipe-sharing group.

    Lifecycle:
        1. Created with the creator as the first member (role 'admin')
        2. Mutated by join / approve / reject / cancel / leave / settings
        3. Deleted by its creator, together with all of its posts
    """

    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    rules: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Immutable after creation
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Settings (current + legacy schema) ────────────────────────────────
    settings: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    allow_member_posts: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    require_approval: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    allow_invites: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # selectin: collections load in one extra query per statement, which
    # keeps attribute access free of implicit I/O under AsyncSession
    members: Mapped[List["GroupMember"]] = relationship(
        order_by="GroupMember.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    pending_requests: Mapped[List["JoinRequest"]] = relationship(
        order_by="JoinRequest.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_groups_created_at", "created_at"),
        Index("idx_groups_creator_id", "creator_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Group(id={self.id}, name='{self.name}', "
            f"private={self.is_private}, members={len(self.members or [])})>"
        )


class GroupMember(Base):
    """One row per (group, user) membership."""

    __tablename__ = "group_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_MEMBER)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
        Index("idx_group_members_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<GroupMember(group={self.group_id}, user={self.user_id}, role='{self.role}')>"


class JoinRequest(Base):
    """A pending request by a user to join a group."""

    __tablename__ = "group_join_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_join_requests_group_user"),
    )

    def __repr__(self) -> str:
        return f"<JoinRequest(group={self.group_id}, user={self.user_id})>"
