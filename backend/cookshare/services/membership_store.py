"""
CookShare Backend — Membership Store
======================================

What:  Persistence for groups, memberships, join requests, posts, likes and
       comments.
How:   Async SQLAlchemy statements against the request's AsyncSession.
       Writes are flushed; write services call `commit` once, before the
       response is returned.
Who:   Called by GroupService and GroupPostService only.

Atomic set operations:
    Membership, pending requests and likes are sets keyed by a UNIQUE
    constraint. Adding to one is a single INSERT ... ON CONFLICT DO NOTHING
    and the row count reports whether this call added the element.
    Membership and pending requests are disjoint: each INSERT carries a
    NOT EXISTS guard on the other table. Removing is a single DELETE with
    the same row-count report. No method reads a collection, edits it in
    Python, and writes it back.

Error translation:
    Connection-level failures  → StoreUnavailableError (503)
    Any other SQLAlchemyError  → DatabaseError (500)
"""

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import Table, delete, func, literal, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.exceptions import DatabaseError, StoreUnavailableError
from cookshare.models.group import Group, GroupMember, JoinRequest
from cookshare.models.group_post import GroupPost, PostComment, PostLike

logger = logging.getLogger(__name__)


def store_operation(func_: Callable) -> Callable:
    """Translate driver/ORM failures of a store method into application errors."""

    @wraps(func_)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func_(*args, **kwargs)
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.error("Store unavailable during %s: %s", func_.__name__, exc)
            raise StoreUnavailableError(
                context={"operation": func_.__name__}
            ) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "Database error during %s: %s", func_.__name__, exc, exc_info=True
            )
            raise DatabaseError(
                context={"operation": func_.__name__, "original_error": type(exc).__name__}
            ) from exc

    return wrapper


def _insert(db: AsyncSession, model: Any):
    """Dialect-specific INSERT construct supporting ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise DatabaseError(context={"unsupported_dialect": dialect})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_exists(table: Table, group_id: UUID, user_id: str):
    """EXISTS (row of `table` for this group and user)."""
    return (
        select(table.c.id)
        .where(table.c.group_id == group_id, table.c.user_id == user_id)
        .exists()
    )


class MembershipStore:
    """Data-access layer for the group domain."""

    # ── Groups ────────────────────────────────────────────────────────────

    @store_operation
    async def find_group_by_id(
        self, db: AsyncSession, group_id: UUID, for_update: bool = False
    ) -> Optional[Group]:
        """
        Load a group with its members and pending requests.

        populate_existing: a group already in the session's identity map is
        refreshed, so collections reflect writes made earlier in the request.

        for_update: the group row stays locked until the transaction ends, so
        membership changes on one group are serialized (SELECT ... FOR UPDATE
        on PostgreSQL; SQLite already serializes writers).
        """
        stmt = (
            select(Group)
            .where(Group.id == group_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Group)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @store_operation
    async def add_group(self, db: AsyncSession, group: Group) -> Group:
        db.add(group)
        await db.flush()
        return group

    @store_operation
    async def save(self, db: AsyncSession) -> None:
        """Flush pending attribute changes (settings updates, post edits)."""
        await db.flush()

    @store_operation
    async def commit(self, db: AsyncSession) -> None:
        """
        Commit the request's transaction.

        Write operations call this before returning, so a failed commit
        reaches the client as 503/500 instead of after a success response
        has been sent.
        """
        await db.commit()

    @store_operation
    async def list_groups(
        self,
        db: AsyncSession,
        user_id: Optional[str] = None,
        include_private: bool = False,
        query: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Group]:
        """
        Groups newest first.

        Unless include_private is set, private groups are only returned to
        their members: public OR caller's membership row exists.
        """
        stmt = select(Group)

        if not include_private:
            visible = Group.is_private.is_(False)
            if user_id:
                member_of = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
                visible = or_(visible, Group.id.in_(member_of))
            stmt = stmt.where(visible)

        if query:
            stmt = stmt.where(
                or_(
                    Group.name.icontains(query, autoescape=True),
                    Group.description.icontains(query, autoescape=True),
                    Group.category.icontains(query, autoescape=True),
                )
            )

        stmt = stmt.order_by(Group.created_at.desc()).execution_options(populate_existing=True)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @store_operation
    async def delete_group_cascade(self, db: AsyncSession, group_id: UUID) -> int:
        """
        Delete a group and everything that hangs off it.

        Order: likes, comments, posts, join requests, members, group.
        Returns the number of posts removed.
        """
        post_ids = select(GroupPost.id).where(GroupPost.group_id == group_id)
        no_sync = {"synchronize_session": False}

        await db.execute(
            delete(PostLike).where(PostLike.post_id.in_(post_ids)).execution_options(**no_sync)
        )
        await db.execute(
            delete(PostComment).where(PostComment.post_id.in_(post_ids)).execution_options(**no_sync)
        )
        posts = await db.execute(
            delete(GroupPost).where(GroupPost.group_id == group_id).execution_options(**no_sync)
        )
        await db.execute(
            delete(JoinRequest).where(JoinRequest.group_id == group_id).execution_options(**no_sync)
        )
        await db.execute(
            delete(GroupMember).where(GroupMember.group_id == group_id).execution_options(**no_sync)
        )
        await db.execute(delete(Group).where(Group.id == group_id).execution_options(**no_sync))
        return posts.rowcount or 0

    # ── Membership & join requests ────────────────────────────────────────

    @store_operation
    async def add_member_if_absent(
        self, db: AsyncSession, group_id: UUID, user_id: str, role: str
    ) -> bool:
        """
        Add a member unless already a member or still holding a pending
        request. Returns False when nothing was inserted.
        """
        members = GroupMember.__table__
        requests = JoinRequest.__table__
        row = select(
            literal(group_id, members.c.group_id.type),
            literal(user_id, members.c.user_id.type),
            literal(role, members.c.role.type),
            literal(_utcnow(), members.c.joined_at.type),
        ).where(~_row_exists(requests, group_id, user_id))
        stmt = (
            _insert(db, members)
            .from_select(["group_id", "user_id", "role", "joined_at"], row)
            .on_conflict_do_nothing(index_elements=["group_id", "user_id"])
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @store_operation
    async def remove_member(self, db: AsyncSession, group_id: UUID, user_id: str) -> bool:
        result = await db.execute(
            delete(GroupMember)
            .where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @store_operation
    async def add_request_if_absent(self, db: AsyncSession, group_id: UUID, user_id: str) -> bool:
        """Add a pending request unless one exists or the user is already a member."""
        members = GroupMember.__table__
        requests = JoinRequest.__table__
        row = select(
            literal(group_id, requests.c.group_id.type),
            literal(user_id, requests.c.user_id.type),
            literal(_utcnow(), requests.c.request_date.type),
        ).where(~_row_exists(members, group_id, user_id))
        stmt = (
            _insert(db, requests)
            .from_select(["group_id", "user_id", "request_date"], row)
            .on_conflict_do_nothing(index_elements=["group_id", "user_id"])
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @store_operation
    async def remove_request(self, db: AsyncSession, group_id: UUID, user_id: str) -> bool:
        result = await db.execute(
            delete(JoinRequest)
            .where(JoinRequest.group_id == group_id, JoinRequest.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── Posts ─────────────────────────────────────────────────────────────

    @store_operation
    async def find_post_by_id(self, db: AsyncSession, post_id: UUID) -> Optional[GroupPost]:
        result = await db.execute(
            select(GroupPost)
            .where(GroupPost.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_operation
    async def list_posts(
        self, db: AsyncSession, group_id: UUID, approved_only: bool = True
    ) -> List[GroupPost]:
        stmt = select(GroupPost).where(GroupPost.group_id == group_id)
        if approved_only:
            stmt = stmt.where(GroupPost.is_approved.is_(True))
        stmt = stmt.order_by(GroupPost.created_at.desc()).execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @store_operation
    async def count_posts(
        self, db: AsyncSession, group_id: UUID, approved_only: bool = True
    ) -> int:
        counts = await self.count_posts_by_group(db, [group_id], approved_only)
        return counts.get(group_id, 0)

    @store_operation
    async def count_posts_by_group(
        self, db: AsyncSession, group_ids: Iterable[UUID], approved_only: bool = True
    ) -> Dict[UUID, int]:
        ids = list(group_ids)
        if not ids:
            return {}
        stmt = (
            select(GroupPost.group_id, func.count(GroupPost.id))
            .where(GroupPost.group_id.in_(ids))
            .group_by(GroupPost.group_id)
        )
        if approved_only:
            stmt = stmt.where(GroupPost.is_approved.is_(True))
        result = await db.execute(stmt)
        return {group_id: count for group_id, count in result.all()}

    @store_operation
    async def add_post(self, db: AsyncSession, post: GroupPost) -> GroupPost:
        db.add(post)
        await db.flush()
        return post

    @store_operation
    async def delete_post(self, db: AsyncSession, post_id: UUID) -> None:
        no_sync = {"synchronize_session": False}
        await db.execute(delete(PostLike).where(PostLike.post_id == post_id).execution_options(**no_sync))
        await db.execute(
            delete(PostComment).where(PostComment.post_id == post_id).execution_options(**no_sync)
        )
        await db.execute(delete(GroupPost).where(GroupPost.id == post_id).execution_options(**no_sync))

    # ── Likes ─────────────────────────────────────────────────────────────

    @store_operation
    async def add_like_if_absent(self, db: AsyncSession, post_id: UUID, user_id: str) -> bool:
        stmt = (
            _insert(db, PostLike.__table__)
            .values(post_id=post_id, user_id=user_id, created_at=_utcnow())
            .on_conflict_do_nothing(index_elements=["post_id", "user_id"])
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @store_operation
    async def remove_like(self, db: AsyncSession, post_id: UUID, user_id: str) -> bool:
        result = await db.execute(
            delete(PostLike)
            .where(PostLike.post_id == post_id, PostLike.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @store_operation
    async def list_like_user_ids(self, db: AsyncSession, post_id: UUID) -> List[str]:
        """User ids that liked the post, in like order."""
        result = await db.execute(
            select(PostLike.user_id).where(PostLike.post_id == post_id).order_by(PostLike.id)
        )
        return list(result.scalars().all())

    # ── Comments ──────────────────────────────────────────────────────────

    @store_operation
    async def add_comment(self, db: AsyncSession, comment: PostComment) -> PostComment:
        db.add(comment)
        await db.flush()
        return comment

    @store_operation
    async def list_comments(self, db: AsyncSession, post_id: UUID) -> List[PostComment]:
        result = await db.execute(
            select(PostComment)
            .where(PostComment.post_id == post_id)
            .order_by(PostComment.created_at)
        )
        return list(result.scalars().all())

    @store_operation
    async def find_comment(
        self, db: AsyncSession, post_id: UUID, comment_id: UUID
    ) -> Optional[PostComment]:
        result = await db.execute(
            select(PostComment).where(
                PostComment.id == comment_id, PostComment.post_id == post_id
            )
        )
        return result.scalar_one_or_none()

    @store_operation
    async def delete_comment(self, db: AsyncSession, comment_id: UUID) -> None:
        await db.execute(
            delete(PostComment)
            .where(PostComment.id == comment_id)
            .execution_options(synchronize_session=False)
        )


# Singleton instance
membership_store = MembershipStore()
