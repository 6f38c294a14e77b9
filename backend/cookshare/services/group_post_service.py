"""
CookShare Backend — Group Post Service
========================================

What:  Posts inside a group: feed, single post, create, edit, delete,
       likes and comments.
How:   Every operation loads the group first and asks the authorization
       engine before touching the post; results are enriched with author
       display fields through one batched user lookup.
Who:   Called by routes/group_posts.py.

Visibility:
    ┌──────────────┬───────────────────────────────┬──────────────────────┐
    │ Group        │ Caller                        │ Feed                 │
    ├──────────────┼───────────────────────────────┼──────────────────────┤
    │ public       │ anyone, anonymous included    │ approved posts       │
    │ private      │ member                        │ approved posts       │
    │ private      │ non-member or anonymous       │ [] (never an error)  │
    └──────────────┴───────────────────────────────┴──────────────────────┘

    A post's `is_approved` is decided once, at creation, by
    `auto_approve_post`. Posts waiting for approval never appear in the feed,
    and only their author or a moderator can read, like or comment on them;
    for everyone else they do not exist.

    Write methods commit through the store before returning.
"""

import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cookshare.models.group import Group
from cookshare.models.group_post import GroupPost, PostComment
from cookshare.models.user import User
from cookshare.schemas.common import MessageResponse
from cookshare.schemas.group_post import (
    CommentAddedResponse,
    CommentCreateRequest,
    CommentDeletedResponse,
    CommentResponse,
    GroupPostContent,
    GroupPostCreateResponse,
    GroupPostResponse,
    GroupPostUpdateResponse,
    LikeResponse,
)
from cookshare.services.authorization import (
    REASON_ADMINS_ONLY,
    auto_approve_post,
    can_create_post,
    can_moderate_post,
    can_view_posts,
    id_equals,
    is_member,
)
from cookshare.services.membership_store import membership_store
from cookshare.services.user_directory import user_directory

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"
ANONYMOUS_COMMENTER = "Anonymous User"

MSG_CREATED = "Group post created successfully"
MSG_PENDING_APPROVAL = "Group post created and waiting for approval"


class GroupPostService:
    """Business logic for group posts, likes and comments."""

    # ── Loading & enrichment ──────────────────────────────────────────────

    async def _load_group(self, db: AsyncSession, group_id: UUID) -> Group:
        group = await membership_store.find_group_by_id(db, group_id)
        if group is None:
            raise NotFoundError(resource="group", resource_id=str(group_id))
        return group

    async def _load_post(self, db: AsyncSession, group: Group, post_id: UUID) -> GroupPost:
        post = await membership_store.find_post_by_id(db, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        if not id_equals(post.group_id, group.id):
            raise ConflictError("Post does not belong to this group", reason="post_not_in_group")
        return post

    async def _load_visible_post(
        self, db: AsyncSession, group: Group, post_id: UUID, user_id: Optional[str]
    ) -> GroupPost:
        """Like `_load_post`, but a pending post is not found unless the caller may moderate it."""
        post = await self._load_post(db, group, post_id)
        if not post.is_approved and not can_moderate_post(group, post.user_id, user_id):
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    def _build_post(
        self, post: GroupPost, users: Dict[str, User], group: Group
    ) -> GroupPostResponse:
        author = users.get(post.user_id)
        return GroupPostResponse(
            id=post.id,
            group_id=post.group_id,
            user_id=post.user_id,
            title=post.title,
            description=post.description,
            ingredients=post.ingredients,
            instructions=post.instructions,
            category=post.category,
            meat_type=post.meat_type,
            prep_time=post.prep_time,
            servings=post.servings,
            image=post.image,
            is_approved=post.is_approved,
            created_at=post.created_at,
            updated_at=post.updated_at,
            likes=[like.user_id for like in post.likes],
            likes_count=len(post.likes),
            comments=[CommentResponse.model_validate(c) for c in post.comments],
            comments_count=len(post.comments),
            user_name=author.full_name if author else UNKNOWN_USER,
            user_avatar=author.avatar if author else None,
            user_bio=author.bio if author else None,
            group_name=group.name,
        )

    async def _enrich_posts(
        self, db: AsyncSession, posts: Sequence[GroupPost], group: Group
    ) -> List[GroupPostResponse]:
        """Author fields for every post via a single lookup; input order is kept."""
        users = await user_directory.find_users_by_ids(db, [p.user_id for p in posts])
        return [self._build_post(post, users, group) for post in posts]

    async def _enrich_post(
        self, db: AsyncSession, post: GroupPost, group: Group
    ) -> GroupPostResponse:
        return (await self._enrich_posts(db, [post], group))[0]

    # ── Read ──────────────────────────────────────────────────────────────

    async def list_group_posts(
        self, db: AsyncSession, group_id: UUID, user_id: Optional[str] = None
    ) -> List[GroupPostResponse]:
        """
        Approved posts of the group, newest first.

        A caller who may not view the group gets an empty list, so a private
        group's feed looks the same whether or not it has posts.

        Raises:
            NotFoundError: group does not exist
        """
        group = await self._load_group(db, group_id)

        if not can_view_posts(group, user_id):
            logger.debug("Feed of private group %s hidden from %s", group.id, user_id)
            return []

        posts = await membership_store.list_posts(db, group.id, approved_only=True)
        return await self._enrich_posts(db, posts, group)

    async def get_group_post(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        user_id: Optional[str] = None,
    ) -> GroupPostResponse:
        """
        One post with likes and comments.

        Reported as not found when the caller cannot view the group, or when
        the post still awaits approval and the caller is neither its author
        nor a moderator.
        """
        group = await self._load_group(db, group_id)
        if not can_view_posts(group, user_id):
            raise NotFoundError(resource="post", resource_id=str(post_id))

        post = await self._load_visible_post(db, group, post_id, user_id)
        return await self._enrich_post(db, post, group)

    # ── Write ─────────────────────────────────────────────────────────────

    async def create_group_post(
        self, db: AsyncSession, group_id: UUID, content: GroupPostContent
    ) -> GroupPostCreateResponse:
        """
        Raises:
            NotFoundError: group does not exist
            PermissionDeniedError: not_member, admins_only
            ValidationError: blank title
        """
        group = await self._load_group(db, group_id)
        user_id = content.user_id

        decision = can_create_post(group, user_id)
        if not decision:
            logger.info("Post to group %s denied for %s: %s", group.id, user_id, decision.reason)
            if decision.reason == REASON_ADMINS_ONLY:
                raise PermissionDeniedError(
                    "Only admins can post in this group", reason=decision.reason
                )
            raise PermissionDeniedError("Only group members can post", reason=decision.reason)

        title = (content.title or "").strip()
        if not title:
            raise ValidationError("Recipe title is required", field="title")

        approved = auto_approve_post(group, user_id)
        post = GroupPost(
            group_id=group.id,
            user_id=user_id,
            title=title,
            description=content.description or "",
            ingredients=content.ingredients or "",
            instructions=content.instructions or "",
            category=content.category or "General",
            meat_type=content.meat_type or "Mixed",
            prep_time=content.prep_time or 0,
            servings=content.servings or 1,
            image=content.image or None,
            is_approved=approved,
            likes=[],
            comments=[],
        )
        await membership_store.add_post(db, post)

        logger.info(
            "Post %s created in group %s by %s (approved=%s)",
            post.id, group.id, user_id, approved,
        )
        enriched = await self._enrich_post(db, post, group)
        await membership_store.commit(db)
        return GroupPostCreateResponse(
            **enriched.model_dump(),
            message=MSG_CREATED if approved else MSG_PENDING_APPROVAL,
        )

    async def edit_group_post(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        content: GroupPostContent,
    ) -> GroupPostUpdateResponse:
        """
        Update a post's recipe fields. Author or moderator only.

        Empty fields keep their current value and the image is only replaced
        by a new non-empty one. Approval state never changes here.
        """
        group = await self._load_group(db, group_id)
        post = await self._load_post(db, group, post_id)

        if not can_moderate_post(group, post.user_id, content.user_id):
            logger.warning("Edit of post %s denied for %s", post.id, content.user_id)
            raise PermissionDeniedError()

        title = (content.title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")

        post.title = title
        post.description = content.description or post.description
        post.ingredients = content.ingredients or post.ingredients
        post.instructions = content.instructions or post.instructions
        post.category = content.category or post.category
        post.meat_type = content.meat_type or post.meat_type
        if content.prep_time is not None:
            post.prep_time = content.prep_time
        if content.servings is not None:
            post.servings = content.servings
        if content.image:
            post.image = content.image

        await membership_store.save(db)
        logger.info("Post %s edited by %s", post.id, content.user_id)

        response = GroupPostUpdateResponse(data=await self._enrich_post(db, post, group))
        await membership_store.commit(db)
        return response

    async def delete_group_post(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        user_id: Optional[str],
    ) -> MessageResponse:
        group = await self._load_group(db, group_id)
        post = await self._load_post(db, group, post_id)

        if not can_moderate_post(group, post.user_id, user_id):
            logger.warning("Delete of post %s denied for %s", post.id, user_id)
            raise PermissionDeniedError()

        await membership_store.delete_post(db, post.id)
        await membership_store.commit(db)
        logger.info("Post %s deleted from group %s by %s", post.id, group.id, user_id)
        return MessageResponse(message="Group post deleted successfully")

    # ── Likes ─────────────────────────────────────────────────────────────

    async def like_post(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        user_id: Optional[str],
    ) -> LikeResponse:
        """
        Raises:
            PermissionDeniedError: not_member
            ConflictError: already_liked
        """
        if not user_id:
            raise ValidationError("User ID is required", field="userId")

        group = await self._load_group(db, group_id)
        if not is_member(group, user_id):
            raise PermissionDeniedError("Only group members can like posts", reason="not_member")
        post = await self._load_visible_post(db, group, post_id, user_id)

        if not await membership_store.add_like_if_absent(db, post.id, user_id):
            raise ConflictError("Already liked this post", reason="already_liked")

        likes = await membership_store.list_like_user_ids(db, post.id)
        await membership_store.commit(db)
        return LikeResponse(message="Post liked successfully", likes=likes, likes_count=len(likes))

    async def unlike_post(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        user_id: Optional[str],
    ) -> LikeResponse:
        """
        Raises:
            PermissionDeniedError: not_member
            ConflictError: not_liked
        """
        if not user_id:
            raise ValidationError("User ID is required", field="userId")

        group = await self._load_group(db, group_id)
        if not is_member(group, user_id):
            raise PermissionDeniedError("Only group members can unlike posts", reason="not_member")
        post = await self._load_visible_post(db, group, post_id, user_id)

        if not await membership_store.remove_like(db, post.id, user_id):
            raise ConflictError("Post not liked yet", reason="not_liked")

        likes = await membership_store.list_like_user_ids(db, post.id)
        await membership_store.commit(db)
        return LikeResponse(message="Post unliked successfully", likes=likes, likes_count=len(likes))

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        body: CommentCreateRequest,
    ) -> CommentAddedResponse:
        text = (body.text or "").strip()
        if not text:
            raise ValidationError("Comment text is required", field="text")
        if not body.user_id:
            raise ValidationError("User ID is required", field="userId")

        group = await self._load_group(db, group_id)
        if not is_member(group, body.user_id):
            raise PermissionDeniedError(
                "Only group members can comment on posts", reason="not_member"
            )
        post = await self._load_visible_post(db, group, post_id, body.user_id)

        comment = PostComment(
            post_id=post.id,
            user_id=body.user_id,
            user_name=body.user_name or ANONYMOUS_COMMENTER,
            text=text,
        )
        await membership_store.add_comment(db, comment)
        logger.info("Comment %s added to post %s by %s", comment.id, post.id, body.user_id)

        comments = await membership_store.list_comments(db, post.id)
        response = CommentAddedResponse(
            message="Comment added successfully",
            comment=CommentResponse.model_validate(comment),
            comments=[CommentResponse.model_validate(c) for c in comments],
            comments_count=len(comments),
        )
        await membership_store.commit(db)
        return response

    async def delete_comment(
        self,
        db: AsyncSession,
        group_id: UUID,
        post_id: UUID,
        comment_id: UUID,
        user_id: Optional[str],
    ) -> CommentDeletedResponse:
        """Comment author or group moderator, and only while a member."""
        group = await self._load_group(db, group_id)
        if not is_member(group, user_id):
            raise PermissionDeniedError(
                "Only group members can delete comments", reason="not_member"
            )
        post = await self._load_visible_post(db, group, post_id, user_id)

        comment = await membership_store.find_comment(db, post.id, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        if not can_moderate_post(group, comment.user_id, user_id):
            logger.warning("Delete of comment %s denied for %s", comment.id, user_id)
            raise PermissionDeniedError()

        await membership_store.delete_comment(db, comment.id)
        logger.info("Comment %s deleted from post %s by %s", comment.id, post.id, user_id)

        comments = await membership_store.list_comments(db, post.id)
        response = CommentDeletedResponse(
            message="Comment deleted successfully",
            comments=[CommentResponse.model_validate(c) for c in comments],
            comments_count=len(comments),
        )
        await membership_store.commit(db)
        return response


# Singleton instance
group_post_service = GroupPostService()
