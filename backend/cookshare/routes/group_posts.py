"""
CookShare Backend — Group Post Route Handlers
===============================================

What:  Posts inside a group and their likes and comments.
How:   Thin handlers; every decision is made by GroupPostService.
Who:   Called by the frontend group feed and post detail views.

Route Inventory:
    GET    /api/groups/{id}/posts                          feed (approved only)
    POST   /api/groups/{id}/posts                          create
    GET    /api/groups/{id}/posts/{postId}                 single post
    PUT    /api/groups/{id}/posts/{postId}                 edit
    DELETE /api/groups/{id}/posts/{postId}                 delete
    POST   /api/groups/{id}/posts/{postId}/like            like
    DELETE /api/groups/{id}/posts/{postId}/like            unlike
    POST   /api/groups/{id}/posts/{postId}/comments        comment
    DELETE /api/groups/{id}/posts/{postId}/comments/{cid}  delete comment
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.database import get_db_session
from cookshare.schemas.common import ErrorResponse, MessageResponse, UserIdBody
from cookshare.schemas.group_post import (
    CommentAddedResponse,
    CommentCreateRequest,
    CommentDeletedResponse,
    GroupPostContent,
    GroupPostCreateResponse,
    GroupPostResponse,
    GroupPostUpdateResponse,
    LikeResponse,
)
from cookshare.services.group_post_service import group_post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/groups/{group_id}/posts", tags=["Group Posts"])

_ERRORS = {
    400: {"description": "Invalid request or wrong group", "model": ErrorResponse},
    403: {"description": "Permission denied", "model": ErrorResponse},
    404: {"description": "Group, post or comment not found", "model": ErrorResponse},
}


def _caller(body: Optional[UserIdBody]) -> Optional[str]:
    return body.user_id if body else None


@router.get(
    "",
    response_model=List[GroupPostResponse],
    responses={404: _ERRORS[404]},
    summary="List a group's approved posts, newest first",
    description=(
        "Private groups return an empty list to callers who are not members, "
        "so the response does not reveal whether the group has posts."
    ),
)
async def list_group_posts(
    group_id: UUID,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[GroupPostResponse]:
    return await group_post_service.list_group_posts(db=db, group_id=group_id, user_id=user_id)


@router.post(
    "",
    status_code=201,
    response_model=GroupPostCreateResponse,
    responses=_ERRORS,
    summary="Share a recipe in a group",
)
async def create_group_post(
    group_id: UUID,
    content: GroupPostContent,
    db: AsyncSession = Depends(get_db_session),
) -> GroupPostCreateResponse:
    return await group_post_service.create_group_post(db=db, group_id=group_id, content=content)


@router.get(
    "/{post_id}",
    response_model=GroupPostResponse,
    responses={400: _ERRORS[400], 404: _ERRORS[404]},
    summary="Get one post with its likes and comments",
)
async def get_group_post(
    group_id: UUID,
    post_id: UUID,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: AsyncSession = Depends(get_db_session),
) -> GroupPostResponse:
    return await group_post_service.get_group_post(
        db=db, group_id=group_id, post_id=post_id, user_id=user_id
    )


@router.put(
    "/{post_id}",
    response_model=GroupPostUpdateResponse,
    responses=_ERRORS,
    summary="Edit a post (author or group moderator)",
)
async def edit_group_post(
    group_id: UUID,
    post_id: UUID,
    content: GroupPostContent,
    db: AsyncSession = Depends(get_db_session),
) -> GroupPostUpdateResponse:
    return await group_post_service.edit_group_post(
        db=db, group_id=group_id, post_id=post_id, content=content
    )


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Delete a post (author or group moderator)",
)
async def delete_group_post(
    group_id: UUID,
    post_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await group_post_service.delete_group_post(
        db=db, group_id=group_id, post_id=post_id, user_id=_caller(body)
    )


# ── Likes ─────────────────────────────────────────────────────────────────


@router.post(
    "/{post_id}/like",
    response_model=LikeResponse,
    responses=_ERRORS,
    summary="Like a post (members only)",
)
async def like_post(
    group_id: UUID,
    post_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await group_post_service.like_post(
        db=db, group_id=group_id, post_id=post_id, user_id=_caller(body)
    )


@router.delete(
    "/{post_id}/like",
    response_model=LikeResponse,
    responses=_ERRORS,
    summary="Remove a like (members only)",
)
async def unlike_post(
    group_id: UUID,
    post_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await group_post_service.unlike_post(
        db=db, group_id=group_id, post_id=post_id, user_id=_caller(body)
    )


# ── Comments ──────────────────────────────────────────────────────────────


@router.post(
    "/{post_id}/comments",
    status_code=201,
    response_model=CommentAddedResponse,
    responses=_ERRORS,
    summary="Comment on a post (members only)",
)
async def add_comment(
    group_id: UUID,
    post_id: UUID,
    body: CommentCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> CommentAddedResponse:
    return await group_post_service.add_comment(
        db=db, group_id=group_id, post_id=post_id, body=body
    )


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=CommentDeletedResponse,
    responses=_ERRORS,
    summary="Delete a comment (comment author or group moderator)",
)
async def delete_comment(
    group_id: UUID,
    post_id: UUID,
    comment_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> CommentDeletedResponse:
    return await group_post_service.delete_comment(
        db=db,
        group_id=group_id,
        post_id=post_id,
        comment_id=comment_id,
        user_id=_caller(body),
    )
