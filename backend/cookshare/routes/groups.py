"""
CookShare Backend — Group Route Handlers
==========================================

What:  Group CRUD, search, settings and the membership endpoints
       (join, cancel, approve/reject, leave).
How:   Parse path/query/body, delegate to GroupService, return its model.
Who:   Called by the frontend Groups pages.

Caller identity:
    There is no authentication. The caller's id travels in the request as
    `userId` (query string on reads, JSON body on writes) or `adminId` for
    join decisions, and is passed to the service as an explicit Optional.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.database import get_db_session
from cookshare.schemas.common import ErrorResponse, MessageResponse, UserIdBody
from cookshare.schemas.group import (
    GroupCreateRequest,
    GroupDetailResponse,
    GroupResponse,
    GroupSettingsUpdateRequest,
    GroupSettingsUpdateResponse,
    JoinDecisionRequest,
    JoinDecisionResponse,
    JoinResponse,
)
from cookshare.services.group_service import group_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Groups"])

_ERRORS_400 = {400: {"description": "Invalid request", "model": ErrorResponse}}
_ERRORS_403 = {403: {"description": "Permission denied", "model": ErrorResponse}}
_ERRORS_404 = {404: {"description": "Group not found", "model": ErrorResponse}}


@router.post(
    "/groups",
    status_code=201,
    response_model=GroupResponse,
    responses={**_ERRORS_400},
    summary="Create a group",
)
async def create_group(
    data: GroupCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> GroupResponse:
    """The creator becomes the group's first member, with the admin role."""
    return await group_service.create_group(db=db, data=data)


@router.get(
    "/groups",
    response_model=List[GroupResponse],
    summary="List groups visible to the caller",
)
async def list_groups(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[GroupResponse]:
    return await group_service.list_groups(db=db, user_id=user_id)


# Declared before /groups/{group_id} so "search" is not parsed as an id
@router.get(
    "/groups/search",
    response_model=List[GroupResponse],
    responses={**_ERRORS_400},
    summary="Search groups by name, description or category",
)
async def search_groups(
    q: Optional[str] = Query(default=None, description="Search text (required)"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    include_private: bool = Query(default=False, alias="includePrivate"),
    db: AsyncSession = Depends(get_db_session),
) -> List[GroupResponse]:
    return await group_service.search_groups(
        db=db, query=q, user_id=user_id, include_private=include_private
    )


@router.get(
    "/groups/{group_id}",
    response_model=GroupDetailResponse,
    responses={**_ERRORS_404},
    summary="Get a group with member and join-request details",
)
async def get_group(
    group_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> GroupDetailResponse:
    return await group_service.get_group(db=db, group_id=group_id)


@router.put(
    "/groups/{group_id}/settings",
    response_model=GroupSettingsUpdateResponse,
    responses={**_ERRORS_403, **_ERRORS_404},
    summary="Update group settings (moderators only)",
)
async def update_group_settings(
    group_id: UUID,
    changes: GroupSettingsUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> GroupSettingsUpdateResponse:
    return await group_service.update_settings(db=db, group_id=group_id, changes=changes)


@router.delete(
    "/groups/{group_id}",
    response_model=MessageResponse,
    responses={**_ERRORS_403, **_ERRORS_404},
    summary="Delete a group and all of its posts (creator only)",
)
async def delete_group(
    group_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    user_id = body.user_id if body else None
    return await group_service.delete_group(db=db, group_id=group_id, user_id=user_id)


# ── Membership ────────────────────────────────────────────────────────────


@router.post(
    "/groups/{group_id}/join",
    response_model=JoinResponse,
    responses={**_ERRORS_400, **_ERRORS_404},
    summary="Join a group or request to join it",
)
async def request_join(
    group_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JoinResponse:
    """
    Returns status `approved` when the caller became a member immediately,
    `pending` when the group is private or requires approval.
    """
    user_id = body.user_id if body else None
    return await group_service.request_join(db=db, group_id=group_id, user_id=user_id)


@router.delete(
    "/groups/{group_id}/join",
    response_model=JoinResponse,
    responses={**_ERRORS_400, **_ERRORS_404},
    summary="Cancel a pending join request",
)
async def cancel_join_request(
    group_id: UUID,
    body: Optional[UserIdBody] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JoinResponse:
    user_id = body.user_id if body else None
    return await group_service.cancel_join_request(db=db, group_id=group_id, user_id=user_id)


@router.put(
    "/groups/{group_id}/requests/{user_id}",
    response_model=JoinDecisionResponse,
    responses={**_ERRORS_400, **_ERRORS_403, 404: {"description": "Group or request not found", "model": ErrorResponse}},
    summary="Approve or reject a join request (group admins only)",
)
async def decide_join_request(
    group_id: UUID,
    user_id: str,
    decision: JoinDecisionRequest,
    db: AsyncSession = Depends(get_db_session),
) -> JoinDecisionResponse:
    return await group_service.decide_request(
        db=db,
        group_id=group_id,
        target_user_id=user_id,
        action=decision.action,
        admin_id=decision.admin_id,
    )


@router.delete(
    "/groups/{group_id}/members/{user_id}",
    response_model=MessageResponse,
    responses={**_ERRORS_400, **_ERRORS_404},
    summary="Leave a group",
)
async def leave_group(
    group_id: UUID,
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await group_service.leave_group(db=db, group_id=group_id, user_id=user_id)
