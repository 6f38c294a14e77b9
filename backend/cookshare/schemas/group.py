"""
CookShare Backend — Group Request/Response Schemas
====================================================

What:  API contract for group creation, listing, detail, membership and
       settings endpoints.
Who:   Request models are parsed by routes/groups.py; response models are
       built by GroupService.

Wire format:
    camelCase on the wire (`creatorId`, `isPrivate`, `membersCount`),
    snake_case accepted on input as well.

Settings on responses:
    `settings` carries the *effective* values, and the same three flags are
    repeated at top level (`allowMemberPosts`, `requireApproval`,
    `allowInvites`) for clients written against the legacy shape.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from cookshare.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class GroupCreateRequest(CamelModel):
    """
    Body of POST /api/groups.

    `name` and `creator_id` are optional here so that a missing value is
    reported with a specific message by the service instead of a generic
    schema error. Settings flags left out default to true.
    """

    name: Optional[str] = Field(default=None, max_length=100)
    description: str = Field(default="", max_length=500)
    category: str = Field(default="General", max_length=100)
    rules: str = Field(default="", max_length=1000)
    image: Optional[str] = None
    is_private: bool = False
    creator_id: Optional[str] = None
    allow_member_posts: Optional[bool] = None
    require_approval: Optional[bool] = None
    allow_invites: Optional[bool] = None


class GroupSettingsUpdateRequest(CamelModel):
    """Body of PUT /api/groups/{id}/settings. Omitted keys are left unchanged."""

    user_id: Optional[str] = None
    allow_member_posts: Optional[bool] = None
    require_approval: Optional[bool] = None
    allow_invites: Optional[bool] = None
    is_private: Optional[bool] = None


class JoinDecisionRequest(CamelModel):
    """Body of PUT /api/groups/{id}/requests/{userId}."""

    action: Optional[str] = Field(default=None, description="'approve' or 'reject'")
    admin_id: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class GroupSettingsResponse(CamelModel):
    allow_member_posts: bool
    require_approval: bool
    allow_invites: bool


class MemberResponse(CamelModel):
    user_id: str
    role: str
    joined_at: datetime


class PendingRequestResponse(CamelModel):
    user_id: str
    request_date: datetime


class MemberDetail(MemberResponse):
    user_name: str = "Unknown User"
    user_avatar: Optional[str] = None
    user_email: Optional[str] = None


class PendingRequestDetail(PendingRequestResponse):
    user_name: str = "Unknown User"
    user_avatar: Optional[str] = None
    user_bio: Optional[str] = None
    user_email: Optional[str] = None


class GroupResponse(CamelModel):
    """A group enriched with its creator's display fields and counts."""

    id: uuid.UUID
    name: str
    description: str
    category: str
    rules: str
    image: Optional[str] = None
    creator_id: str
    is_private: bool
    settings: GroupSettingsResponse
    allow_member_posts: bool
    require_approval: bool
    allow_invites: bool
    members: List[MemberResponse] = Field(default_factory=list)
    pending_requests: List[PendingRequestResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    creator_name: str = "Unknown"
    creator_avatar: Optional[str] = None
    members_count: int = 0
    posts_count: int = 0


class GroupDetailResponse(GroupResponse):
    """GET /api/groups/{id}: adds per-member and per-request user details."""

    members_details: List[MemberDetail] = Field(default_factory=list)
    pending_requests_details: List[PendingRequestDetail] = Field(default_factory=list)


class JoinResponse(CamelModel):
    message: str
    status: str = Field(description="pending, approved or canceled")
    group_id: uuid.UUID
    user_id: str


class JoinDecisionResponse(CamelModel):
    message: str
    action: str


class GroupSettingsUpdateResponse(CamelModel):
    message: str
    group: GroupResponse
