"""
CookShare Backend — Group Post Request/Response Schemas
=========================================================

What:  API contract for posts inside a group, their likes and comments.
Who:   Request models are parsed by routes/group_posts.py; response models
       are built by GroupPostService.

Likes on the wire:
    `likes` is the list of user ids that liked the post, in like order,
    with `likesCount` next to it. Comments follow the same pattern.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from cookshare.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class GroupPostContent(CamelModel):
    """
    Body of POST and PUT /api/groups/{id}/posts[/{postId}].

    On create, omitted fields take the column defaults. On edit, omitted or
    empty fields keep the post's current value; `image` is only replaced
    when a new non-empty value is sent.
    """

    user_id: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    ingredients: Optional[str] = None
    instructions: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    meat_type: Optional[str] = Field(default=None, max_length=50)
    prep_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    image: Optional[str] = None


class CommentCreateRequest(CamelModel):
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    text: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CommentResponse(CamelModel):
    id: uuid.UUID
    user_id: str
    user_name: str
    text: str
    created_at: datetime


class GroupPostResponse(CamelModel):
    """A post enriched with its author's display fields and its group's name."""

    id: uuid.UUID
    group_id: uuid.UUID
    user_id: str
    title: str
    description: str
    ingredients: str
    instructions: str
    category: str
    meat_type: str
    prep_time: int
    servings: int
    image: Optional[str] = None
    is_approved: bool
    created_at: datetime
    updated_at: datetime

    likes: List[str] = Field(default_factory=list)
    likes_count: int = 0
    comments: List[CommentResponse] = Field(default_factory=list)
    comments_count: int = 0

    user_name: str = "Unknown User"
    user_avatar: Optional[str] = None
    user_bio: Optional[str] = None
    group_name: Optional[str] = None


class GroupPostCreateResponse(GroupPostResponse):
    """The created post, flattened, plus whether it awaits approval."""

    message: str


class GroupPostUpdateResponse(CamelModel):
    success: bool = True
    data: GroupPostResponse
    message: str = "Group post updated successfully"


class LikeResponse(CamelModel):
    message: str
    likes: List[str]
    likes_count: int


class CommentAddedResponse(CamelModel):
    message: str
    comment: CommentResponse
    comments: List[CommentResponse]
    comments_count: int


class CommentDeletedResponse(CamelModel):
    message: str
    comments: List[CommentResponse]
    comments_count: int
