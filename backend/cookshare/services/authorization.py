"""
CookShare Backend — Group Authorization Engine
================================================

What:  Pure decision functions over a loaded group and a caller id.
Who:   Called by GroupService and GroupPostService before every write and
       before every read of group content.
When:  After the group has been loaded by the MembershipStore; the engine
       itself performs no I/O and never raises.

Inputs:
    `group` is any object exposing the Group attributes used below
    (creator_id, is_private, members, pending_requests, settings and the
    legacy allow_member_posts / require_approval / allow_invites columns).
    ORM rows and plain test doubles both qualify.

    `user_id` is Optional everywhere: None means an anonymous caller, who
    is never a member, admin or creator.

Rules:
    Moderator       = creator OR member with role admin/owner
    View posts      = public group, or private group AND member
    Create post     = member, and (allowMemberPosts OR moderator)
    Auto-approve    = NOT requireApproval OR moderator
    Moderate post   = content owner OR moderator
    Join -> pending = private group OR requireApproval

Defaults:
    Every effective setting defaults to True when neither the nested
    `settings` object nor the legacy column carries a value. This includes
    requireApproval: a group that never stated otherwise gates both join
    requests and member posts.
"""

from dataclasses import dataclass
from typing import Any, Optional

from cookshare.models.group import ROLE_ADMIN, ROLE_OWNER

DEFAULT_ALLOW_MEMBER_POSTS = True
DEFAULT_REQUIRE_APPROVAL = True
DEFAULT_ALLOW_INVITES = True

ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_OWNER})

# Denial reasons returned by can_create_post
REASON_NOT_MEMBER = "not_member"
REASON_ADMINS_ONLY = "admins_only"


@dataclass(frozen=True)
class EffectiveSettings:
    """Resolved group settings after applying the legacy-field fallback."""

    allow_member_posts: bool
    require_approval: bool
    allow_invites: bool

    def as_dict(self) -> dict:
        return {
            "allowMemberPosts": self.allow_member_posts,
            "requireApproval": self.require_approval,
            "allowInvites": self.allow_invites,
        }


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check that can fail for more than one reason."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


# ── Identity ──────────────────────────────────────────────────────────────

def id_equals(a: Any, b: Any) -> bool:
    """
    Compare two entity ids by value.

    Ids reach this service as strings, UUID objects and legacy ObjectId
    hex strings; an id and its string form compare equal. None never
    equals anything, including another None.
    """
    if a is None or b is None:
        return False
    return str(a) == str(b)


def _find_member(group: Any, user_id: Optional[str]) -> Optional[Any]:
    if user_id is None:
        return None
    for member in getattr(group, "members", None) or []:
        if id_equals(member.user_id, user_id):
            return member
    return None


# ── Settings ──────────────────────────────────────────────────────────────

def _resolve(group: Any, settings_key: str, legacy_attr: str, default: bool) -> bool:
    nested = getattr(group, "settings", None) or {}
    value = nested.get(settings_key)
    if value is None:
        value = getattr(group, legacy_attr, None)
    if value is None:
        return default
    return bool(value)


def effective_settings(group: Any) -> EffectiveSettings:
    """
    Resolve `settings.X ?? legacy X ?? default` for each group setting.

    Groups created by this service carry the nested `settings` object.
    Groups migrated from the earlier schema carry top-level columns only.
    This is the single place that knows about both shapes.
    """
    return EffectiveSettings(
        allow_member_posts=_resolve(
            group, "allowMemberPosts", "allow_member_posts", DEFAULT_ALLOW_MEMBER_POSTS
        ),
        require_approval=_resolve(
            group, "requireApproval", "require_approval", DEFAULT_REQUIRE_APPROVAL
        ),
        allow_invites=_resolve(
            group, "allowInvites", "allow_invites", DEFAULT_ALLOW_INVITES
        ),
    )


# ── Roles ─────────────────────────────────────────────────────────────────

def is_member(group: Any, user_id: Optional[str]) -> bool:
    return _find_member(group, user_id) is not None


def is_admin(group: Any, user_id: Optional[str]) -> bool:
    """True iff the caller is in the member list with role admin or owner."""
    member = _find_member(group, user_id)
    return member is not None and member.role in ADMIN_ROLES


def is_creator(group: Any, user_id: Optional[str]) -> bool:
    return id_equals(getattr(group, "creator_id", None), user_id)


def is_moderator(group: Any, user_id: Optional[str]) -> bool:
    return is_admin(group, user_id) or is_creator(group, user_id)


def has_pending_request(group: Any, user_id: Optional[str]) -> bool:
    if user_id is None:
        return False
    return any(
        id_equals(request.user_id, user_id)
        for request in getattr(group, "pending_requests", None) or []
    )


# ── Decisions ─────────────────────────────────────────────────────────────

def can_view_posts(group: Any, user_id: Optional[str] = None) -> bool:
    """
    Whether the caller may see the group's posts.

    Callers that get False must be served an empty result, not an error.
    """
    if not getattr(group, "is_private", False):
        return True
    return user_id is not None and is_member(group, user_id)


def can_create_post(group: Any, user_id: Optional[str]) -> Decision:
    if not is_member(group, user_id):
        return Decision(False, REASON_NOT_MEMBER)
    if effective_settings(group).allow_member_posts:
        return Decision(True)
    if is_moderator(group, user_id):
        return Decision(True)
    return Decision(False, REASON_ADMINS_ONLY)


def auto_approve_post(group: Any, user_id: Optional[str]) -> bool:
    """Sole determinant of a new post's `is_approved`."""
    return not effective_settings(group).require_approval or is_moderator(group, user_id)


def can_moderate_post(group: Any, owner_id: Optional[str], user_id: Optional[str]) -> bool:
    """
    Whether the caller may edit/delete a post or delete a comment.

    `owner_id` is the author of the content being moderated: the post's
    author for posts, the comment's author for comments.
    """
    return id_equals(owner_id, user_id) or is_moderator(group, user_id)


def join_requires_approval(group: Any) -> bool:
    return bool(getattr(group, "is_private", False)) or effective_settings(group).require_approval
