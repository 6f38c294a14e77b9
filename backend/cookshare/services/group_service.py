"""
CookShare Backend — Group Lifecycle Service
=============================================

What:  Creates, lists, searches and deletes groups; drives the membership
       state machine (join, approve/reject, cancel, leave); updates settings.
How:   Load the group through the MembershipStore, ask the authorization
       engine, then apply the change with one atomic store operation.
Who:   Called by routes/groups.py.

Membership State Machine (per group, per user):

    ┌────────────┐  request (private or requireApproval)  ┌─────────┐
    │ non-member │ ─────────────────────────────────────▶ │ pending │
    │            │ ◀───────────────────────────────────── │         │
    └────────────┘           reject / cancel              └─────────┘
        │    ▲                                                 │
        │    │ leave (never the creator)                       │ approve
        │    │                                                 ▼
        │  ┌────────┐ ◀──────────────────────────────────────────
        └─▶│ member │     request (public, no approval required)
           └────────┘

Race handling:
    Membership writes load the group with its row locked (FOR UPDATE), so
    changes to one group's members and requests are serialized. The
    in-memory checks (is_member, has_pending_request) produce the friendly
    error for the common case. The store's conditional insert or delete is
    still the authority: when it reports "nothing changed" the group is
    re-read and the matching conflict is raised, so two concurrent joins
    cannot both succeed and a user is never both member and pending.

Transactions:
    Every write method commits through the store before returning, so a
    failed commit surfaces as 503/500 instead of a success response.
"""

import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.config import settings
from cookshare.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cookshare.models.group import ROLE_ADMIN, ROLE_MEMBER, Group, GroupMember
from cookshare.models.user import User
from cookshare.schemas.common import MessageResponse
from cookshare.schemas.group import (
    GroupCreateRequest,
    GroupDetailResponse,
    GroupResponse,
    GroupSettingsUpdateRequest,
    GroupSettingsUpdateResponse,
    JoinDecisionResponse,
    JoinResponse,
    MemberDetail,
    MemberResponse,
    PendingRequestDetail,
    PendingRequestResponse,
)
from cookshare.services.authorization import (
    DEFAULT_ALLOW_INVITES,
    DEFAULT_ALLOW_MEMBER_POSTS,
    DEFAULT_REQUIRE_APPROVAL,
    EffectiveSettings,
    effective_settings,
    has_pending_request,
    is_admin,
    is_creator,
    is_member,
    is_moderator,
    join_requires_approval,
)
from cookshare.services.membership_store import membership_store
from cookshare.services.user_directory import user_directory

logger = logging.getLogger(__name__)

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
JOIN_ACTIONS = (ACTION_APPROVE, ACTION_REJECT)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_CANCELED = "canceled"

UNKNOWN_CREATOR = "Unknown"
UNKNOWN_USER = "Unknown User"


def _flag(value: Optional[bool], default: bool) -> bool:
    return default if value is None else value


class GroupService:
    """
    Business logic for the group lifecycle.

    Stateless: every method receives the request's AsyncSession. Writes are
    flushed by the store and committed at the end of the write method.
    """

    # ── Loading & enrichment ──────────────────────────────────────────────

    async def _load_group(
        self, db: AsyncSession, group_id: UUID, for_update: bool = False
    ) -> Group:
        group = await membership_store.find_group_by_id(db, group_id, for_update=for_update)
        if group is None:
            raise NotFoundError(resource="group", resource_id=str(group_id))
        return group

    async def _join_conflict(
        self, db: AsyncSession, group_id: UUID, user_id: str
    ) -> ConflictError:
        """The conflict matching the stored state after a conditional insert added nothing."""
        group = await self._load_group(db, group_id)
        if is_member(group, user_id):
            return ConflictError("User is already a member of this group", reason="already_member")
        return ConflictError("Join request already pending", reason="already_pending")

    def _build_response(
        self,
        group: Group,
        users: Dict[str, User],
        posts_count: int,
    ) -> GroupResponse:
        effective = effective_settings(group)
        creator = users.get(str(group.creator_id))
        return GroupResponse(
            id=group.id,
            name=group.name,
            description=group.description,
            category=group.category,
            rules=group.rules,
            image=group.image,
            creator_id=group.creator_id,
            is_private=group.is_private,
            settings=effective.as_dict(),
            allow_member_posts=effective.allow_member_posts,
            require_approval=effective.require_approval,
            allow_invites=effective.allow_invites,
            members=[MemberResponse.model_validate(m) for m in group.members],
            pending_requests=[
                PendingRequestResponse.model_validate(r) for r in group.pending_requests
            ],
            created_at=group.created_at,
            updated_at=group.updated_at,
            creator_name=creator.full_name if creator else UNKNOWN_CREATOR,
            creator_avatar=creator.avatar if creator else None,
            members_count=len(group.members),
            posts_count=posts_count,
        )

    async def _enrich_groups(
        self, db: AsyncSession, groups: Sequence[Group]
    ) -> List[GroupResponse]:
        """Creator lookup and post counts for a page of groups, two queries total."""
        users = await user_directory.find_users_by_ids(db, [g.creator_id for g in groups])
        counts = await membership_store.count_posts_by_group(db, [g.id for g in groups])
        return [self._build_response(g, users, counts.get(g.id, 0)) for g in groups]

    async def _enrich_group(self, db: AsyncSession, group: Group) -> GroupResponse:
        return (await self._enrich_groups(db, [group]))[0]

    # ── Create / read ─────────────────────────────────────────────────────

    async def create_group(self, db: AsyncSession, data: GroupCreateRequest) -> GroupResponse:
        """
        Create a group with its creator as the first member (role admin).

        Raises:
            ValidationError: blank name or missing creator id
        """
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Group name is required", field="name")
        if not data.creator_id:
            raise ValidationError("Creator ID is required", field="creatorId")

        group_settings = EffectiveSettings(
            allow_member_posts=_flag(data.allow_member_posts, DEFAULT_ALLOW_MEMBER_POSTS),
            require_approval=_flag(data.require_approval, DEFAULT_REQUIRE_APPROVAL),
            allow_invites=_flag(data.allow_invites, DEFAULT_ALLOW_INVITES),
        )

        group = Group(
            name=name,
            description=data.description.strip(),
            category=data.category or "General",
            rules=data.rules.strip(),
            image=data.image or None,
            creator_id=data.creator_id,
            is_private=data.is_private,
            settings=group_settings.as_dict(),
            members=[GroupMember(user_id=data.creator_id, role=ROLE_ADMIN)],
            pending_requests=[],
        )
        await membership_store.add_group(db, group)

        logger.info(
            "Group created: %s ('%s') by %s, private=%s",
            group.id, group.name, group.creator_id, group.is_private,
        )
        response = await self._enrich_group(db, group)
        await membership_store.commit(db)
        return response

    async def list_groups(
        self, db: AsyncSession, user_id: Optional[str] = None
    ) -> List[GroupResponse]:
        """Public groups plus the private groups the caller belongs to, newest first."""
        groups = await membership_store.list_groups(db, user_id=user_id)
        return await self._enrich_groups(db, groups)

    async def search_groups(
        self,
        db: AsyncSession,
        query: Optional[str],
        user_id: Optional[str] = None,
        include_private: bool = False,
    ) -> List[GroupResponse]:
        """
        Case-insensitive substring search over name, description and category.

        Without `include_private`, private groups only match for their members.
        At most `settings.search_result_limit` results, newest first.
        """
        term = (query or "").strip()
        if not term:
            raise ValidationError("Search query is required", field="q")

        groups = await membership_store.list_groups(
            db,
            user_id=user_id,
            include_private=include_private,
            query=term,
            limit=settings.search_result_limit,
        )
        logger.debug("Group search '%s' matched %d groups", term, len(groups))
        return await self._enrich_groups(db, groups)

    async def get_group(self, db: AsyncSession, group_id: UUID) -> GroupDetailResponse:
        """Full detail, including user info for every member and pending request."""
        group = await self._load_group(db, group_id)

        user_ids = [group.creator_id]
        user_ids += [m.user_id for m in group.members]
        user_ids += [r.user_id for r in group.pending_requests]
        users = await user_directory.find_users_by_ids(db, user_ids)
        posts_count = await membership_store.count_posts(db, group.id, approved_only=True)

        members_details = []
        for member in group.members:
            user = users.get(member.user_id)
            members_details.append(
                MemberDetail(
                    user_id=member.user_id,
                    role=member.role,
                    joined_at=member.joined_at,
                    user_name=user.full_name if user else UNKNOWN_USER,
                    user_avatar=user.avatar if user else None,
                    user_email=user.email if user else None,
                )
            )

        pending_details = []
        for request in group.pending_requests:
            user = users.get(request.user_id)
            pending_details.append(
                PendingRequestDetail(
                    user_id=request.user_id,
                    request_date=request.request_date,
                    user_name=user.full_name if user else UNKNOWN_USER,
                    user_avatar=user.avatar if user else None,
                    user_bio=user.bio if user else None,
                    user_email=user.email if user else None,
                )
            )

        base = self._build_response(group, users, posts_count)
        return GroupDetailResponse(
            **base.model_dump(),
            members_details=members_details,
            pending_requests_details=pending_details,
        )

    # ── Membership state machine ──────────────────────────────────────────

    async def request_join(
        self, db: AsyncSession, group_id: UUID, user_id: Optional[str]
    ) -> JoinResponse:
        """
        non-member → pending (private group or approval required)
        non-member → member  (otherwise)

        Raises:
            ValidationError: no user id
            NotFoundError: group does not exist
            ConflictError: already_member, already_pending
        """
        if not user_id:
            raise ValidationError("User ID is required", field="userId")

        group = await self._load_group(db, group_id, for_update=True)

        if is_member(group, user_id):
            raise ConflictError("User is already a member of this group", reason="already_member")
        if has_pending_request(group, user_id):
            raise ConflictError("Join request already pending", reason="already_pending")

        if join_requires_approval(group):
            if not await membership_store.add_request_if_absent(db, group.id, user_id):
                raise await self._join_conflict(db, group.id, user_id)
            await membership_store.commit(db)
            logger.info("Join request from %s pending for group %s", user_id, group.id)
            return JoinResponse(
                message="Join request sent successfully",
                status=STATUS_PENDING,
                group_id=group.id,
                user_id=user_id,
            )

        if not await membership_store.add_member_if_absent(db, group.id, user_id, ROLE_MEMBER):
            raise await self._join_conflict(db, group.id, user_id)
        await membership_store.commit(db)
        logger.info("User %s joined open group %s", user_id, group.id)
        return JoinResponse(
            message="Joined group successfully",
            status=STATUS_APPROVED,
            group_id=group.id,
            user_id=user_id,
        )

    async def decide_request(
        self,
        db: AsyncSession,
        group_id: UUID,
        target_user_id: str,
        action: Optional[str],
        admin_id: Optional[str],
    ) -> JoinDecisionResponse:
        """
        pending → member (approve) or pending → non-member (reject).

        Only members holding the admin or owner role may decide. The creator
        qualifies because it is stored as an admin member at creation; there
        is no separate creator check here.

        Raises:
            ValidationError: action is not 'approve' or 'reject'
            NotFoundError: group or join request does not exist
            PermissionDeniedError: not_admin
        """
        if action not in JOIN_ACTIONS:
            raise ValidationError(
                "Action must be 'approve' or 'reject'",
                field="action",
                context={"allowed": list(JOIN_ACTIONS)},
            )

        group = await self._load_group(db, group_id, for_update=True)

        if not is_admin(group, admin_id):
            logger.warning(
                "Join decision on group %s denied for non-admin %s", group.id, admin_id
            )
            raise PermissionDeniedError("Admin privileges required", reason="not_admin")

        if not has_pending_request(group, target_user_id):
            raise NotFoundError(resource="join request", resource_id=target_user_id)
        if not await membership_store.remove_request(db, group.id, target_user_id):
            raise NotFoundError(resource="join request", resource_id=target_user_id)

        if action == ACTION_APPROVE:
            await membership_store.add_member_if_absent(db, group.id, target_user_id, ROLE_MEMBER)
            message = "User approved successfully"
        else:
            message = "User rejected successfully"

        await membership_store.commit(db)
        logger.info(
            "Join request of %s for group %s: %s by %s",
            target_user_id, group.id, action, admin_id,
        )
        return JoinDecisionResponse(message=message, action=action)

    async def cancel_join_request(
        self, db: AsyncSession, group_id: UUID, user_id: Optional[str]
    ) -> JoinResponse:
        """pending → non-member, initiated by the requester."""
        if not user_id:
            raise ValidationError("User ID is required", field="userId")

        group = await self._load_group(db, group_id, for_update=True)

        if is_member(group, user_id):
            raise ConflictError("User is already a member of this group", reason="already_member")
        if not await membership_store.remove_request(db, group.id, user_id):
            raise ConflictError(
                "No pending request found for this user", reason="no_pending_request"
            )
        await membership_store.commit(db)

        logger.info("Join request of %s for group %s canceled", user_id, group.id)
        return JoinResponse(
            message="Join request canceled successfully",
            status=STATUS_CANCELED,
            group_id=group.id,
            user_id=user_id,
        )

    async def leave_group(
        self, db: AsyncSession, group_id: UUID, user_id: str
    ) -> MessageResponse:
        """
        member → non-member. Leaving a group one is not in succeeds quietly.

        Raises:
            ConflictError: creator_cannot_leave
        """
        group = await self._load_group(db, group_id, for_update=True)

        if is_creator(group, user_id):
            raise ConflictError(
                "Group creator cannot leave the group", reason="creator_cannot_leave"
            )

        left = await membership_store.remove_member(db, group.id, user_id)
        await membership_store.commit(db)
        if left:
            logger.info("User %s left group %s", user_id, group.id)
        else:
            logger.debug("Leave for %s on group %s: not a member", user_id, group.id)
        return MessageResponse(message="Left group successfully")

    # ── Settings & deletion ───────────────────────────────────────────────

    async def update_settings(
        self, db: AsyncSession, group_id: UUID, changes: GroupSettingsUpdateRequest
    ) -> GroupSettingsUpdateResponse:
        """
        Change settings flags and/or privacy. Moderators only.

        The current effective values are written into the nested `settings`
        object before the changes are applied, so a group still on the legacy
        columns ends up fully on the nested schema.
        """
        group = await self._load_group(db, group_id, for_update=True)

        if not is_moderator(group, changes.user_id):
            raise PermissionDeniedError(
                "Only group admins can change group settings", reason="not_moderator"
            )

        merged = effective_settings(group).as_dict()
        for key, value in (
            ("allowMemberPosts", changes.allow_member_posts),
            ("requireApproval", changes.require_approval),
            ("allowInvites", changes.allow_invites),
        ):
            if value is not None:
                merged[key] = value
        group.settings = merged
        if changes.is_private is not None:
            group.is_private = changes.is_private

        await membership_store.save(db)
        logger.info("Settings of group %s updated by %s: %s", group.id, changes.user_id, merged)

        response = GroupSettingsUpdateResponse(
            message="Group settings updated successfully",
            group=await self._enrich_group(db, group),
        )
        await membership_store.commit(db)
        return response

    async def delete_group(
        self, db: AsyncSession, group_id: UUID, user_id: Optional[str]
    ) -> MessageResponse:
        """
        Delete a group with all of its posts, likes, comments, members and
        requests. Creator only.
        """
        group = await self._load_group(db, group_id)

        if not is_creator(group, user_id):
            logger.warning("Delete of group %s denied for %s", group.id, user_id)
            raise PermissionDeniedError(
                "Only group creator can delete the group", reason="not_creator"
            )

        posts_removed = await membership_store.delete_group_cascade(db, group.id)
        await membership_store.commit(db)
        logger.info("Group %s deleted by %s (%d posts removed)", group.id, user_id, posts_removed)
        return MessageResponse(message="Group deleted successfully")


# Singleton instance
group_service = GroupService()
