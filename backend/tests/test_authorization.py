"""
CookShare Backend — Authorization Engine Unit Tests
=====================================================

What:  Tests for the pure decision functions in services/authorization.py.
How:   Groups are SimpleNamespace doubles; no database, no event loop.

What we test:
    ✅ Identity comparison across str / UUID / None
    ✅ Settings resolution: nested → legacy column → default
    ✅ Member / admin / creator / moderator roles
    ✅ Post visibility on public and private groups
    ✅ Posting rules with and without allowMemberPosts
    ✅ Auto-approval for all requireApproval × moderator combinations
    ✅ Moderation of posts and comments
"""

import uuid
from types import SimpleNamespace

import pytest

from cookshare.services.authorization import (
    REASON_ADMINS_ONLY,
    REASON_NOT_MEMBER,
    auto_approve_post,
    can_create_post,
    can_moderate_post,
    can_view_posts,
    effective_settings,
    has_pending_request,
    id_equals,
    is_admin,
    is_creator,
    is_member,
    is_moderator,
    join_requires_approval,
)


def make_group(
    creator="alice",
    members=None,
    pending=(),
    is_private=False,
    settings=None,
    **legacy,
):
    """Group double. `members` maps user id → role; the creator is an admin by default."""
    if members is None:
        members = {creator: "admin"}
    return SimpleNamespace(
        creator_id=creator,
        is_private=is_private,
        members=[SimpleNamespace(user_id=uid, role=role) for uid, role in members.items()],
        pending_requests=[SimpleNamespace(user_id=uid) for uid in pending],
        settings=settings,
        allow_member_posts=legacy.get("allow_member_posts"),
        require_approval=legacy.get("require_approval"),
        allow_invites=legacy.get("allow_invites"),
    )


class TestIdEquals:

    def test_same_strings_are_equal(self):
        assert id_equals("abc", "abc")

    def test_uuid_equals_its_string_form(self):
        value = uuid.uuid4()
        assert id_equals(value, str(value))
        assert id_equals(str(value), value)

    def test_none_never_equals(self):
        assert not id_equals(None, None)
        assert not id_equals(None, "abc")
        assert not id_equals("abc", None)

    def test_different_ids(self):
        assert not id_equals("abc", "abd")


class TestEffectiveSettings:

    def test_all_default_to_true(self):
        group = make_group()
        resolved = effective_settings(group)
        assert resolved.allow_member_posts is True
        assert resolved.require_approval is True
        assert resolved.allow_invites is True

    def test_nested_settings_win(self):
        group = make_group(
            settings={"allowMemberPosts": False, "requireApproval": False, "allowInvites": False},
            allow_member_posts=True,
            require_approval=True,
            allow_invites=True,
        )
        resolved = effective_settings(group)
        assert resolved.allow_member_posts is False
        assert resolved.require_approval is False
        assert resolved.allow_invites is False

    def test_legacy_columns_used_when_nested_missing(self):
        group = make_group(settings=None, allow_member_posts=False, require_approval=False)
        resolved = effective_settings(group)
        assert resolved.allow_member_posts is False
        assert resolved.require_approval is False
        assert resolved.allow_invites is True

    def test_partial_nested_falls_back_per_key(self):
        group = make_group(settings={"requireApproval": False}, allow_member_posts=False)
        resolved = effective_settings(group)
        assert resolved.require_approval is False
        assert resolved.allow_member_posts is False
        assert resolved.allow_invites is True

    def test_nested_none_value_falls_back(self):
        group = make_group(settings={"requireApproval": None}, require_approval=False)
        assert effective_settings(group).require_approval is False

    def test_as_dict_uses_wire_names(self):
        group = make_group(settings={"allowMemberPosts": False})
        assert effective_settings(group).as_dict() == {
            "allowMemberPosts": False,
            "requireApproval": True,
            "allowInvites": True,
        }


class TestRoles:

    def setup_method(self):
        self.group = make_group(
            creator="alice",
            members={"alice": "admin", "bob": "member", "olga": "owner", "mod": "admin"},
            pending=["carol"],
        )

    def test_is_member(self):
        assert is_member(self.group, "bob")
        assert not is_member(self.group, "carol")
        assert not is_member(self.group, None)

    def test_is_admin_accepts_admin_and_owner(self):
        assert is_admin(self.group, "mod")
        assert is_admin(self.group, "olga")
        assert not is_admin(self.group, "bob")
        assert not is_admin(self.group, None)

    def test_is_creator(self):
        assert is_creator(self.group, "alice")
        assert not is_creator(self.group, "mod")
        assert not is_creator(self.group, None)

    def test_creator_is_moderator_even_when_not_listed_as_admin(self):
        group = make_group(creator="alice", members={"alice": "member"})
        assert not is_admin(group, "alice")
        assert is_moderator(group, "alice")

    def test_plain_member_is_not_moderator(self):
        assert not is_moderator(self.group, "bob")

    def test_has_pending_request(self):
        assert has_pending_request(self.group, "carol")
        assert not has_pending_request(self.group, "bob")
        assert not has_pending_request(self.group, None)


class TestCanViewPosts:

    def test_public_group_visible_to_anyone(self):
        group = make_group(is_private=False)
        assert can_view_posts(group, None)
        assert can_view_posts(group, "stranger")

    def test_private_group_visible_to_members_only(self):
        group = make_group(is_private=True, members={"alice": "admin", "bob": "member"})
        assert can_view_posts(group, "bob")
        assert not can_view_posts(group, "stranger")
        assert not can_view_posts(group, None)


class TestCanCreatePost:

    def test_non_member_denied(self):
        decision = can_create_post(make_group(), "stranger")
        assert not decision
        assert decision.reason == REASON_NOT_MEMBER

    def test_anonymous_denied(self):
        assert can_create_post(make_group(), None).reason == REASON_NOT_MEMBER

    def test_member_allowed_when_member_posts_enabled(self):
        group = make_group(members={"alice": "admin", "bob": "member"})
        decision = can_create_post(group, "bob")
        assert decision
        assert decision.reason is None

    def test_member_denied_when_member_posts_disabled(self):
        group = make_group(
            members={"alice": "admin", "bob": "member"},
            settings={"allowMemberPosts": False},
        )
        decision = can_create_post(group, "bob")
        assert not decision
        assert decision.reason == REASON_ADMINS_ONLY

    def test_moderators_allowed_when_member_posts_disabled(self):
        group = make_group(
            members={"alice": "member", "mod": "admin"},
            settings={"allowMemberPosts": False},
        )
        assert can_create_post(group, "mod")
        assert can_create_post(group, "alice")


class TestAutoApprovePost:

    @pytest.mark.parametrize(
        "require_approval, user_id, expected",
        [
            (False, "bob", True),
            (False, "mod", True),
            (True, "bob", False),
            (True, "mod", True),
        ],
    )
    def test_require_approval_by_moderator(self, require_approval, user_id, expected):
        group = make_group(
            members={"alice": "admin", "bob": "member", "mod": "admin"},
            settings={"requireApproval": require_approval},
        )
        assert auto_approve_post(group, user_id) is expected

    def test_creator_auto_approved(self):
        group = make_group(settings={"requireApproval": True})
        assert auto_approve_post(group, "alice")

    def test_default_requires_approval_for_members(self):
        group = make_group(members={"alice": "admin", "bob": "member"})
        assert not auto_approve_post(group, "bob")

    def test_legacy_column_respected(self):
        group = make_group(members={"alice": "admin", "bob": "member"}, require_approval=False)
        assert auto_approve_post(group, "bob")


class TestCanModeratePost:

    def setup_method(self):
        self.group = make_group(members={"alice": "admin", "bob": "member", "carol": "member"})

    def test_owner_may_moderate(self):
        assert can_moderate_post(self.group, "bob", "bob")

    def test_moderator_may_moderate_others(self):
        assert can_moderate_post(self.group, "bob", "alice")

    def test_other_member_may_not(self):
        assert not can_moderate_post(self.group, "bob", "carol")

    def test_anonymous_may_not(self):
        assert not can_moderate_post(self.group, "bob", None)
        assert not can_moderate_post(self.group, None, None)


class TestJoinRequiresApproval:

    def test_open_public_group(self):
        assert not join_requires_approval(make_group(settings={"requireApproval": False}))

    def test_private_group_always_requires_approval(self):
        group = make_group(is_private=True, settings={"requireApproval": False})
        assert join_requires_approval(group)

    def test_require_approval_setting(self):
        assert join_requires_approval(make_group(settings={"requireApproval": True}))
