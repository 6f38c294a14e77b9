"""Create users, group and group post tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: users, groups with their members and join requests,
       group posts with their likes and comments.
How:   Portable column types (Uuid, DateTime(timezone=True), JSON) so the
       same migration runs on PostgreSQL and on SQLite.

Set semantics:
    group_members, group_join_requests and group_post_likes each carry a
    UNIQUE (parent, user) constraint. The membership store's
    INSERT ... ON CONFLICT DO NOTHING relies on these constraints.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # ── Groups ────────────────────────────────────────────────────────────
    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("rules", sa.String(1000), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("creator_id", sa.String(64), nullable=False),
        sa.Column("is_private", sa.Boolean(), nullable=False),
        sa.Column(
            "settings",
            sa.JSON(),
            nullable=True,
            comment="{allowMemberPosts, requireApproval, allowInvites}; NULL on legacy rows",
        ),
        sa.Column("allow_member_posts", sa.Boolean(), nullable=True, comment="Legacy flag"),
        sa.Column("require_approval", sa.Boolean(), nullable=True, comment="Legacy flag"),
        sa.Column("allow_invites", sa.Boolean(), nullable=True, comment="Legacy flag"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_groups_created_at", "groups", ["created_at"])
    op.create_index("idx_groups_creator_id", "groups", ["creator_id"])

    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )
    op.create_index("idx_group_members_user_id", "group_members", ["user_id"])

    op.create_table(
        "group_join_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("request_date", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_join_requests_group_user"),
    )

    # ── Group posts ───────────────────────────────────────────────────────
    op.create_table(
        "group_posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("ingredients", sa.Text(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("meat_type", sa.String(50), nullable=False),
        sa.Column("prep_time", sa.Integer(), nullable=False),
        sa.Column("servings", sa.Integer(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column(
            "is_approved",
            sa.Boolean(),
            nullable=False,
            comment="Fixed at creation by the auto-approval rule",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_group_posts_group_created", "group_posts", ["group_id", "created_at"])

    op.create_table(
        "group_post_likes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["group_posts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_id", "user_id", name="uq_group_post_likes_post_user"),
    )

    op.create_table(
        "group_post_comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["group_posts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_group_post_comments_post_id", "group_post_comments", ["post_id"])


def downgrade() -> None:
    op.drop_index("idx_group_post_comments_post_id", table_name="group_post_comments")
    op.drop_table("group_post_comments")
    op.drop_table("group_post_likes")
    op.drop_index("idx_group_posts_group_created", table_name="group_posts")
    op.drop_table("group_posts")
    op.drop_table("group_join_requests")
    op.drop_index("idx_group_members_user_id", table_name="group_members")
    op.drop_table("group_members")
    op.drop_index("idx_groups_creator_id", table_name="groups")
    op.drop_index("idx_groups_created_at", table_name="groups")
    op.drop_table("groups")
    op.drop_table("users")
