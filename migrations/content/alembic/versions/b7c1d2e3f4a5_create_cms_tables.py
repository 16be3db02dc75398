"""Create posts, module instances/attachments, custom fields, taxonomies and revisions.

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-18 12:00:00.000000

Changes:
  1. Enum types post_status, module_scope
  2. posts with review_draft / ai_review_draft JSONB documents
  3. module_instances with props + review_props / ai_review_props
  4. post_modules with overrides + per-mode shadow overrides and the four
     review/ai-review added/deleted flags
  5. post_custom_field_values, taxonomies, taxonomy_terms, post_taxonomy_terms
  6. post_revisions (active-versions snapshots)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB, TIMESTAMP, UUID

revision: str = "b7c1d2e3f4a5"
down_revision: str | None = None
branch_labels = None
depends_on = None

post_status = ENUM("draft", "scheduled", "published", "archived", name="post_status", create_type=False)
module_scope = ENUM("post", "global", name="module_scope", create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    post_status.create(op.get_bind(), checkfirst=True)
    module_scope.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "posts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("locale", sa.String(16), nullable=False, server_default="en"),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("status", post_status, nullable=False, server_default="draft"),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(500), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("canonical_url", sa.Text(), nullable=True),
        sa.Column("robots_json", JSONB(), nullable=True),
        sa.Column("jsonld_overrides", JSONB(), nullable=True),
        sa.Column("og_title", sa.String(500), nullable=True),
        sa.Column("og_description", sa.Text(), nullable=True),
        sa.Column("og_image_id", UUID(as_uuid=True), nullable=True),
        sa.Column("noindex", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("nofollow", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("featured_image_id", UUID(as_uuid=True), nullable=True),
        sa.Column(
            "parent_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("author_id", UUID(as_uuid=True), nullable=True),
        sa.Column("review_draft", JSONB(), nullable=True),
        sa.Column("ai_review_draft", JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_posts_type_locale_slug", "posts", ["type", "locale", "slug"], unique=True)
    op.create_index("ix_posts_parent_id", "posts", ["parent_id"])
    op.create_index("ix_posts_status", "posts", ["status"])

    op.create_table(
        "module_instances",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("scope", module_scope, nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("global_slug", sa.String(255), nullable=True),
        sa.Column("global_label", sa.String(255), nullable=True),
        sa.Column("props", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("review_props", JSONB(), nullable=True),
        sa.Column("ai_review_props", JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("scope", "global_slug", name="uq_module_instances_scope_global_slug"),
    )
    op.create_index("ix_module_instances_scope_type", "module_instances", ["scope", "type"])
    op.create_index("ix_module_instances_post_id", "module_instances", ["post_id"])

    op.create_table(
        "post_modules",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "module_id",
            UUID(as_uuid=True),
            sa.ForeignKey("module_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("admin_label", sa.Text(), nullable=True),
        sa.Column("overrides", JSONB(), nullable=True),
        sa.Column("review_overrides", JSONB(), nullable=True),
        sa.Column("ai_review_overrides", JSONB(), nullable=True),
        sa.Column("review_added", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("review_deleted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("ai_review_added", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("ai_review_deleted", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("post_id", "module_id", name="uq_post_modules_post_module"),
    )
    op.create_index("ix_post_modules_post_order", "post_modules", ["post_id", "order_index"])
    op.create_index("ix_post_modules_module_id", "post_modules", ["module_id"])

    op.create_table(
        "post_custom_field_values",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_slug", sa.String(255), nullable=False),
        sa.Column("value", JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("post_id", "field_slug", name="uq_post_custom_field_values_post_slug"),
    )

    op.create_table(
        "taxonomies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("post_types", JSONB(), nullable=True),
    )
    op.create_table(
        "taxonomy_terms",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "taxonomy_id",
            UUID(as_uuid=True),
            sa.ForeignKey("taxonomies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.UniqueConstraint("taxonomy_id", "slug", name="uq_taxonomy_terms_taxonomy_slug"),
    )
    op.create_table(
        "post_taxonomy_terms",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "taxonomy_term_id",
            UUID(as_uuid=True),
            sa.ForeignKey("taxonomy_terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("post_id", "taxonomy_term_id", name="uq_post_taxonomy_terms_post_term"),
    )
    op.create_index("ix_post_taxonomy_terms_post_id", "post_taxonomy_terms", ["post_id"])

    op.create_table(
        "post_revisions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("mode", sa.String(32), nullable=False),
        sa.Column("action", sa.String(100), nullable=True),
        sa.Column("snapshot", JSONB(), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_post_revisions_post_created", "post_revisions", ["post_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_post_revisions_post_created", table_name="post_revisions")
    op.drop_table("post_revisions")
    op.drop_index("ix_post_taxonomy_terms_post_id", table_name="post_taxonomy_terms")
    op.drop_table("post_taxonomy_terms")
    op.drop_table("taxonomy_terms")
    op.drop_table("taxonomies")
    op.drop_table("post_custom_field_values")
    op.drop_index("ix_post_modules_module_id", table_name="post_modules")
    op.drop_index("ix_post_modules_post_order", table_name="post_modules")
    op.drop_table("post_modules")
    op.drop_index("ix_module_instances_post_id", table_name="module_instances")
    op.drop_index("ix_module_instances_scope_type", table_name="module_instances")
    op.drop_table("module_instances")
    op.drop_index("ix_posts_status", table_name="posts")
    op.drop_index("ix_posts_parent_id", table_name="posts")
    op.drop_index("ix_posts_type_locale_slug", table_name="posts")
    op.drop_table("posts")
    module_scope.drop(op.get_bind(), checkfirst=True)
    post_status.drop(op.get_bind(), checkfirst=True)
