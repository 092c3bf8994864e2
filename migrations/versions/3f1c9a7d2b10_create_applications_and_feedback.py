"""create applications and feedback tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=64), nullable=False),
        sa.Column("api_key_prefix", sa.String(length=16), nullable=False),
        sa.Column("api_key_hash", sa.String(length=64), nullable=False),
        sa.Column("api_key_rotated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
        sa.UniqueConstraint("api_key_prefix"),
    )
    op.create_index("ix_applications_api_key_hash", "applications", ["api_key_hash"], unique=True)
    op.create_index("ix_applications_owner_id", "applications", ["owner_id"], unique=False)

    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=False),
        sa.Column("end_user_id", sa.String(length=255), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("device_info", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending','in_progress','resolved','ignored')",
            name="ck_feedback_status_valid",
        ),
    )
    op.create_index("ix_feedback_application_id", "feedback", ["application_id"], unique=False)
    op.create_index("ix_feedback_category", "feedback", ["category"], unique=False)
    op.create_index("ix_feedback_app_created_at", "feedback", ["application_id", "created_at"], unique=False)
    op.create_index("ix_feedback_status_created_at", "feedback", ["status", "created_at"], unique=False)


def downgrade():
    op.drop_index("ix_feedback_status_created_at", table_name="feedback")
    op.drop_index("ix_feedback_app_created_at", table_name="feedback")
    op.drop_index("ix_feedback_category", table_name="feedback")
    op.drop_index("ix_feedback_application_id", table_name="feedback")
    op.drop_table("feedback")
    op.drop_index("ix_applications_owner_id", table_name="applications")
    op.drop_index("ix_applications_api_key_hash", table_name="applications")
    op.drop_table("applications")
