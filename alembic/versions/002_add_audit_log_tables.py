"""Add audit_logs and audit_log_changes tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

ENTITY_TYPES = (
    "quote", "invoice", "reservation", "service",
    "workflow", "workflow_step", "user", "workshop_task",
)
ACTIONS = (
    "created", "updated", "deleted", "validated", "rejected",
    "completed", "cancelled", "paid", "confirmed",
)


def _in_list(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("entity_type", sa.String(30), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("actor_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("actor_role", sa.String(30), nullable=True),
        sa.Column("actor_name", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(_in_list("entity_type", ENTITY_TYPES), name="audit_entity_type"),
        sa.CheckConstraint(_in_list("action", ACTIONS), name="audit_action"),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_occurred_at", "audit_logs", ["occurred_at"])

    op.create_table(
        "audit_log_changes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "audit_log_id",
            sa.String(36),
            sa.ForeignKey("audit_logs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field", sa.String(100), nullable=False),
        sa.Column("previous_value", sa.JSON, nullable=True),
        sa.Column("new_value", sa.JSON, nullable=True),
    )
    op.create_index("ix_audit_log_changes_audit_log_id", "audit_log_changes", ["audit_log_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_changes_audit_log_id", table_name="audit_log_changes")
    op.drop_table("audit_log_changes")
    op.drop_index("ix_audit_logs_occurred_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
