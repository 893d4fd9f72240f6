"""create call logs

Revision ID: 0001
Revises: 
Create Date: 2025-08-21
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "call_logs",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("assistant_id", sa.String(length=128), nullable=False),
        sa.Column("type", sa.Text()),
        sa.Column("status", sa.Text()),
        sa.Column("ended_reason", sa.Text()),
        sa.Column("from_number", sa.Text()),
        sa.Column("to_number", sa.Text()),
        sa.Column("start_time", sa.DateTime(timezone=True)),
        sa.Column("end_time", sa.DateTime(timezone=True)),
        sa.Column("call_date", sa.DateTime(timezone=True)),
        sa.Column("duration_seconds", sa.Integer()),
        sa.Column("recording_url", sa.Text()),
        sa.Column("transcript", sa.Text()),
        sa.Column("raw", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_call_logs_assistant_id", "call_logs", ["assistant_id"])
    op.create_index("ix_call_logs_start_time", "call_logs", ["start_time"])
    op.create_index("ix_call_logs_assistant_start", "call_logs", ["assistant_id", "start_time"])


def downgrade() -> None:
    op.drop_index("ix_call_logs_assistant_start", table_name="call_logs")
    op.drop_index("ix_call_logs_start_time", table_name="call_logs")
    op.drop_index("ix_call_logs_assistant_id", table_name="call_logs")
    op.drop_table("call_logs")
