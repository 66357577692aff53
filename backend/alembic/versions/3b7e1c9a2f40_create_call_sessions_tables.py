"""create call sessions and event logs tables

Revision ID: 3b7e1c9a2f40
Revises:
Create Date: 2026-10-12 14:20:11.482913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3b7e1c9a2f40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "call_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("participant_id", sa.String(length=255), nullable=False),
        sa.Column("transport_id", sa.String(length=255), nullable=False, comment="WebSocket 연결 ID"),
        sa.Column("room_id", sa.String(length=255), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("left_at", sa.DateTime(timezone=True), nullable=True, comment="NULL이면 진행 중"),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_call_sessions_participant_id"), "call_sessions", ["participant_id"], unique=False)
    op.create_index(op.f("ix_call_sessions_transport_id"), "call_sessions", ["transport_id"], unique=False)
    op.create_index(op.f("ix_call_sessions_room_id"), "call_sessions", ["room_id"], unique=False)

    op.create_table(
        "call_event_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=True),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("event_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["call_sessions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_call_event_logs_session_id"), "call_event_logs", ["session_id"], unique=False)
    op.create_index(op.f("ix_call_event_logs_event_type"), "call_event_logs", ["event_type"], unique=False)
    op.create_index(op.f("ix_call_event_logs_occurred_at"), "call_event_logs", ["occurred_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_call_event_logs_occurred_at"), table_name="call_event_logs")
    op.drop_index(op.f("ix_call_event_logs_event_type"), table_name="call_event_logs")
    op.drop_index(op.f("ix_call_event_logs_session_id"), table_name="call_event_logs")
    op.drop_table("call_event_logs")
    op.drop_index(op.f("ix_call_sessions_room_id"), table_name="call_sessions")
    op.drop_index(op.f("ix_call_sessions_transport_id"), table_name="call_sessions")
    op.drop_index(op.f("ix_call_sessions_participant_id"), table_name="call_sessions")
    op.drop_table("call_sessions")
