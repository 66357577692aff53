import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from voicechat.core.database import Base


class CallEventType:
    """세션 이벤트 타입 상수"""
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    MUTE_TOGGLE = "mute_toggle"
    SCREEN_SHARE_START = "screen_share_start"
    SCREEN_SHARE_STOP = "screen_share_stop"
    CONNECTION_ERROR = "connection_error"


class CallSession(Base):
    """참여 세션 기록 모델 (입장~퇴장)"""

    __tablename__ = "call_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    participant_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    transport_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )  # WebSocket 연결 ID
    room_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    left_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )  # NULL이면 진행 중인 세션
    user_agent: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
    )  # IPv6 지원
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CallSession {self.participant_id} in {self.room_id}>"


class CallEventLog(Base):
    """세션 이벤트 로그 모델"""

    __tablename__ = "call_event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("call_sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    event_data: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<CallEventLog {self.event_type}>"
