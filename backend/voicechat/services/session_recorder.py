"""세션 기록 서비스 - 입장/퇴장 및 이벤트 감사 로그

라이브 방 상태의 기준은 항상 메모리(RoomRegistry)이며,
이 모듈의 기록은 best-effort로 수행된다. 기록 실패는 로그만 남기고
클라이언트 응답이나 메모리 상태에 영향을 주지 않는다.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from voicechat.models.call_session import CallEventLog, CallEventType, CallSession

logger = logging.getLogger(__name__)


class SessionRecorder(Protocol):
    """세션 기록 프로토콜 (외부 협력자)"""

    async def record_session_start(
        self,
        participant_id: str,
        transport_id: str,
        room_id: str,
        joined_at: datetime,
        meta: dict[str, Any] | None = None,
    ) -> None:
        """세션 시작 기록

        Args:
            participant_id: 참여자 ID
            transport_id: WebSocket 연결 ID
            room_id: 방 ID
            joined_at: 입장 시각
            meta: 클라이언트 메타데이터 (user_agent, ip_address)
        """
        ...

    async def record_session_end(self, transport_id: str) -> None:
        """세션 종료 기록"""
        ...

    async def log_event(self, transport_id: str, event_type: str, data: dict[str, Any]) -> None:
        """이벤트 기록"""
        ...


class DatabaseSessionRecorder:
    """SQLAlchemy 기반 세션 기록기"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def record_session_start(
        self,
        participant_id: str,
        transport_id: str,
        room_id: str,
        joined_at: datetime,
        meta: dict[str, Any] | None = None,
    ) -> None:
        meta = meta or {}
        try:
            async with self._session_maker() as session:
                session.add(
                    CallSession(
                        participant_id=participant_id,
                        transport_id=transport_id,
                        room_id=room_id,
                        joined_at=joined_at,
                        user_agent=(meta.get("user_agent") or None),
                        ip_address=meta.get("ip_address"),
                    )
                )
                await session.commit()
        except Exception as e:
            logger.warning(f"Failed to record session start (비치명적): {e}")

    async def record_session_end(self, transport_id: str) -> None:
        try:
            async with self._session_maker() as session:
                await session.execute(
                    update(CallSession)
                    .where(
                        CallSession.transport_id == transport_id,
                        CallSession.left_at.is_(None),
                    )
                    .values(left_at=datetime.now(timezone.utc))
                )
                await session.commit()
        except Exception as e:
            logger.warning(f"Failed to record session end (비치명적): {e}")

    async def log_event(self, transport_id: str, event_type: str, data: dict[str, Any]) -> None:
        try:
            async with self._session_maker() as session:
                # 진행 중인 가장 최근 세션에 연결
                result = await session.execute(
                    select(CallSession.id)
                    .where(
                        CallSession.transport_id == transport_id,
                        CallSession.left_at.is_(None),
                    )
                    .order_by(CallSession.joined_at.desc())
                    .limit(1)
                )
                session_id = result.scalar_one_or_none()

                session.add(
                    CallEventLog(
                        session_id=session_id,
                        event_type=event_type,
                        event_data=data,
                    )
                )
                await session.commit()
        except Exception as e:
            logger.warning(f"Failed to log event {event_type} (비치명적): {e}")


class NullSessionRecorder:
    """기록 비활성화 시 사용하는 no-op 기록기"""

    async def record_session_start(
        self,
        participant_id: str,
        transport_id: str,
        room_id: str,
        joined_at: datetime,
        meta: dict[str, Any] | None = None,
    ) -> None:
        return None

    async def record_session_end(self, transport_id: str) -> None:
        return None

    async def log_event(self, transport_id: str, event_type: str, data: dict[str, Any]) -> None:
        return None


class BackgroundRecorder:
    """SessionRecorder 호출을 백그라운드 태스크로 실행 (fire-and-forget)

    호출자는 태스크 완료를 기다리지 않는다. 실행 중인 태스크 참조는
    완료될 때까지 보관하며, 종료 시 drain()으로 남은 기록을 마무리한다.
    """

    def __init__(self, recorder: SessionRecorder):
        self.recorder = recorder
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def schedule(self, description: str, job: Callable[[], Awaitable[None]]) -> None:
        """기록 작업 예약 (현재 이벤트 루프에서 실행)

        실행 중인 이벤트 루프가 없으면 기록을 버리고 경고만 남긴다.
        호출 시점에는 메모리 상태가 이미 변경되어 있으므로 예외를 올리지 않는다.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, session record dropped ({description}) (비치명적)")
            return
        task = loop.create_task(self._run(description, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def session_started(
        self,
        participant_id: str,
        transport_id: str,
        room_id: str,
        joined_at: datetime,
        meta: dict[str, Any] | None,
        event_data: dict[str, Any],
    ) -> None:
        """세션 시작 + join_room 이벤트 (순서 보장)"""

        async def job() -> None:
            await self.recorder.record_session_start(
                participant_id, transport_id, room_id, joined_at, meta
            )
            await self.recorder.log_event(transport_id, CallEventType.JOIN_ROOM, event_data)

        self.schedule(f"session start {participant_id}", job)

    def session_ended(self, transport_id: str, event_data: dict[str, Any]) -> None:
        """leave_room 이벤트 + 세션 종료 (이벤트는 세션이 열려 있을 때 기록)"""

        async def job() -> None:
            await self.recorder.log_event(transport_id, CallEventType.LEAVE_ROOM, event_data)
            await self.recorder.record_session_end(transport_id)

        self.schedule(f"session end {transport_id}", job)

    def event(self, transport_id: str, event_type: str, data: dict[str, Any]) -> None:
        """단일 이벤트 기록"""

        async def job() -> None:
            await self.recorder.log_event(transport_id, event_type, data)

        self.schedule(f"event {event_type}", job)

    async def drain(self) -> None:
        """남은 기록 태스크 완료 대기"""
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} pending session records...")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, description: str, job: Callable[[], Awaitable[None]]) -> None:
        try:
            await job()
        except Exception as e:
            logger.warning(f"Session recording failed ({description}): {e}")


def build_session_recorder(enabled: bool) -> SessionRecorder:
    """설정에 따라 기록기 생성"""
    if not enabled:
        logger.info("Session recording disabled")
        return NullSessionRecorder()

    from voicechat.core.database import async_session_maker

    return DatabaseSessionRecorder(async_session_maker)
