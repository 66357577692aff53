"""pytest 설정 및 공유 fixture

테스트 인프라:
- 서비스 인스턴스 (테스트마다 새로 생성)
- Mock 세션 기록기 / Mock WebSocket
- 세션 기록용 인메모리 SQLite
- FastAPI TestClient
"""

import os

# 앱 import 전에 설정 (테스트에서는 DB 세션 기록 비활성화)
os.environ.setdefault("SESSION_RECORDING_ENABLED", "false")

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from voicechat.core.database import Base
from voicechat.handlers.websocket_message_handlers import SignalingRelay
from voicechat.main import app
from voicechat.services.room_registry import RoomRegistry
from voicechat.services.screen_share_service import ScreenShareService
from voicechat.services.session_recorder import BackgroundRecorder
from voicechat.services.signaling_service import ConnectionManager


# ===== 서비스 Fixture =====


@pytest.fixture
def mock_recorder() -> MagicMock:
    """SessionRecorder Mock"""
    recorder = MagicMock()
    recorder.record_session_start = AsyncMock()
    recorder.record_session_end = AsyncMock()
    recorder.log_event = AsyncMock()
    return recorder


@pytest.fixture
def background_recorder(mock_recorder: MagicMock) -> BackgroundRecorder:
    return BackgroundRecorder(mock_recorder)


@pytest.fixture
def registry(background_recorder: BackgroundRecorder) -> RoomRegistry:
    """테스트마다 새 RoomRegistry"""
    return RoomRegistry(background_recorder)


@pytest.fixture
def screen_share_service(registry: RoomRegistry) -> ScreenShareService:
    return ScreenShareService(registry)


@pytest.fixture
def connection_manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def relay(
    registry: RoomRegistry,
    screen_share_service: ScreenShareService,
    connection_manager: ConnectionManager,
) -> SignalingRelay:
    return SignalingRelay(registry, screen_share_service, connection_manager)


# ===== Mock WebSocket =====


def make_mock_websocket() -> MagicMock:
    """FastAPI WebSocket Mock"""
    websocket = MagicMock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    websocket.close = AsyncMock()
    websocket.headers = {"user-agent": "pytest-client"}
    websocket.client = MagicMock(host="127.0.0.1")
    return websocket


@pytest.fixture
def open_connection(
    connection_manager: ConnectionManager,
) -> Callable[[], Awaitable[tuple[str, MagicMock]]]:
    """새 연결 생성 factory: (connection_id, websocket mock) 반환"""

    async def _open() -> tuple[str, MagicMock]:
        websocket = make_mock_websocket()
        connection_id = await connection_manager.connect(websocket)
        return connection_id, websocket

    return _open


# ===== 데이터베이스 Fixture =====


@pytest.fixture
async def sqlite_session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """세션 기록 테스트용 인메모리 SQLite"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # 테이블 생성
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ===== FastAPI Client Fixture =====


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """동기 FastAPI TestClient (lifespan 실행 -> 서비스 새로 생성)"""
    with TestClient(app) as test_client:
        yield test_client
