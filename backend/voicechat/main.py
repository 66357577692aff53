import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicechat.api.v1.router import api_router
from voicechat.core.config import get_settings
from voicechat.core.database import engine
from voicechat.handlers.websocket_message_handlers import SignalingRelay
from voicechat.services.room_registry import RoomRegistry
from voicechat.services.screen_share_service import ScreenShareService
from voicechat.services.session_recorder import BackgroundRecorder, build_session_recorder
from voicechat.services.signaling_service import ConnectionManager

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 라이프사이클"""
    # 시작 시: 서비스 생성 (프로세스당 1회) 후 app.state에 등록
    recorder = BackgroundRecorder(build_session_recorder(settings.session_recording_enabled))
    registry = RoomRegistry(recorder)
    screen_share = ScreenShareService(registry)
    connections = ConnectionManager()

    app.state.registry = registry
    app.state.screen_share = screen_share
    app.state.connections = connections
    app.state.relay = SignalingRelay(registry, screen_share, connections)
    yield
    # 종료 시
    await connections.close_all_connections()
    await registry.drain_background_tasks()  # 남은 세션 기록 마무리
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Voice chat signaling and room coordination API",
    lifespan=lifespan,
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API 라우터 등록
app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict:
    """헬스 체크"""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
