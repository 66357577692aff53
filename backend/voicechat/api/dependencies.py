"""공유 API dependencies - app.state에 등록된 서비스 주입"""

from fastapi import Request

from voicechat.handlers.websocket_message_handlers import SignalingRelay
from voicechat.services.room_registry import RoomRegistry
from voicechat.services.screen_share_service import ScreenShareService


def get_registry(request: Request) -> RoomRegistry:
    """RoomRegistry 의존성"""
    return request.app.state.registry


def get_screen_share_service(request: Request) -> ScreenShareService:
    """ScreenShareService 의존성"""
    return request.app.state.screen_share


def get_relay(request: Request) -> SignalingRelay:
    """SignalingRelay 의존성"""
    return request.app.state.relay
