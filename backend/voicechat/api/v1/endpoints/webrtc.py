"""WebRTC 시그널링 엔드포인트"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from voicechat.api.dependencies import get_registry, get_relay, get_screen_share_service
from voicechat.core.errors import SignalingValidationError
from voicechat.core.webrtc_config import ICE_SERVERS, MAX_PARTICIPANTS
from voicechat.handlers.websocket_message_handlers import SignalingRelay
from voicechat.schemas.webrtc import (
    IceServer,
    RoomParticipant,
    RoomResponse,
    SignalingStatsResponse,
)
from voicechat.services.room_registry import RoomRegistry
from voicechat.services.screen_share_service import ScreenShareService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebRTC"])


# ===== REST 엔드포인트 =====


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    registry: Annotated[RoomRegistry, Depends(get_registry)],
    screen_share: Annotated[ScreenShareService, Depends(get_screen_share_service)],
):
    """회의실 정보 조회 (방이 없으면 빈 참여자 목록)"""
    participants = [
        RoomParticipant(participant_id=p.id, muted=p.muted, joined_at=p.joined_at)
        for p in registry.get_participants(room_id)
    ]

    return RoomResponse(
        room_id=room_id,
        participants=participants,
        screen_sharing_participant_id=screen_share.current_holder(room_id),
        ice_servers=[IceServer(**server) for server in ICE_SERVERS],
        max_participants=MAX_PARTICIPANTS,
    )


@router.get("/stats", response_model=SignalingStatsResponse)
async def get_signaling_stats(relay: Annotated[SignalingRelay, Depends(get_relay)]):
    """시그널링 통계 조회"""
    return relay.get_stats()


# ===== WebSocket 엔드포인트 =====


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket 시그널링 엔드포인트"""
    relay: SignalingRelay = websocket.app.state.relay

    connection_id = await relay.connections.connect(websocket)

    try:
        # 메시지 처리 루프
        await handle_websocket_messages(websocket, relay, connection_id)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: connection={connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error: connection={connection_id}, error={e}")
    finally:
        # 참여 중이던 방에서 정리 (화면공유 해제 + 퇴장 알림)
        await relay.handle_disconnect(connection_id)


async def handle_websocket_messages(
    websocket: WebSocket,
    relay: SignalingRelay,
    connection_id: str,
) -> None:
    """WebSocket 메시지 처리 - Strategy Pattern 사용"""
    while True:
        raw = await websocket.receive_text()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            await relay.send_error(
                connection_id,
                None,
                SignalingValidationError("Message is not valid JSON"),
            )
            continue

        await relay.dispatch(connection_id, data)
