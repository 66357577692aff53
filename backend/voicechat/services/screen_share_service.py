"""화면공유 중재 서비스 - 방별 단일 화면공유 잠금

정책:
- 먼저 요청한 참여자가 잠금을 획득 (대기열 없음)
- 현재 보유자만 자발적으로 해제 가능
- 퇴장/연결 끊김 시 시스템이 강제 해제
"""

import logging
from datetime import datetime, timezone

from voicechat.core.errors import (
    ParticipantNotFoundError,
    ScreenShareAlreadyActiveError,
    ScreenShareNotActiveError,
    UnauthorizedScreenShareStopError,
)
from voicechat.schemas.webrtc import ScreenShareEvent
from voicechat.services.room_registry import Room, RoomRegistry, ScreenShareState

logger = logging.getLogger(__name__)


class ScreenShareService:
    """화면공유 잠금 관리 (상태는 Room에 보관되어 방과 함께 생성/삭제됨)"""

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def request_screen_share(self, room_id: str, participant_id: str) -> tuple[ScreenShareEvent, bool]:
        """화면공유 시작 요청

        Returns:
            (이벤트, 상태 변경 여부). 보유자의 재요청이면 변경 여부는 False

        Raises:
            ParticipantNotFoundError: 방이 없거나 참여자가 방에 없음
            ScreenShareAlreadyActiveError: 다른 참여자가 이미 공유 중
        """
        room = self._get_member_room(room_id, participant_id)
        state = room.screen_share

        if state.is_active and state.holder_id != participant_id:
            raise ScreenShareAlreadyActiveError(state.holder_id)

        event = ScreenShareEvent(room_id=room_id, participant_id=participant_id, is_sharing=True)

        if state.is_active:
            # 같은 보유자의 재요청: 상태 변경 없음
            logger.debug(f"Screen share re-requested by holder {participant_id} in room {room_id}")
            return event, False

        room.screen_share = ScreenShareState(
            holder_id=participant_id,
            started_at=datetime.now(timezone.utc),
        )
        logger.info(f"Screen sharing started by {participant_id} in room {room_id}")
        return event, True

    def stop_screen_share(self, room_id: str, participant_id: str) -> ScreenShareEvent:
        """화면공유 중지 요청 (보유자만 가능)

        Raises:
            ParticipantNotFoundError: 방이 없거나 참여자가 방에 없음
            ScreenShareNotActiveError: 공유 중이 아님
            UnauthorizedScreenShareStopError: 보유자가 아닌 참여자의 중지 요청
        """
        room = self._get_member_room(room_id, participant_id)
        state = room.screen_share

        if not state.is_active:
            raise ScreenShareNotActiveError(room_id)

        if state.holder_id != participant_id:
            raise UnauthorizedScreenShareStopError(participant_id)

        room.screen_share = ScreenShareState()
        logger.info(f"Screen sharing stopped by {participant_id} in room {room_id}")

        return ScreenShareEvent(room_id=room_id, participant_id=participant_id, is_sharing=False)

    def force_stop(self, room_id: str, participant_id: str) -> ScreenShareEvent | None:
        """강제 해제 (퇴장/연결 끊김 시). 해당 참여자가 보유 중이 아니면 None"""
        room = self.registry.get_room(room_id)
        if room is None or room.screen_share.holder_id != participant_id:
            return None

        room.screen_share = ScreenShareState()
        logger.info(f"Screen sharing force stopped for {participant_id} in room {room_id}")

        return ScreenShareEvent(room_id=room_id, participant_id=participant_id, is_sharing=False)

    def is_active(self, room_id: str) -> bool:
        return self.get_state(room_id).is_active

    def current_holder(self, room_id: str) -> str | None:
        return self.get_state(room_id).holder_id

    def get_state(self, room_id: str) -> ScreenShareState:
        """방의 화면공유 상태 (방이 없으면 Idle)"""
        room = self.registry.get_room(room_id)
        if room is None:
            return ScreenShareState()
        return room.screen_share

    def active_screen_shares(self) -> list[dict]:
        """진행 중인 화면공유 목록"""
        shares = []
        for room_id in self.registry.room_ids():
            state = self.get_state(room_id)
            if state.is_active:
                shares.append(
                    {
                        "roomId": room_id,
                        "participantId": state.holder_id,
                        "startedAt": state.started_at,
                    }
                )
        return shares

    def _get_member_room(self, room_id: str, participant_id: str) -> Room:
        room = self.registry.get_room(room_id)
        if room is None or participant_id not in room.participants:
            raise ParticipantNotFoundError(participant_id, room_id)
        return room
