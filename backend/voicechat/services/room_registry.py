"""Room Registry - 방/참여자 메모리 상태 관리

"누가 어느 방에 있는가"의 단일 기준. 모든 검사-후-변경 구간은
await 없이 동기적으로 실행되므로 단일 이벤트 루프에서 원자적이다.
세션 기록은 변경 이후 백그라운드로 예약되며 결과를 기다리지 않는다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from voicechat.core.errors import (
    DuplicateParticipantError,
    ParticipantNotFoundError,
    RoomFullError,
)
from voicechat.core.webrtc_config import MAX_PARTICIPANTS
from voicechat.services.session_recorder import BackgroundRecorder, NullSessionRecorder

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Participant:
    """방 참여자"""

    id: str
    transport_handle: str
    joined_at: datetime = field(default_factory=_utcnow)
    muted: bool = False


@dataclass
class ScreenShareState:
    """방 화면공유 상태 (holder_id가 없으면 Idle)"""

    holder_id: str | None = None
    started_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.holder_id is not None


@dataclass
class Room:
    """통화 방"""

    id: str
    participants: dict[str, Participant] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    screen_share: ScreenShareState = field(default_factory=ScreenShareState)

    @property
    def screen_sharing_participant_id(self) -> str | None:
        return self.screen_share.holder_id


class RoomRegistry:
    """방별 참여자 관리"""

    def __init__(self, recorder: BackgroundRecorder | None = None):
        self.recorder = recorder or BackgroundRecorder(NullSessionRecorder())
        # room_id -> Room
        self._rooms: dict[str, Room] = {}
        # participant_id -> room_id
        self._participant_rooms: dict[str, str] = {}
        # transport_handle -> (room_id, participant_id)
        self._transports: dict[str, tuple[str, str]] = {}

    def add_participant(
        self,
        room_id: str,
        participant_id: str,
        transport_handle: str,
        meta: dict[str, Any] | None = None,
    ) -> Participant:
        """참여자 추가 (방이 없으면 생성)

        Raises:
            RoomFullError: 정원 초과
            DuplicateParticipantError: 같은 ID가 이미 등록됨, 또는 연결이 이미 다른 참여자로 등록됨
        """
        room = self._rooms.get(room_id)
        current_count = len(room.participants) if room else 0

        if current_count >= MAX_PARTICIPANTS:
            raise RoomFullError(room_id, MAX_PARTICIPANTS)

        existing_room_id = self._participant_rooms.get(participant_id)
        if existing_room_id is not None:
            raise DuplicateParticipantError(participant_id, existing_room_id)

        if transport_handle in self._transports:
            bound_room_id, bound_participant_id = self._transports[transport_handle]
            raise DuplicateParticipantError(bound_participant_id, bound_room_id)

        if room is None:
            room = Room(id=room_id)
            self._rooms[room_id] = room
            logger.info(f"Room {room_id} created")

        participant = Participant(id=participant_id, transport_handle=transport_handle)
        room.participants[participant_id] = participant
        self._participant_rooms[participant_id] = room_id
        self._transports[transport_handle] = (room_id, participant_id)

        logger.info(
            f"Participant {participant_id} joined room {room_id} "
            f"({len(room.participants)}/{MAX_PARTICIPANTS})"
        )

        self.recorder.session_started(
            participant_id,
            transport_handle,
            room_id,
            participant.joined_at,
            meta,
            {
                "participantId": participant_id,
                "roomId": room_id,
                "participantCount": len(room.participants),
            },
        )

        return participant

    def remove_participant(self, room_id: str, participant_id: str) -> Participant:
        """참여자 제거 (화면공유 중이었다면 잠금 해제, 빈 방은 삭제)

        Raises:
            ParticipantNotFoundError: 방 또는 참여자가 없음
        """
        room = self._rooms.get(room_id)
        if room is None or participant_id not in room.participants:
            raise ParticipantNotFoundError(participant_id, room_id)

        participant = room.participants.pop(participant_id)
        self._participant_rooms.pop(participant_id, None)
        self._transports.pop(participant.transport_handle, None)

        if room.screen_share.holder_id == participant_id:
            room.screen_share = ScreenShareState()
            logger.info(f"Screen share lock released by departure of {participant_id} in room {room_id}")

        remaining = len(room.participants)
        if remaining == 0:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} deleted (empty)")

        logger.info(f"Participant {participant_id} left room {room_id} (remaining: {remaining})")

        self.recorder.session_ended(
            participant.transport_handle,
            {
                "participantId": participant_id,
                "roomId": room_id,
                "participantCount": remaining,
            },
        )

        return participant

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_participants(self, room_id: str) -> list[Participant]:
        """방 참여자 목록 (방이 없으면 빈 목록)"""
        room = self._rooms.get(room_id)
        if room is None:
            return []
        return list(room.participants.values())

    def get_participant(self, room_id: str, participant_id: str) -> Participant | None:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        return room.participants.get(participant_id)

    def find_participant_by_transport(self, transport_handle: str) -> tuple[Participant, str] | None:
        """연결 ID로 참여자 역조회 (연결 끊김 처리용)

        Returns:
            (참여자, room_id) 또는 None
        """
        binding = self._transports.get(transport_handle)
        if binding is None:
            return None
        room_id, participant_id = binding
        participant = self.get_participant(room_id, participant_id)
        if participant is None:
            return None
        return participant, room_id

    def is_full(self, room_id: str) -> bool:
        return self.size(room_id) >= MAX_PARTICIPANTS

    def size(self, room_id: str) -> int:
        room = self._rooms.get(room_id)
        return len(room.participants) if room else 0

    def room_ids(self) -> list[str]:
        return list(self._rooms.keys())

    def total_participants(self) -> int:
        return sum(len(room.participants) for room in self._rooms.values())

    async def drain_background_tasks(self) -> None:
        """예약된 세션 기록 완료 대기 (종료 시)"""
        await self.recorder.drain()

    def reset(self) -> None:
        """전체 상태 초기화 (테스트용)"""
        self._rooms.clear()
        self._participant_rooms.clear()
        self._transports.clear()
