"""WebSocket 메시지 핸들러 - Signaling Relay (Strategy Pattern 구현)

모든 수신 메시지는 RoomRegistry의 현재 상태로 검증한 뒤에만 전달한다.
검증 실패는 요청자에게만 error 메시지로 돌려주며 다른 참여자에게는 전달되지 않는다.
"""

import logging
from datetime import datetime, timezone
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from voicechat.core.errors import (
    InvalidDestinationError,
    ParticipantNotFoundError,
    SignalingError,
    SignalingValidationError,
)
from voicechat.models.call_session import CallEventType
from voicechat.schemas.webrtc import (
    ErrorMessage,
    IceCandidateMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PeerSignalMessage,
    RoomParticipant,
    ScreenShareEvent,
    ScreenShareRequestMessage,
    SignalingMessageType,
    SignalingStatsResponse,
    ToggleMuteMessage,
)
from voicechat.services.room_registry import Participant, RoomRegistry
from voicechat.services.screen_share_service import ScreenShareService
from voicechat.services.signaling_service import ConnectionManager

logger = logging.getLogger(__name__)

MessageT = TypeVar("MessageT", bound=BaseModel)


def parse_message(model: type[MessageT], data: dict) -> MessageT:
    """수신 메시지 검증

    Raises:
        SignalingValidationError: 필수 필드 누락 또는 타입 오류
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise SignalingValidationError(
            f"Missing or invalid fields: {', '.join(fields)}"
        ) from e


def serialize_participant(participant: Participant) -> dict:
    return RoomParticipant(
        participant_id=participant.id,
        muted=participant.muted,
        joined_at=participant.joined_at,
    ).model_dump(by_alias=True, mode="json")


def serialize_event(message_type: SignalingMessageType, event: ScreenShareEvent) -> dict:
    return {"type": message_type, **event.model_dump(by_alias=True)}


class MessageHandler(Protocol):
    """메시지 핸들러 프로토콜"""

    async def handle(self, connection_id: str, data: dict) -> None:
        """메시지 처리

        Args:
            connection_id: 메시지를 보낸 연결 ID
            data: 메시지 데이터

        Raises:
            SignalingError: 검증/처리 실패 (요청자에게만 전달됨)
        """
        ...


class JoinRoomHandler:
    """JOIN_ROOM 메시지 핸들러"""

    def __init__(self, relay: "SignalingRelay"):
        self.relay = relay

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(JoinRoomMessage, data)
        registry = self.relay.registry

        participant = registry.add_participant(
            message.room_id,
            message.participant_id,
            connection_id,
            self.relay.connections.get_meta(connection_id),
        )
        participants = self.relay.participants_snapshot(message.room_id)
        room = registry.get_room(message.room_id)

        # 입장한 참여자에게 현재 방 상태 전송
        await self.relay.connections.send(
            connection_id,
            {
                "type": SignalingMessageType.JOINED,
                "success": True,
                "roomId": message.room_id,
                "participant": serialize_participant(participant),
                "participants": participants,
                "screenSharingParticipantId": room.screen_sharing_participant_id if room else None,
            },
        )

        # 다른 참여자들에게 새 참여자 알림
        await self.relay.broadcast(
            message.room_id,
            {
                "type": SignalingMessageType.PARTICIPANT_JOINED,
                "participantId": participant.id,
                "participants": participants,
            },
            exclude_participant_id=participant.id,
        )


class LeaveRoomHandler:
    """LEAVE_ROOM 메시지 핸들러 (응답 없음, 퇴장 브로드캐스트만)"""

    def __init__(self, relay: "SignalingRelay"):
        self.relay = relay

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(LeaveRoomMessage, data)
        self.relay.verify_sender(
            connection_id,
            message.room_id,
            message.participant_id,
            "Can only leave as own participant",
        )
        await self.relay.depart(message.room_id, message.participant_id)


class OfferAnswerHandler:
    """OFFER/ANSWER 메시지 핸들러 (통합)"""

    def __init__(self, relay: "SignalingRelay", message_type: SignalingMessageType):
        """
        Args:
            relay: SignalingRelay
            message_type: OFFER 또는 ANSWER
        """
        self.relay = relay
        self.message_type = message_type
        self.ack_type = (
            SignalingMessageType.OFFER_SENT
            if message_type == SignalingMessageType.OFFER
            else SignalingMessageType.ANSWER_SENT
        )

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(PeerSignalMessage, data)
        target = self.relay.resolve_peer(connection_id, message.room_id, message.from_id, message.to_id)

        await self.relay.forward(
            target,
            message.room_id,
            {
                "type": self.message_type,
                "from": message.from_id,
                "roomId": message.room_id,
                "signal": message.signal,
            },
        )

        # 요청자에게 전달 완료 알림
        await self.relay.connections.send(
            connection_id,
            {"type": self.ack_type, "to": message.to_id, "roomId": message.room_id},
        )

        logger.debug(
            f"Relayed {self.message_type.value} from {message.from_id} "
            f"to {message.to_id} in room {message.room_id}"
        )


class ICECandidateHandler:
    """ICE_CANDIDATE 메시지 핸들러 (유니캐스트만, 응답 없음)"""

    def __init__(self, relay: "SignalingRelay"):
        self.relay = relay

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(IceCandidateMessage, data)
        target = self.relay.resolve_peer(connection_id, message.room_id, message.from_id, message.to_id)

        if not isinstance(message.candidate.get("candidate"), str):
            raise SignalingValidationError("Invalid ICE candidate format")

        await self.relay.forward(
            target,
            message.room_id,
            {
                "type": SignalingMessageType.ICE_CANDIDATE,
                "from": message.from_id,
                "roomId": message.room_id,
                "candidate": message.candidate,
            },
        )


class ToggleMuteHandler:
    """TOGGLE_MUTE 메시지 핸들러 (본인만 변경 가능)"""

    def __init__(self, relay: "SignalingRelay"):
        self.relay = relay

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(ToggleMuteMessage, data)
        participant = self.relay.verify_sender(
            connection_id,
            message.room_id,
            message.participant_id,
            "Can only toggle own mute status",
        )

        # 상태 업데이트
        participant.muted = message.is_muted
        self.relay.registry.recorder.event(
            connection_id,
            CallEventType.MUTE_TOGGLE,
            {"participantId": participant.id, "roomId": message.room_id, "muted": message.is_muted},
        )

        # 다른 참여자들에게 알림
        await self.relay.broadcast(
            message.room_id,
            {
                "type": SignalingMessageType.USER_MUTED,
                "participantId": participant.id,
                "isMuted": message.is_muted,
                "roomId": message.room_id,
            },
            exclude_participant_id=participant.id,
        )

        await self.relay.connections.send(
            connection_id,
            {
                "type": SignalingMessageType.MUTE_TOGGLED,
                "participantId": participant.id,
                "isMuted": message.is_muted,
                "roomId": message.room_id,
            },
        )


class ScreenShareHandler:
    """REQUEST/STOP_SCREEN_SHARE 메시지 핸들러 (통합)"""

    def __init__(self, relay: "SignalingRelay", action: str):
        """
        Args:
            relay: SignalingRelay
            action: "start" 또는 "stop"
        """
        self.relay = relay
        self.action = action
        self.response_type = (
            SignalingMessageType.SCREEN_SHARE_STARTED
            if action == "start"
            else SignalingMessageType.SCREEN_SHARE_STOPPED
        )
        self.event_type = (
            CallEventType.SCREEN_SHARE_START if action == "start" else CallEventType.SCREEN_SHARE_STOP
        )

    async def handle(self, connection_id: str, data: dict) -> None:
        message = parse_message(ScreenShareRequestMessage, data)
        self.relay.verify_sender(
            connection_id,
            message.room_id,
            message.participant_id,
            "Screen share request does not match socket participant",
        )

        screen_share = self.relay.screen_share
        if self.action == "start":
            event, changed = screen_share.request_screen_share(message.room_id, message.participant_id)
        else:
            event = screen_share.stop_screen_share(message.room_id, message.participant_id)
            changed = True

        payload = serialize_event(self.response_type, event)

        # 요청자에게는 항상 응답
        await self.relay.connections.send(connection_id, payload)

        # 보유자의 재요청은 기록/브로드캐스트 없음
        if not changed:
            return

        self.relay.registry.recorder.event(
            connection_id,
            self.event_type,
            {"participantId": message.participant_id, "roomId": message.room_id},
        )
        await self.relay.broadcast(
            message.room_id,
            payload,
            exclude_participant_id=message.participant_id,
        )


class SignalingRelay:
    """시그널링 메시지 검증 및 라우팅"""

    def __init__(
        self,
        registry: RoomRegistry,
        screen_share: ScreenShareService,
        connections: ConnectionManager,
    ):
        self.registry = registry
        self.screen_share = screen_share
        self.connections = connections

        # 핸들러 레지스트리
        self.handlers: dict[str, MessageHandler] = {
            SignalingMessageType.JOIN_ROOM: JoinRoomHandler(self),
            SignalingMessageType.LEAVE_ROOM: LeaveRoomHandler(self),
            SignalingMessageType.OFFER: OfferAnswerHandler(self, SignalingMessageType.OFFER),
            SignalingMessageType.ANSWER: OfferAnswerHandler(self, SignalingMessageType.ANSWER),
            SignalingMessageType.ICE_CANDIDATE: ICECandidateHandler(self),
            SignalingMessageType.TOGGLE_MUTE: ToggleMuteHandler(self),
            SignalingMessageType.REQUEST_SCREEN_SHARE: ScreenShareHandler(self, "start"),
            SignalingMessageType.STOP_SCREEN_SHARE: ScreenShareHandler(self, "stop"),
        }

    async def dispatch(self, connection_id: str, data: dict) -> None:
        """메시지 타입에 따라 적절한 핸들러로 디스패치

        Args:
            connection_id: 메시지를 보낸 연결 ID
            data: 메시지 데이터
        """
        msg_type = data.get("type") if isinstance(data, dict) else None
        if not isinstance(msg_type, str):
            msg_type = None

        handler = self.handlers.get(msg_type)
        if handler is None:
            logger.warning(f"Unknown message type: {msg_type}")
            await self.send_error(
                connection_id,
                msg_type,
                SignalingValidationError(f"Unknown message type: {msg_type}"),
            )
            return

        try:
            await handler.handle(connection_id, data)
        except SignalingError as e:
            logger.info(f"Signaling error ({msg_type}) from {connection_id}: {e.message}")
            await self.send_error(connection_id, msg_type, e)
        except Exception:
            logger.exception(f"Unexpected error while handling {msg_type} from {connection_id}")
            await self.send_error(
                connection_id,
                msg_type,
                SignalingError("Failed to process message"),
            )

    async def handle_disconnect(self, connection_id: str) -> None:
        """연결 끊김 처리 - 퇴장과 같은 정리 경로 사용"""
        self.connections.disconnect(connection_id)

        binding = self.registry.find_participant_by_transport(connection_id)
        if binding is None:
            return

        participant, room_id = binding
        logger.info(f"Cleaning up participant {participant.id} after disconnect of {connection_id}")
        try:
            await self.depart(room_id, participant.id)
        except SignalingError as e:
            logger.error(f"Error handling disconnect for {connection_id}: {e.message}")

    async def depart(self, room_id: str, participant_id: str) -> None:
        """참여자 퇴장 처리 (화면공유 강제 해제 -> 제거 -> 알림)"""
        participant = self.registry.get_participant(room_id, participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id, room_id)

        event = self.screen_share.force_stop(room_id, participant_id)
        if event is not None:
            self.registry.recorder.event(
                participant.transport_handle,
                CallEventType.SCREEN_SHARE_STOP,
                {"participantId": participant_id, "roomId": room_id, "forced": True},
            )
        self.registry.remove_participant(room_id, participant_id)

        if event is not None:
            await self.broadcast(room_id, serialize_event(SignalingMessageType.SCREEN_SHARE_STOPPED, event))

        await self.broadcast(
            room_id,
            {
                "type": SignalingMessageType.PARTICIPANT_LEFT,
                "participantId": participant_id,
                "participants": self.participants_snapshot(room_id),
            },
        )

    def verify_sender(
        self,
        connection_id: str,
        room_id: str,
        claimed_participant_id: str,
        mismatch_reason: str,
    ) -> Participant:
        """요청 연결이 주장한 참여자의 등록된 연결인지 확인

        Raises:
            SignalingValidationError: 연결-참여자 불일치 또는 방 불일치
        """
        binding = self.registry.find_participant_by_transport(connection_id)
        if binding is None or binding[0].id != claimed_participant_id:
            raise SignalingValidationError(mismatch_reason)

        participant, bound_room_id = binding
        if bound_room_id != room_id:
            raise SignalingValidationError("Participant not in specified room")

        return participant

    def resolve_peer(self, connection_id: str, room_id: str, from_id: str, to_id: str) -> Participant:
        """유니캐스트 시그널링의 대상 참여자 확인

        Raises:
            SignalingValidationError: 자기 자신에게 전송, 발신자 위조, 방 불일치
            InvalidDestinationError: 대상이 방에 없음
        """
        if from_id == to_id:
            raise SignalingValidationError("Cannot send signaling message to self")

        self.verify_sender(connection_id, room_id, from_id, "Sender does not match socket participant")

        target = self.registry.get_participant(room_id, to_id)
        if target is None:
            raise InvalidDestinationError(to_id, room_id)
        return target

    async def forward(self, target: Participant, room_id: str, message: dict) -> None:
        """대상 참여자의 연결로 메시지 전달"""
        delivered = await self.connections.send(target.transport_handle, message)
        if not delivered:
            raise InvalidDestinationError(target.id, room_id)

    async def broadcast(
        self,
        room_id: str,
        message: dict,
        exclude_participant_id: str | None = None,
    ) -> None:
        """방 참여자 전체에게 메시지 전송 (특정 참여자 제외 가능)"""
        transport_handles = [
            p.transport_handle
            for p in self.registry.get_participants(room_id)
            if p.id != exclude_participant_id
        ]
        if transport_handles:
            await self.connections.send_many(transport_handles, message)

    async def send_error(self, connection_id: str, request_type: str | None, error: SignalingError) -> None:
        """요청자에게만 에러 전송"""
        await self.connections.send(
            connection_id,
            ErrorMessage(
                request_type=request_type,
                code=error.code.value,
                message=error.message,
            ).model_dump(by_alias=True, mode="json"),
        )

    def participants_snapshot(self, room_id: str) -> list[dict]:
        return [serialize_participant(p) for p in self.registry.get_participants(room_id)]

    def get_stats(self) -> SignalingStatsResponse:
        """시그널링 통계"""
        return SignalingStatsResponse(
            connected_sockets=self.connections.get_connection_count(),
            active_rooms=len(self.registry.room_ids()),
            total_participants=self.registry.total_participants(),
            active_screen_shares=len(self.screen_share.active_screen_shares()),
            timestamp=datetime.now(timezone.utc),
        )
