"""WebRTC 시그널링 관련 Pydantic 스키마"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, StrictBool


class SignalingMessageType(str, Enum):
    """시그널링 메시지 타입"""
    # Client -> Server
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    TOGGLE_MUTE = "toggle-mute"
    REQUEST_SCREEN_SHARE = "request-screen-share"
    STOP_SCREEN_SHARE = "stop-screen-share"
    # Server -> Client
    JOINED = "joined"
    PARTICIPANT_JOINED = "participant-joined"
    PARTICIPANT_LEFT = "participant-left"
    OFFER_SENT = "offer-sent"
    ANSWER_SENT = "answer-sent"
    USER_MUTED = "user-muted"
    MUTE_TOGGLED = "mute-toggled"
    SCREEN_SHARE_STARTED = "screen-share-started"
    SCREEN_SHARE_STOPPED = "screen-share-stopped"
    ERROR = "error"


class RoomParticipant(BaseModel):
    """회의실 참여자 정보"""
    participant_id: str = Field(serialization_alias="participantId")
    muted: bool = False
    joined_at: datetime = Field(serialization_alias="joinedAt")

    class Config:
        populate_by_name = True


class ScreenShareEvent(BaseModel):
    """화면공유 상태 변경 이벤트"""
    room_id: str = Field(serialization_alias="roomId")
    participant_id: str = Field(serialization_alias="participantId")
    is_sharing: bool = Field(serialization_alias="isSharing")

    class Config:
        populate_by_name = True


class IceServer(BaseModel):
    """ICE 서버 설정"""
    urls: str
    username: str | None = None
    credential: str | None = None


class RoomResponse(BaseModel):
    """회의실 정보 응답"""
    room_id: str = Field(serialization_alias="roomId")
    participants: list[RoomParticipant]
    screen_sharing_participant_id: str | None = Field(
        default=None, serialization_alias="screenSharingParticipantId"
    )
    ice_servers: list[IceServer] = Field(serialization_alias="iceServers")
    max_participants: int = Field(default=10, serialization_alias="maxParticipants")

    class Config:
        populate_by_name = True


class SignalingStatsResponse(BaseModel):
    """시그널링 통계 응답"""
    connected_sockets: int = Field(serialization_alias="connectedSockets")
    active_rooms: int = Field(serialization_alias="activeRooms")
    total_participants: int = Field(serialization_alias="totalParticipants")
    active_screen_shares: int = Field(serialization_alias="activeScreenShares")
    timestamp: datetime

    class Config:
        populate_by_name = True


# ===== WebSocket 시그널링 메시지 스키마 (Client -> Server) =====


class JoinRoomMessage(BaseModel):
    """방 입장 메시지"""
    type: str = SignalingMessageType.JOIN_ROOM
    room_id: str = Field(alias="roomId", min_length=1)
    participant_id: str = Field(alias="participantId", min_length=1)

    class Config:
        populate_by_name = True


class LeaveRoomMessage(BaseModel):
    """방 퇴장 메시지"""
    type: str = SignalingMessageType.LEAVE_ROOM
    room_id: str = Field(alias="roomId", min_length=1)
    participant_id: str = Field(alias="participantId", min_length=1)

    class Config:
        populate_by_name = True


class PeerSignalMessage(BaseModel):
    """SDP Offer/Answer 메시지 (from -> to 유니캐스트)"""
    type: str
    room_id: str = Field(alias="roomId", min_length=1)
    from_id: str = Field(alias="from", min_length=1)
    to_id: str = Field(alias="to", min_length=1)
    signal: Any = None  # RTCSessionDescriptionInit, 그대로 전달

    class Config:
        populate_by_name = True


class IceCandidateMessage(BaseModel):
    """ICE Candidate 메시지"""
    type: str = SignalingMessageType.ICE_CANDIDATE
    room_id: str = Field(alias="roomId", min_length=1)
    from_id: str = Field(alias="from", min_length=1)
    to_id: str = Field(alias="to", min_length=1)
    candidate: dict  # RTCIceCandidateInit

    class Config:
        populate_by_name = True


class ToggleMuteMessage(BaseModel):
    """음소거 토글 메시지"""
    type: str = SignalingMessageType.TOGGLE_MUTE
    room_id: str = Field(alias="roomId", min_length=1)
    participant_id: str = Field(alias="participantId", min_length=1)
    is_muted: StrictBool = Field(alias="isMuted")

    class Config:
        populate_by_name = True


class ScreenShareRequestMessage(BaseModel):
    """화면공유 요청/중지 메시지"""
    type: str
    room_id: str = Field(alias="roomId", min_length=1)
    participant_id: str = Field(alias="participantId", min_length=1)

    class Config:
        populate_by_name = True


# ===== Server -> Client 메시지 =====


class ErrorMessage(BaseModel):
    """에러 메시지 (요청자에게만 전송)"""
    type: str = SignalingMessageType.ERROR.value
    request_type: str | None = Field(default=None, serialization_alias="requestType")
    code: str
    message: str

    class Config:
        populate_by_name = True
