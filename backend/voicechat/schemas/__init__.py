from voicechat.schemas.webrtc import (
    ErrorMessage,
    IceServer,
    RoomParticipant,
    RoomResponse,
    ScreenShareEvent,
    SignalingMessageType,
    SignalingStatsResponse,
)

__all__ = [
    "ErrorMessage",
    "IceServer",
    "RoomParticipant",
    "RoomResponse",
    "ScreenShareEvent",
    "SignalingMessageType",
    "SignalingStatsResponse",
]
