"""시그널링/룸 관리 에러 분류

모든 클라이언트 노출 에러는 ErrorCode 중 하나로 닫혀 있으며,
SignalingRelay에서만 잡아서 요청자에게만 전달한다.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """클라이언트에 전달되는 에러 코드"""
    ROOM_FULL = "ROOM_FULL"
    DUPLICATE_PARTICIPANT = "DUPLICATE_PARTICIPANT"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    SCREEN_SHARE_ALREADY_ACTIVE = "SCREEN_SHARE_ALREADY_ACTIVE"
    SCREEN_SHARE_NOT_ACTIVE = "SCREEN_SHARE_NOT_ACTIVE"
    UNAUTHORIZED_SCREEN_SHARE_STOP = "UNAUTHORIZED_SCREEN_SHARE_STOP"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_DESTINATION = "INVALID_DESTINATION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SignalingError(Exception):
    """시그널링 기본 에러"""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ===== Room Registry =====


class RoomFullError(SignalingError):
    code = ErrorCode.ROOM_FULL

    def __init__(self, room_id: str, max_participants: int):
        super().__init__(f"Room {room_id} is full. Maximum participants: {max_participants}")
        self.room_id = room_id
        self.max_participants = max_participants


class DuplicateParticipantError(SignalingError):
    code = ErrorCode.DUPLICATE_PARTICIPANT

    def __init__(self, participant_id: str, room_id: str):
        super().__init__(f"Participant {participant_id} is already in room {room_id}")
        self.participant_id = participant_id
        self.room_id = room_id


class ParticipantNotFoundError(SignalingError):
    code = ErrorCode.PARTICIPANT_NOT_FOUND

    def __init__(self, participant_id: str, room_id: str):
        super().__init__(f"Participant {participant_id} not found in room {room_id}")
        self.participant_id = participant_id
        self.room_id = room_id


# ===== Screen Share =====


class ScreenShareAlreadyActiveError(SignalingError):
    code = ErrorCode.SCREEN_SHARE_ALREADY_ACTIVE

    def __init__(self, holder_id: str):
        super().__init__(f"Screen sharing is already active by participant: {holder_id}")
        self.holder_id = holder_id


class ScreenShareNotActiveError(SignalingError):
    code = ErrorCode.SCREEN_SHARE_NOT_ACTIVE

    def __init__(self, room_id: str):
        super().__init__(f"No active screen sharing in room: {room_id}")
        self.room_id = room_id


class UnauthorizedScreenShareStopError(SignalingError):
    code = ErrorCode.UNAUTHORIZED_SCREEN_SHARE_STOP

    def __init__(self, participant_id: str):
        super().__init__(f"Participant {participant_id} is not authorized to stop screen sharing")
        self.participant_id = participant_id


# ===== Signaling =====


class SignalingValidationError(SignalingError):
    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str):
        super().__init__(f"Signaling validation error: {message}")


class InvalidDestinationError(SignalingError):
    code = ErrorCode.INVALID_DESTINATION

    def __init__(self, destination: str, room_id: str):
        super().__init__(f"Invalid destination '{destination}' in room '{room_id}'")
        self.destination = destination
        self.room_id = room_id
