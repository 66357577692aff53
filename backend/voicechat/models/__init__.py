from voicechat.models.call_session import CallEventLog, CallEventType, CallSession

__all__ = [
    "CallSession",
    "CallEventLog",
    "CallEventType",
]
