"""WebRTC 관련 설정"""

# ICE 서버 설정 (STUN만 사용)
# 미디어는 P2P로 전달되며 서버는 시그널링만 중계한다
ICE_SERVERS = [
    {"urls": "stun:stun.l.google.com:19302"},
    {"urls": "stun:stun1.l.google.com:19302"},
]

# 방 하나의 최대 참여자 수 (호출 단위로 변경 불가)
MAX_PARTICIPANTS = 10


# WebSocket 종료 코드
class WSCloseCode:
    """WebSocket 종료 코드"""
    GOING_AWAY = 1001
