"""WebSocket 시그널링 서비스 - 연결 관리 및 메시지 전송"""

import logging
from collections.abc import Iterable
from uuid import uuid4

from fastapi import WebSocket

from voicechat.core.webrtc_config import WSCloseCode

logger = logging.getLogger(__name__)


class ConnectionManager:
    """WebSocket 연결 관리 (연결 ID = 참여자의 transport handle)"""

    def __init__(self):
        # connection_id -> WebSocket
        self._connections: dict[str, WebSocket] = {}
        # connection_id -> 클라이언트 메타데이터 (user_agent, ip_address)
        self._meta: dict[str, dict] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """WebSocket 연결 수락 및 등록

        Returns:
            새로 발급한 연결 ID
        """
        await websocket.accept()

        connection_id = uuid4().hex
        self._connections[connection_id] = websocket
        self._meta[connection_id] = {
            "user_agent": websocket.headers.get("user-agent"),
            "ip_address": websocket.client.host if websocket.client else None,
        }

        logger.info(f"Connection {connection_id} opened (total: {len(self._connections)})")
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """연결 해제"""
        self._connections.pop(connection_id, None)
        self._meta.pop(connection_id, None)
        logger.info(f"Connection {connection_id} closed (remaining: {len(self._connections)})")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get_meta(self, connection_id: str) -> dict | None:
        return self._meta.get(connection_id)

    async def send(self, connection_id: str, message: dict) -> bool:
        """특정 연결에 메시지 전송"""
        websocket = self._connections.get(connection_id)
        if not websocket:
            return False

        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"Failed to send message to {connection_id}: {e}")
            self.disconnect(connection_id)
            return False

    async def send_many(self, connection_ids: Iterable[str], message: dict) -> int:
        """여러 연결에 같은 메시지 전송

        Returns:
            전송 성공한 연결 수
        """
        delivered = 0
        for connection_id in list(connection_ids):
            if await self.send(connection_id, message):
                delivered += 1
        return delivered

    def get_connection_count(self) -> int:
        return len(self._connections)

    async def close_all_connections(self, reason: str = "Server shutting down") -> None:
        """모든 연결 종료"""
        for connection_id, websocket in list(self._connections.items()):
            try:
                await websocket.close(code=WSCloseCode.GOING_AWAY, reason=reason)
            except Exception as e:
                logger.debug(f"Failed to close {connection_id}: {e}")

        self._connections.clear()
        self._meta.clear()
        logger.info("All connections closed")
