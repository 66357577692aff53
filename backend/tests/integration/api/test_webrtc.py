"""WebRTC 시그널링 통합 테스트 (TestClient + 실제 WebSocket 엔드포인트)

- REST: /health, /api/v1/rooms/{room_id}, /api/v1/stats
- WebSocket: 입장/시그널링 전달/퇴장, 잘못된 JSON, 연결 끊김 정리
"""

from fastapi.testclient import TestClient


def join_message(participant_id: str, room_id: str = "room-1") -> dict:
    return {"type": "join-room", "roomId": room_id, "participantId": participant_id}


# ===== REST 엔드포인트 테스트 =====


def test_health_check(client: TestClient):
    """헬스 체크"""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "timestamp" in data


def test_get_empty_room(client: TestClient):
    """존재하지 않는 방은 빈 참여자 목록과 ICE 서버 설정 반환"""
    response = client.get("/api/v1/rooms/room-1")

    assert response.status_code == 200
    data = response.json()
    assert data["roomId"] == "room-1"
    assert data["participants"] == []
    assert data["screenSharingParticipantId"] is None
    assert data["maxParticipants"] == 10
    assert len(data["iceServers"]) > 0


def test_stats_initial(client: TestClient):
    """초기 통계"""
    response = client.get("/api/v1/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["connectedSockets"] == 0
    assert data["activeRooms"] == 0
    assert data["totalParticipants"] == 0
    assert data["activeScreenShares"] == 0


# ===== WebSocket 테스트 =====


def test_websocket_join_and_room_lookup(client: TestClient):
    """WebSocket 입장 후 REST로 방 상태 조회"""
    with client.websocket_connect("/api/v1/ws") as ws_alice:
        ws_alice.send_json(join_message("alice"))
        joined = ws_alice.receive_json()

        assert joined["type"] == "joined"
        assert joined["participant"]["participantId"] == "alice"

        room = client.get("/api/v1/rooms/room-1").json()
        assert [p["participantId"] for p in room["participants"]] == ["alice"]

        stats = client.get("/api/v1/stats").json()
        assert stats["connectedSockets"] == 1
        assert stats["totalParticipants"] == 1


def test_websocket_signaling_flow(client: TestClient):
    """두 참여자 간 offer/answer 전달 및 화면공유 알림"""
    with client.websocket_connect("/api/v1/ws") as ws_alice, client.websocket_connect(
        "/api/v1/ws"
    ) as ws_bob:
        ws_alice.send_json(join_message("alice"))
        assert ws_alice.receive_json()["type"] == "joined"

        ws_bob.send_json(join_message("bob"))
        assert ws_bob.receive_json()["type"] == "joined"
        notice = ws_alice.receive_json()
        assert notice["type"] == "participant-joined"
        assert notice["participantId"] == "bob"

        ws_bob.send_json(
            {"type": "offer", "roomId": "room-1", "from": "bob", "to": "alice", "signal": {"sdp": "o"}}
        )
        offer = ws_alice.receive_json()
        assert offer == {"type": "offer", "from": "bob", "roomId": "room-1", "signal": {"sdp": "o"}}
        assert ws_bob.receive_json() == {"type": "offer-sent", "to": "alice", "roomId": "room-1"}

        ws_alice.send_json(
            {"type": "answer", "roomId": "room-1", "from": "alice", "to": "bob", "signal": {"sdp": "a"}}
        )
        assert ws_bob.receive_json()["type"] == "answer"
        assert ws_alice.receive_json()["type"] == "answer-sent"

        ws_alice.send_json({"type": "request-screen-share", "roomId": "room-1", "participantId": "alice"})
        assert ws_alice.receive_json()["type"] == "screen-share-started"
        started = ws_bob.receive_json()
        assert started["participantId"] == "alice"
        assert started["isSharing"] is True

        room = client.get("/api/v1/rooms/room-1").json()
        assert room["screenSharingParticipantId"] == "alice"

        # 연결을 닫기 전에 명시적으로 퇴장
        ws_bob.send_json({"type": "leave-room", "roomId": "room-1", "participantId": "bob"})
        left = ws_alice.receive_json()
        assert left["type"] == "participant-left"
        assert left["participantId"] == "bob"
        assert left["participants"][0]["participantId"] == "alice"


def test_websocket_disconnect_cleans_up(client: TestClient):
    """연결 끊김 시 화면공유 해제 및 방 정리 (브로드캐스트 순서는 relay 단위 테스트에서 검증)"""
    with client.websocket_connect("/api/v1/ws") as ws_bob:
        ws_bob.send_json(join_message("bob", room_id="room-2"))
        assert ws_bob.receive_json()["type"] == "joined"

        ws_bob.send_json({"type": "request-screen-share", "roomId": "room-2", "participantId": "bob"})
        assert ws_bob.receive_json()["type"] == "screen-share-started"

        room = client.get("/api/v1/rooms/room-2").json()
        assert room["screenSharingParticipantId"] == "bob"

    # 연결 종료 후 서버 측 정리 결과 확인
    room = client.get("/api/v1/rooms/room-2").json()
    assert room["participants"] == []
    assert room["screenSharingParticipantId"] is None

    stats = client.get("/api/v1/stats").json()
    assert stats["connectedSockets"] == 0
    assert stats["activeRooms"] == 0
    assert stats["activeScreenShares"] == 0


def test_websocket_invalid_json(client: TestClient):
    """잘못된 JSON은 에러 응답 후 연결 유지"""
    with client.websocket_connect("/api/v1/ws") as ws:
        ws.send_text("{not json")
        error = ws.receive_json()

        assert error["type"] == "error"
        assert error["code"] == "VALIDATION_ERROR"
        assert error["requestType"] is None

        ws.send_json(join_message("alice"))
        assert ws.receive_json()["type"] == "joined"


def test_websocket_duplicate_join(client: TestClient):
    """같은 참여자 ID로 두 번째 연결 입장 시 DUPLICATE_PARTICIPANT"""
    with client.websocket_connect("/api/v1/ws") as ws_first, client.websocket_connect(
        "/api/v1/ws"
    ) as ws_second:
        ws_first.send_json(join_message("alice"))
        ws_first.receive_json()

        ws_second.send_json(join_message("alice"))
        error = ws_second.receive_json()

        assert error["type"] == "error"
        assert error["code"] == "DUPLICATE_PARTICIPANT"
        assert error["requestType"] == "join-room"
