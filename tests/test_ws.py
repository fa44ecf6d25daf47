def test_ping_pong(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_json() == {"type": "PONG"}


def test_new_alert_is_pushed(client, make_user):
    make_user("u1")
    with client.websocket_connect("/ws") as ws:
        # Round trip first so the connection is registered before the POST
        ws.send_text("ping")
        ws.receive_json()

        resp = client.post(
            "/api/alerts",
            data={"reason": "Vol", "description": "Sac volé", "location": "Analakely", "urgency": "high", "authorId": "u1"},
        )
        assert resp.status_code == 201

        event = ws.receive_json()
        assert event["type"] == "NEW_ALERT"
        assert event["alert"]["id"] == resp.json()["id"]
        assert event["alert"]["status"] == "pending"
        assert event["alert"]["authorId"] == "u1"


def test_disconnected_client_is_unregistered(client):
    manager = client.app.state.connection_manager
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        ws.receive_json()
        assert manager.active_count >= 1
    client.get("/api/health")
    assert manager.active_count == 0
