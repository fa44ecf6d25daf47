import json

import pytest


@pytest.fixture
def people(make_user):
    make_user("u1")
    make_user("u2")
    make_user("u3")
    make_user("admin", is_admin=True)


def create_alert(client, **overrides):
    data = {
        "reason": "Vol",
        "description": "Sac volé",
        "location": "Analakely",
        "urgency": "high",
        "authorId": "u1",
    }
    data.update(overrides)
    return client.post("/api/alerts", data=data)


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "Gasy Hub"
    assert client.get("/api/health").json()["status"] == "healthy"

    db_health = client.get("/api/health/db")
    assert db_health.status_code == 200
    assert db_health.json()["database"] == "sqlite"


def test_submit_and_vote_scenario(client, people):
    resp = create_alert(client)
    assert resp.status_code == 201
    alert = resp.json()
    assert alert["status"] == "pending"
    assert alert["confirmedCount"] == 0
    assert alert["author"] == {"id": "u1", "name": "User 1", "hasCIN": False}

    vote = client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True, "userId": "u2"})
    assert vote.status_code == 200
    assert vote.json()["confirmedCount"] == 1
    assert vote.json()["validatedBy"] == ["u2"]

    again = client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True, "userId": "u2"})
    assert again.status_code == 409
    assert client.get(f"/api/alerts/{alert['id']}").json()["confirmedCount"] == 1


def test_snake_case_input_is_accepted(client, people):
    alert = create_alert(client).json()
    resp = client.post(f"/api/alerts/{alert['id']}/validate", json={"is_confirmed": False, "user_id": "u2"})
    assert resp.status_code == 200
    assert resp.json()["rejectedCount"] == 1


def test_submit_validation_errors(client, people):
    assert create_alert(client, description="   ").status_code == 400
    assert create_alert(client, urgency="extreme").status_code == 400
    assert create_alert(client, authorId="ghost").status_code == 400
    assert client.post("/api/alerts", data={"description": "x"}).status_code == 400
    assert client.get("/api/alerts").json()["total"] == 0


def test_empty_required_fields_are_bad_requests(client, people):
    resp = create_alert(client, description="")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Description is required"

    resp = create_alert(client, location="")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Location is required"

    resp = create_alert(client, authorId="")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "authorId is required"
    assert client.get("/api/alerts").json()["total"] == 0


def test_vote_without_user_is_bad_request(client, people):
    alert = create_alert(client).json()

    resp = client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True})
    assert resp.status_code == 400
    assert "userId is required" in resp.json()["detail"]
    assert client.get(f"/api/alerts/{alert['id']}").json()["confirmedCount"] == 0


def test_has_voted_unknown_alert_or_user(client, people):
    alert = create_alert(client).json()

    assert client.get("/api/alerts/nope/has-voted", params={"userId": "u2"}).status_code == 404
    assert client.get(f"/api/alerts/{alert['id']}/has-voted", params={"userId": "ghost"}).status_code == 404
    resp = client.get(f"/api/alerts/{alert['id']}/has-voted", params={"userId": "u2"})
    assert resp.status_code == 200
    assert resp.json()["hasVoted"] is False


def test_submit_runs_blocking_work_off_the_event_loop(client, people, monkeypatch):
    from gasy_hub.routes import alerts as alert_routes

    calls = []
    real = alert_routes.run_in_threadpool

    async def recording_threadpool(func, *args, **kwargs):
        calls.append(func.__name__)
        return await real(func, *args, **kwargs)

    monkeypatch.setattr(alert_routes, "run_in_threadpool", recording_threadpool)

    resp = create_alert(client)
    assert resp.status_code == 201
    assert calls == ["store_and_submit"]


def test_submit_with_uploads_and_urls(client, people, tmp_path):
    files = [("media", ("photo.jpg", b"\xff\xd8jpeg", "image/jpeg"))]
    resp = client.post(
        "/api/alerts",
        data={
            "description": "Sac volé",
            "location": "Analakely",
            "authorId": "u1",
            "mediaUrls": json.dumps(["https://cdn.example/a.jpg"]),
        },
        files=files,
    )
    assert resp.status_code == 201
    media = resp.json()["media"]
    assert media[0] == "https://cdn.example/a.jpg"
    assert media[1].startswith("/uploads/")

    served = client.get(media[1])
    assert served.status_code == 200
    assert served.content == b"\xff\xd8jpeg"


def test_submit_rejects_non_media_upload(client, people):
    files = [("media", ("notes.txt", b"hello", "text/plain"))]
    resp = client.post(
        "/api/alerts",
        data={"description": "Sac volé", "location": "Analakely", "authorId": "u1"},
        files=files,
    )
    assert resp.status_code == 400


def test_list_pagination(client, people):
    for i in range(3):
        create_alert(client, description=f"Alerte {i}")

    page = client.get("/api/alerts", params={"page": 1, "limit": 2}).json()
    assert page["total"] == 3
    assert page["hasMore"] is True
    assert len(page["alerts"]) == 2

    last = client.get("/api/alerts", params={"page": 2, "limit": 2}).json()
    assert last["hasMore"] is False
    assert len(last["alerts"]) == 1

    assert client.get("/api/alerts", params={"status": "archived"}).status_code == 400
    assert client.get("/api/alerts", params={"authorId": "u2"}).json()["total"] == 0


def test_get_alert_records_views(client, people):
    alert = create_alert(client).json()

    client.get(f"/api/alerts/{alert['id']}", headers={"X-User-ID": "u2"})
    client.get(f"/api/alerts/{alert['id']}", headers={"X-User-ID": "u2"})
    assert client.get(f"/api/alerts/{alert['id']}").json()["viewCount"] == 1
    assert client.get("/api/alerts/missing").status_code == 404


def test_confirmation_threshold_over_http(client, people, make_user):
    alert = create_alert(client).json()
    for uid in ("u2", "u3", "admin"):
        last = client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True, "userId": uid})
    assert last.json()["status"] == "confirmed"

    voters = client.get(f"/api/alerts/{alert['id']}/voters").json()
    assert [v["userId"] for v in voters["voters"]] == ["u2", "u3", "admin"]

    has_voted = client.get(f"/api/alerts/{alert['id']}/has-voted", params={"userId": "u3"}).json()
    assert has_voted["hasVoted"] is True


def test_status_endpoint(client, people):
    alert = create_alert(client).json()
    url = f"/api/alerts/{alert['id']}/status"

    assert client.put(url, json={"status": "resolved", "authorId": "u2"}).status_code == 403
    assert client.patch(url, json={"status": "pending", "authorId": "u1"}).status_code == 400
    assert client.put(url, json={"status": "confirmed", "authorId": "u1"}).status_code == 403

    resolved = client.patch(url, json={"status": "resolved", "authorId": "u1"})
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"
    assert resolved.json()["resolvedAt"] is not None

    vote = client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True, "userId": "u2"})
    assert vote.status_code == 400


def test_comment_thread(client, people):
    alert = create_alert(client).json()
    url = f"/api/alerts/{alert['id']}/comments"

    created = client.post(url, json={"type": "text", "content": "Restez vigilants", "userId": "u2"})
    assert created.status_code == 201

    assert client.post(url, json={"type": "green", "content": "Vrai", "userId": "u3"}).status_code == 400
    client.post(f"/api/alerts/{alert['id']}/validate", json={"isConfirmed": True, "userId": "u3", "comment": "Vu aussi"})

    comments = client.get(url).json()
    assert [(c["type"], c["content"]) for c in comments] == [("text", "Restez vigilants"), ("green", "Vu aussi")]
    assert comments[0]["user"]["id"] == "u2"
    assert comments[0]["createdAt"] >= alert["createdAt"][:19]

    assert client.get("/api/alerts/missing/comments").status_code == 404


def test_update_and_delete(client, people):
    alert = create_alert(client).json()
    url = f"/api/alerts/{alert['id']}"

    updated = client.put(url, json={"updaterId": "u1", "description": "Sac volé devant la poste"})
    assert updated.status_code == 200
    assert updated.json()["description"] == "Sac volé devant la poste"
    assert client.put(url, json={"updaterId": "u2", "description": "x"}).status_code == 403

    assert client.delete(url, params={"authorId": "u2"}).status_code == 403
    assert client.delete(url).status_code == 400
    assert client.request("DELETE", url, json={"authorId": "admin"}).status_code == 200
    assert client.get(url).status_code == 404
