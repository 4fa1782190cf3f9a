"""
HTTP surface tests: request/response shapes and error status codes
"""
import uuid

from sqlalchemy import text

OWNER = {"X-User-Id": "owner-1"}
ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def create_active_space(client, name="Reading group"):
    response = client.post("/api/spaces", json={"name": name, "subject": "Chapter 3"}, headers=OWNER)
    assert response.status_code == 201
    space = response.json()
    response = client.post(f"/api/spaces/{space['id']}/status", json={"active": True}, headers=OWNER)
    assert response.status_code == 200
    return space


class TestHealth:

    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "ok"
        assert client.get("/health").json() == {"status": "healthy"}


class TestSpacesApi:

    def test_create_and_fetch_by_slug(self, client):
        created = client.post("/api/spaces", json={"name": "Seminar"}, headers=OWNER).json()
        assert created["is_active"] is False

        as_owner = client.get(f"/api/spaces/{created['slug']}", headers=OWNER).json()
        as_guest = client.get(f"/api/spaces/{created['slug']}", headers=ALICE).json()

        assert as_owner["is_owner"] is True
        assert as_guest["is_owner"] is False
        assert as_owner["active_since"] is None

    def test_list_filters(self, client):
        live = create_active_space(client)
        client.post("/api/spaces", json={"name": "Idle"}, headers=OWNER)

        active = client.get("/api/spaces", params={"status": "active"}).json()
        mine = client.get("/api/spaces/mine", headers=OWNER).json()

        assert [s["id"] for s in active] == [live["id"]]
        assert len(mine) == 2

    def test_status_errors(self, client):
        space = create_active_space(client)

        again = client.post(f"/api/spaces/{space['id']}/status", json={"active": True}, headers=OWNER)
        intruder = client.post(f"/api/spaces/{space['id']}/status", json={"active": False}, headers=ALICE)
        missing = client.post(f"/api/spaces/{uuid.uuid4()}/status", json={"active": True}, headers=OWNER)

        assert again.status_code == 409
        assert intruder.status_code == 403
        assert missing.status_code == 404

    def test_unknown_slug(self, client):
        assert client.get("/api/spaces/does-not-exist", headers=OWNER).status_code == 404

    def test_missing_user_header(self, client):
        assert client.post("/api/spaces", json={"name": "Seminar"}).status_code == 422

    def test_blank_name(self, client):
        assert client.post("/api/spaces", json={"name": "   "}, headers=OWNER).status_code == 422


class TestQueueApi:

    def test_join_promote_and_leave_flow(self, client):
        space = create_active_space(client)
        base = f"/api/spaces/{space['id']}"

        alice = client.post(f"{base}/queue", json={"message": "first"}, headers=ALICE).json()
        bob = client.post(f"{base}/queue", json={}, headers=BOB).json()
        again = client.post(f"{base}/queue", json={"message": "edited"}, headers=BOB).json()

        assert alice["already_in_queue"] is False
        assert again == {"success": True, "already_in_queue": True, "entry_id": bob["entry_id"]}

        queue = client.get(f"{base}/queue").json()
        assert [(e["user_id"], e["position"], e["state"]) for e in queue] == [
            ("alice", 1, "SPEAKING"),
            ("bob", 2, "WAITING"),
        ]
        assert queue[1]["message"] == "edited"

        promoted = client.post(f"{base}/queue/{alice['entry_id']}/promote").json()
        assert promoted["next_speaker_id"] == bob["entry_id"]
        assert promoted["promoted"] is True

        left = client.delete(f"{base}/queue/{bob['entry_id']}").json()
        assert left["success"] is True
        assert client.get(f"{base}/queue").json() == []

    def test_pause_and_moves(self, client):
        space = create_active_space(client)
        base = f"/api/spaces/{space['id']}"
        client.post(f"{base}/queue", json={}, headers=ALICE)
        bob = client.post(f"{base}/queue", json={}, headers=BOB).json()

        paused = client.post(f"{base}/queue/{bob['entry_id']}/pause", json={"paused": True})
        assert paused.json() == {"success": True}

        moved = client.post(f"{base}/queue/move-up", headers=BOB).json()
        blocked = client.post(f"{base}/queue/move-up", headers=BOB).json()
        by_owner = client.post(f"{base}/queue/move-down", params={"target_user_id": "bob"}, headers=OWNER).json()

        assert moved["moved"] is True
        assert blocked["moved"] is False
        assert by_owner["moved"] is True

        queue = client.get(f"{base}/queue").json()
        assert [(e["user_id"], e["state"]) for e in queue] == [("alice", "SPEAKING"), ("bob", "PAUSED")]

    def test_promote_next_in_line(self, client):
        space = create_active_space(client)
        result = client.post(f"/api/spaces/{space['id']}/promote-next").json()
        assert result == {"success": True, "next_speaker_id": None, "promoted": False, "spoken_seconds": None}

    def test_queue_errors(self, client):
        inactive = client.post("/api/spaces", json={"name": "Closed"}, headers=OWNER).json()
        space = create_active_space(client)

        assert client.post(f"/api/spaces/{inactive['id']}/queue", json={}, headers=ALICE).status_code == 409
        assert client.get(f"/api/spaces/{uuid.uuid4()}/queue").status_code == 404
        assert client.delete(f"/api/spaces/{space['id']}/queue/{uuid.uuid4()}").status_code == 404
        assert client.post(f"/api/spaces/{space['id']}/queue/move-up", headers=ALICE).status_code == 404

    def test_promoting_a_waiting_entry_is_rejected(self, client):
        space = create_active_space(client)
        base = f"/api/spaces/{space['id']}"
        client.post(f"{base}/queue", json={}, headers=ALICE)
        bob = client.post(f"{base}/queue", json={}, headers=BOB).json()

        response = client.post(f"{base}/queue/{bob['entry_id']}/promote")

        assert response.status_code == 409
        assert [e["user_id"] for e in client.get(f"{base}/queue").json()] == ["alice", "bob"]

    def test_store_failure_on_read_is_503(self, client, db):
        space = create_active_space(client)
        db.execute(text("DROP TABLE queue_entries"))
        db.commit()

        queue = client.get(f"/api/spaces/{space['id']}/queue")
        mine = client.get("/api/me/queues", headers=ALICE)

        assert queue.status_code == 503
        assert queue.json() == {"detail": "Service unavailable"}
        assert mine.status_code == 503


class TestMeApi:

    def test_active_queues_and_history(self, client):
        space = create_active_space(client)
        client.post(f"/api/spaces/{space['id']}/queue", json={"message": "hi"}, headers=ALICE)

        queues = client.get("/api/me/queues", headers=ALICE).json()
        assert [(q["slug"], q["position"], q["is_current_speaker"]) for q in queues] == [
            (space["slug"], 1, True)
        ]

        client.post(f"/api/spaces/{space['id']}/status", json={"active": False}, headers=OWNER)

        history = client.get("/api/me/history", params={"page": 0}, headers=OWNER).json()
        assert history["total"] == 1
        assert history["page"] == 1
        assert history["page_size"] == 10
        assert history["items"][0]["queue_count"] == 1
        assert history["items"][0]["space_name"] == "Reading group"

    def test_history_page_size_bounds(self, client):
        response = client.get("/api/me/history", params={"page_size": 0}, headers=OWNER)
        assert response.status_code == 422
