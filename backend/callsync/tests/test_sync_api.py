from datetime import datetime

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from callsync.models import CallLog


def test_pull_sync_end_to_end(client, fake_vapi, db):
    fake_vapi.respond(
        "/logs",
        {
            "results": [
                {
                    "callId": "c1",
                    "startedAt": "2025-08-20T16:36:17Z",
                    "endedAt": "2025-08-20T16:37:26Z",
                    "customer": {"number": "+1555"},
                }
            ]
        },
    )
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    assert response.status_code == 200
    assert response.json() == {"upserted": 1}

    row = db.get(CallLog, "c1")
    assert row.assistant_id == "A1"
    assert row.from_number == "+1555"
    assert row.duration_seconds == 69
    assert row.start_time.replace(tzinfo=None) == datetime(2025, 8, 20, 16, 36, 17)
    assert row.end_time.replace(tzinfo=None) == datetime(2025, 8, 20, 16, 37, 26)
    assert row.created_at is not None
    assert fake_vapi.requests_to("/call") == []


def test_pull_sync_uses_calls_fallback(client, fake_vapi, db):
    fake_vapi.respond("/call", {"results": [{"id": "c9", "assistantId": "A1", "status": "ended"}]})
    response = client.get("/api/vapi/sync", params={"assistantId": "A1", "start": "2025-08-01T00:00:00Z"})
    assert response.json() == {"upserted": 1}
    assert len(fake_vapi.requests_to("/call")) == 1
    assert db.get(CallLog, "c9").status == "ended"


def test_repeated_sync_does_not_duplicate(client, fake_vapi, db):
    fake_vapi.respond("/logs", {"results": [{"callId": "c1"}, {"callId": "c2"}]})
    client.get("/api/vapi/sync", params={"assistantId": "A1"})
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    assert response.json() == {"upserted": 2}
    assert db.query(CallLog).count() == 2


def test_upstream_outage_reports_zero(client, fake_vapi, db):
    fake_vapi.fail("/logs")
    fake_vapi.fail("/call")
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    assert response.status_code == 200
    assert response.json() == {"upserted": 0}
    assert db.query(CallLog).count() == 0


def test_missing_assistant_id_is_a_client_error(client, fake_vapi):
    response = client.get("/api/vapi/sync")
    assert response.status_code == 400
    assert response.json() == {"error": "assistantId required"}
    assert fake_vapi.requests == []


def test_missing_api_key_is_a_server_error(client, fake_vapi, test_settings):
    test_settings.vapi_api_key = None
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    assert response.status_code == 500
    assert response.json() == {"error": "VAPI_API_KEY missing"}
    assert fake_vapi.requests == []


def test_invalid_window_is_rejected(client):
    response = client.get("/api/vapi/sync", params={"assistantId": "A1", "start": "last week"})
    assert response.status_code == 400
    assert "start" in response.json()["error"]


def test_unexpected_failure_returns_generic_error(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr("callsync.api.vapi.sync_assistant_calls", explode)
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}


def test_storage_failure_returns_store_error(client, fake_vapi, db, monkeypatch):
    def broken_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    fake_vapi.respond("/logs", {"results": [{"callId": "c1"}, {"callId": "c2"}]})
    monkeypatch.setattr(Session, "commit", broken_commit)
    response = client.get("/api/vapi/sync", params={"assistantId": "A1"})
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to store call records"}
    assert db.query(CallLog).count() == 0
