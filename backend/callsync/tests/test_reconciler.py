import pytest

from callsync.core.errors import ConfigurationError, ValidationError
from callsync.services.reconciler import SourceReconciler
from callsync.services.vapi_client import VapiClient


def test_logs_are_used_when_they_contain_calls(fake_vapi, vapi_client):
    fake_vapi.respond("/logs", {"results": [{"callId": "c1"}, {"message": "no id"}]})
    batch = SourceReconciler(vapi_client).fetch("A1")
    assert batch.source == "logs"
    assert batch.payloads == [{"callId": "c1"}]
    assert fake_vapi.requests_to("/call") == []


def test_logs_query_parameters(fake_vapi, vapi_client):
    fake_vapi.respond("/logs", {"results": [{"id": "c1"}]})
    SourceReconciler(vapi_client, page_limit=50).fetch("A1", "2025-01-01T00:00:00Z", "2025-01-31T00:00:00Z")
    request = fake_vapi.requests_to("/logs")[0]
    assert request.headers["Authorization"] == "Bearer test-key"
    params = request.url.params
    assert params["type"] == "Call"
    assert params["assistantId"] == "A1"
    assert params["limit"] == "50"
    assert params["sortOrder"] == "DESC"
    assert params["createdAtGe"] == "2025-01-01T00:00:00Z"
    assert params["createdAtLe"] == "2025-01-31T00:00:00Z"


def test_falls_back_to_calls_once_when_logs_have_no_calls(fake_vapi, vapi_client):
    fake_vapi.respond("/logs", {"results": [{"message": "assistant updated"}]})
    fake_vapi.respond("/call", {"results": [{"id": "c2"}, {"callId": "no-generic-id"}]})
    batch = SourceReconciler(vapi_client).fetch("A1", start="2025-01-01T00:00:00Z")
    assert batch.source == "calls"
    assert batch.payloads == [{"id": "c2"}]
    calls_requests = fake_vapi.requests_to("/call")
    assert len(calls_requests) == 1
    assert calls_requests[0].url.params["createdAtGe"] == "2025-01-01T00:00:00Z"
    assert "sortOrder" not in calls_requests[0].url.params


def test_calls_endpoint_may_return_a_bare_list(fake_vapi, vapi_client):
    fake_vapi.respond("/call", [{"id": "c3"}])
    batch = SourceReconciler(vapi_client).fetch("A1")
    assert batch.payloads == [{"id": "c3"}]


def test_failed_logs_request_triggers_fallback(fake_vapi, vapi_client):
    fake_vapi.respond("/logs", {"message": "internal"}, status_code=500)
    fake_vapi.respond("/call", [{"id": "c4"}])
    batch = SourceReconciler(vapi_client).fetch("A1")
    assert batch.source == "calls"
    assert len(fake_vapi.requests_to("/call")) == 1


def test_both_sources_failing_gives_empty_batch(fake_vapi, vapi_client):
    fake_vapi.fail("/logs")
    fake_vapi.respond("/call", {"message": "down"}, status_code=503)
    batch = SourceReconciler(vapi_client).fetch("A1")
    assert batch.source is None
    assert batch.payloads == []


def test_missing_assistant_id_is_rejected(fake_vapi, vapi_client):
    with pytest.raises(ValidationError):
        SourceReconciler(vapi_client).fetch(None)
    assert fake_vapi.requests == []


def test_missing_api_key_short_circuits(fake_vapi):
    client = VapiClient(api_key=None, base_url="https://vapi.test", transport=fake_vapi.transport)
    with pytest.raises(ConfigurationError):
        SourceReconciler(client).fetch("A1")
    assert fake_vapi.requests == []


def test_rejected_api_key_short_circuits(fake_vapi, vapi_client):
    fake_vapi.respond("/logs", {"message": "Unauthorized"}, status_code=401)
    with pytest.raises(ConfigurationError):
        SourceReconciler(vapi_client).fetch("A1")
    assert fake_vapi.requests_to("/call") == []


def test_full_page_is_logged_as_truncated(fake_vapi, vapi_client, caplog):
    fake_vapi.respond("/logs", {"results": [{"id": f"c{n}"} for n in range(3)]})
    with caplog.at_level("WARNING", logger="callsync.services.reconciler"):
        batch = SourceReconciler(vapi_client, page_limit=3).fetch("A1")
    assert len(batch.payloads) == 3
    assert "full page" in caplog.text
