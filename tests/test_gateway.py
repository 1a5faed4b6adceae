"""Integration tests for the gateway app through FastAPI's TestClient (providers mocked)."""

import pytest
from fastapi.testclient import TestClient

from dualquery.gateway import main
from dualquery.gateway.deps import build_runtime
from dualquery.storage.json_store import JsonConversationStore, JsonCredentialStore

from conftest import PRIMARY_URL, SECONDARY_URL, completion_body


@pytest.fixture
def runtime(app_config, transport, tmp_path):
    env = {"DQ_TEST_PRIMARY_KEY": "sk-primary", "DQ_TEST_SECONDARY_KEY": "pplx-secondary"}
    return build_runtime(
        app_config,
        project_root=tmp_path,
        env=env,
        transport=transport,
        conversation_store=JsonConversationStore(tmp_path / "conversations.json"),
        credential_store=JsonCredentialStore(tmp_path / "credentials.json"),
    )


@pytest.fixture
def client(runtime, monkeypatch):
    monkeypatch.setattr(main, "RUNTIME", runtime)
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.mark.integration
def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.integration
def test_query_returns_both_answers_and_is_kept_in_history(client, transport):
    transport.script(PRIMARY_URL, (200, completion_body("## Answer\nParis")))
    transport.script(SECONDARY_URL, (200, completion_body("Paris, France.")))

    r = client.post("/query", json={"query": "Capital of France?"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "completed"
    assert body["primary_response"] == "Answer\nParis"
    assert body["secondary_response"] == "Paris, France."

    history = client.get("/conversations").json()
    assert [h["id"] for h in history] == [body["conversation_id"]]
    one = client.get(f"/conversations/{body['conversation_id']}").json()
    assert one["query"] == "Capital of France?"

    panes = client.get("/panes").json()
    assert [p["text"] for p in panes] == ["Answer\nParis", "Paris, France."]
    assert not any(p["loading"] for p in panes)


@pytest.mark.integration
def test_partial_failure_is_reported(client, transport):
    transport.script(PRIMARY_URL, (500, "down"))
    transport.script(SECONDARY_URL, (200, completion_body("ok")))
    body = client.post("/query", json={"query": "q"}).json()
    assert body["status"] == "partial"
    assert body["primary_response"] == "API Error: down"


@pytest.mark.integration
def test_blank_query_is_400(client, transport):
    r = client.post("/query", json={"query": "  "})
    assert r.status_code == 400
    assert r.json()["detail"] == "Please enter a query."
    assert transport.calls == []


@pytest.mark.integration
def test_unknown_conversation_is_404(client):
    assert client.get("/conversations/does-not-exist").status_code == 404


@pytest.mark.integration
def test_history_limit_is_bounded(client):
    assert client.get("/conversations", params={"limit": 0}).status_code == 422
    assert client.get("/conversations", params={"limit": 201}).status_code == 422


@pytest.mark.integration
def test_clearing_a_credential_blocks_queries(client, transport, runtime):
    r = client.put("/credentials/primary", json={"secret": ""})
    assert r.status_code == 200
    assert r.json() == {"provider_id": "primary", "stored": True, "has_credential": False}

    r = client.post("/query", json={"query": "hello"})
    assert r.status_code == 400
    assert r.json()["detail"] == "API keys are not configured. Please set them in settings."
    assert transport.calls == []


@pytest.mark.integration
def test_credential_update_is_stored_and_used(client, transport, runtime):
    r = client.put("/credentials/search-augmented", json={"secret": "pplx-new"})
    assert r.json()["has_credential"] is True
    assert runtime.credential_store.get_credential("search-augmented") == "pplx-new"

    transport.script(PRIMARY_URL, (200, completion_body("a")))
    transport.script(SECONDARY_URL, (200, completion_body("b")))
    client.post("/query", json={"query": "q"})
    assert transport.calls_to(SECONDARY_URL)[-1]["headers"]["authorization"] == "Bearer pplx-new"


@pytest.mark.integration
def test_unknown_provider_credential_is_404(client):
    assert client.put("/credentials/nobody", json={"secret": "x"}).status_code == 404
