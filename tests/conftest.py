"""Shared pytest fixtures for the dualquery test suite.

These fixtures provide:
* A scripted httpx transport standing in for both provider endpoints
* Provider/app configs with short retry delays
* In-memory stand-ins for the conversation store and the two response panes
* Pre-wired clients, worker pool and DispatchCoordinator
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Dict, List, Optional

import httpx
import pytest

from dualquery.core.config.models import AppConfig, ProviderConfig, RetryConfig, StorageConfig
from dualquery.core.contracts.conversation import ConversationRecord
from dualquery.dispatch.coordinator import DispatchCoordinator
from dualquery.dispatch.pool import WorkerPool
from dualquery.providers.client import ChatProviderClient

PRIMARY_URL = "https://primary.test/v1/chat/completions"
SECONDARY_URL = "https://search.test/chat/completions"


def completion_body(content: str) -> Dict[str, Any]:
    """Minimal chat-completion response body."""
    return {
        "id": "cmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


def completion_payload(content: str) -> str:
    """Raw response text as a provider would send it."""
    return json.dumps(completion_body(content))


class ScriptedTransport(httpx.MockTransport):
    """
    Per-URL queue of canned replies. An entry is either an exception to raise or
    a (status, body) tuple; the last entry repeats once the queue is drained.
    """

    def __init__(self) -> None:
        self.scripts: Dict[str, List[Any]] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        super().__init__(self._handle)

    def script(self, url: str, *replies: Any, delay: float = 0.0) -> None:
        self.scripts[url] = list(replies)
        self.delays[url] = delay

    def calls_to(self, url: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [c for c in self.calls if c["url"] == url]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.calls.append(
                {
                    "url": url,
                    "at": time.monotonic(),
                    "headers": dict(request.headers),
                    "json": json.loads(request.content) if request.content else None,
                }
            )
            queue = self.scripts.get(url)
            if not queue:
                raise AssertionError(f"ScriptedTransport has no reply for {url}")
            reply = queue.pop(0) if len(queue) > 1 else queue[0]
        delay = self.delays.get(url, 0.0)
        if delay:
            time.sleep(delay)
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)


class MemoryStore:
    """Conversation store stand-in that keeps records in a list."""

    def __init__(self, accept: bool = True, error: Optional[Exception] = None) -> None:
        self.accept = accept
        self.error = error
        self.records: List[ConversationRecord] = []

    def save(self, record: ConversationRecord) -> bool:
        if self.error is not None:
            raise self.error
        if self.accept:
            self.records.append(record)
        return self.accept

    def list_recent(self, limit: int = 20) -> List[ConversationRecord]:
        return sorted(self.records, key=lambda r: r.timestamp, reverse=True)[:limit]

    def get_by_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        return next((r for r in self.records if r.id == conversation_id), None)


class RecordingSink:
    """Response pane stand-in that records every call."""

    def __init__(self) -> None:
        self.displayed: List[tuple] = []
        self.loading: List[bool] = []

    def display(self, query: str, text: str) -> None:
        self.displayed.append((query, text))

    def set_loading(self, loading: bool) -> None:
        self.loading.append(loading)


class RecordingEvent(threading.Event):
    """Cancellation token whose wait() returns at once and records the requested timeout."""

    def __init__(self, interrupt_on_wait: Optional[int] = None) -> None:
        super().__init__()
        self.waits: List[float] = []
        self.interrupt_on_wait = interrupt_on_wait

    def wait(self, timeout: Optional[float] = None) -> bool:
        self.waits.append(timeout)
        if self.interrupt_on_wait is not None and len(self.waits) >= self.interrupt_on_wait:
            self.set()
        return self.is_set()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def primary_config() -> ProviderConfig:
    return ProviderConfig(
        provider_id="primary",
        label="OpenAI",
        endpoint=PRIMARY_URL,
        model="gpt-test",
        credential_env="DQ_TEST_PRIMARY_KEY",
    )


@pytest.fixture
def secondary_config() -> ProviderConfig:
    return ProviderConfig(
        provider_id="search-augmented",
        label="Perplexity",
        endpoint=SECONDARY_URL,
        model="sonar-test",
        credential_env="DQ_TEST_SECONDARY_KEY",
        extra_body={"temperature": 0.7},
    )


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Same schedule shape as production (x2 backoff), 50 ms first delay."""
    return RetryConfig(max_attempts=3, initial_delay_ms=50, backoff_factor=2.0)


@pytest.fixture
def app_config(primary_config, secondary_config, fast_retry, tmp_path) -> AppConfig:
    return AppConfig(
        primary=primary_config,
        secondary=secondary_config,
        retry=fast_retry,
        storage=StorageConfig(
            history_path=str(tmp_path / "conversations.json"),
            credentials_path=str(tmp_path / "credentials.json"),
        ),
    )


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def primary_client(primary_config, fast_retry, transport):
    client = ChatProviderClient(primary_config, retry=fast_retry, api_key="sk-primary", transport=transport)
    yield client
    client.close()


@pytest.fixture
def secondary_client(secondary_config, fast_retry, transport):
    client = ChatProviderClient(secondary_config, retry=fast_retry, api_key="pplx-secondary", transport=transport)
    yield client
    client.close()


@pytest.fixture
def pool():
    worker_pool = WorkerPool(max_workers=2, shutdown_grace_seconds=1.0).start()
    yield worker_pool
    worker_pool.shutdown()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sinks():
    return RecordingSink(), RecordingSink()


@pytest.fixture
def coordinator(primary_client, secondary_client, pool, store, sinks) -> DispatchCoordinator:
    return DispatchCoordinator(primary_client, secondary_client, pool, store, sinks[0], sinks[1])
