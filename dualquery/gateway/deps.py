from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import httpx

from dualquery.core.config.models import AppConfig
from dualquery.dispatch.coordinator import DispatchCoordinator
from dualquery.dispatch.panes import ResponsePane
from dualquery.dispatch.pool import WorkerPool
from dualquery.providers.client import ChatProviderClient
from dualquery.providers.factory import build_provider_clients
from dualquery.storage.base import ConversationStore, CredentialStore
from dualquery.storage.factory import build_conversation_store, build_credential_store


@dataclass
class Runtime:
    """Everything the gateway owns between startup and shutdown."""

    config: AppConfig
    coordinator: DispatchCoordinator
    credential_store: CredentialStore
    panes: tuple[ResponsePane, ResponsePane]

    @property
    def pool(self) -> WorkerPool:
        return self.coordinator.pool

    @property
    def store(self) -> ConversationStore:
        return self.coordinator.store

    def client(self, provider_id: str) -> ChatProviderClient | None:
        for c in (self.coordinator.primary, self.coordinator.secondary):
            if c.provider_id == provider_id:
                return c
        return None

    def start(self) -> None:
        self.pool.start()

    def close(self) -> bool:
        drained = self.pool.shutdown()
        self.coordinator.primary.close()
        self.coordinator.secondary.close()
        return drained


def build_runtime(
    config: AppConfig,
    project_root: Path | None = None,
    env: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
    conversation_store: ConversationStore | None = None,
    credential_store: CredentialStore | None = None,
) -> Runtime:
    env = env if env is not None else dict(os.environ)
    credential_store = credential_store or build_credential_store(config.storage, project_root)
    conversation_store = conversation_store or build_conversation_store(config.storage, env, project_root)
    primary, secondary = build_provider_clients(config, credential_store, env, transport=transport)
    pool = WorkerPool(
        max_workers=config.workers.max_workers,
        shutdown_grace_seconds=config.workers.shutdown_grace_seconds,
    )
    panes = (ResponsePane(primary.provider_id), ResponsePane(secondary.provider_id))
    coordinator = DispatchCoordinator(primary, secondary, pool, conversation_store, panes[0], panes[1])
    return Runtime(config=config, coordinator=coordinator, credential_store=credential_store, panes=panes)
