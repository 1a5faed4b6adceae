from __future__ import annotations

from pathlib import Path
from typing import Protocol

from dualquery.core.contracts.conversation import ConversationRecord


class ConversationStore(Protocol):
    """Persistence for finished conversations. Implementations report failures as False/empty."""

    def save(self, record: ConversationRecord) -> bool: ...

    def list_recent(self, limit: int = 20) -> list[ConversationRecord]: ...

    def get_by_id(self, conversation_id: str) -> ConversationRecord | None: ...

    def export(self, path: str | Path, limit: int = 100) -> bool: ...


class CredentialStore(Protocol):
    def set_credential(self, provider_id: str, secret: str) -> bool: ...

    def get_credential(self, provider_id: str) -> str | None: ...
