from __future__ import annotations

import logging
import os
from pathlib import Path

from dualquery.core.config.models import StorageConfig
from dualquery.storage.base import ConversationStore
from dualquery.storage.json_store import JsonConversationStore, JsonCredentialStore
from dualquery.storage.postgres import PostgresConversationStore, get_app_db_url

log = logging.getLogger("storage")


def _resolve(root: Path, path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else root / p


def build_conversation_store(
    storage: StorageConfig,
    env: dict[str, str] | None = None,
    project_root: Path | None = None,
) -> ConversationStore:
    """Postgres when configured and its URL is set; otherwise the local JSON file."""
    root = project_root or Path.cwd()
    env = env if env is not None else dict(os.environ)
    if storage.engine == "postgres":
        try:
            url = get_app_db_url(env, storage.connection_id or "POSTGRES_APP_URL")
        except ValueError as e:
            log.warning("postgres storage unavailable (%s), using local JSON history", e)
        else:
            return PostgresConversationStore(url)
    elif storage.engine != "json":
        log.warning("unknown storage engine %r, using local JSON history", storage.engine)
    return JsonConversationStore(_resolve(root, storage.history_path), max_records=storage.max_records)


def build_credential_store(storage: StorageConfig, project_root: Path | None = None) -> JsonCredentialStore:
    root = project_root or Path.cwd()
    return JsonCredentialStore(_resolve(root, storage.credentials_path))
