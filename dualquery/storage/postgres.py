"""Conversation history in app Postgres (table app.conversations, see migrations/versions)."""
from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any

import asyncpg
from pydantic import ValidationError as SchemaError

from dualquery.core.contracts.conversation import ConversationRecord
from dualquery.storage.json_store import EXPORT_LIMIT, export_records

log = logging.getLogger("storage")

_TRANSIENT = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def get_app_db_url(env: dict[str, str], connection_id: str = "POSTGRES_APP_URL") -> str:
    url = env.get(connection_id)
    if not url:
        raise ValueError(f"{connection_id} not set")
    return url.replace("postgresql+asyncpg://", "postgresql://")


def _row_to_record(row: Any) -> ConversationRecord | None:
    """None for rows that no longer satisfy ConversationRecord (e.g. an empty response)."""
    try:
        return ConversationRecord(
            id=str(row["id"]),
            query=row["query"],
            primary_response=row["primary_response"],
            secondary_response=row["secondary_response"],
            timestamp=row["created_at_ms"],
        )
    except SchemaError as e:
        log.warning("skipping invalid conversation row %s: %s", row["id"], e.errors()[0]["msg"])
        return None


class PostgresConversationStore:
    """
    Sync facade over asyncpg. Each call opens its own connection and runs on a
    fresh event loop, so it is safe to call from worker threads.
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url.replace("postgresql+asyncpg://", "postgresql://")
        self.timeout = timeout

    async def _save(self, conversation_id: uuid.UUID, record: ConversationRecord) -> None:
        conn = await asyncpg.connect(self.url, timeout=self.timeout)
        try:
            await conn.execute(
                """
                INSERT INTO app.conversations (id, query, primary_response, secondary_response, created_at_ms)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (id) DO NOTHING
                """,
                conversation_id,
                record.query,
                record.primary_response,
                record.secondary_response,
                record.timestamp,
            )
        finally:
            await conn.close()

    async def _fetch_recent(self, limit: int) -> list[ConversationRecord]:
        conn = await asyncpg.connect(self.url, timeout=self.timeout)
        try:
            rows = await conn.fetch(
                """
                SELECT id, query, primary_response, secondary_response, created_at_ms
                FROM app.conversations ORDER BY created_at_ms DESC LIMIT $1
                """,
                limit,
            )
        finally:
            await conn.close()
        return [r for r in map(_row_to_record, rows) if r is not None]

    async def _fetch_one(self, conversation_id: uuid.UUID) -> ConversationRecord | None:
        conn = await asyncpg.connect(self.url, timeout=self.timeout)
        try:
            row = await conn.fetchrow(
                """
                SELECT id, query, primary_response, secondary_response, created_at_ms
                FROM app.conversations WHERE id = $1
                """,
                conversation_id,
            )
        finally:
            await conn.close()
        return _row_to_record(row) if row else None

    def save(self, record: ConversationRecord) -> bool:
        try:
            conversation_id = uuid.UUID(record.id)
        except ValueError:
            log.warning("could not save conversation %s: id is not a UUID", record.id)
            return False
        try:
            asyncio.run(self._save(conversation_id, record))
        except _TRANSIENT as e:
            log.warning("could not save conversation %s: %s", record.id, e)
            return False
        log.info("saved conversation %s", record.id)
        return True

    def list_recent(self, limit: int = 20) -> list[ConversationRecord]:
        if limit <= 0:
            return []
        try:
            return asyncio.run(self._fetch_recent(limit))
        except _TRANSIENT as e:
            log.warning("could not load history: %s", e)
            return []

    def get_by_id(self, conversation_id: str) -> ConversationRecord | None:
        try:
            cid = uuid.UUID(conversation_id)
        except ValueError:
            return None
        try:
            return asyncio.run(self._fetch_one(cid))
        except _TRANSIENT as e:
            log.warning("could not load conversation %s: %s", conversation_id, e)
            return None

    def export(self, path: str | Path, limit: int = EXPORT_LIMIT) -> bool:
        """Write the newest `limit` conversations to a JSON file. False if the database or file is unavailable."""
        try:
            records = asyncio.run(self._fetch_recent(limit))
        except _TRANSIENT as e:
            log.warning("could not load history for export: %s", e)
            return False
        return export_records(path, records)
