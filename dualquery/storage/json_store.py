"""Local JSON-file storage for conversation history and provider credentials."""
from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError as SchemaError

from dualquery.core.contracts.conversation import ConversationRecord

log = logging.getLogger("storage")

EXPORT_LIMIT = 100


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning("could not read %s: %s", path, e)
        return default


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, path)


def export_records(path: str | Path, records: list[ConversationRecord]) -> bool:
    """Write records, in the given order, to a JSON array file."""
    try:
        _write_json(Path(path), [r.model_dump() for r in records])
    except (OSError, TypeError, ValueError) as e:
        log.warning("could not export conversations to %s: %s", path, e)
        return False
    log.info("exported %s conversation(s) to %s", len(records), path)
    return True


class JsonConversationStore:
    """Newest-first list of ConversationRecords in one JSON file, capped at max_records."""

    def __init__(self, path: str | Path, max_records: int = 200) -> None:
        self.path = Path(path)
        self.max_records = max_records
        self._lock = threading.Lock()

    def _load(self) -> list[dict[str, Any]]:
        raw = _read_json(self.path, [])
        return [item for item in raw if isinstance(item, dict)] if isinstance(raw, list) else []

    def save(self, record: ConversationRecord) -> bool:
        with self._lock:
            items = [i for i in self._load() if i.get("id") != record.id]
            items.append(record.model_dump())
            items.sort(key=lambda i: i.get("timestamp", 0), reverse=True)
            try:
                _write_json(self.path, items[: self.max_records])
            except (OSError, TypeError, ValueError) as e:
                log.warning("could not save conversation %s: %s", record.id, e)
                return False
        log.info("saved conversation %s", record.id)
        return True

    def _records(self) -> list[ConversationRecord]:
        out = []
        for item in self._load():
            try:
                out.append(ConversationRecord.model_validate(item))
            except SchemaError:
                continue
        return out

    def list_recent(self, limit: int = 20) -> list[ConversationRecord]:
        if limit <= 0:
            return []
        with self._lock:
            records = self._records()
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:limit]

    def get_by_id(self, conversation_id: str) -> ConversationRecord | None:
        with self._lock:
            for record in self._records():
                if record.id == conversation_id:
                    return record
        return None

    def export(self, path: str | Path, limit: int = EXPORT_LIMIT) -> bool:
        """Write the newest `limit` conversations to a separate JSON file."""
        return export_records(path, self.list_recent(limit))


class JsonCredentialStore:
    """Provider credentials in a JSON file, base64-encoded so they are not stored as plain text."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def set_credential(self, provider_id: str, secret: str) -> bool:
        with self._lock:
            data = _read_json(self.path, {})
            if not isinstance(data, dict):
                data = {}
            if secret:
                data[provider_id] = base64.b64encode(secret.encode("utf-8")).decode("ascii")
            else:
                data.pop(provider_id, None)
            try:
                _write_json(self.path, data)
            except OSError as e:
                log.warning("could not store credential for %s: %s", provider_id, e)
                return False
        log.info("stored credential for %s", provider_id)
        return True

    def get_credential(self, provider_id: str) -> str | None:
        with self._lock:
            data = _read_json(self.path, {})
        encoded = data.get(provider_id) if isinstance(data, dict) else None
        if not encoded:
            return None
        try:
            return base64.b64decode(encoded).decode("utf-8") or None
        except (binascii.Error, UnicodeDecodeError) as e:
            log.warning("stored credential for %s is unreadable: %s", provider_id, e)
            return None
