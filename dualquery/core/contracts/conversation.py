from __future__ import annotations

import time
import uuid
from enum import Enum

from pydantic import BaseModel, Field


class ValidationOutcome(str, Enum):
    OK = "ok"
    EMPTY_QUERY = "empty_query"
    MISSING_CREDENTIALS = "missing_credentials"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ConversationRecord(BaseModel):
    """One query and both provider answers, as handed to the conversation store."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    query: str
    primary_response: str = Field(min_length=1)
    secondary_response: str = Field(min_length=1)
    timestamp: int = Field(default_factory=_now_ms)  # epoch milliseconds
