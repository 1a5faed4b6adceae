from __future__ import annotations

import threading
from typing import Protocol

from dualquery.core.contracts.gateway import PaneState


class ResponseSink(Protocol):
    def display(self, query: str, text: str) -> None: ...

    def set_loading(self, loading: bool) -> None: ...


class ResponsePane:
    """In-memory response slot for one provider: last query/answer and a loading flag."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        self._lock = threading.Lock()
        self._loading = False
        self._query: str | None = None
        self._text: str | None = None

    def display(self, query: str, text: str) -> None:
        with self._lock:
            self._query = query
            self._text = text

    def set_loading(self, loading: bool) -> None:
        with self._lock:
            self._loading = loading

    def state(self) -> PaneState:
        with self._lock:
            return PaneState(provider_id=self.provider_id, loading=self._loading, query=self._query, text=self._text)
