"""Send one query to both providers at once and join the answers into a ConversationRecord."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable

from dualquery.core.contracts.conversation import ConversationRecord, ValidationOutcome
from dualquery.core.contracts.provider import ProviderResult
from dualquery.core.exceptions import ValidationError
from dualquery.core.text import preview
from dualquery.dispatch.panes import ResponsePane, ResponseSink
from dualquery.dispatch.pool import WorkerPool
from dualquery.providers.client import ChatProviderClient
from dualquery.storage.base import ConversationStore

log = logging.getLogger("dispatch")

EMPTY_RESPONSE = "(empty response)"

VALIDATION_MESSAGES = {
    ValidationOutcome.EMPTY_QUERY: "Please enter a query.",
    ValidationOutcome.MISSING_CREDENTIALS: "API keys are not configured. Please set them in settings.",
}


class PendingConversation:
    """Handle for one dispatched query. result() blocks until both providers have settled."""

    def __init__(self, query: str, pool: WorkerPool) -> None:
        self.query = query
        self.future: Future = Future()
        self.primary: ProviderResult | None = None
        self.secondary: ProviderResult | None = None
        self._pool = pool
        self._calls: dict[str, Future] = {}

    def result(self, timeout: float | None = None) -> ConversationRecord:
        return self.future.result(timeout)

    def done(self) -> bool:
        return self.future.done()

    def interrupt(self, provider_id: str) -> bool:
        """Interrupt one provider's retry backoff; the other provider keeps running."""
        call = self._calls.get(provider_id)
        return call is not None and self._pool.interrupt(call)

    @property
    def status(self) -> str | None:
        if self.primary is None or self.secondary is None:
            return None
        succeeded = int(self.primary.ok) + int(self.secondary.ok)
        return {2: "completed", 1: "partial", 0: "failed"}[succeeded]


class DispatchCoordinator:
    def __init__(
        self,
        primary: ChatProviderClient,
        secondary: ChatProviderClient,
        pool: WorkerPool,
        store: ConversationStore,
        primary_sink: ResponseSink | None = None,
        secondary_sink: ResponseSink | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.pool = pool
        self.store = store
        self.primary_sink = primary_sink or ResponsePane(primary.provider_id)
        self.secondary_sink = secondary_sink or ResponsePane(secondary.provider_id)

    @property
    def sinks(self) -> tuple[ResponseSink, ResponseSink]:
        return self.primary_sink, self.secondary_sink

    def validate(self, query: str | None) -> ValidationOutcome:
        if not query or not query.strip():
            return ValidationOutcome.EMPTY_QUERY
        if not (self.primary.has_credential() and self.secondary.has_credential()):
            return ValidationOutcome.MISSING_CREDENTIALS
        return ValidationOutcome.OK

    def submit(self, query: str, timeout: float | None = None) -> ConversationRecord:
        return self.dispatch(query).result(timeout)

    def dispatch(self, query: str) -> PendingConversation:
        """Start both provider calls and return immediately."""
        outcome = self.validate(query)
        if outcome is not ValidationOutcome.OK:
            log.info("REJECTED (%s)", outcome.value)
            raise ValidationError(outcome, VALIDATION_MESSAGES[outcome])
        query = query.strip()
        log.info("QUERY: %s", preview(query, 200))

        pending = PendingConversation(query, self.pool)
        for sink in self.sinks:
            sink.set_loading(True)
        primary_call = None
        try:
            primary_call = self.pool.submit(self._task(self.primary, query))
            secondary_call = self.pool.submit(self._task(self.secondary, query))
        except RuntimeError:
            if primary_call is not None:
                self.pool.interrupt(primary_call)
            self._release()
            raise
        pending._calls = {self.primary.provider_id: primary_call, self.secondary.provider_id: secondary_call}

        remaining = 2
        lock = threading.Lock()

        def settled(_: Future) -> None:
            nonlocal remaining
            with lock:
                remaining -= 1
                last = remaining == 0
            if last:
                self._join(pending, primary_call, secondary_call)

        primary_call.add_done_callback(settled)
        secondary_call.add_done_callback(settled)
        return pending

    def _task(self, client: ChatProviderClient, query: str) -> Callable:
        def run(cancel: threading.Event) -> ProviderResult:
            try:
                return client.call_with_retry(query, cancel)
            except Exception as e:
                log.exception("%s call raised", client.provider_id)
                return ProviderResult.failure(client.provider_id, f"Error calling {client.label} API: {e}", attempts=0)

        return run

    @staticmethod
    def _outcome(client: ChatProviderClient, call: Future) -> ProviderResult:
        if call.cancelled():
            return ProviderResult.failure(client.provider_id, "call interrupted: worker pool shut down", attempts=0)
        exc = call.exception()
        if exc is not None:
            return ProviderResult.failure(client.provider_id, f"Error calling {client.label} API: {exc}", attempts=0)
        return call.result()

    @staticmethod
    def _response_text(result: ProviderResult) -> str:
        return result.text if result.text.strip() else EMPTY_RESPONSE

    def _join(self, pending: PendingConversation, primary_call: Future, secondary_call: Future) -> None:
        record: ConversationRecord | None = None
        error: Exception | None = None
        try:
            pending.primary = self._outcome(self.primary, primary_call)
            pending.secondary = self._outcome(self.secondary, secondary_call)
            record = ConversationRecord(
                query=pending.query,
                primary_response=self._response_text(pending.primary),
                secondary_response=self._response_text(pending.secondary),
            )
            self.primary_sink.display(record.query, record.primary_response)
            self.secondary_sink.display(record.query, record.secondary_response)
            if not self.store.save(record):
                log.warning("conversation %s was not persisted", record.id)
            log.info("JOINED %s: %s", record.id, pending.status)
        except Exception as e:
            log.exception("join failed")
            error = e
        finally:
            self._release()
        if error is not None:
            pending.future.set_exception(error)
        else:
            pending.future.set_result(record)

    def _release(self) -> None:
        for sink in self.sinks:
            try:
                sink.set_loading(False)
            except Exception:
                log.exception("could not reset loading state")
