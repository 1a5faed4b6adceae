"""Chat-completion provider client: request construction, one HTTP call, retry with backoff."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any

import httpx

from dualquery.core.config.models import ProviderConfig, RetryConfig
from dualquery.core.contracts.provider import ProviderResult
from dualquery.core.exceptions import CallInterrupted, TransportError
from dualquery.core.text import preview
from dualquery.providers.normalizer import normalize

log = logging.getLogger("provider")


class ChatProviderClient:
    """
    One provider endpoint. Both providers use this class; they differ only in
    their ProviderConfig (endpoint, model, system prompt, extra body fields).

    The credential is read once at the start of each call, so set_credential
    takes effect on the next call without disturbing one in flight.
    """

    def __init__(
        self,
        config: ProviderConfig,
        retry: RetryConfig | None = None,
        api_key: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.retry = retry or RetryConfig()
        self._api_key = api_key or ""
        self._client = httpx.Client(
            timeout=httpx.Timeout(config.read_timeout_seconds, connect=config.connect_timeout_seconds),
            transport=transport,
        )

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    @property
    def label(self) -> str:
        return self.config.label

    def set_credential(self, secret: str | None) -> None:
        self._api_key = secret or ""

    def has_credential(self) -> bool:
        return bool(self._api_key)

    def build_payload(self, query: str) -> dict[str, Any]:
        messages = []
        if self.config.system_prompt:
            messages.append({"role": "system", "content": self.config.system_prompt})
        messages.append({"role": "user", "content": query})
        return {"model": self.config.model, "messages": messages, **self.config.extra_body}

    def _send(self, payload: dict[str, Any], api_key: str) -> str:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        try:
            r = self._client.post(self.config.endpoint, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e
        except Exception as e:
            # request building fails too, e.g. a non-ASCII character in the credential header
            raise TransportError(f"request failed: {str(e) or type(e).__name__}") from e
        if not r.is_success:
            body = r.text.strip()
            raise TransportError(
                f"HTTP {r.status_code} {r.reason_phrase}".strip(),
                body=body or None,
                status_code=r.status_code,
            )
        return r.text

    def call_once(self, query: str) -> ProviderResult:
        api_key = self._api_key
        payload = self.build_payload(query)
        log.info("→ %s: %s", self.provider_id, preview(query))
        start = time.perf_counter()
        try:
            raw = self._send(payload, api_key)
        except TransportError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            reason = f"API Error: {e.body}" if e.body else str(e)
            log.warning("← %s: failed %s (%s ms)", self.provider_id, preview(reason, 150), latency_ms)
            return ProviderResult.failure(self.provider_id, reason, latency_ms)
        latency_ms = int((time.perf_counter() - start) * 1000)
        text = normalize(raw)
        log.info("← %s: %s (%s ms)", self.provider_id, preview(text, 150), latency_ms)
        return ProviderResult.success(self.provider_id, text, latency_ms)

    def call_with_retry(self, query: str, cancel: threading.Event | None = None) -> ProviderResult:
        """
        Call the provider up to retry.max_attempts times, waiting between failed
        attempts. Setting `cancel` during a wait ends the loop with a failure.
        """
        if not self.has_credential():
            log.warning("%s: no API key, skipping call", self.provider_id)
            return ProviderResult.failure(
                self.provider_id,
                f"API key not set. Please configure your {self.label} API key in settings.",
                attempts=0,
            )
        cancel = cancel or threading.Event()
        delays = self.retry.delays_seconds()
        attempt = 0
        while True:
            attempt += 1
            result = self.call_once(query)
            if result.ok or attempt >= self.retry.max_attempts:
                return result.model_copy(update={"attempts": attempt})
            delay = delays[attempt - 1]
            log.warning(
                "%s call failed, retrying in %.1f seconds... (%s/%s)",
                self.provider_id,
                delay,
                attempt,
                self.retry.max_attempts,
            )
            try:
                self._backoff(delay, cancel)
            except CallInterrupted as e:
                log.warning("%s: %s", self.provider_id, e)
                return ProviderResult.failure(
                    self.provider_id,
                    f"call interrupted: {result.text}",
                    result.latency_ms,
                    attempts=attempt,
                )

    @staticmethod
    def _backoff(delay: float, cancel: threading.Event) -> None:
        # The token is left set so later checks in the same task still see it.
        if cancel.wait(delay):
            raise CallInterrupted("interrupted during retry backoff")

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ChatProviderClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()
