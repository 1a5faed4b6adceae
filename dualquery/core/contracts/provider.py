from __future__ import annotations

from pydantic import BaseModel


class ProviderResult(BaseModel):
    provider_id: str
    status: str  # "success" | "failed"
    text: str  # answer text, or the failure reason
    attempts: int = 0
    latency_ms: int | None = None

    @classmethod
    def success(cls, provider_id: str, text: str, latency_ms: int | None = None) -> "ProviderResult":
        return cls(provider_id=provider_id, status="success", text=text, attempts=1, latency_ms=latency_ms)

    @classmethod
    def failure(cls, provider_id: str, reason: str, latency_ms: int | None = None, attempts: int = 1) -> "ProviderResult":
        return cls(provider_id=provider_id, status="failed", text=reason, attempts=attempts, latency_ms=latency_ms)

    @property
    def ok(self) -> bool:
        return self.status == "success"
