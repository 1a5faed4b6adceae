from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

PLAIN_TEXT_INSTRUCTION = (
    "Be precise and concise. Do not use LaTeX, markdown formatting, or symbols like [1][2] for references. "
    "Use plain, conversational language as if speaking directly to a person. "
    "Format information clearly with regular bullet points for lists. "
    "Use everyday language and avoid academic or technical jargon when possible. "
    "Return only the actual answer content, without any metadata, json, or citations. "
    "Do not use any markdown formatting, especially no asterisks (**) for bold text. "
    "Do not include any special Unicode characters like \\u2022."
)


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    initial_delay_ms: int = Field(default=1000, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)

    def delays_seconds(self) -> list[float]:
        """Backoff waits between attempts, in seconds (one fewer than max_attempts)."""
        delay = self.initial_delay_ms / 1000
        out = []
        for _ in range(self.max_attempts - 1):
            out.append(delay)
            delay *= self.backoff_factor
        return out


class ProviderConfig(BaseModel):
    provider_id: str  # "primary" | "search-augmented"
    label: str
    endpoint: str
    model: str
    credential_env: str  # env var name holding the API key
    system_prompt: str | None = PLAIN_TEXT_INSTRUCTION
    extra_body: dict[str, Any] = Field(default_factory=dict)
    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 30.0


class StorageConfig(BaseModel):
    engine: str = "json"  # "json" | "postgres"
    history_path: str = "data/conversations.json"
    credentials_path: str = "data/credentials.json"
    connection_id: str | None = None  # env var name, postgres only
    max_records: int = 200


class WorkerPoolConfig(BaseModel):
    max_workers: int = Field(default=2, ge=2)
    shutdown_grace_seconds: float = 5.0


class AppConfig(BaseModel):
    app_name: str = "dual-query"
    env_file_path: str | None = None
    primary: ProviderConfig
    secondary: ProviderConfig
    retry: RetryConfig = Field(default_factory=RetryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    workers: WorkerPoolConfig = Field(default_factory=WorkerPoolConfig)

    @property
    def providers(self) -> list[ProviderConfig]:
        return [self.primary, self.secondary]

    def get_provider(self, provider_id: str) -> ProviderConfig | None:
        for p in self.providers:
            if p.provider_id == provider_id:
                return p
        return None
