from __future__ import annotations


class ConfigError(Exception):
    """Raised when config loading or validation fails."""


class ValidationError(Exception):
    """Raised when a query is rejected before any provider is called."""

    def __init__(self, outcome, message: str) -> None:
        super().__init__(message)
        self.outcome = outcome


class TransportError(Exception):
    """Raised when a provider cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, body: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class ParseError(Exception):
    """Raised when a provider payload does not have the expected shape."""


class CallInterrupted(Exception):
    """Raised when a retry backoff is interrupted."""
