from dualquery.core.config.loader import load_app_config
from dualquery.core.config.models import AppConfig, ProviderConfig, RetryConfig, StorageConfig, WorkerPoolConfig
from dualquery.core.exceptions import ConfigError, ValidationError, TransportError, ParseError, CallInterrupted

__all__ = [
    "load_app_config",
    "AppConfig",
    "ProviderConfig",
    "RetryConfig",
    "StorageConfig",
    "WorkerPoolConfig",
    "ConfigError",
    "ValidationError",
    "TransportError",
    "ParseError",
    "CallInterrupted",
]
