from dualquery.core.config.loader import load_app_config
from dualquery.core.config.models import AppConfig, ProviderConfig, RetryConfig, StorageConfig, WorkerPoolConfig
from dualquery.core.config.env import get_env_vars

__all__ = [
    "load_app_config",
    "AppConfig",
    "ProviderConfig",
    "RetryConfig",
    "StorageConfig",
    "WorkerPoolConfig",
    "get_env_vars",
]
