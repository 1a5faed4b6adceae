import json
import os
from pathlib import Path

from dualquery.core.config.env import load_env_from_path
from dualquery.core.config.models import AppConfig
from dualquery.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/app.json"


def resolve_config_path() -> str:
    return os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)


def load_app_config(config_path: str | Path | None = None, project_root: Path | None = None) -> AppConfig:
    root = project_root or Path.cwd()
    path = Path(config_path or resolve_config_path())
    if not path.is_absolute():
        path = root / path
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    try:
        config = AppConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    load_env_from_path(config.env_file_path, root)
    return config
