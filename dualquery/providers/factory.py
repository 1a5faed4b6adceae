from __future__ import annotations

import logging
import os

import httpx

from dualquery.core.config.models import AppConfig, ProviderConfig
from dualquery.providers.client import ChatProviderClient
from dualquery.storage.base import CredentialStore

log = logging.getLogger("provider")


def resolve_credential(provider: ProviderConfig, credential_store: CredentialStore | None, env: dict[str, str] | None = None) -> str | None:
    """Stored credential first, then the env var named by the provider config."""
    if credential_store is not None:
        secret = credential_store.get_credential(provider.provider_id)
        if secret:
            return secret
    env = env if env is not None else dict(os.environ)
    return env.get(provider.credential_env) or None


def build_provider_clients(
    config: AppConfig,
    credential_store: CredentialStore | None = None,
    env: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> tuple[ChatProviderClient, ChatProviderClient]:
    """Build (primary, secondary) clients from config, with credentials already applied."""
    clients = []
    for provider in config.providers:
        api_key = resolve_credential(provider, credential_store, env)
        if not api_key:
            log.warning("%s: no credential in store or %s", provider.provider_id, provider.credential_env)
        clients.append(ChatProviderClient(provider, retry=config.retry, api_key=api_key, transport=transport))
    return clients[0], clients[1]
