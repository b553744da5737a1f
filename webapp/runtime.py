"""Shared runtime singletons for web/CLI entrypoints."""

from __future__ import annotations

from typing import List

from config import get_cache_settings
from orchestrator.service import RefreshService, get_default_service


def get_service() -> RefreshService:
    return get_default_service()


def get_auth_tokens() -> List[str]:
    """Bearer tokens accepted by the trigger endpoint."""
    settings = get_cache_settings()
    return [token for token in (settings.service_role_key, settings.worker_auth_token) if token]
