"""Reusable dependency providers for FastAPI routes."""

from functools import lru_cache

from fastapi import Request

from app.core.config import settings
from app.modules.gateway.policy import PolicyConfig
from app.modules.gateway.upstream import UpstreamClient


@lru_cache(maxsize=1)
def _create_policy() -> PolicyConfig:
    return settings.policy()


def get_policy() -> PolicyConfig:
    """FastAPI dependency that returns the process-wide fetch policy."""
    return _create_policy()


def get_upstream_client(request: Request) -> UpstreamClient:
    """FastAPI dependency that returns the shared upstream client opened in the lifespan."""
    client = getattr(request.app.state, "upstream", None)
    if client is None:
        raise RuntimeError("Upstream client is not initialized")
    return client
