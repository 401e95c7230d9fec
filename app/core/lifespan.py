import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.modules.gateway.upstream import UpstreamClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    policy = settings.policy()
    if not policy.allowlist:
        logger.warning("ALLOWLIST is empty: every HTTPS host is an allowed fetch target")
    else:
        logger.info("Fetch allowlist: %s", ", ".join(policy.allowlist))

    logger.info("🔌 Opening upstream HTTP session (max_connections=%s)...", settings.UPSTREAM_MAX_CONNECTIONS)
    app.state.upstream = UpstreamClient.create(max_connections=settings.UPSTREAM_MAX_CONNECTIONS)

    yield

    # Shutdown
    logger.info("🛑 Closing upstream HTTP session...")
    await app.state.upstream.close()
