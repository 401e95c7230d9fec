import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.core.config import settings
from app.core.dependencies import get_policy, get_upstream_client

from .errors import GatewayError, UnsupportedContentType, UpstreamTransportFailure
from .policy import PolicyConfig
from .service import build_target, open_download, resolve
from .upstream import UpstreamClient

router = APIRouter()
logger = logging.getLogger(__name__)

RESOLVE_FAILED = "Resolve failed"
DOWNLOAD_FAILED = "Download proxy failed"


@router.get("/resolve", summary="Describe a remote resource without downloading it")
async def resolve_url(
    url: Optional[str] = None,
    policy: PolicyConfig = Depends(get_policy),
    client: UpstreamClient = Depends(get_upstream_client),
) -> JSONResponse:
    target = build_target(url, policy)
    try:
        result = await resolve(target, client, policy)
    except UpstreamTransportFailure as exc:
        logger.error("Resolve failed for url=%s: %s", target.url, exc.detail)
        raise UpstreamTransportFailure(RESOLVE_FAILED, detail=exc.detail) from exc
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("Resolve failed for url=%s", target.url)
        raise UpstreamTransportFailure(RESOLVE_FAILED, detail=repr(exc)) from exc

    status_code = 200 if result.ok else UnsupportedContentType.status_code
    return JSONResponse(status_code=status_code, content=result.model_dump())


@router.get("/download", summary="Stream a remote resource back as an attachment")
async def download_url(
    url: Optional[str] = None,
    filename: Optional[str] = None,
    policy: PolicyConfig = Depends(get_policy),
    client: UpstreamClient = Depends(get_upstream_client),
):
    target = build_target(url, policy, filename=filename)
    try:
        plan = await open_download(target, client, policy)
    except UpstreamTransportFailure as exc:
        logger.error("Download proxy failed for url=%s: %s", target.url, exc.detail)
        raise UpstreamTransportFailure(DOWNLOAD_FAILED, detail=exc.detail) from exc
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("Download proxy failed for url=%s", target.url)
        raise UpstreamTransportFailure(DOWNLOAD_FAILED, detail=repr(exc)) from exc

    # Headers are committed from here on; a broken body can only abort the connection.
    return StreamingResponse(
        plan.stream.iter_body(settings.STREAM_CHUNK_SIZE),
        headers=plan.headers,
        background=BackgroundTask(plan.stream.close),
    )
