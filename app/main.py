import logging

# FastAPI imports
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# API imports
from app.api import api_router

# Core imports
from app.core.config import settings
from app.core.lifespan import lifespan
from app.core.logging import configure_logging

# Middleware imports
from app.middleware import RequestLoggingMiddleware

from app.modules.gateway.errors import GatewayError

# Logging configuration
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Ziply proxy"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.info(
        "Rejected %s %s status=%s reason=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.detail or exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


def create_application() -> FastAPI:
    application = FastAPI(
        title=SERVICE_NAME,
        description="HTTPS fetch gateway: resolve remote file metadata or proxy the download",
        version="1.0.0",
        lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(RequestLoggingMiddleware)
    application.add_exception_handler(GatewayError, gateway_error_handler)
    application.include_router(api_router)

    return application

app = create_application()

@app.get("/", tags=["App"], summary="Service discovery")
async def root():
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "endpoints": ["/resolve?url=...", "/download?url=...&filename=..."],
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)
