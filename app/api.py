from fastapi import APIRouter

# Import module routers
from app.modules.gateway.routes import router as gateway_router

# Create main API router
api_router = APIRouter()

# Include module routers
api_router.include_router(gateway_router, tags=["gateway"])
