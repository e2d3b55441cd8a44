from fastapi import APIRouter
from teamdesk.api.v1.endpoints import health, leave

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(leave.router, prefix="/leave", tags=["leave"])
