"""
Server Status API Router
"""

from fastapi import APIRouter, Depends

from extensions import ExtensionManager
from routers.extensions import get_extension_manager
from schemas import HealthResponse, ServerInfoResponse
from services import ServerService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def get_health(manager: ExtensionManager = Depends(get_extension_manager)):
    """Database connectivity"""
    return HealthResponse(**await ServerService(manager.database).health())


@router.get("/info", response_model=ServerInfoResponse)
async def get_info(manager: ExtensionManager = Depends(get_extension_manager)):
    """Service info and extension counts"""
    info = ServerService(manager.database).info()
    return ServerInfoResponse(
        **info,
        extensions=len(manager.list_extensions()),
        hooks=len(manager.registered_hooks),
        endpoints=len(manager.registered_endpoints),
        schedule_enabled=manager.schedule_enabled,
    )
