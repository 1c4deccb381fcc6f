"""
API endpoints for extension management
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from extensions import ExtensionManager, ExtensionType
from extensions.types import APP_EXTENSION_TYPES
from schemas import ExtensionActionResponse, ExtensionListResponse, InstallRequest, ScheduleState

logger = logging.getLogger(__name__)
router = APIRouter()


def get_extension_manager(request: Request) -> ExtensionManager:
    """Get the extension manager or raise 503"""
    manager = getattr(request.app.state, "extension_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Extension system not initialized")
    return manager


def _parse_type(value: str) -> ExtensionType:
    try:
        return ExtensionType(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown extension type \"{value}\"")


@router.get("/schedule", response_model=ScheduleState)
async def get_schedule(manager: ExtensionManager = Depends(get_extension_manager)):
    """Whether cron hooks currently run when they fire"""
    return ScheduleState(enabled=manager.schedule_enabled)


@router.put("/schedule", response_model=ScheduleState)
async def set_schedule(state: ScheduleState, manager: ExtensionManager = Depends(get_extension_manager)):
    """Silence or resume cron hooks without reloading"""
    manager.set_schedule_enabled(state.enabled)
    return ScheduleState(enabled=manager.schedule_enabled)


@router.post("/reload", response_model=ExtensionActionResponse)
async def reload_extensions(manager: ExtensionManager = Depends(get_extension_manager)):
    """Tear down and re-register all extensions"""
    await manager.reload()
    return ExtensionActionResponse(
        success=True,
        message=f"Reloaded {len(manager.list_extensions())} extensions",
    )


@router.post("/install", response_model=ExtensionActionResponse)
async def install_extension(payload: InstallRequest, manager: ExtensionManager = Depends(get_extension_manager)):
    """Install an extension package and reload"""
    installed = await manager.install(payload.name)

    if not installed:
        raise HTTPException(status_code=400, detail=f"Couldn't install extension \"{payload.name}\"")

    return ExtensionActionResponse(
        success=True,
        message=f"Extension \"{payload.name}\" installed successfully",
    )


@router.get("/app/{extension_type}.js")
async def get_app_extension_bundle(extension_type: str, manager: ExtensionManager = Depends(get_extension_manager)):
    """Compiled bundle for one app extension type"""
    parsed = _parse_type(extension_type)
    if parsed not in APP_EXTENSION_TYPES:
        raise HTTPException(status_code=400, detail=f"\"{extension_type}\" is not an app extension type")

    bundle = manager.get_app_extensions(parsed)
    if bundle is None:
        raise HTTPException(status_code=404, detail=f"No bundle for {parsed.plural}")

    return Response(content=bundle, media_type="text/javascript")


@router.get("/{extension_type}", response_model=ExtensionListResponse)
async def list_extensions(extension_type: str, manager: ExtensionManager = Depends(get_extension_manager)):
    """Names of the loaded extensions of one type"""
    parsed = _parse_type(extension_type)
    return ExtensionListResponse(data=manager.list_extensions(parsed))


@router.get("/", response_model=ExtensionListResponse)
async def list_all_extensions(manager: ExtensionManager = Depends(get_extension_manager)):
    """Names of all loaded extensions"""
    return ExtensionListResponse(data=manager.list_extensions())
