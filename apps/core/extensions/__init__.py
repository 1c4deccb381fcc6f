"""
Lodestar Extension System

Loads extensions at runtime and keeps them attached to the host:
- Hook extensions bind handlers to cron schedules or bus events
- Endpoint extensions mount routers under /<name>
- App extensions are compiled into browser bundles (app-serving mode)
- Discovery from installed packages and the local extensions folder
"""

from .manager import ExtensionManager, ManagerState
from .types import (
    API_EXTENSION_TYPES,
    APP_EXTENSION_TYPES,
    EXTENSION_TYPES,
    EndpointConfig,
    Extension,
    ExtensionContext,
    ExtensionType,
    OnEvent,
    Scheduled,
)

__all__ = [
    "ExtensionManager",
    "ManagerState",
    "Extension",
    "ExtensionContext",
    "ExtensionType",
    "EndpointConfig",
    "Scheduled",
    "OnEvent",
    "API_EXTENSION_TYPES",
    "APP_EXTENSION_TYPES",
    "EXTENSION_TYPES",
]
