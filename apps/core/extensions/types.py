"""
Extension descriptors, registration values and runtime records
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi import APIRouter

from scheduler import ScheduledTask


class ExtensionType(str, Enum):
    """Kinds of extensions the host knows about"""
    # API extensions
    HOOK = "hook"
    ENDPOINT = "endpoint"

    # App extensions (bundled for the browser)
    INTERFACE = "interface"
    DISPLAY = "display"
    LAYOUT = "layout"
    MODULE = "module"
    PANEL = "panel"

    @property
    def plural(self) -> str:
        return f"{self.value}s"


API_EXTENSION_TYPES = [ExtensionType.HOOK, ExtensionType.ENDPOINT]
APP_EXTENSION_TYPES = [
    ExtensionType.INTERFACE,
    ExtensionType.DISPLAY,
    ExtensionType.LAYOUT,
    ExtensionType.MODULE,
    ExtensionType.PANEL,
]
EXTENSION_TYPES = API_EXTENSION_TYPES + APP_EXTENSION_TYPES

# Framework libraries the app already ships; bundles import them from the host
APP_SHARED_DEPS = ["@lodestar/extensions-sdk", "vue", "vue-router", "vue-i18n", "pinia"]

# Installable project names (PEP 508)
EXTENSION_NAME_REGEX = re.compile(r"^([A-Z0-9]|[A-Z0-9][A-Z0-9._-]*[A-Z0-9])$", re.IGNORECASE)

# Legacy mapping keys of the form "cron(<expression>)"
CRON_KEY_REGEX = re.compile(r"^cron\((.*)\)$")

ENTRY_POINT_GROUP = "lodestar.extensions"


def default_entrypoint(extension_type: ExtensionType) -> str:
    if extension_type in API_EXTENSION_TYPES:
        return "__init__.py"
    return "index.js"


@dataclass(frozen=True)
class Extension:
    """A discovered extension. Changes on disk require a reload."""
    name: str
    type: ExtensionType
    path: str  # Absolute directory
    entrypoint: Optional[str] = None
    local: bool = True

    @property
    def entry_path(self) -> Path:
        """Absolute path of the module to load"""
        return (Path(self.path) / (self.entrypoint or default_entrypoint(self.type))).resolve()


@dataclass
class ExtensionContext:
    """Capabilities handed to every hook and endpoint registration"""
    services: Any
    exceptions: Any
    env: Any
    database: Any
    logger: logging.Logger
    get_schema: Callable[..., Awaitable[Any]]


# Hook registration values

@dataclass
class Scheduled:
    """Run handler on a cron schedule"""
    cron: str
    handler: Callable[[], Any]


@dataclass
class OnEvent:
    """Run handler whenever event is emitted"""
    event: str
    handler: Callable[..., Any]


HookRegistration = Union[Scheduled, OnEvent]


# Endpoint definitions

@dataclass
class EndpointConfig:
    """What an endpoint module exports to choose its own mount name"""
    id: str
    handler: Callable[[APIRouter, ExtensionContext], Any]


@dataclass
class NamedEndpoint:
    """Mounted under the extension's own name"""
    handler: Callable[[APIRouter, ExtensionContext], Any]


@dataclass
class ScopedEndpoint:
    """Mounted under an id chosen by the extension"""
    id: str
    handler: Callable[[APIRouter, ExtensionContext], Any]


EndpointDefinition = Union[NamedEndpoint, ScopedEndpoint]


# Runtime records

@dataclass
class RegisteredCronHook:
    path: str
    task: ScheduledTask
    kind: str = field(default="cron", init=False)


@dataclass
class RegisteredEventHook:
    path: str
    event: str
    handler: Callable[..., Any]
    kind: str = field(default="event", init=False)


RegisteredHook = Union[RegisteredCronHook, RegisteredEventHook]


@dataclass
class RegisteredEndpoint:
    path: str
