"""
Endpoint registrar: mounts endpoint extensions on the shared router
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping

from fastapi import APIRouter
from starlette.routing import Mount, Router

from .loader import ModuleRegistry, get_module_default
from .types import (
    EndpointConfig,
    EndpointDefinition,
    Extension,
    ExtensionContext,
    ExtensionType,
    NamedEndpoint,
    RegisteredEndpoint,
    ScopedEndpoint,
)

logger = logging.getLogger(__name__)


def resolve_endpoint_definition(export: Any) -> EndpointDefinition:
    """
    Decide once what kind of endpoint a module exports:
    an EndpointConfig (or {"id", "handler"} mapping) is scoped under its id,
    a plain function is mounted under the extension name.
    """
    if isinstance(export, EndpointConfig):
        return ScopedEndpoint(id=export.id, handler=export.handler)

    if isinstance(export, Mapping) and "id" in export and "handler" in export:
        return ScopedEndpoint(id=export["id"], handler=export["handler"])

    if callable(export):
        return NamedEndpoint(handler=export)

    raise TypeError(f"Unsupported endpoint export: {export!r}")


def mount_name(definition: EndpointDefinition, extension: Extension) -> str:
    if isinstance(definition, ScopedEndpoint):
        return definition.id
    return extension.name


class EndpointRegistrar:
    """Gives each endpoint extension a fresh router under /<mount-name>"""

    def __init__(
        self,
        router: Router,
        modules: ModuleRegistry,
        context_factory: Callable[[Extension], ExtensionContext],
    ):
        self.router = router
        self.modules = modules
        self.context_factory = context_factory

    def register_all(self, extensions: Iterable[Extension], records: List[RegisteredEndpoint]) -> None:
        """Register every endpoint extension, isolating failures per extension"""
        for extension in extensions:
            if extension.type != ExtensionType.ENDPOINT:
                continue

            try:
                self.register(extension, records)
            except Exception as e:
                logger.warning(f"Couldn't register endpoint \"{extension.name}\": {e}")

    def register(self, extension: Extension, records: List[RegisteredEndpoint]) -> None:
        endpoint_path = str(extension.entry_path)
        module = self.modules.load(endpoint_path)

        # Recorded straight after loading so a failing module is still evicted
        records.append(RegisteredEndpoint(path=endpoint_path))

        definition = resolve_endpoint_definition(get_module_default(module))
        route_name = mount_name(definition, extension)

        scoped_router = APIRouter()
        self.router.routes.append(Mount(f"/{route_name}", app=scoped_router, name=route_name))

        definition.handler(scoped_router, self.context_factory(extension))
        logger.debug(f"Mounted endpoint \"{extension.name}\" at /{route_name}")

    def unregister_all(self, records: List[RegisteredEndpoint]) -> None:
        """Clear the shared router and evict endpoint modules"""
        for record in records:
            self.modules.unload(record.path)

        self.router.routes.clear()
        records.clear()
