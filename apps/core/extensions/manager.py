"""
Extension manager for lifecycle management
"""

import asyncio
import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from starlette.routing import Router

import exceptions
import services
from config import AppConfig
from database import get_database, get_schema
from emitter import EventEmitter
from scheduler import TaskScheduler

from .bundles import Bundler, BundleGenerator, EsbuildBundler
from .discovery import ensure_extension_dirs, get_local_extensions, get_package_extensions, merge_extensions
from .endpoints import EndpointRegistrar
from .hooks import HookRegistrar
from .installer import install_package
from .loader import ModuleRegistry
from .types import (
    API_EXTENSION_TYPES,
    EXTENSION_NAME_REGEX,
    EXTENSION_TYPES,
    Extension,
    ExtensionContext,
    ExtensionType,
    RegisteredEndpoint,
    RegisteredHook,
)

logger = logging.getLogger(__name__)


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    RELOADING = "reloading"


class ExtensionManager:
    """
    Discovers extensions and keeps them registered.

    Lifecycle:
    1. initialize() - discover, register hooks and endpoints, build app bundles
    2. reload() - tear everything down, then initialize() again
    3. install() - install a package, then reload()
    4. shutdown() - tear everything down

    One instance is created at application startup and shared through
    app.state; initialize() and reload() never overlap.
    """

    def __init__(
        self,
        settings: AppConfig,
        emitter: Optional[EventEmitter] = None,
        scheduler: Optional[TaskScheduler] = None,
        installer: Callable[[str], Awaitable[bool]] = install_package,
        bundler: Optional[Bundler] = None,
        database: Any = None,
    ):
        self.settings = settings
        self.emitter = emitter or EventEmitter()
        self.scheduler = scheduler or TaskScheduler()
        self.installer = installer
        self.database = database if database is not None else get_database()
        self.modules = ModuleRegistry()

        self.state = ManagerState.UNINITIALIZED
        self._schedule_enabled = True
        self._lock = asyncio.Lock()

        # Owned per lifecycle generation
        self._extensions: List[Extension] = []
        self._app_extensions: Dict[ExtensionType, str] = {}
        self._hooks: List[RegisteredHook] = []
        self._endpoints: List[RegisteredEndpoint] = []
        self._endpoint_router = Router()

        self.hook_registrar = HookRegistrar(
            emitter=self.emitter,
            scheduler=self.scheduler,
            modules=self.modules,
            context_factory=self.create_context,
            is_schedule_enabled=lambda: self._schedule_enabled,
        )
        self.endpoint_registrar = EndpointRegistrar(
            router=self._endpoint_router,
            modules=self.modules,
            context_factory=self.create_context,
        )
        self.bundle_generator = BundleGenerator(
            bundler=bundler or EsbuildBundler(),
            app_dist_path=settings.extensions.app_dist_path,
            public_url=settings.extensions.public_url,
        )

    @property
    def is_initialized(self) -> bool:
        return self.state == ManagerState.ACTIVE

    @property
    def serve_app(self) -> bool:
        return self.settings.extensions.serve_app

    @property
    def enabled_types(self) -> List[ExtensionType]:
        return EXTENSION_TYPES if self.serve_app else API_EXTENSION_TYPES

    @property
    def schedule_enabled(self) -> bool:
        return self._schedule_enabled

    def set_schedule_enabled(self, enabled: bool) -> None:
        """Silence or resume cron hooks without touching their registration"""
        self._schedule_enabled = enabled
        logger.info(f"Scheduled hooks {'enabled' if enabled else 'disabled'}")

    async def initialize(self, schedule: bool = True) -> None:
        """
        Discover and register extensions.

        `schedule` is applied even when already initialized, so it can be
        used to silence cron hooks; everything else is a no-op the second
        time. Discovery errors are logged and treated as no extensions.
        Bundle errors (app-serving mode) propagate.
        """
        self._schedule_enabled = schedule

        async with self._lock:
            await self._initialize()

    async def _initialize(self) -> None:
        if self.state == ManagerState.ACTIVE:
            return

        self.state = ManagerState.INITIALIZING

        # Left over from a bring-up that failed while bundling
        self._unregister()

        try:
            await asyncio.to_thread(ensure_extension_dirs, self.settings.extensions.path, self.enabled_types)
            self._extensions = await self._get_extensions()
        except Exception as e:
            logger.warning("Couldn't load extensions")
            logger.warning(e)
            self._extensions = []

        self.hook_registrar.register_all(self._extensions, self._hooks)
        self.endpoint_registrar.register_all(self._extensions, self._endpoints)

        if self.serve_app:
            try:
                self._app_extensions = await self.bundle_generator.generate(self._extensions)
            except BaseException:
                self.state = ManagerState.UNINITIALIZED
                raise

        loaded_extensions = self.list_extensions()
        if loaded_extensions:
            logger.info(f"Loaded extensions: {', '.join(loaded_extensions)}")

        self.state = ManagerState.ACTIVE

    async def reload(self) -> None:
        """Unregister everything and initialize again. No-op before initialize()."""
        async with self._lock:
            if self.state != ManagerState.ACTIVE:
                return

            logger.info("Reloading extensions")

            self.state = ManagerState.RELOADING
            self._unregister()
            self._app_extensions = {}

            await self._initialize()

    async def install(self, name: str) -> bool:
        """Install an extension package and reload. Returns False on any failure."""
        if not EXTENSION_NAME_REGEX.match(name):
            logger.warning(f"Refusing to install extension with invalid name: {name!r}")
            return False

        installed = await self.installer(name)

        if not installed:
            return False

        await self.reload()

        return True

    async def shutdown(self) -> None:
        """Unregister everything; initialize() may be called again afterwards"""
        async with self._lock:
            self._unregister()
            self._app_extensions = {}
            self._extensions = []
            self.state = ManagerState.UNINITIALIZED
            logger.info("Extensions unloaded")

    def list_extensions(self, type: Optional[Union[ExtensionType, str]] = None) -> List[str]:
        if type is None:
            return [extension.name for extension in self._extensions]
        return [extension.name for extension in self._extensions if extension.type == type]

    @property
    def extensions(self) -> Tuple[Extension, ...]:
        return tuple(self._extensions)

    def get_extension(self, name: str) -> Optional[Extension]:
        return next((e for e in self._extensions if e.name == name), None)

    def get_app_extensions(self, type: Union[ExtensionType, str]) -> Optional[str]:
        return self._app_extensions.get(ExtensionType(type))

    def get_endpoint_router(self) -> Router:
        return self._endpoint_router

    @property
    def endpoint_router(self) -> Router:
        return self._endpoint_router

    @property
    def registered_hooks(self) -> Tuple[RegisteredHook, ...]:
        return tuple(self._hooks)

    @property
    def registered_endpoints(self) -> Tuple[RegisteredEndpoint, ...]:
        return tuple(self._endpoints)

    def create_context(self, extension: Extension) -> ExtensionContext:
        """Capabilities handed to an extension's register function"""
        return ExtensionContext(
            services=services,
            exceptions=exceptions,
            env=self.settings,
            database=self.database,
            logger=logging.getLogger(f"lodestar.extensions.{extension.name}"),
            get_schema=functools.partial(get_schema, self.database),
        )

    async def _get_extensions(self) -> List[Extension]:
        package_extensions = await asyncio.to_thread(get_package_extensions, self.enabled_types)
        local_extensions = await asyncio.to_thread(
            get_local_extensions, self.settings.extensions.path, self.enabled_types
        )

        return merge_extensions(package_extensions, local_extensions)

    def _unregister(self) -> None:
        self.hook_registrar.unregister_all(self._hooks)
        self.endpoint_registrar.unregister_all(self._endpoints)
