"""
Lodestar Core - Extension Host Service
Loads hook, endpoint and app extensions into a running API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig, config
from database import engine
from extensions import ExtensionManager
from routers import extensions_router, server_router

# Configure logging
logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[AppConfig] = None, manager: Optional[ExtensionManager] = None) -> FastAPI:
    settings = settings or config
    manager = manager or ExtensionManager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: register extensions, then let cron hooks fire
        await manager.initialize(schedule=settings.extensions.schedule)
        await manager.scheduler.start()
        logger.info(f"Lodestar Core started with {len(manager.list_extensions())} extensions")

        yield

        # Shutdown: unregister extensions and stop the scheduler
        await manager.shutdown()
        await manager.scheduler.stop()
        await engine.dispose()
        logger.info("Lodestar Core stopped")

    app = FastAPI(
        title="Lodestar Core",
        description="Runtime extension host: hooks, endpoints and app extension bundles",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.extension_manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(extensions_router, prefix="/api/extensions", tags=["extensions"])
    app.include_router(server_router, prefix="/api/server", tags=["server"])

    # Endpoint extensions live under /custom/<name>; the router is cleared and
    # refilled in place on reload
    app.mount("/custom", manager.endpoint_router)

    @app.get("/")
    async def root():
        return {
            "service": "Lodestar Core",
            "version": "0.1.0",
            "status": "operational"
        }

    return app


app = create_app()
