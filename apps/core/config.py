"""
Configuration settings for Lodestar Core
"""

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class ExtensionsConfig:
    """Where extensions live and how the app-facing ones are served"""
    path: str = "./extensions"
    serve_app: bool = False
    public_url: str = "/"
    app_dist_path: str = "./app/dist"
    schedule: bool = True  # Run cron hooks on startup

    @classmethod
    def from_env(cls) -> "ExtensionsConfig":
        return cls(
            path=os.getenv("EXTENSIONS_PATH", "./extensions"),
            serve_app=_env_bool("SERVE_APP", "false"),
            public_url=os.getenv("PUBLIC_URL", "/"),
            app_dist_path=os.getenv("APP_DIST_PATH", "./app/dist"),
            schedule=_env_bool("EXTENSIONS_SCHEDULE", "true"),
        )


@dataclass
class DatabaseConfig:
    """Database connection settings"""
    url: str = "sqlite+aiosqlite:///./lodestar.db"
    echo: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(
            url=os.getenv("DB_URL", "sqlite+aiosqlite:///./lodestar.db"),
            echo=_env_bool("DB_ECHO", "false"),
        )


@dataclass
class AppConfig:
    """Main application configuration"""
    extensions: ExtensionsConfig = field(default_factory=ExtensionsConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            extensions=ExtensionsConfig.from_env(),
            database=DatabaseConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# Global config instance
config = AppConfig.from_env()
