"""
config.py
---------
Centralised configuration management for mydbmunger.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    These values are only *defaults*. Per-invocation switches (dry run,
    verbosity, drop-columns, removal gates, table filters) live in
    ``MungerOptions`` and are passed explicitly to the objects that need
    them, never read back from module state.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection settings."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("DB_PORT", "3306")))
    user: str | None = field(default_factory=lambda: os.getenv("DB_USER"))
    password: str | None = field(default_factory=lambda: os.getenv("DB_PASSWORD"))
    schema: str | None = field(default_factory=lambda: os.getenv("DB_SCHEMA"))
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8mb4"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )


@dataclass(frozen=True)
class MungerConfig:
    """Schema directory and archive defaults."""
    dir: Path = field(default_factory=lambda: Path(os.getenv("MUNGER_DIR", ".")))
    archive_name_pattern: str = field(
        default_factory=lambda: os.getenv("MUNGER_ARCHIVE_NAME_PATTERN", "%Archive")
    )
    updid_var: str = field(
        default_factory=lambda: os.getenv("MUNGER_UPDID_VAR", "@updid")
    )
    init_trigger_name: str | None = field(
        default_factory=lambda: os.getenv("MUNGER_INIT_TRIGGER_NAME") or None
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    munger: MungerConfig = field(default_factory=MungerConfig)
    app_name: str = "mydbmunger"
    app_version: str = "0.5.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Example::

        cfg = load_config()
        print(cfg.db.host)                        # "localhost"
        print(cfg.munger.archive_name_pattern)    # "%Archive"
    """
    return AppConfig()


# Module-level singleton used for defaults throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.munger.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
