"""
Configuration for the entries engine

APP_ENV selects the env file (.env.development, .env.test, .env.production);
values already present in the process environment always win.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EnvironmentMode = Literal["development", "test", "production"]
ENVIRONMENT_MODES = ("development", "test", "production")

_TRUE_VALUES = ("1", "true", "yes", "on")


def get_environment_mode() -> EnvironmentMode:
    """APP_ENV, or development when unset or unrecognized"""
    mode = os.getenv('APP_ENV', 'development').lower()
    return mode if mode in ENVIRONMENT_MODES else 'development'  # type: ignore


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Load .env.{mode} (or .env when there is none) from the project directory.
    mode defaults to APP_ENV. Returns the mode used.
    """
    mode = mode or get_environment_mode()
    project_dir = Path(__file__).parent

    for candidate in (project_dir / f'.env.{mode}', project_dir / '.env'):
        if candidate.exists():
            logger.info(f"Loading config from {candidate}")
            load_dotenv(candidate, override=False)
            break
    else:
        logger.debug(f"No env file for mode '{mode}' in {project_dir}")

    return mode


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class DatabaseConfig:
    """Content store connection (PostgreSQL, read-only sessions)"""

    host: str
    port: int
    database: str
    user: str
    password: str

    min_pool_size: int = 2
    max_pool_size: int = 10
    command_timeout: int = 60  # seconds

    ssl_mode: str = "prefer"  # require, disable or prefer

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Environment variables:
        - DB_HOST, DB_PORT (localhost:5432)
        - DB_NAME (content_db), DB_USER (postgres), DB_PASSWORD
        - DB_SSL_MODE (prefer in development/test, require in production)
        - DB_MIN_POOL_SIZE, DB_MAX_POOL_SIZE, DB_COMMAND_TIMEOUT
        """
        mode = load_app_environment(mode)
        default_ssl = 'require' if mode == 'production' else 'prefer'

        config = cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=_env_int('DB_PORT', 5432),
            database=os.getenv('DB_NAME', 'content_db'),
            user=os.getenv('DB_USER', 'postgres'),
            password=os.getenv('DB_PASSWORD', ''),
            ssl_mode=os.getenv('DB_SSL_MODE', default_ssl),
            min_pool_size=_env_int('DB_MIN_POOL_SIZE', 2),
            max_pool_size=_env_int('DB_MAX_POOL_SIZE', 10),
            command_timeout=_env_int('DB_COMMAND_TIMEOUT', 60),
        )
        config.validate_safety(mode)
        return config

    def validate_safety(self, mode: str):
        """Test runs must point at a test content store, never a production one."""
        if mode != 'test':
            return
        if 'test' not in self.database:
            raise ValueError(
                f"SAFETY ERROR: APP_ENV=test but DB_NAME is '{self.database}'; "
                f"the test content store name must contain 'test'."
            )
        if 'prod' in self.database:
            raise ValueError(
                f"SAFETY ERROR: APP_ENV=test but '{self.database}' looks like a production content store."
            )


@dataclass
class QueryConfig:
    """Query and hydration behaviour"""

    # Run each fieldtype's preload concurrently before hydrating entries
    parallel_preload: bool = True
    # Ordering used when the caller requested none
    default_order: str = "channel_titles.entry_date DESC"
    # Log compiled SQL and parameters at DEBUG level
    log_sql: bool = False

    @classmethod
    def from_environment(cls) -> 'QueryConfig':
        """
        Environment variables:
        - ENTRIES_PARALLEL_PRELOAD: run preloads concurrently (default: true)
        - ENTRIES_DEFAULT_ORDER: fallback ORDER BY expression
        - ENTRIES_LOG_SQL: log compiled queries (default: false)
        """
        return cls(
            parallel_preload=_env_flag('ENTRIES_PARALLEL_PRELOAD', True),
            default_order=os.getenv('ENTRIES_DEFAULT_ORDER', cls.default_order),
            log_sql=_env_flag('ENTRIES_LOG_SQL', False),
        )
