# src/academic_records/config.py
"""
Database configuration.

Settings resolve in this order:
1. Environment variables prefixed with ``ACADEMIC_DB_`` (e.g.
   ``ACADEMIC_DB_HOST``, ``ACADEMIC_DB_MAX_SIZE``)
2. Built-in defaults
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

import asyncpg
from pydantic import BaseModel, Field, model_validator

log = logging.getLogger(__name__)

ENV_PREFIX = "ACADEMIC_DB_"


class DatabaseSettings(BaseModel):
    """Connection and pool settings for the PostgreSQL store."""

    dsn: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: Optional[str] = None
    database: str = "postgres"
    min_size: int = Field(default=1, ge=0)
    max_size: int = Field(default=10, ge=1)
    command_timeout: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_pool_bounds(self) -> "DatabaseSettings":
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) exceeds max_size ({self.max_size})"
            )
        return self

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX,
    ) -> "DatabaseSettings":
        """Build settings from environment variables over the defaults."""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = environ.get(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)

    def pool_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for `asyncpg.create_pool`."""
        kwargs: Dict[str, Any] = {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "command_timeout": self.command_timeout,
        }
        if self.dsn:
            kwargs["dsn"] = self.dsn
        else:
            kwargs.update(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
            )
        return kwargs


async def create_pool(settings: Optional[DatabaseSettings] = None) -> asyncpg.Pool:
    """Create an asyncpg pool from `settings` (environment if omitted)."""
    settings = settings or DatabaseSettings.from_env()
    target = settings.dsn or f"{settings.host}:{settings.port}/{settings.database}"
    log.info(
        f"Creating connection pool for {target} "
        f"(min_size={settings.min_size}, max_size={settings.max_size})"
    )
    return await asyncpg.create_pool(**settings.pool_kwargs())
