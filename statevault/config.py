"""Repository configuration: env-driven via pydantic-settings.

Reads from a .env file and STATEVAULT_* environment variables. Settings are
built on demand (``Repository.from_settings``, the CLI), never at import.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Settings for the key-value backend and the repository on top of it.

    Examples
    --------
    Override via environment::

        export STATEVAULT_BACKEND=memory
        export STATEVAULT_LOG_LEVEL=DEBUG
        export STATEVAULT_DATABASE_PATH=/data/statevault.db

    Or via .env file::

        STATEVAULT_KEY_NAMESPACE=billing
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STATEVAULT_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"
    database_path: Path = Path(".statevault/store.db")
    key_namespace: str = ""  # prepended to every key as "<namespace>/"

    # Bulk creation fan-out bound
    max_concurrent_writes: int = Field(default=64, ge=1)
