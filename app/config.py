"""Application settings loaded from the environment."""

import os
from dataclasses import dataclass, field
from os import getenv
from pathlib import Path
from typing import Optional

# Only honoured when APP_DEBUG is on; production must set ADMIN_PASSWORD
DEV_ADMIN_PASSWORD = "default-password"

DEFAULT_DATABASE_URL = "postgresql+asyncpg://postgres:postgres@db:5432/selah"

ENV_FILE_PATHS = [
    Path("/opt/selah/.env"),
    Path(__file__).parent.parent / ".env",
    Path(__file__).parent.parent.parent / ".env",
]


def load_env_file_fallback(paths: Optional[list[Path]] = None) -> int:
    """
    Load the first readable .env file into os.environ.

    Keys that are already set in the environment win. Returns the number of
    variables that were loaded.
    """
    for env_file in paths or ENV_FILE_PATHS:
        if not (env_file.exists() and env_file.is_file()):
            continue
        loaded_count = 0
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                    value = value[1:-1]
                if key and value and key not in os.environ:
                    os.environ[key] = value
                    loaded_count += 1
        return loaded_count
    return 0


def _parse_bool(value: Optional[str]) -> bool:
    return (value or "false").strip().lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the Selah API."""

    database_url: str = DEFAULT_DATABASE_URL
    debug: bool = False
    admin_password: Optional[str] = None
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        debug = _parse_bool(getenv("APP_DEBUG"))
        admin_password = getenv("ADMIN_PASSWORD") or None
        if admin_password is None and debug:
            admin_password = DEV_ADMIN_PASSWORD
        origins = [
            origin.strip()
            for origin in getenv("CORS_ALLOW_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        return cls(
            database_url=getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            debug=debug,
            admin_password=admin_password,
            cors_allow_origins=origins or ["*"],
        )

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_password)
