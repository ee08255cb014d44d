# config.py
"""Environment driven settings.

Values come from the process environment, optionally seeded from a ``.env``
file. Secrets are read on every call so they can be rotated (or patched in
tests) without re-importing the module.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
]

DB_SCHEMA = os.getenv("DB_SCHEMA", "budget_alerts") or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_database_url() -> str:
    """Return the SQLAlchemy URL of the backing database.

    Raises RuntimeError when it is not configured.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL environment variable is not set. "
            "Please set it in your .env file or environment."
        )
    return url


def get_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_jwt_secret() -> Optional[str]:
    return os.getenv("JWT_SECRET")


def get_jwt_audience() -> str:
    return os.getenv("JWT_AUDIENCE", "authenticated")


def get_sweep_token() -> Optional[str]:
    """Shared secret the external scheduler sends to trigger the tracker sweep."""
    return os.getenv("SWEEP_TOKEN")
