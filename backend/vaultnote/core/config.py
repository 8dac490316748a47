# vaultnote/core/config.py

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

# =========================
# DATABASE
# =========================

DB_USER = os.getenv("DB_USER", "vaultnote")
DB_PASS = os.getenv("DB_PASS", "vaultnote")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "vaultnote")


def _default_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# =========================
# MESSAGE POLICY
# =========================

MIN_TTL_HOURS = 1
MAX_TTL_HOURS = 720


@dataclass(frozen=True)
class Settings:
    database_url: str = field(default_factory=_default_database_url)
    encrypt_key: Optional[str] = field(
        default_factory=lambda: os.getenv("VAULTNOTE_ENCRYPT_KEY"), repr=False
    )
    max_content_length: int = field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_MAX_SIZE", "10000"))
    )
    default_ttl_hours: int = field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_DEFAULT_TTL_HOURS", "24"))
    )
    min_ttl_hours: int = MIN_TTL_HOURS
    max_ttl_hours: int = MAX_TTL_HOURS

    # Percentage of successful reads that also sweep old records
    cleanup_chance: int = field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_CLEANUP_CHANCE", "10"))
    )
    consumed_grace_seconds: int = field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_CONSUMED_GRACE", "3600"))
    )
    janitor_interval_seconds: float = field(
        default_factory=lambda: float(os.getenv("VAULTNOTE_JANITOR_INTERVAL", "0"))
    )
    store_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("VAULTNOTE_STORE_TIMEOUT", "5"))
    )

    create_limit: str = field(
        default_factory=lambda: os.getenv("VAULTNOTE_CREATE_LIMIT", "30/minute")
    )
    consume_limit: str = field(
        default_factory=lambda: os.getenv("VAULTNOTE_CONSUME_LIMIT", "10/minute")
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def require_key(self) -> str:
        if not self.encrypt_key:
            raise RuntimeError("VAULTNOTE_ENCRYPT_KEY environment variable not set.")
        return self.encrypt_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment."""
    return Settings()
