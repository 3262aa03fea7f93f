"""
Application settings.

All values can be overridden via environment variables prefixed with
``RIPPLE_API_`` (e.g. ``RIPPLE_API_RIPPLE_URL``) or a ``.env`` file.

Order of precedence (highest → lowest):
    1. Explicit keyword arguments (tests)
    2. Environment variables
    3. ``.env`` file
    4. Defaults below
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RippleApiSettings(BaseSettings):
    """Settings for the ripple-api service."""

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=5000, description="Bind port")
    debug: bool = Field(default=False, description="Expose internal error messages")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool | None = Field(
        default=None,
        description="JSON logs; None auto-detects (JSON when stdout is not a TTY)",
    )
    env_info: str | None = Field(default=None, description="Deployment label shown by isalive")

    # ── Storage ──────────────────────────────────────────────────────────
    database_path: str = Field(
        default="ripple_api.db",
        description="SQLite database file, or ':memory:'",
    )

    # ── Ledger ───────────────────────────────────────────────────────────
    ripple_url: str = Field(
        default="http://localhost:5005",
        description="rippled JSON-RPC endpoint",
    )
    ripple_timeout: float = Field(default=30.0, description="Ledger request timeout, seconds")
    ripple_expiration: int = Field(
        default=20,
        description="Ledgers after the current one until an unsent transaction expires",
    )
    ripple_reserve: Decimal = Field(
        default=Decimal("20"),
        description="XRP an account must keep on top of the transfer and fee",
    )
    fee_cushion: Decimal = Field(
        default=Decimal("1.2"),
        description="Multiplier applied to the ledger's current fee",
    )

    # ── Simulated transfers ──────────────────────────────────────────────
    # block = ledger_index * block_scale + block_offset
    block_scale: int = Field(default=10, description="Synthetic block numbering scale")
    block_offset: int = Field(default=1, description="Synthetic block numbering offset")

    model_config = SettingsConfigDict(
        env_prefix="RIPPLE_API_",
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
    )


@lru_cache(maxsize=1)
def get_settings() -> RippleApiSettings:
    """Cached settings, loaded once per process."""
    return RippleApiSettings()
