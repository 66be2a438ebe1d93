"""Env var config loading with pydantic-settings."""

from __future__ import annotations

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

DEFAULT_HASHES_FILE = "config/secure_headers_generated_hashes.yml"


class HeaderSettings(BaseSettings):
    """Process-level settings, overridden by ``SECURE_HEADERS_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="SECURE_HEADERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "info"
    log_json: bool = True

    # Script/style hash manifest; a missing file means an empty manifest
    hashes_file: str = DEFAULT_HASHES_FILE

    # Named configurations registered on top of the default one
    presets_file: str | None = None

    # Validate runtime CSP overrides before applying them
    strict_overrides: bool = True


_settings: HeaderSettings | None = None


def get_settings() -> HeaderSettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> HeaderSettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = HeaderSettings()
    logger.info(
        "config_loaded",
        hashes_file=_settings.hashes_file,
        presets_file=_settings.presets_file,
        strict_overrides=_settings.strict_overrides,
    )
    return _settings
