"""Start-up wiring: settings, logging, registry and presets."""

from __future__ import annotations

import structlog

from secure_headers.config.hash_manifest import HashManifest, load_hash_manifest
from secure_headers.config.loader import HeaderSettings, load_settings
from secure_headers.config.presets import load_presets, register_presets
from secure_headers.logging_config import setup_logging
from secure_headers.registry import Configure, ConfigurationRegistry

logger = structlog.get_logger()


def bootstrap(
    configure: Configure | None = None,
    settings: HeaderSettings | None = None,
) -> tuple[ConfigurationRegistry, HashManifest]:
    """Create the application's registry and hash manifest.

    Registers the default configuration (customized by ``configure``), then
    any presets from ``settings.presets_file``. Invalid configuration raises
    here, before the application starts serving.
    """
    settings = settings or load_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.log_json)

    registry = ConfigurationRegistry()
    registry.default(configure)
    if settings.presets_file:
        register_presets(registry, load_presets(settings.presets_file))

    manifest = load_hash_manifest(settings.hashes_file)
    logger.info("secure_headers_ready", configurations=registry.names())
    return registry, manifest
