"""Register named header presets from YAML into a configuration registry."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from secure_headers.configuration import ConfigurationBuilder
from secure_headers.errors import InvalidHeaderConfigError
from secure_headers.registry import DEFAULT_CONFIG, ConfigurationRegistry
from secure_headers.types import OPT_OUT, HeaderKey

logger = structlog.get_logger()

BUNDLED_PRESETS_PATH = Path(__file__).parent / "header_presets.yaml"

_OPT_OUT_VALUE = "opt_out"


def load_presets(path: str | Path = BUNDLED_PRESETS_PATH) -> dict[str, dict[str, Any]]:
    """Read ``{preset name: {header key: config}}`` from YAML."""
    path = Path(path)
    if not path.exists():
        logger.error("header_presets_not_found", path=str(path))
        return {}
    with open(path) as f:
        presets = yaml.safe_load(f) or {}
    if not isinstance(presets, Mapping):
        raise InvalidHeaderConfigError(f"{path} must contain a mapping of preset names")
    return dict(presets)


def apply_preset(builder: ConfigurationBuilder, preset: Mapping[str, Any]) -> None:
    """Assign each header config in ``preset`` to ``builder``.

    The string ``opt_out`` stands for OPT_OUT.
    """
    for field, value in preset.items():
        if value == _OPT_OUT_VALUE:
            value = OPT_OUT
        if field == "cookies":
            builder.cookies = value
        elif field == HeaderKey.csp.value:
            builder.csp = value
        elif field == HeaderKey.csp_report_only.value:
            builder.csp_report_only = value
        else:
            try:
                key = HeaderKey(field)
            except ValueError:
                raise InvalidHeaderConfigError(f"Unknown header {field} in preset") from None
            builder.set_header(key, value)


def register_presets(
    registry: ConfigurationRegistry,
    presets: Mapping[str, Mapping[str, Any]],
    base: str = DEFAULT_CONFIG,
) -> list[str]:
    """Register each preset as an override of ``base``. Returns the names added."""
    names = []
    for name, preset in presets.items():
        registry.override(name, lambda builder, preset=preset: apply_preset(builder, preset), base=base)
        logger.info("header_preset_registered", name=name, base=base)
        names.append(name)
    return names
