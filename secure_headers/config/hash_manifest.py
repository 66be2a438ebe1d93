"""Script/style integrity hash manifest, loaded from YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger()


class HashManifest(BaseModel):
    """``{scripts: {identifier: [hash]}, styles: {identifier: [hash]}}``.

    Hashes are stored as generated (``sha256-...``). A single hash may be
    given as a plain string.
    """

    scripts: dict[str, list[str]] = Field(default_factory=dict)
    styles: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("scripts", "styles", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {k: [v] if isinstance(v, str) else v for k, v in value.items()}
        return value

    def script_sources(self, identifier: str) -> list[str]:
        return [_quote(h) for h in self.scripts.get(identifier, [])]

    def style_sources(self, identifier: str) -> list[str]:
        return [_quote(h) for h in self.styles.get(identifier, [])]


def _quote(digest: str) -> str:
    return digest if digest.startswith("'") else f"'{digest}'"


def load_hash_manifest(path: str | Path) -> HashManifest:
    """Load the manifest at ``path``; a missing file yields an empty manifest."""
    path = Path(path)
    if not path.exists():
        logger.debug("hash_manifest_not_found", path=str(path))
        return HashManifest()
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    manifest = HashManifest.model_validate(data)
    logger.info("hash_manifest_loaded", path=str(path), scripts=len(manifest.scripts), styles=len(manifest.styles))
    return manifest
