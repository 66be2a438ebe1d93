"""Per-request configuration selection and CSP overrides.

Every helper works on a ``HeaderRequest``: the request scheme, its
User-Agent and a per-request ``state`` dict where the configuration in use is
stashed, so several calls during one request see the same overrides. A frozen
configuration is duplicated before the first modification; the duplicate
belongs to that request only.
"""

from __future__ import annotations

import base64
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from secure_headers.config.hash_manifest import HashManifest
from secure_headers.config.loader import get_settings
from secure_headers.configuration import Configuration, ConfigurationBuilder
from secure_headers.csp.directives import SCRIPT_SRC, STYLE_SRC
from secure_headers.registry import DEFAULT_CONFIG, NOOP_CONFIGURATION, ConfigurationRegistry
from secure_headers.types import HTTPS_ONLY_KEYS, HeaderKey, OptOut, Target
from secure_headers.user_agent import classify

logger = structlog.get_logger()

SECURE_HEADERS_CONFIG = "secure_headers_request_config"
NONCE_KEY = "secure_headers_content_security_policy_nonce"
HTTPS = "https"


@dataclass
class HeaderRequest:
    """What header resolution needs to know about one request."""

    scheme: str = HTTPS
    user_agent: str | None = None
    state: dict[str, Any] = field(default_factory=dict)


def header_keys_for_scheme(scheme: str) -> Callable[[HeaderKey], bool]:
    """HSTS and HPKP only apply to HTTPS requests."""
    if scheme.lower() == HTTPS:
        return lambda key: True
    return lambda key: key not in HTTPS_ONLY_KEYS


def config_for(request: HeaderRequest, registry: ConfigurationRegistry) -> ConfigurationBuilder:
    """Return a configuration this request may modify.

    Uses the request's stashed configuration, or the registry default, and
    duplicates it if it is frozen.
    """
    config = request.state.get(SECURE_HEADERS_CONFIG) or registry.lookup(DEFAULT_CONFIG)
    if isinstance(config, Configuration):
        return config.duplicate()
    return config


def _stash(request: HeaderRequest, config: Configuration | ConfigurationBuilder) -> None:
    request.state[SECURE_HEADERS_CONFIG] = config


def _strict(validate: bool | None) -> bool:
    return get_settings().strict_overrides if validate is None else validate


def _guess_target(config: ConfigurationBuilder) -> Target:
    if not isinstance(config.csp, OptOut):
        return Target.enforced
    if not isinstance(config.csp_report_only, OptOut):
        return Target.report_only
    return Target.enforced


def use_override(request: HeaderRequest, registry: ConfigurationRegistry, name: str) -> Configuration:
    """Use the registered configuration ``name`` for this request."""
    config = registry.lookup(name)
    _stash(request, config)
    return config


def opt_out_of_all_protection(request: HeaderRequest, registry: ConfigurationRegistry) -> Configuration:
    return use_override(request, registry, NOOP_CONFIGURATION)


def override_content_security_policy_directives(
    request: HeaderRequest,
    registry: ConfigurationRegistry,
    additions: Mapping[str, Any],
    target: Target | str | None = None,
    validate: bool | None = None,
) -> ConfigurationBuilder:
    """Replace directives for this request; an opted-out policy starts from empty."""
    config = config_for(request, registry)
    target = _guess_target(config) if target is None else Target(target)
    config.override_directives(additions, target, validate=_strict(validate))
    _stash(request, config)
    return config


def append_content_security_policy_directives(
    request: HeaderRequest,
    registry: ConfigurationRegistry,
    additions: Mapping[str, Any],
    target: Target | str | None = None,
    validate: bool | None = None,
) -> ConfigurationBuilder:
    """Add sources for this request, inheriting default-src where unset."""
    config = config_for(request, registry)
    target = _guess_target(config) if target is None else Target(target)
    config.append_directives(additions, target, validate=_strict(validate))
    _stash(request, config)
    return config


def override_x_frame_options(request: HeaderRequest, registry: ConfigurationRegistry, value: str) -> ConfigurationBuilder:
    config = config_for(request, registry)
    config.update_x_frame_options(value)
    _stash(request, config)
    return config


def opt_out_of_header(
    request: HeaderRequest, registry: ConfigurationRegistry, key: HeaderKey | str
) -> ConfigurationBuilder:
    config = config_for(request, registry)
    config.opt_out(key)
    _stash(request, config)
    return config


def content_security_policy_script_nonce(request: HeaderRequest, registry: ConfigurationRegistry) -> str:
    """Get or create this request's nonce and allow it in script-src."""
    return _content_security_policy_nonce(request, registry, SCRIPT_SRC)


def content_security_policy_style_nonce(request: HeaderRequest, registry: ConfigurationRegistry) -> str:
    """Get or create this request's nonce and allow it in style-src."""
    return _content_security_policy_nonce(request, registry, STYLE_SRC)


def _content_security_policy_nonce(request: HeaderRequest, registry: ConfigurationRegistry, directive: str) -> str:
    nonce = request.state.get(NONCE_KEY)
    if nonce is None:
        nonce = base64.b64encode(secrets.token_bytes(32)).decode("ascii")
        request.state[NONCE_KEY] = nonce
    append_content_security_policy_directives(request, registry, {directive: [f"'nonce-{nonce}'"]})
    return nonce


def append_manifest_hashes(
    request: HeaderRequest,
    registry: ConfigurationRegistry,
    manifest: HashManifest,
    scripts: list[str] | tuple[str, ...] = (),
    styles: list[str] | tuple[str, ...] = (),
) -> ConfigurationBuilder | None:
    """Allow the manifest hashes of the given script/style identifiers."""
    additions: dict[str, list[str]] = {}
    script_sources = [s for identifier in scripts for s in manifest.script_sources(identifier)]
    style_sources = [s for identifier in styles for s in manifest.style_sources(identifier)]
    if script_sources:
        additions[SCRIPT_SRC] = script_sources
    if style_sources:
        additions[STYLE_SRC] = style_sources
    if not additions:
        return None
    return append_content_security_policy_directives(request, registry, additions)


def header_hash_for(request: HeaderRequest, registry: ConfigurationRegistry) -> dict[str, str]:
    """Return ``{header name: value}`` to set on the response to ``request``."""
    config = request.state.get(SECURE_HEADERS_CONFIG) or registry.lookup(DEFAULT_CONFIG)
    family = classify(request.user_agent)
    return config.resolve_headers(family, include=header_keys_for_scheme(request.scheme))
