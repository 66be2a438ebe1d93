"""Builders and validators for the non-CSP security headers.

Each header is described by a ``HeaderSpec`` in ``HEADER_SPECS``: its default
config, a ``validate`` function that raises ``InvalidHeaderConfigError`` and a
``build`` function returning ``(name, value)``. OPT_OUT never reaches
``build``; use ``make_header`` which handles it.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from secure_headers.errors import InvalidHeaderConfigError
from secure_headers.types import OPT_OUT, HeaderKey, OptOut

# ── Strict-Transport-Security ────────────────────────────────────────────

HSTS_HEADER_NAME = "Strict-Transport-Security"
HSTS_DEFAULT = "max-age=631138519"
_HSTS_RE = re.compile(r"^max-age=\d+(; includeSubdomains)?(; preload)?$", re.IGNORECASE)


def _validate_hsts(config: Any) -> None:
    if not isinstance(config, str) or not _HSTS_RE.match(config):
        raise InvalidHeaderConfigError(
            f"Invalid Strict-Transport-Security value {config!r}. "
            "Expected max-age=<seconds>[; includeSubdomains][; preload]"
        )


def _build_hsts(config: str) -> tuple[str, str]:
    return HSTS_HEADER_NAME, config


# ── Public-Key-Pins ──────────────────────────────────────────────────────

HPKP_HEADER_NAME = "Public-Key-Pins"
HPKP_REPORT_ONLY_HEADER_NAME = "Public-Key-Pins-Report-Only"
_HPKP_HASH_ALGORITHMS = ("sha256",)


def _validate_hpkp(config: Any) -> None:
    if not isinstance(config, Mapping):
        raise InvalidHeaderConfigError("Public-Key-Pins config must be a mapping")
    max_age = config.get("max_age")
    if isinstance(max_age, bool) or not isinstance(max_age, int):
        raise InvalidHeaderConfigError("Public-Key-Pins max_age must be an integer")
    pins = config.get("pins")
    if not isinstance(pins, (list, tuple)) or not pins:
        raise InvalidHeaderConfigError("Public-Key-Pins requires a non-empty list of pins")
    for pin in pins:
        if not isinstance(pin, Mapping) or not pin:
            raise InvalidHeaderConfigError(f"Invalid pin {pin!r}")
        for algorithm, digest in pin.items():
            if algorithm not in _HPKP_HASH_ALGORITHMS or not isinstance(digest, str):
                raise InvalidHeaderConfigError(f"Unsupported pin {algorithm}={digest!r}")
    for flag in ("include_subdomains", "report_only"):
        if config.get(flag) is not None and not isinstance(config[flag], bool):
            raise InvalidHeaderConfigError(f"Public-Key-Pins {flag} must be a boolean value")
    report_uri = config.get("report_uri")
    if report_uri is not None and not isinstance(report_uri, str):
        raise InvalidHeaderConfigError("Public-Key-Pins report_uri must be a string")


def _build_hpkp(config: Mapping[str, Any]) -> tuple[str, str]:
    parts = [
        f'pin-{algorithm}="{digest}"'
        for pin in config["pins"]
        for algorithm, digest in pin.items()
    ]
    parts.append(f"max-age={config['max_age']}")
    if config.get("include_subdomains"):
        parts.append("includeSubDomains")
    if config.get("report_uri"):
        parts.append(f'report-uri="{config["report_uri"]}"')
    name = HPKP_REPORT_ONLY_HEADER_NAME if config.get("report_only") else HPKP_HEADER_NAME
    return name, "; ".join(parts)


# ── Simple enumerated headers ────────────────────────────────────────────

X_FRAME_OPTIONS_HEADER_NAME = "X-Frame-Options"
_X_FRAME_OPTIONS_RE = re.compile(r"^(sameorigin|deny|allow-from[: ]\s*\S+|allowall)$", re.IGNORECASE)

X_CONTENT_TYPE_OPTIONS_HEADER_NAME = "X-Content-Type-Options"
X_XSS_PROTECTION_HEADER_NAME = "X-XSS-Protection"
_X_XSS_PROTECTION_RE = re.compile(r"^[01](; mode=block)?(; report=\S+)?$", re.IGNORECASE)

X_DOWNLOAD_OPTIONS_HEADER_NAME = "X-Download-Options"
X_PERMITTED_CROSS_DOMAIN_POLICIES_HEADER_NAME = "X-Permitted-Cross-Domain-Policies"
_CROSS_DOMAIN_POLICIES = ("none", "master-only", "by-content-type", "by-ftp-filename", "all")

REFERRER_POLICY_HEADER_NAME = "Referrer-Policy"
_REFERRER_POLICIES = (
    "no-referrer",
    "no-referrer-when-downgrade",
    "origin",
    "origin-when-cross-origin",
    "unsafe-url",
)


def _pattern_validator(header: str, pattern: re.Pattern) -> Callable[[Any], None]:
    def validate(config: Any) -> None:
        if not isinstance(config, str) or not pattern.match(config):
            raise InvalidHeaderConfigError(f"Invalid {header} value: {config!r}")

    return validate


def _choice_validator(header: str, choices: tuple[str, ...]) -> Callable[[Any], None]:
    def validate(config: Any) -> None:
        if not isinstance(config, str) or config.lower() not in choices:
            raise InvalidHeaderConfigError(
                f"Invalid {header} value: {config!r}. Must be one of {', '.join(choices)}"
            )

    return validate


def _string_builder(header: str) -> Callable[[str], tuple[str, str]]:
    def build(config: str) -> tuple[str, str]:
        return header, config

    return build


# ── Dispatch table ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class HeaderSpec:
    """Validation and rendering for one non-CSP header."""

    key: HeaderKey
    default: Any
    validate: Callable[[Any], None]
    build: Callable[[Any], tuple[str, str]]


HEADER_SPECS: dict[HeaderKey, HeaderSpec] = {
    HeaderKey.hsts: HeaderSpec(HeaderKey.hsts, HSTS_DEFAULT, _validate_hsts, _build_hsts),
    HeaderKey.hpkp: HeaderSpec(HeaderKey.hpkp, OPT_OUT, _validate_hpkp, _build_hpkp),
    HeaderKey.x_frame_options: HeaderSpec(
        HeaderKey.x_frame_options,
        "SAMEORIGIN",
        _pattern_validator(X_FRAME_OPTIONS_HEADER_NAME, _X_FRAME_OPTIONS_RE),
        _string_builder(X_FRAME_OPTIONS_HEADER_NAME),
    ),
    HeaderKey.x_content_type_options: HeaderSpec(
        HeaderKey.x_content_type_options,
        "nosniff",
        _choice_validator(X_CONTENT_TYPE_OPTIONS_HEADER_NAME, ("nosniff",)),
        _string_builder(X_CONTENT_TYPE_OPTIONS_HEADER_NAME),
    ),
    HeaderKey.x_xss_protection: HeaderSpec(
        HeaderKey.x_xss_protection,
        "1; mode=block",
        _pattern_validator(X_XSS_PROTECTION_HEADER_NAME, _X_XSS_PROTECTION_RE),
        _string_builder(X_XSS_PROTECTION_HEADER_NAME),
    ),
    HeaderKey.x_download_options: HeaderSpec(
        HeaderKey.x_download_options,
        "noopen",
        _choice_validator(X_DOWNLOAD_OPTIONS_HEADER_NAME, ("noopen",)),
        _string_builder(X_DOWNLOAD_OPTIONS_HEADER_NAME),
    ),
    HeaderKey.x_permitted_cross_domain_policies: HeaderSpec(
        HeaderKey.x_permitted_cross_domain_policies,
        "none",
        _choice_validator(X_PERMITTED_CROSS_DOMAIN_POLICIES_HEADER_NAME, _CROSS_DOMAIN_POLICIES),
        _string_builder(X_PERMITTED_CROSS_DOMAIN_POLICIES_HEADER_NAME),
    ),
    HeaderKey.referrer_policy: HeaderSpec(
        HeaderKey.referrer_policy,
        OPT_OUT,
        _choice_validator(REFERRER_POLICY_HEADER_NAME, _REFERRER_POLICIES),
        _string_builder(REFERRER_POLICY_HEADER_NAME),
    ),
}


def validate_header(key: HeaderKey, config: Any) -> None:
    """Validate a non-CSP header config. OPT_OUT is always valid."""
    if isinstance(config, OptOut):
        return
    HEADER_SPECS[key].validate(config)


def make_header(key: HeaderKey, config: Any) -> tuple[str, str] | None:
    """Return ``(name, value)`` for a header, or None if it is opted out."""
    if isinstance(config, OptOut):
        return None
    return HEADER_SPECS[key].build(config)


# ── Cookies ──────────────────────────────────────────────────────────────

_COOKIE_FLAGS = ("secure", "httponly")
_SAMESITE_VALUES = ("lax", "strict")


def validate_cookies(config: Any) -> None:
    """Validate ``{secure, httponly: bool, samesite: {lax|strict: bool}}``."""
    if config is None or isinstance(config, OptOut):
        return
    if not isinstance(config, Mapping):
        raise InvalidHeaderConfigError("cookies config must be a mapping")
    for key, value in config.items():
        if key in _COOKIE_FLAGS:
            if not isinstance(value, bool):
                raise InvalidHeaderConfigError(f"cookies {key} must be a boolean value")
        elif key == "samesite":
            if not isinstance(value, Mapping) or len(value) != 1:
                raise InvalidHeaderConfigError("cookies samesite must configure exactly one of lax or strict")
            mode, enabled = next(iter(value.items()))
            if mode not in _SAMESITE_VALUES or not isinstance(enabled, bool):
                raise InvalidHeaderConfigError(f"Invalid samesite setting {mode}={enabled!r}")
        else:
            raise InvalidHeaderConfigError(f"Unknown cookies setting {key}")


def secure_cookie(set_cookie: str, config: Mapping[str, Any] | OptOut | None) -> str:
    """Add the configured attributes to one ``Set-Cookie`` header value."""
    if not config or isinstance(config, OptOut):
        return set_cookie
    existing = {part.strip().split("=", 1)[0].lower() for part in set_cookie.split(";")[1:]}
    parts = [set_cookie]
    if config.get("secure") and "secure" not in existing:
        parts.append("Secure")
    if config.get("httponly") and "httponly" not in existing:
        parts.append("HttpOnly")
    samesite = config.get("samesite")
    if samesite and "samesite" not in existing:
        for mode, enabled in samesite.items():
            if enabled:
                parts.append(f"SameSite={mode.capitalize()}")
    return "; ".join(parts)
