"""Serialize a resolved CSP policy into a header for one browser family."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from secure_headers.csp.directives import (
    CANONICAL_ORDER,
    HEADER_NAME,
    NONE,
    REPORT_ONLY_HEADER_NAME,
    REPORT_URI,
    STAR,
    WILDCARD_SOURCES,
    DirectiveKind,
    Family,
    hyphenate,
    kind_of,
    supported_directives,
)

_HTTP_SCHEME_RE = re.compile(r"^https?://")
_WILDCARD_HOST_RE = re.compile(r"^(?:(?P<scheme>[a-z][a-z0-9+.-]*:)//)?\*\.(?P<domain>[^/:]+)$", re.IGNORECASE)


def header_name(policy: Mapping[str, Any]) -> str:
    return REPORT_ONLY_HEADER_NAME if policy.get("report_only") else HEADER_NAME


def render(policy: Mapping[str, Any], family: Family) -> str:
    """Build the header value for ``family``.

    Directives the family does not support are dropped. The caller must not
    pass OPT_OUT.
    """
    supported = supported_directives(family)
    preserve_schemes = bool(policy.get("preserve_schemes"))
    clauses = []
    for directive in CANONICAL_ORDER:
        if directive not in supported or directive not in policy:
            continue
        clause = _build_directive(directive, policy[directive], preserve_schemes)
        if clause:
            clauses.append(clause)
    return "; ".join(clauses)


def make_header(policy: Mapping[str, Any], family: Family) -> tuple[str, str]:
    return header_name(policy), render(policy, family)


def _build_directive(directive: str, value: Any, preserve_schemes: bool) -> str | None:
    kind = kind_of(directive)
    if kind is DirectiveKind.boolean:
        return hyphenate(directive) if value else None
    if kind is DirectiveKind.string:
        return f"{hyphenate(directive)} {value}" if value else None
    if value is None:
        return None
    sources = [s for s in value if s is not None]
    if not sources:
        return None
    return f"{hyphenate(directive)} {' '.join(_minify_source_list(directive, sources, preserve_schemes))}"


def _minify_source_list(directive: str, sources: list[str], preserve_schemes: bool) -> list[str]:
    if STAR in sources:
        return _dedup([s for s in sources if s in WILDCARD_SOURCES])
    sources = _dedup(sources)
    if len(sources) > 1:
        sources = [s for s in sources if s != NONE]
    if directive != REPORT_URI and not preserve_schemes:
        sources = [_HTTP_SCHEME_RE.sub("", s) for s in sources]
    return _drop_covered_hosts(_dedup(sources))


def _dedup(sources: list[str]) -> list[str]:
    return list(dict.fromkeys(sources))


def _drop_covered_hosts(sources: list[str]) -> list[str]:
    """Remove hosts already matched by a ``*.domain`` source in the same list."""
    wildcard_domains = []
    for source in sources:
        match = _WILDCARD_HOST_RE.match(source)
        if match:
            wildcard_domains.append(match.group("domain").lower())
    if not wildcard_domains:
        return sources

    kept = []
    for source in sources:
        host = _HTTP_SCHEME_RE.sub("", source).split("/", 1)[0].lower()
        covered = any(
            host.endswith("." + domain) and not host.startswith("*.")
            for domain in wildcard_domains
        )
        if not covered:
            kept.append(source)
    return kept
