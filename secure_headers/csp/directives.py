"""CSP directive schema: value kinds, browser-family support and ordering.

Directive names are snake_case (``script_src``) in configuration and rendered
hyphen-case (``script-src``) in headers.
"""

from __future__ import annotations

import enum


class DirectiveKind(str, enum.Enum):
    source_list = "source_list"
    boolean = "boolean"
    string = "string"


class Family(str, enum.Enum):
    """Coarse browser classification used to pick a directive set."""

    chrome = "Chrome"
    opera = "Opera"
    firefox = "Firefox"
    safari = "Safari"
    other = "Other"


HEADER_NAME = "Content-Security-Policy"
REPORT_ONLY_HEADER_NAME = "Content-Security-Policy-Report-Only"

# Source expressions
SELF = "'self'"
NONE = "'none'"
STAR = "*"
UNSAFE_INLINE = "'unsafe-inline'"
UNSAFE_EVAL = "'unsafe-eval'"
DATA_PROTOCOL = "data:"
BLOB_PROTOCOL = "blob:"

# Sources that survive alongside "*" in a source list
WILDCARD_SOURCES = (UNSAFE_EVAL, UNSAFE_INLINE, STAR, DATA_PROTOCOL, BLOB_PROTOCOL)

# Legacy keyword spellings that must now be single quoted
DEPRECATED_SOURCE_VALUES = frozenset({"self", "none", "unsafe-eval", "unsafe-inline", "inline", "eval"})

META_KEYS = ("report_only", "preserve_schemes")

DEFAULT_SRC = "default_src"
CONNECT_SRC = "connect_src"
FONT_SRC = "font_src"
FRAME_SRC = "frame_src"
IMG_SRC = "img_src"
MEDIA_SRC = "media_src"
OBJECT_SRC = "object_src"
SANDBOX = "sandbox"
SCRIPT_SRC = "script_src"
STYLE_SRC = "style_src"
REPORT_URI = "report_uri"

BASE_URI = "base_uri"
CHILD_SRC = "child_src"
FORM_ACTION = "form_action"
FRAME_ANCESTORS = "frame_ancestors"
PLUGIN_TYPES = "plugin_types"

MANIFEST_SRC = "manifest_src"
REFLECTED_XSS = "reflected_xss"

BLOCK_ALL_MIXED_CONTENT = "block_all_mixed_content"
UPGRADE_INSECURE_REQUESTS = "upgrade_insecure_requests"

DIRECTIVES_1_0 = (
    DEFAULT_SRC,
    CONNECT_SRC,
    FONT_SRC,
    FRAME_SRC,
    IMG_SRC,
    MEDIA_SRC,
    OBJECT_SRC,
    SANDBOX,
    SCRIPT_SRC,
    STYLE_SRC,
    REPORT_URI,
)

DIRECTIVES_2_0 = DIRECTIVES_1_0 + (
    BASE_URI,
    CHILD_SRC,
    FORM_ACTION,
    FRAME_ANCESTORS,
    PLUGIN_TYPES,
)

# Under consideration for CSP level 3; recognized but not emitted for any family
DIRECTIVES_3_0 = DIRECTIVES_2_0 + (MANIFEST_SRC, REFLECTED_XSS)

# Implemented by some browsers without a formal spec
DIRECTIVES_DRAFT = (BLOCK_ALL_MIXED_CONTENT, UPGRADE_INSECURE_REQUESTS)

# Source lists that do not fall back to default-src
NON_DEFAULT_SOURCES = frozenset({BASE_URI, FORM_ACTION, FRAME_ANCESTORS, PLUGIN_TYPES, REPORT_URI})

DIRECTIVE_VALUE_TYPES: dict[str, DirectiveKind] = {
    BASE_URI: DirectiveKind.source_list,
    BLOCK_ALL_MIXED_CONTENT: DirectiveKind.boolean,
    CHILD_SRC: DirectiveKind.source_list,
    CONNECT_SRC: DirectiveKind.source_list,
    DEFAULT_SRC: DirectiveKind.source_list,
    FONT_SRC: DirectiveKind.source_list,
    FORM_ACTION: DirectiveKind.source_list,
    FRAME_ANCESTORS: DirectiveKind.source_list,
    FRAME_SRC: DirectiveKind.source_list,
    IMG_SRC: DirectiveKind.source_list,
    MANIFEST_SRC: DirectiveKind.source_list,
    MEDIA_SRC: DirectiveKind.source_list,
    OBJECT_SRC: DirectiveKind.source_list,
    PLUGIN_TYPES: DirectiveKind.source_list,
    REFLECTED_XSS: DirectiveKind.string,
    REPORT_URI: DirectiveKind.source_list,
    SANDBOX: DirectiveKind.string,
    SCRIPT_SRC: DirectiveKind.source_list,
    STYLE_SRC: DirectiveKind.source_list,
    UPGRADE_INSECURE_REQUESTS: DirectiveKind.boolean,
}

ALL_DIRECTIVES: frozenset[str] = frozenset(DIRECTIVES_3_0 + DIRECTIVES_DRAFT)

# default-src opens the header and report-uri closes it; everything else is
# emitted in alphabetical order in between.
BODY_DIRECTIVES: tuple[str, ...] = tuple(sorted(ALL_DIRECTIVES - {DEFAULT_SRC, REPORT_URI}))
CANONICAL_ORDER: tuple[str, ...] = (DEFAULT_SRC, *BODY_DIRECTIVES, REPORT_URI)

_FIREFOX_UNSUPPORTED = frozenset({BLOCK_ALL_MIXED_CONTENT, CHILD_SRC, PLUGIN_TYPES})
_CHROME_DIRECTIVES = frozenset(DIRECTIVES_2_0 + DIRECTIVES_DRAFT)

VARIATIONS: dict[Family, frozenset[str]] = {
    Family.chrome: _CHROME_DIRECTIVES,
    Family.opera: _CHROME_DIRECTIVES,
    Family.firefox: _CHROME_DIRECTIVES - _FIREFOX_UNSUPPORTED,
    Family.safari: frozenset(DIRECTIVES_1_0),
    Family.other: _CHROME_DIRECTIVES,
}


def kind_of(directive: str) -> DirectiveKind | None:
    """Return the value kind of a directive, or None if it is not recognized."""
    return DIRECTIVE_VALUE_TYPES.get(directive)


def is_source_list(directive: str) -> bool:
    return DIRECTIVE_VALUE_TYPES.get(directive) is DirectiveKind.source_list


def inherits_default(directive: str) -> bool:
    """True for source-list directives that fall back to default-src when unset."""
    return is_source_list(directive) and directive not in NON_DEFAULT_SOURCES


def all_directives() -> frozenset[str]:
    return ALL_DIRECTIVES


def supported_directives(family: Family) -> frozenset[str]:
    return VARIATIONS[family]


def hyphenate(directive: str) -> str:
    """Convert a configuration key to its header spelling."""
    return directive.replace("_", "-")
