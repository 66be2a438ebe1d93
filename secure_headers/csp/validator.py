"""CSP policy validation.

Validation raises on the first problem found and returns None otherwise.
Individual source expressions are not parsed: ``h*t*t*p:`` is accepted as a
source, but unquoted legacy keywords such as ``self`` are rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from secure_headers.csp.directives import (
    DEFAULT_SRC,
    DEPRECATED_SOURCE_VALUES,
    META_KEYS,
    DirectiveKind,
    kind_of,
)
from secure_headers.errors import (
    DeprecatedKeywordError,
    InvalidMetaValueError,
    MissingDefaultSrcError,
    TypeMismatchError,
    UnknownDirectiveError,
)
from secure_headers.types import OptOut


def validate_policy(config: Mapping[str, Any] | OptOut | None) -> None:
    """Validate a full policy. OPT_OUT and None are always valid."""
    if config is None or isinstance(config, OptOut):
        return
    if not isinstance(config, Mapping):
        raise TypeMismatchError(f"CSP config must be a mapping, not {type(config).__name__}")
    if config.get(DEFAULT_SRC) is None:
        raise MissingDefaultSrcError(":default_src is required")
    validate_directives(config)


def validate_directives(config: Mapping[str, Any]) -> None:
    """Validate each key of a (possibly partial) policy.

    Used on its own for runtime additions, which need not carry default_src.
    """
    for key, value in config.items():
        if key in META_KEYS:
            if value is not None and not isinstance(value, bool):
                raise InvalidMetaValueError(f"{key} must be a boolean value")
        else:
            validate_directive(key, value)


def validate_directive(key: str, value: Any) -> None:
    kind = kind_of(key)
    if kind is None:
        raise UnknownDirectiveError(f"Unknown directive {key}")
    if kind is DirectiveKind.boolean:
        if not isinstance(value, bool):
            raise TypeMismatchError(f"{key} must be a boolean value")
    elif kind is DirectiveKind.string:
        if not isinstance(value, str):
            raise TypeMismatchError(f"{key} must be a string. Found {type(value).__name__}: {value!r}")
    else:
        _validate_source_expression(key, value)


def _validate_source_expression(key: str, value: Any) -> None:
    # A bare string is a sequence too, but never a valid source list
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise TypeMismatchError(f"{key} must be an array of strings")
    if not all(isinstance(v, str) for v in value if v is not None):
        raise TypeMismatchError(f"{key} must be an array of strings")
    for source_expression in value:
        if source_expression in DEPRECATED_SOURCE_VALUES:
            raise DeprecatedKeywordError(
                f"{key} contains an invalid keyword source ({source_expression}). "
                "This value must be single quoted."
            )
