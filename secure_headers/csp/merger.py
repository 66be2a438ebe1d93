"""Directive-aware combination of CSP policies."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from secure_headers.csp.directives import DEFAULT_SRC, inherits_default, is_source_list
from secure_headers.errors import OptOutMergeError
from secure_headers.types import OptOut, PolicyConfig, PolicyOrOptOut


def combine_policies(original: PolicyOrOptOut, additions: Mapping[str, Any]) -> PolicyConfig:
    """Combine the values from two policies into a new one.

    1. Non-source-list values (meta flags, booleans, strings) in ``additions``
       overwrite the original value.
    2. A source list in ``additions`` that is missing from ``original`` is
       first seeded with original's default_src, so appending to an unset
       directive keeps the sources it was inheriting.
    3. Source lists present in both are unioned, preserving order.

    Directives that end up None or empty are dropped. ``original`` is not
    modified.

    Raises OptOutMergeError if ``original`` is OPT_OUT.
    """
    if isinstance(original, OptOut):
        raise OptOutMergeError("Attempted to override an opt-out CSP config.")

    merged: PolicyConfig = {key: copy.copy(value) for key, value in original.items()}

    for directive in additions:
        if merged.get(directive) is None and inherits_default(directive):
            merged[directive] = copy.copy(merged.get(DEFAULT_SRC))

    for directive, rhs in additions.items():
        lhs = merged.get(directive)
        if directive in merged and is_source_list(directive):
            merged[directive] = _union(lhs, rhs)
        else:
            merged[directive] = copy.copy(rhs)

    return {key: value for key, value in merged.items() if value is not None and value != []}


def idempotent_additions(original: PolicyOrOptOut, additions: PolicyOrOptOut) -> bool:
    """True if merging ``additions`` would not change ``original``.

    e.g. original = {script_src: ["example.org", "google.com"]} and
    additions = {script_src: ["google.com"]} is idempotent because google.com
    is already present.
    """
    if isinstance(original, OptOut) or isinstance(additions, OptOut):
        return False
    return combine_policies(original, additions) == original


def _union(lhs: Any, rhs: Any) -> list[Any]:
    result: list[Any] = []
    for source in [*(lhs or []), *(rhs or [])]:
        if source is not None and source not in result:
            result.append(source)
    return result
