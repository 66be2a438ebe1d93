"""Classify a User-Agent string into a browser family."""

from __future__ import annotations

import re

from secure_headers.csp.directives import Family

# Order matters: Opera and Edge also send "Chrome/", and Chrome sends "Safari/".
_FAMILY_PATTERNS: list[tuple[re.Pattern, Family]] = [
    (re.compile(r"\bOPR/|\bOpera\b", re.IGNORECASE), Family.opera),
    (re.compile(r"\bFirefox/|\bFxiOS/", re.IGNORECASE), Family.firefox),
    (re.compile(r"\bEdge?/", re.IGNORECASE), Family.other),
    (re.compile(r"\bChrome/|\bCriOS/|\bChromium/", re.IGNORECASE), Family.chrome),
    (re.compile(r"\bVersion/[\d.]+.*\bSafari/", re.IGNORECASE), Family.safari),
]


def classify(user_agent: str | None) -> Family:
    """Return the family for a User-Agent header; Family.other if unknown."""
    if not user_agent:
        return Family.other
    for pattern, family in _FAMILY_PATTERNS:
        if pattern.search(user_agent):
            return family
    return Family.other
