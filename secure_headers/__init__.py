"""
Security response headers with per-browser CSP and per-request overrides.
"""

__version__ = "0.1.0"

from secure_headers.configuration import Configuration, ConfigurationBuilder
from secure_headers.csp.directives import Family
from secure_headers.overrides import HeaderRequest, header_hash_for
from secure_headers.registry import DEFAULT_CONFIG, NOOP_CONFIGURATION, ConfigurationRegistry
from secure_headers.types import OPT_OUT, HeaderKey, Target

__all__ = [
    "DEFAULT_CONFIG",
    "NOOP_CONFIGURATION",
    "OPT_OUT",
    "Configuration",
    "ConfigurationBuilder",
    "ConfigurationRegistry",
    "Family",
    "HeaderKey",
    "HeaderRequest",
    "Target",
    "header_hash_for",
]
