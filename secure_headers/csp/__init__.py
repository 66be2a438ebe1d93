"""Content-Security-Policy schema, validation, merging and rendering."""

from secure_headers.csp.directives import DirectiveKind, Family, supported_directives
from secure_headers.csp.merger import combine_policies, idempotent_additions
from secure_headers.csp.renderer import make_header, render
from secure_headers.csp.validator import validate_directives, validate_policy

__all__ = [
    "DirectiveKind",
    "Family",
    "combine_policies",
    "idempotent_additions",
    "make_header",
    "render",
    "supported_directives",
    "validate_directives",
    "validate_policy",
]
