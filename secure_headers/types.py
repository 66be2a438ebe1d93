"""Shared value types: the opt-out sentinel and policy/header key enums."""

from __future__ import annotations

import enum
from typing import Any, Union


class OptOut(enum.Enum):
    """Sentinel meaning "never emit this header"."""

    OPT_OUT = "opt_out"

    def __repr__(self) -> str:
        return "OPT_OUT"


OPT_OUT = OptOut.OPT_OUT

# Directive name (e.g. "script_src") or meta key -> value
PolicyConfig = dict[str, Any]
PolicyOrOptOut = Union[PolicyConfig, OptOut]


class HeaderKey(str, enum.Enum):
    """Identifies one header slot of a configuration and its cache entry."""

    csp = "csp"
    csp_report_only = "csp_report_only"
    hsts = "hsts"
    hpkp = "hpkp"
    x_frame_options = "x_frame_options"
    x_content_type_options = "x_content_type_options"
    x_xss_protection = "x_xss_protection"
    x_download_options = "x_download_options"
    x_permitted_cross_domain_policies = "x_permitted_cross_domain_policies"
    referrer_policy = "referrer_policy"


CSP_KEYS = frozenset({HeaderKey.csp, HeaderKey.csp_report_only})

# Never sent over plain HTTP
HTTPS_ONLY_KEYS = frozenset({HeaderKey.hsts, HeaderKey.hpkp})


class Target(str, enum.Enum):
    """Which CSP variant a runtime override applies to."""

    enforced = "enforced"
    report_only = "report_only"
    both = "both"

    def includes(self, key: HeaderKey) -> bool:
        if self is Target.both:
            return True
        if self is Target.enforced:
            return key is HeaderKey.csp
        return key is HeaderKey.csp_report_only
