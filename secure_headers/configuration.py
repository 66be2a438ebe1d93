"""Header configurations: a mutable builder and the frozen value it produces.

A ``ConfigurationBuilder`` collects header settings, then ``build()``
validates them, precomputes every header (the CSP ones once per browser
family) and returns an immutable ``Configuration``. At request time a frozen
configuration is ``duplicate()``-d into a new builder that owns deep copies of
all of its state, so per-request overrides never leak into the shared value.
"""

from __future__ import annotations

import copy
import types
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from secure_headers.csp.directives import Family
from secure_headers.csp.merger import combine_policies, idempotent_additions
from secure_headers.csp.renderer import make_header as make_csp_header
from secure_headers.csp.validator import validate_directives, validate_policy
from secure_headers.errors import FrozenConfigError, IllegalDirectModificationError, TypeMismatchError
from secure_headers.headers import HEADER_SPECS, make_header, validate_cookies, validate_header
from secure_headers.types import CSP_KEYS, OPT_OUT, HeaderKey, OptOut, PolicyOrOptOut, Target

logger = structlog.get_logger()

DEFAULT_CSP: dict[str, Any] = {"default_src": ["https:"]}

HeaderPair = tuple[str, str]
CachedHeaders = Mapping[HeaderKey, Any]  # HeaderPair, or {Family: HeaderPair} for CSP keys


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return types.MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


def _check_policy_shape(key: HeaderKey, policy: Any) -> None:
    if not isinstance(policy, (Mapping, OptOut)):
        raise TypeMismatchError(f"{key.value} must be a mapping of directives or OPT_OUT")


class _HeaderField:
    """Declares one non-CSP header slot; assignment goes through ``set_header``."""

    def __init__(self, key: HeaderKey) -> None:
        self.key = key

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance._headers[self.key]

    def __set__(self, instance: Any, value: Any) -> None:
        instance.set_header(self.key, value)


class _HeaderSource:
    """Read side shared by builders and frozen configurations."""

    hsts = _HeaderField(HeaderKey.hsts)
    hpkp = _HeaderField(HeaderKey.hpkp)
    x_frame_options = _HeaderField(HeaderKey.x_frame_options)
    x_content_type_options = _HeaderField(HeaderKey.x_content_type_options)
    x_xss_protection = _HeaderField(HeaderKey.x_xss_protection)
    x_download_options = _HeaderField(HeaderKey.x_download_options)
    x_permitted_cross_domain_policies = _HeaderField(HeaderKey.x_permitted_cross_domain_policies)
    referrer_policy = _HeaderField(HeaderKey.referrer_policy)

    _csp: PolicyOrOptOut
    _csp_report_only: PolicyOrOptOut
    _dynamic: dict[HeaderKey, PolicyOrOptOut]
    _headers: dict[HeaderKey, Any]
    _cookies: Any
    _cached_headers: CachedHeaders
    _cached_policies: Mapping[HeaderKey, PolicyOrOptOut]

    @property
    def csp(self) -> PolicyOrOptOut:
        return self._csp

    @property
    def csp_report_only(self) -> PolicyOrOptOut:
        return self._csp_report_only

    @property
    def cookies(self) -> Any:
        return self._cookies

    @property
    def dynamic_csp(self) -> PolicyOrOptOut | None:
        return self._dynamic.get(HeaderKey.csp)

    @property
    def dynamic_csp_report_only(self) -> PolicyOrOptOut | None:
        return self._dynamic.get(HeaderKey.csp_report_only)

    @property
    def current_csp(self) -> PolicyOrOptOut:
        return self.current_policy(HeaderKey.csp)

    @property
    def current_csp_report_only(self) -> PolicyOrOptOut:
        return self.current_policy(HeaderKey.csp_report_only)

    @property
    def cached_headers(self) -> CachedHeaders:
        return self._cached_headers

    def static_policy(self, key: HeaderKey) -> PolicyOrOptOut:
        return self._csp if key is HeaderKey.csp else self._csp_report_only

    def current_policy(self, key: HeaderKey) -> PolicyOrOptOut:
        """The dynamic override for ``key`` if one exists, else the static policy."""
        dynamic = self._dynamic.get(key)
        return self.static_policy(key) if dynamic is None else dynamic

    def header_config(self, key: HeaderKey) -> Any:
        if key in CSP_KEYS:
            return self.static_policy(key)
        return self._headers[key]

    def resolve_headers(
        self,
        family: Family,
        include: Callable[[HeaderKey], bool] | None = None,
    ) -> dict[str, str]:
        """Return ``{header name: value}`` for a request from ``family``.

        ``include`` selects which header keys apply to the request (see
        ``overrides.header_keys_for_scheme``). CSP variants whose active
        policy differs from the one the cache was built from are rendered on
        demand; the cache itself is never modified here.
        """
        resolved: dict[str, str] = {}
        for key in HeaderKey:
            if include is not None and not include(key):
                continue
            if key in CSP_KEYS:
                pair = self._csp_header_for(key, family)
            else:
                pair = self._cached_headers.get(key)
            if pair is not None:
                name, value = pair
                resolved[name] = value
        return resolved

    def _csp_header_for(self, key: HeaderKey, family: Family) -> HeaderPair | None:
        current = self.current_policy(key)
        if self._cache_is_current(key, current):
            variations = self._cached_headers.get(key)
            return variations[family] if variations else None
        if isinstance(current, OptOut):
            return None
        logger.debug("csp_header_rendered_on_demand", header=key.value, family=family.value)
        return make_csp_header(current, family)

    def _cache_is_current(self, key: HeaderKey, current: PolicyOrOptOut) -> bool:
        if key not in self._cached_policies:
            return False
        source = self._cached_policies[key]
        if source is current or source == current:
            return True
        return idempotent_additions(source, current) and idempotent_additions(current, source)


class Configuration(_HeaderSource):
    """An immutable, validated configuration with precomputed headers.

    Created by ``ConfigurationBuilder.build()``; any attribute assignment
    raises ``FrozenConfigError``.
    """

    def __init__(self, builder: ConfigurationBuilder) -> None:
        object.__setattr__(self, "_csp", _freeze(builder.current_csp))
        object.__setattr__(self, "_csp_report_only", _freeze(builder.current_csp_report_only))
        object.__setattr__(self, "_dynamic", types.MappingProxyType({}))
        object.__setattr__(self, "_headers", types.MappingProxyType({k: _freeze(v) for k, v in builder._headers.items()}))
        object.__setattr__(self, "_cookies", _freeze(builder.cookies))
        object.__setattr__(self, "_cached_headers", _freeze(builder.cached_headers))
        object.__setattr__(
            self,
            "_cached_policies",
            types.MappingProxyType({HeaderKey.csp: self._csp, HeaderKey.csp_report_only: self._csp_report_only}),
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise FrozenConfigError(f"Cannot modify {name}: configuration is frozen. Use duplicate().")

    def __delattr__(self, name: str) -> None:
        raise FrozenConfigError(f"Cannot delete {name}: configuration is frozen.")

    def set_header(self, key: HeaderKey, value: Any) -> None:
        raise FrozenConfigError(f"Cannot modify {key.value}: configuration is frozen. Use duplicate().")

    def duplicate(self) -> ConfigurationBuilder:
        """Return a mutable deep copy that keeps the precomputed headers."""
        builder = ConfigurationBuilder()
        builder._csp = _thaw(self._csp)
        builder._csp_report_only = _thaw(self._csp_report_only)
        builder._headers = {k: _thaw(v) for k, v in self._headers.items()}
        builder._cookies = _thaw(self._cookies)
        builder._cached_headers = {
            k: dict(v) if isinstance(v, Mapping) else v for k, v in self._cached_headers.items()
        }
        builder._cached_policies = {k: _thaw(v) for k, v in self._cached_policies.items()}
        return builder

    def __repr__(self) -> str:
        return f"Configuration(csp={_thaw(self._csp)!r}, csp_report_only={_thaw(self._csp_report_only)!r})"


class ConfigurationBuilder(_HeaderSource):
    """Mutable configuration used while registering or handling a request."""

    def __init__(self) -> None:
        self._csp = copy.deepcopy(DEFAULT_CSP)
        self._csp_report_only = OPT_OUT
        self._dynamic = {}
        self._headers = {key: spec.default for key, spec in HEADER_SPECS.items()}
        self._cookies = None
        self._cached_headers = {}
        self._cached_policies = {}

    # ── Static policies ──────────────────────────────────────────────────

    @_HeaderSource.csp.setter
    def csp(self, policy: PolicyOrOptOut) -> None:
        _check_policy_shape(HeaderKey.csp, policy)
        if self.dynamic_csp is not None:
            raise IllegalDirectModificationError(
                "You are attempting to modify CSP settings directly. Use dynamic CSP overrides instead."
            )
        if isinstance(policy, Mapping) and policy.get("report_only"):
            logger.warning("csp_report_only_flag_on_enforced_policy", hint="use csp_report_only instead")
        self._csp = copy.deepcopy(policy)

    @_HeaderSource.csp_report_only.setter
    def csp_report_only(self, policy: PolicyOrOptOut) -> None:
        _check_policy_shape(HeaderKey.csp_report_only, policy)
        if self.dynamic_csp_report_only is not None:
            raise IllegalDirectModificationError(
                "You are attempting to modify CSP settings directly. Use dynamic CSP overrides instead."
            )
        policy = copy.deepcopy(policy)
        if isinstance(policy, dict):
            if policy.get("report_only") is False:
                logger.warning("csp_report_only_disabled_on_report_only_policy", hint="use csp instead")
            policy.setdefault("report_only", True)
        self._csp_report_only = policy

    @_HeaderSource.cookies.setter
    def cookies(self, value: Any) -> None:
        validate_cookies(value)
        self._cookies = copy.deepcopy(value)

    # ── Dynamic policies ─────────────────────────────────────────────────

    @_HeaderSource.dynamic_csp.setter
    def dynamic_csp(self, policy: PolicyOrOptOut | None) -> None:
        self._set_dynamic(HeaderKey.csp, policy)

    @_HeaderSource.dynamic_csp_report_only.setter
    def dynamic_csp_report_only(self, policy: PolicyOrOptOut | None) -> None:
        self._set_dynamic(HeaderKey.csp_report_only, policy)

    def _set_dynamic(self, key: HeaderKey, policy: PolicyOrOptOut | None) -> None:
        if policy is None:
            self._dynamic.pop(key, None)
            return
        _check_policy_shape(key, policy)
        self._dynamic[key] = policy

    def override_directives(
        self,
        additions: Mapping[str, Any],
        target: Target | str = Target.both,
        validate: bool = True,
    ) -> None:
        """Replace directives in the active policy for ``target``.

        An opted-out policy is replaced by an empty one first, so overriding
        always produces a header.
        """
        target = Target(target)
        if validate:
            validate_directives(additions)
        for key in (HeaderKey.csp, HeaderKey.csp_report_only):
            if not target.includes(key):
                continue
            current = self.current_policy(key)
            if isinstance(current, OptOut):
                current = {"report_only": True} if key is HeaderKey.csp_report_only else {}
            self._dynamic[key] = {**copy.deepcopy(current), **copy.deepcopy(dict(additions))}

    def append_directives(
        self,
        additions: Mapping[str, Any],
        target: Target | str = Target.both,
        validate: bool = True,
    ) -> None:
        """Combine sources into the active policy for ``target``.

        Opted-out policies are left untouched.
        """
        target = Target(target)
        if validate:
            validate_directives(additions)
        for key in (HeaderKey.csp, HeaderKey.csp_report_only):
            if not target.includes(key):
                continue
            current = self.current_policy(key)
            if isinstance(current, OptOut):
                logger.debug("csp_append_skipped_opt_out", header=key.value)
                continue
            self._dynamic[key] = combine_policies(current, additions)

    # ── Other headers ────────────────────────────────────────────────────

    def set_header(self, key: HeaderKey, value: Any) -> None:
        """Assign a non-CSP header config, refreshing its cached value if any."""
        if key in CSP_KEYS:
            raise TypeMismatchError(f"Use the csp/csp_report_only attributes to set {key.value}")
        validate_header(key, value)
        self._headers[key] = copy.deepcopy(value)
        if self._cached_policies:
            pair = make_header(key, value)
            if pair is None:
                self._cached_headers.pop(key, None)
            else:
                self._cached_headers[key] = pair

    def update_x_frame_options(self, value: str) -> None:
        self.set_header(HeaderKey.x_frame_options, value)

    def opt_out(self, key: HeaderKey | str) -> None:
        """Stop emitting one header."""
        key = HeaderKey(key)
        if key in CSP_KEYS:
            self._dynamic[key] = OPT_OUT
        else:
            self._headers[key] = OPT_OUT
        self._cached_headers.pop(key, None)
        logger.debug("header_opted_out", header=key.value)

    # ── Freezing ─────────────────────────────────────────────────────────

    def validate_config(self) -> None:
        """Validate every header config. Raises a ConfigurationError subclass."""
        validate_policy(self.current_csp)
        validate_policy(self.current_csp_report_only)
        for key, value in self._headers.items():
            validate_header(key, value)
        validate_cookies(self._cookies)

    def cache_headers(self) -> CachedHeaders:
        """Precompute every header; CSP headers once per browser family."""
        headers: dict[HeaderKey, Any] = {}
        for key, value in self._headers.items():
            pair = make_header(key, value)
            if pair is not None:
                headers[key] = pair
        policies = {}
        for key in (HeaderKey.csp, HeaderKey.csp_report_only):
            policy = self.current_policy(key)
            policies[key] = copy.deepcopy(policy)
            if not isinstance(policy, OptOut):
                headers[key] = {family: make_csp_header(policy, family) for family in Family}
        self._cached_headers = headers
        self._cached_policies = policies
        return headers

    def build(self) -> Configuration:
        """Validate, precompute headers and return the frozen configuration.

        Dynamic policies present at this point become the static ones.
        """
        self.validate_config()
        self.cache_headers()
        return Configuration(self)

    def __repr__(self) -> str:
        return (
            f"ConfigurationBuilder(csp={self._csp!r}, csp_report_only={self._csp_report_only!r}, "
            f"dynamic={self._dynamic!r})"
        )
