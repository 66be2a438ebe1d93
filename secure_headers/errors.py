"""Exception hierarchy for header configuration, state and registry failures."""

from __future__ import annotations


class SecureHeadersError(Exception):
    """Base class for all errors raised by this package."""


# ── Configuration (validation) errors ───────────────────────────────────


class ConfigurationError(SecureHeadersError, ValueError):
    """A header or policy configuration failed validation."""


class MissingDefaultSrcError(ConfigurationError):
    pass


class UnknownDirectiveError(ConfigurationError):
    pass


class TypeMismatchError(ConfigurationError):
    pass


class DeprecatedKeywordError(ConfigurationError):
    pass


class InvalidMetaValueError(ConfigurationError):
    pass


class InvalidHeaderConfigError(ConfigurationError):
    """A non-CSP header value is malformed."""


# ── State errors ─────────────────────────────────────────────────────────


class StateError(SecureHeadersError, RuntimeError):
    """An operation is illegal given the current state of a configuration."""


class FrozenConfigError(StateError):
    pass


class IllegalDirectModificationError(StateError):
    pass


class OptOutMergeError(StateError):
    pass


# ── Registry errors ──────────────────────────────────────────────────────


class RegistryError(SecureHeadersError, LookupError):
    """Named configuration lookup or registration failed."""


class NotConfiguredError(RegistryError):
    pass


class DuplicateConfigurationError(RegistryError):
    pass


class BaseNotFoundError(RegistryError):
    pass


class ReservedNameError(RegistryError):
    """The default and opt-out names are registered by ``default()`` only."""
