"""Named, append-only store of frozen configurations."""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog

from secure_headers.configuration import Configuration, ConfigurationBuilder
from secure_headers.errors import (
    BaseNotFoundError,
    DuplicateConfigurationError,
    NotConfiguredError,
    ReservedNameError,
)
from secure_headers.types import CSP_KEYS, OPT_OUT, HeaderKey

logger = structlog.get_logger()

DEFAULT_CONFIG = "default"
NOOP_CONFIGURATION = "secure_headers_noop_config"

Configure = Callable[[ConfigurationBuilder], None]


class ConfigurationRegistry:
    """Holds the default configuration and any named overrides.

    Owned by the application's start-up code and passed to whatever handles
    requests. Entries are validated and frozen on insertion and never
    replaced or removed.
    """

    def __init__(self) -> None:
        self._configurations: dict[str, Configuration] = {}
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return DEFAULT_CONFIG in self._configurations

    def names(self) -> list[str]:
        return list(self._configurations)

    def default(self, configure: Configure | None = None) -> Configuration:
        """Register the default configuration and the opt-out-of-everything one."""
        config = self._register(DEFAULT_CONFIG, configure)
        self._register(NOOP_CONFIGURATION, _opt_out_of_everything)
        return config

    configure = default

    def register(self, name: str, configure: Configure | None = None) -> Configuration:
        """Build a configuration, optionally customized by ``configure``, and store it.

        The reserved names are only registered through ``default()``.
        """
        if name in (DEFAULT_CONFIG, NOOP_CONFIGURATION):
            raise ReservedNameError(f"{name} is reserved; register the default with default()")
        if not self.is_configured:
            raise NotConfiguredError("Default policy not yet supplied")
        return self._register(name, configure)

    def override(self, name: str, configure: Configure | None = None, base: str = DEFAULT_CONFIG) -> Configuration:
        """Register ``name`` as a copy of ``base`` modified by ``configure``."""
        if name in (DEFAULT_CONFIG, NOOP_CONFIGURATION):
            raise ReservedNameError(f"{name} is reserved")
        base_config = self._configurations.get(base)
        if base_config is None:
            raise BaseNotFoundError(f"{base} policy not yet supplied")
        builder = base_config.duplicate()
        if configure is not None:
            configure(builder)
        config = self._add(name, builder)
        logger.info("configuration_override_registered", name=name, base=base)
        return config

    def lookup(self, name: str = DEFAULT_CONFIG) -> Configuration:
        if not self.is_configured:
            raise NotConfiguredError("Default policy not yet supplied")
        config = self._configurations.get(name)
        if config is None:
            raise NotConfiguredError(f"no configuration by the name of {name} has been registered")
        return config

    def __contains__(self, name: str) -> bool:
        return name in self._configurations

    def _register(self, name: str, configure: Configure | None) -> Configuration:
        builder = ConfigurationBuilder()
        if configure is not None:
            configure(builder)
        return self._add(name, builder)

    def _add(self, name: str, builder: ConfigurationBuilder) -> Configuration:
        # Raises before anything is stored
        config = builder.build()
        with self._lock:
            if name in self._configurations:
                raise DuplicateConfigurationError(f"A configuration named {name} already exists")
            self._configurations[name] = config
        logger.info("configuration_registered", name=name)
        return config


def _opt_out_of_everything(builder: ConfigurationBuilder) -> None:
    builder.csp = OPT_OUT
    builder.csp_report_only = OPT_OUT
    for key in HeaderKey:
        if key not in CSP_KEYS:
            builder.set_header(key, OPT_OUT)
    builder.dynamic_csp = OPT_OUT
    builder.dynamic_csp_report_only = OPT_OUT
