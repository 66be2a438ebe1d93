"""Shared test fixtures."""

from __future__ import annotations

import pytest

from secure_headers.registry import ConfigurationRegistry


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch, tmp_path):
    """Provide default settings for all tests."""
    monkeypatch.setenv("SECURE_HEADERS_LOG_JSON", "false")
    monkeypatch.setenv("SECURE_HEADERS_LOG_LEVEL", "debug")
    monkeypatch.setenv("SECURE_HEADERS_HASHES_FILE", str(tmp_path / "missing_hashes.yml"))
    monkeypatch.delenv("SECURE_HEADERS_PRESETS_FILE", raising=False)
    monkeypatch.delenv("SECURE_HEADERS_STRICT_OVERRIDES", raising=False)

    # Reset cached settings
    import secure_headers.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None


@pytest.fixture
def registry():
    """A registry configured with the library defaults."""
    registry = ConfigurationRegistry()
    registry.default()
    return registry


@pytest.fixture
def self_registry():
    """A registry whose default CSP only allows the page's own origin."""
    registry = ConfigurationRegistry()

    def configure(config):
        config.csp = {
            "default_src": ["'self'"],
            "script_src": ["'self'", "https://cdn.example.com"],
            "report_uri": ["/csp-report"],
        }
        config.csp_report_only = {"default_src": ["'self'"], "img_src": ["'self'", "data:"]}
        config.referrer_policy = "no-referrer"

    registry.default(configure)
    return registry
