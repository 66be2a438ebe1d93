"""Settings, hash manifest, presets and bootstrap tests."""

from __future__ import annotations

import os

import pytest

from secure_headers.bootstrap import bootstrap
from secure_headers.config.hash_manifest import HashManifest, load_hash_manifest
from secure_headers.config.loader import DEFAULT_HASHES_FILE, HeaderSettings, get_settings, load_settings
from secure_headers.config.presets import BUNDLED_PRESETS_PATH, apply_preset, load_presets, register_presets
from secure_headers.configuration import ConfigurationBuilder
from secure_headers.csp.directives import Family
from secure_headers.errors import DeprecatedKeywordError, InvalidHeaderConfigError
from secure_headers.registry import DEFAULT_CONFIG, NOOP_CONFIGURATION
from secure_headers.types import OPT_OUT


class TestHeaderSettings:
    """Test env var settings loading."""

    def test_default_values(self, monkeypatch):
        """Settings have sensible defaults."""
        # Clear env vars that conftest sets, so we test true defaults
        for key in list(os.environ):
            if key.startswith("SECURE_HEADERS_"):
                monkeypatch.delenv(key, raising=False)
        settings = HeaderSettings()
        assert settings.log_level == "info"
        assert settings.log_json is True
        assert settings.hashes_file == DEFAULT_HASHES_FILE
        assert settings.presets_file is None
        assert settings.strict_overrides is True

    def test_env_override(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("SECURE_HEADERS_LOG_LEVEL", "warning")
        monkeypatch.setenv("SECURE_HEADERS_STRICT_OVERRIDES", "false")
        monkeypatch.setenv("SECURE_HEADERS_PRESETS_FILE", "/etc/presets.yaml")
        settings = HeaderSettings()
        assert settings.log_level == "warning"
        assert settings.strict_overrides is False
        assert settings.presets_file == "/etc/presets.yaml"

    def test_load_settings_returns_instance(self):
        """load_settings returns a HeaderSettings instance."""
        settings = load_settings()
        assert isinstance(settings, HeaderSettings)
        assert get_settings() is settings

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()


class TestHashManifest:
    def test_missing_file_is_empty(self, tmp_path):
        manifest = load_hash_manifest(tmp_path / "nope.yml")
        assert manifest.scripts == {}
        assert manifest.styles == {}

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "hashes.yml"
        path.write_text(
            "scripts:\n"
            "  app/views/home.html:\n"
            "    - sha256-abc\n"
            "    - sha256-def\n"
            "styles:\n"
            "  app/views/home.html: sha256-ghi\n"
        )
        manifest = load_hash_manifest(path)
        assert manifest.scripts["app/views/home.html"] == ["sha256-abc", "sha256-def"]
        assert manifest.styles["app/views/home.html"] == ["sha256-ghi"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "hashes.yml"
        path.write_text("")
        assert load_hash_manifest(path) == HashManifest()

    def test_sources_are_quoted(self):
        manifest = HashManifest(scripts={"a": ["sha256-abc", "'sha256-def'"]})
        assert manifest.script_sources("a") == ["'sha256-abc'", "'sha256-def'"]
        assert manifest.style_sources("a") == []

    def test_null_section(self):
        assert HashManifest.model_validate({"scripts": None}).scripts == {}


class TestPresets:
    def test_bundled_presets(self):
        presets = load_presets()
        assert set(presets) == {"strict", "balanced", "permissive"}

    def test_bundled_presets_register(self, registry):
        names = register_presets(registry, load_presets(BUNDLED_PRESETS_PATH))
        assert names == ["strict", "balanced", "permissive"]
        strict = registry.lookup("strict").resolve_headers(Family.chrome)
        assert strict["X-Frame-Options"] == "DENY"
        assert strict["Referrer-Policy"] == "no-referrer"
        assert strict["Strict-Transport-Security"] == "max-age=63072000; includeSubDomains; preload"
        assert "frame-ancestors 'none'" in strict["Content-Security-Policy"]

    def test_presets_do_not_change_default(self, registry):
        register_presets(registry, load_presets())
        assert registry.lookup(DEFAULT_CONFIG).x_frame_options == "SAMEORIGIN"

    def test_missing_file(self, tmp_path):
        assert load_presets(tmp_path / "nope.yaml") == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "presets.yaml"
        path.write_text("- strict\n- balanced\n")
        with pytest.raises(InvalidHeaderConfigError):
            load_presets(path)

    def test_opt_out_string(self):
        builder = ConfigurationBuilder()
        apply_preset(builder, {"hsts": "opt_out", "csp": "opt_out"})
        assert builder.hsts is OPT_OUT
        assert builder.csp is OPT_OUT

    def test_cookies_and_report_only(self):
        builder = ConfigurationBuilder()
        apply_preset(builder, {
            "cookies": {"secure": True},
            "csp_report_only": {"default_src": ["'self'"]},
        })
        assert builder.cookies == {"secure": True}
        assert builder.csp_report_only == {"default_src": ["'self'"], "report_only": True}

    def test_unknown_header(self):
        with pytest.raises(InvalidHeaderConfigError):
            apply_preset(ConfigurationBuilder(), {"x_powered_by": "nope"})

    def test_invalid_preset_rejected(self, registry):
        with pytest.raises(DeprecatedKeywordError):
            register_presets(registry, {"bad": {"csp": {"default_src": ["self"]}}})
        assert "bad" not in registry


class TestBootstrap:
    def test_defaults(self):
        registry, manifest = bootstrap()
        assert registry.names() == [DEFAULT_CONFIG, NOOP_CONFIGURATION]
        assert manifest == HashManifest()

    def test_configure_callback(self):
        registry, _ = bootstrap(lambda config: config.update_x_frame_options("DENY"))
        assert registry.lookup().x_frame_options == "DENY"

    def test_presets_from_settings(self, monkeypatch):
        monkeypatch.setenv("SECURE_HEADERS_PRESETS_FILE", str(BUNDLED_PRESETS_PATH))
        registry, _ = bootstrap()
        assert "strict" in registry
        assert "permissive" in registry

    def test_manifest_from_settings(self, monkeypatch, tmp_path):
        path = tmp_path / "hashes.yml"
        path.write_text("scripts:\n  app.js: sha256-abc\n")
        monkeypatch.setenv("SECURE_HEADERS_HASHES_FILE", str(path))
        _, manifest = bootstrap()
        assert manifest.script_sources("app.js") == ["'sha256-abc'"]

    def test_explicit_settings(self, tmp_path):
        settings = HeaderSettings(hashes_file=str(tmp_path / "none.yml"), log_json=False)
        registry, manifest = bootstrap(settings=settings)
        assert registry.is_configured
        assert manifest.scripts == {}
