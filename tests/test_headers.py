"""Tests for the non-CSP header builders and validators."""

from __future__ import annotations

import pytest

from secure_headers.errors import InvalidHeaderConfigError
from secure_headers.headers import (
    HEADER_SPECS,
    make_header,
    secure_cookie,
    validate_cookies,
    validate_header,
)
from secure_headers.types import CSP_KEYS, OPT_OUT, HeaderKey


class TestDispatchTable:
    def test_every_non_csp_header_has_a_spec(self):
        assert set(HEADER_SPECS) == set(HeaderKey) - CSP_KEYS

    def test_defaults_are_valid(self):
        for key, spec in HEADER_SPECS.items():
            validate_header(key, spec.default)

    def test_opt_out_builds_nothing(self):
        for key in HEADER_SPECS:
            assert make_header(key, OPT_OUT) is None
            validate_header(key, OPT_OUT)


class TestStrictTransportSecurity:
    def test_default(self):
        assert make_header(HeaderKey.hsts, HEADER_SPECS[HeaderKey.hsts].default) == (
            "Strict-Transport-Security",
            "max-age=631138519",
        )

    @pytest.mark.parametrize("value", [
        "max-age=31536000",
        "max-age=31536000; includeSubdomains",
        "max-age=63072000; includeSubDomains; preload",
    ])
    def test_valid(self, value):
        validate_header(HeaderKey.hsts, value)

    @pytest.mark.parametrize("value", ["max-age=abc", "includeSubdomains", "", 31536000])
    def test_invalid(self, value):
        with pytest.raises(InvalidHeaderConfigError):
            validate_header(HeaderKey.hsts, value)


class TestPublicKeyPins:
    CONFIG = {
        "max_age": 5184000,
        "pins": [{"sha256": "abc"}, {"sha256": "def"}],
        "include_subdomains": True,
        "report_uri": "https://report.example.com/hpkp",
    }

    def test_build(self):
        name, value = make_header(HeaderKey.hpkp, self.CONFIG)
        assert name == "Public-Key-Pins"
        assert value == (
            'pin-sha256="abc"; pin-sha256="def"; max-age=5184000; includeSubDomains; '
            'report-uri="https://report.example.com/hpkp"'
        )

    def test_report_only(self):
        name, _ = make_header(HeaderKey.hpkp, {**self.CONFIG, "report_only": True})
        assert name == "Public-Key-Pins-Report-Only"

    def test_valid(self):
        validate_header(HeaderKey.hpkp, self.CONFIG)

    def test_missing_max_age(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_header(HeaderKey.hpkp, {"pins": [{"sha256": "abc"}]})

    def test_missing_pins(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_header(HeaderKey.hpkp, {"max_age": 10, "pins": []})

    def test_unsupported_algorithm(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_header(HeaderKey.hpkp, {"max_age": 10, "pins": [{"md5": "abc"}]})


class TestSimpleHeaders:
    @pytest.mark.parametrize("key,value", [
        (HeaderKey.x_frame_options, "DENY"),
        (HeaderKey.x_frame_options, "sameorigin"),
        (HeaderKey.x_frame_options, "ALLOW-FROM https://example.com"),
        (HeaderKey.x_content_type_options, "nosniff"),
        (HeaderKey.x_xss_protection, "0"),
        (HeaderKey.x_xss_protection, "1; mode=block"),
        (HeaderKey.x_xss_protection, "1; mode=block; report=/xss"),
        (HeaderKey.x_download_options, "noopen"),
        (HeaderKey.x_permitted_cross_domain_policies, "master-only"),
        (HeaderKey.referrer_policy, "no-referrer"),
        (HeaderKey.referrer_policy, "origin-when-cross-origin"),
    ])
    def test_valid(self, key, value):
        validate_header(key, value)
        assert make_header(key, value)[1] == value

    @pytest.mark.parametrize("key,value", [
        (HeaderKey.x_frame_options, "NEVER"),
        (HeaderKey.x_content_type_options, "sniff"),
        (HeaderKey.x_xss_protection, "2"),
        (HeaderKey.x_download_options, "open"),
        (HeaderKey.x_permitted_cross_domain_policies, "some"),
        (HeaderKey.referrer_policy, "everywhere"),
        (HeaderKey.referrer_policy, None),
    ])
    def test_invalid(self, key, value):
        with pytest.raises(InvalidHeaderConfigError):
            validate_header(key, value)

    def test_header_names(self):
        assert make_header(HeaderKey.x_frame_options, "DENY")[0] == "X-Frame-Options"
        assert make_header(HeaderKey.x_xss_protection, "0")[0] == "X-XSS-Protection"
        assert make_header(HeaderKey.x_permitted_cross_domain_policies, "none")[0] == (
            "X-Permitted-Cross-Domain-Policies"
        )
        assert make_header(HeaderKey.referrer_policy, "origin")[0] == "Referrer-Policy"


class TestCookies:
    def test_valid_config(self):
        validate_cookies({"secure": True, "httponly": True, "samesite": {"strict": True}})

    def test_non_boolean_flag(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_cookies({"secure": "yes"})

    def test_unknown_samesite(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_cookies({"samesite": {"none": True}})

    def test_unknown_setting(self):
        with pytest.raises(InvalidHeaderConfigError):
            validate_cookies({"domain": "example.com"})

    def test_flags_added(self):
        cookie = secure_cookie("session=abc; Path=/", {"secure": True, "httponly": True, "samesite": {"lax": True}})
        assert cookie == "session=abc; Path=/; Secure; HttpOnly; SameSite=Lax"

    def test_existing_flags_not_duplicated(self):
        cookie = secure_cookie("session=abc; Secure; SameSite=strict", {"secure": True, "samesite": {"lax": True}})
        assert cookie == "session=abc; Secure; SameSite=strict"

    def test_no_config(self):
        assert secure_cookie("session=abc", None) == "session=abc"
        assert secure_cookie("session=abc", OPT_OUT) == "session=abc"
