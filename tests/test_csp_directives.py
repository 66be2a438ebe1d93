"""Tests for the CSP directive schema."""

from __future__ import annotations

from secure_headers.csp.directives import (
    CANONICAL_ORDER,
    DIRECTIVES_1_0,
    DirectiveKind,
    Family,
    all_directives,
    hyphenate,
    inherits_default,
    is_source_list,
    kind_of,
    supported_directives,
)


class TestDirectiveKinds:
    def test_source_list(self):
        assert kind_of("script_src") is DirectiveKind.source_list
        assert is_source_list("report_uri")

    def test_boolean(self):
        assert kind_of("upgrade_insecure_requests") is DirectiveKind.boolean
        assert not is_source_list("block_all_mixed_content")

    def test_string(self):
        assert kind_of("sandbox") is DirectiveKind.string

    def test_unknown(self):
        assert kind_of("script-src") is None
        assert kind_of("made_up_src") is None
        assert not is_source_list("made_up_src")

    def test_every_directive_has_a_kind(self):
        for directive in all_directives():
            assert kind_of(directive) is not None


class TestDefaultInheritance:
    def test_fetch_directives_inherit(self):
        for directive in ("script_src", "style_src", "img_src", "child_src", "connect_src"):
            assert inherits_default(directive)

    def test_excluded_directives_do_not_inherit(self):
        for directive in ("base_uri", "form_action", "frame_ancestors", "plugin_types", "report_uri"):
            assert not inherits_default(directive)

    def test_non_source_lists_do_not_inherit(self):
        assert not inherits_default("sandbox")
        assert not inherits_default("upgrade_insecure_requests")


class TestFamilySupport:
    def test_chrome_opera_other_share_modern_set(self):
        chrome = supported_directives(Family.chrome)
        assert supported_directives(Family.opera) == chrome
        assert supported_directives(Family.other) == chrome
        assert {"child_src", "plugin_types", "block_all_mixed_content", "upgrade_insecure_requests"} <= chrome

    def test_firefox_excludes_unsupported(self):
        firefox = supported_directives(Family.firefox)
        assert "block_all_mixed_content" not in firefox
        assert "child_src" not in firefox
        assert "plugin_types" not in firefox
        assert "frame_ancestors" in firefox
        assert "upgrade_insecure_requests" in firefox

    def test_safari_is_level_one_only(self):
        assert supported_directives(Family.safari) == frozenset(DIRECTIVES_1_0)
        assert "base_uri" not in supported_directives(Family.safari)

    def test_level_three_directives_are_never_emitted(self):
        for family in Family:
            assert "manifest_src" not in supported_directives(family)
            assert "reflected_xss" not in supported_directives(family)


class TestOrdering:
    def test_default_src_first_report_uri_last(self):
        assert CANONICAL_ORDER[0] == "default_src"
        assert CANONICAL_ORDER[-1] == "report_uri"

    def test_body_is_alphabetical(self):
        body = list(CANONICAL_ORDER[1:-1])
        assert body == sorted(body)
        assert len(CANONICAL_ORDER) == len(all_directives())

    def test_hyphenate(self):
        assert hyphenate("block_all_mixed_content") == "block-all-mixed-content"
