# tests/unit/test_css_sanitizer.py
"""Tests for CSS sanitization: pre-pass, declarations, rules and entry points."""

import json

import pytest

from fixtures.samples import IMPORT_CSS
from svg_sanitizer.css_rules import Declaration, Literal, UriReference
from svg_sanitizer.css_sanitizer import (
    is_dangerous_member,
    pre_sanitize,
    sanitize_css,
    sanitize_declarations,
    sanitize_style_attribute,
)
from svg_sanitizer.patterns import decode_css_escapes
from svg_sanitizer.types import FilterStats, SanitizationOptions


def _events(caplog, event_type):
    return [
        json.loads(record.getMessage())
        for record in caplog.records
        if f'"event_type": "{event_type}"' in record.getMessage()
    ]


# =============================================================================
# Escape Decoding
# =============================================================================


class TestDecodeCssEscapes:
    """Tests for decode_css_escapes."""

    def test_plain_text_unchanged(self):
        assert decode_css_escapes("color: red") == "color: red"

    def test_none_and_empty(self):
        assert decode_css_escapes(None) == ""
        assert decode_css_escapes("") == ""

    def test_hex_escape_consumes_one_space(self):
        assert decode_css_escapes(r"\65 xpression") == "expression"

    def test_six_digit_hex_escape(self):
        assert decode_css_escapes(r"\000065xpression") == "expression"

    def test_hex_escape_consumes_crlf(self):
        assert decode_css_escapes("\\65\r\nxpression") == "expression"

    def test_single_character_escape(self):
        assert decode_css_escapes(r"java\script\:") == "javascript:"

    def test_fully_escaped_scheme(self):
        escaped = r"\6a\61\76\61\73\63\72\69\70\74\3a"
        assert decode_css_escapes(escaped) == "javascript:"

    def test_null_becomes_replacement_character(self):
        assert decode_css_escapes(r"a\0 b") == "a\ufffdb"

    def test_surrogate_becomes_replacement_character(self):
        assert decode_css_escapes(r"\d800 ") == "\ufffd"

    def test_out_of_range_becomes_replacement_character(self):
        assert decode_css_escapes(r"\110000 ") == "\ufffd"

    def test_escaped_newline_is_removed(self):
        assert decode_css_escapes("ab\\\ncd") == "abcd"

    def test_trailing_backslash_kept(self):
        assert decode_css_escapes("abc\\") == "abc\\"


# =============================================================================
# Pre-pass
# =============================================================================


class TestPreSanitize:
    """Tests for the text-level pre-pass."""

    def test_removes_import_url(self, default_options):
        result = pre_sanitize("@import url(evil.css); a{color:red}", default_options)
        assert "@import" not in result
        assert "a{color:red}" in result

    def test_removes_import_string(self, default_options):
        result = pre_sanitize('@import "evil.css" screen; a{}', default_options)
        assert "@import" not in result

    def test_removes_comments(self, default_options):
        assert pre_sanitize("a{/* hidden */color:red}", default_options) == "a{color:red}"

    def test_removes_unterminated_comment(self, default_options):
        assert pre_sanitize("a{color:red} /* never closed", default_options) == "a{color:red} "

    def test_import_split_by_comment_is_removed(self, default_options):
        result = pre_sanitize("@im/**/port url(evil.css); a{color:red}", default_options)
        assert "@import" not in result

    def test_whitespace_controls_become_spaces(self, default_options):
        assert pre_sanitize("div\n\tp{color:red}", default_options) == "div p{color:red}"

    def test_other_controls_removed(self, default_options):
        assert pre_sanitize("a\x00{\x01color:\x02red;\x7f}", default_options) == "a{color:red;}"

    def test_truncates_and_logs(self, sanitizer_logs):
        options = SanitizationOptions(max_css_length=10)
        result = pre_sanitize("a{color:red;background:blue}", options)

        assert len(result) == 10
        [event] = _events(sanitizer_logs, "css_truncated")
        assert event["max_length"] == 10
        assert event["original_length"] == 28


# =============================================================================
# Declarations
# =============================================================================


class TestIsDangerousMember:
    """Tests for value member classification."""

    def test_plain_literal_is_safe(self, default_options):
        assert is_dangerous_member(Literal("red"), default_options) is False

    def test_uri_dangerous_when_uris_disallowed(self, default_options):
        assert is_dangerous_member(UriReference("https://example.com/a.png"), default_options)

    def test_safe_uri_allowed_with_option(self, uri_options):
        member = UriReference("https://example.com/a.png")
        assert is_dangerous_member(member, uri_options) is False

    def test_script_uri_never_allowed(self, uri_options):
        assert is_dangerous_member(UriReference("javascript:alert(1)"), uri_options)

    def test_escaped_keyword_in_literal(self, default_options):
        assert is_dangerous_member(Literal(r"\65 xpression"), default_options)


class TestSanitizeDeclarations:
    """Tests for sanitize_declarations."""

    def test_keeps_safe_declaration(self, default_options):
        declarations = [Declaration("color", [Literal("red")])]
        assert sanitize_declarations(declarations, default_options) == declarations

    def test_drops_empty_value(self, default_options):
        assert sanitize_declarations([Declaration("color", [])], default_options) == []

    def test_drops_dangerous_property_name(self, default_options):
        declarations = [Declaration("-moz-binding", [Literal("none")])]
        assert sanitize_declarations(declarations, default_options) == []

    def test_neutralizes_background(self, default_options):
        declarations = [Declaration("background", [UriReference("javascript:alert(1)")])]
        [result] = sanitize_declarations(declarations, default_options)
        assert result.value == [Literal("none")]

    def test_neutralizes_color_property_to_transparent(self, default_options):
        declarations = [Declaration("border-color", [Literal("expression(1)")])]
        [result] = sanitize_declarations(declarations, default_options)
        assert result.value == [Literal("transparent")]

    def test_neutralized_keeps_important(self, default_options):
        declarations = [Declaration("width", [Literal("expression(1)")], important=True)]
        [result] = sanitize_declarations(declarations, default_options)
        assert result.value == [Literal("initial")]
        assert result.important is True

    def test_strict_whitelist(self, strict_options):
        declarations = [
            Declaration("color", [Literal("red")]),
            Declaration("custom-dangerous-property", [Literal("x")]),
        ]
        result = sanitize_declarations(declarations, strict_options)
        assert [d.property for d in result] == ["color"]

    def test_counts_neutralized(self, default_options):
        stats = FilterStats()
        declarations = [
            Declaration("width", [Literal("expression(1)")]),
            Declaration("content", [Literal("'javascript:x'")]),
        ]
        sanitize_declarations(declarations, default_options, stats)
        assert stats.css_declarations_neutralized == 2

    def test_logs_neutralized(self, default_options, sanitizer_logs):
        sanitize_declarations([Declaration("width", [Literal("expression(1)")])], default_options)
        [event] = _events(sanitizer_logs, "css_declaration_neutralized")
        assert event["property"] == "width"
        assert event["replacement"] == "initial"


# =============================================================================
# Basic Sanitization
# =============================================================================


class TestBasicSanitization:
    """Safe stylesheets come back minified and otherwise unchanged."""

    def test_simple_rule(self):
        result = sanitize_css("body { color: red; font-size: 14px; margin: 10px; }")
        assert result == "body{color:red;font-size:14px;margin:10px}"

    def test_multiple_rules(self):
        result = sanitize_css("h1 { color: blue; }\np { margin: 0; }")
        assert result == "h1{color:blue}p{margin:0}"

    def test_selector_whitespace_kept(self):
        assert sanitize_css("a > b { color: red }") == "a > b{color:red}"

    def test_important_kept(self):
        assert sanitize_css("a { color: red !important }") == "a{color:red!important}"

    def test_none_returns_empty(self):
        assert sanitize_css(None) == ""

    def test_blank_returns_empty(self):
        assert sanitize_css("   \n\t  ") == ""

    def test_only_comments_returns_empty(self):
        assert sanitize_css("/* nothing */ /* here */") == ""

    def test_rule_without_declarations_removed(self):
        assert sanitize_css("a {} b { color: red }") == "b{color:red}"


# =============================================================================
# Import Removal
# =============================================================================


class TestImportRemoval:
    """@import never survives, however it is written."""

    def test_import_url(self):
        result = sanitize_css(IMPORT_CSS)
        assert "@import" not in result
        assert "evil.com" not in result
        assert result == "body{color:red}"

    def test_import_string(self):
        result = sanitize_css("@import 'malicious.css'; body { color: red; }")
        assert "import" not in result
        assert "malicious" not in result

    def test_escaped_import(self):
        result = sanitize_css(r"@\69 mport url('malicious.css'); body { color: red; }")
        assert "import" not in result
        assert "malicious" not in result
        assert "color:red" in result

    def test_namespace_removed(self):
        result = sanitize_css("@namespace svg url(http://www.w3.org/2000/svg); a{color:red}")
        assert result == "a{color:red}"

    def test_other_at_rules_removed(self, default_options):
        stats = FilterStats()
        css = "@font-face { src: url(x.woff) } @keyframes spin { to { opacity: 0 } } a{color:red}"
        assert sanitize_css(css, default_options, stats) == "a{color:red}"
        assert stats.css_rules_removed == 2


# =============================================================================
# JavaScript Injection
# =============================================================================


class TestJavaScriptInjection:
    """Script payloads in values, properties and selectors are neutralized."""

    def test_javascript_url(self):
        result = sanitize_css("body{background:url('javascript:alert(1)')}")
        assert result == "body{background:none}"

    def test_unquoted_javascript_url(self):
        result = sanitize_css("body{background-image:url(javascript:void)}")
        assert result == "body{background-image:none}"

    def test_expression(self):
        result = sanitize_css("div { width: expression(alert('XSS')); }")
        assert result == "div{width:initial}"

    def test_behavior_property_dropped(self):
        result = sanitize_css("div { behavior: url('javascript:alert(\"XSS\")'); }")
        assert "javascript:" not in result
        assert "alert" not in result

    def test_moz_binding_dropped(self):
        result = sanitize_css(".test { -moz-binding: url('http://evil.com/xss.xml#xss'); }")
        assert "binding" not in result
        assert "evil.com" not in result

    def test_javascript_in_content(self):
        result = sanitize_css(".a { content: 'javascript:alert(1)'; }")
        assert result == ".a{content:normal}"

    def test_script_tag_in_content(self):
        result = sanitize_css(".a { content: '<script>alert(1)</script>'; color: red }")
        assert result == ".a{content:normal;color:red}"

    def test_dangerous_selector_drops_rule(self):
        result = sanitize_css("body[onclick=\"alert('XSS')\"] { color: red; } p { margin: 0 }")
        assert result == "p{margin:0}"


# =============================================================================
# Escape Obfuscation
# =============================================================================


class TestEscapeObfuscation:
    """Escaped payloads are decoded before classification."""

    def test_escaped_javascript_url(self):
        css = r"body { background: url('\6a\61\76\61\73\63\72\69\70\74:alert(1)'); }"
        assert sanitize_css(css) == "body{background:none}"

    def test_escaped_expression_function(self):
        result = sanitize_css(r"div { width: \65 xpression(alert(1)); }")
        assert result == "div{width:initial}"

    def test_escaped_keyword_identifier(self):
        result = sanitize_css(r"div { font-family: \65 \78 \70 \72 \65 \73 \73 \69 \6f \6e }")
        assert result == "div{font-family:initial}"

    def test_harmless_escapes_kept(self):
        result = sanitize_css(r".quote { content: '\201C Hello \201D'; }")
        assert result.startswith(".quote{content:")
        assert "normal" not in result

    def test_invalid_escape_is_harmless(self):
        result = sanitize_css(r".a { content: '\GGGGGG'; color: red }")
        assert "color:red" in result


# =============================================================================
# URIs
# =============================================================================


class TestUris:
    """url() handling with and without allow_uris."""

    def test_uris_blocked_by_default(self):
        result = sanitize_css("body { background: url('https://example.com/image.jpg'); }")
        assert result == "body{background:none}"

    def test_ftp_blocked(self, uri_options):
        result = sanitize_css("body { background: url('ftp://example.com/x'); }", uri_options)
        assert "ftp://" not in result

    def test_https_allowed_with_option(self, uri_options):
        css = "body { background: url('https://example.com/image.jpg'); }"
        result = sanitize_css(css, uri_options)
        assert "https://example.com/image.jpg" in result
        assert result.startswith("body{background:url(")

    def test_safe_data_uri_allowed(self, uri_options):
        css = "a { background: url(data:image/png;base64,iVBORw0KGgo=); }"
        result = sanitize_css(css, uri_options)
        assert "data:image/png;base64,iVBORw0KGgo=" in result

    def test_script_data_uri_blocked(self, uri_options):
        css = "a { background: url('data:text/html,<script>alert(1)</script>'); }"
        assert sanitize_css(css, uri_options) == "a{background:none}"

    def test_url_nested_in_function(self, default_options):
        css = "a { background: image-set(url(https://example.com/a.png) 1x); }"
        assert sanitize_css(css, default_options) == "a{background:none}"


# =============================================================================
# Media Rules and Nesting
# =============================================================================


def _nested_media(levels):
    return "@media screen{" * levels + "body{color:red}" + "}" * levels


class TestMediaRules:
    """@media is the only kept at-rule."""

    def test_safe_media_kept(self):
        css = "@media screen and (max-width: 600px) { body { color: blue; } }"
        assert sanitize_css(css) == "@media screen and (max-width: 600px){body{color:blue}}"

    def test_dangerous_query_dropped(self):
        css = "@media screen and (expression(alert(1))) { body { color: blue; } } a{color:red}"
        assert sanitize_css(css) == "a{color:red}"

    def test_rules_inside_media_sanitized(self):
        css = "@media print { a { width: expression(1); color: red } }"
        assert sanitize_css(css) == "@media print{a{width:initial;color:red}}"

    def test_emptied_media_removed(self):
        css = "@media print { a { behavior: url(x.htc) } } b{color:red}"
        assert sanitize_css(css) == "b{color:red}"

    def test_nesting_within_limit_kept(self):
        options = SanitizationOptions(max_nesting_depth=2)
        css = "@media a{@media b{x{color:red}}}"
        assert sanitize_css(css, options) == "@media a{@media b{x{color:red}}}"

    def test_nesting_beyond_limit_dropped(self, sanitizer_logs):
        options = SanitizationOptions(max_nesting_depth=1)
        assert sanitize_css("@media a{@media b{x{color:red}}}", options) == ""

        [event] = _events(sanitizer_logs, "css_nesting_limit_exceeded")
        assert event["depth"] == 2
        assert event["max_nesting_depth"] == 1

    def test_deep_nesting_default_limit(self):
        assert sanitize_css(_nested_media(15)) == ""
        assert sanitize_css(_nested_media(10)) == _nested_media(10)

    def test_deep_nesting_with_raised_limit(self):
        options = SanitizationOptions(max_nesting_depth=1000)
        css = _nested_media(500)
        assert sanitize_css(css, options) == css


# =============================================================================
# Complex Attacks
# =============================================================================


class TestComplexAttacks:
    """Mixed payloads in a single stylesheet."""

    def test_mixed_attack_vectors(self):
        css = """
            @import url('http://evil.com/x.css');
            body {
                background: url('javascript:alert(1)');
                behavior: url(xss.htc);
                width: expression(alert(2));
                content: '<script>evil()</script>';
                color: red;
            }
        """
        result = sanitize_css(css)
        assert result == "body{background:none;width:initial;content:normal;color:red}"

    def test_comment_hidden_expression(self):
        result = sanitize_css("div { width: expr/* hidden */ession(alert(1)); }")
        assert result == "div{width:initial}"

    def test_control_characters_in_keyword(self):
        result = sanitize_css("div { width: expr\x00ession(alert(1)); }")
        assert result == "div{width:initial}"


# =============================================================================
# Failure Handling
# =============================================================================


class TestFailureHandling:
    """The entry points never raise."""

    def test_unexpected_failure_returns_empty(self, sanitizer_logs):
        assert sanitize_css(b"a{color:red}") == ""
        assert _events(sanitizer_logs, "css_sanitize_error")

    def test_parse_errors_logged(self, sanitizer_logs):
        result = sanitize_css("a { background: url(x y); color: red }")
        assert result == "a{color:red}"
        assert _events(sanitizer_logs, "css_parse_failed")

    def test_double_semicolons(self):
        assert sanitize_css("body { color: red;; font-size: 14px }") == (
            "body{color:red;font-size:14px}"
        )


# =============================================================================
# Style Attributes
# =============================================================================


class TestSanitizeStyleAttribute:
    """Tests for sanitize_style_attribute."""

    def test_safe_declarations(self):
        assert sanitize_style_attribute("fill: red; stroke-width: 2") == "fill:red;stroke-width:2"

    def test_neutralizes_url(self):
        result = sanitize_style_attribute("fill: red; background: url(http://evil.com/x.png)")
        assert result == "fill:red;background:none"

    def test_drops_dangerous_property(self):
        assert sanitize_style_attribute("behavior: url(x.htc); fill: blue") == "fill:blue"

    def test_strict_whitelist(self, strict_options):
        result = sanitize_style_attribute("fill: red; cursor: pointer", strict_options)
        assert result == "fill:red"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank(self, value):
        assert sanitize_style_attribute(value) == ""

    def test_counts_into_stats(self, default_options):
        stats = FilterStats()
        sanitize_style_attribute("width: expression(1)", default_options, stats)
        assert stats.css_declarations_neutralized == 1
