# src/svg_sanitizer/css_sanitizer.py
"""CSS sanitization.

Stylesheet text goes through two passes:

1. A text-level pre-pass that removes control characters, ``@import`` rules
   and comments, then truncates to ``max_css_length``.
2. A structural pass over the rule tree (see css_rules) that drops
   ``@import``/``@namespace`` and every other at-rule except ``@media``,
   drops style rules with dangerous selectors, and rewrites dangerous
   declarations to a harmless default value.

Both entry points never raise. Any unexpected failure is logged and yields
an empty string, since losing styling is always safer than keeping a payload.
"""

import re

from .css_rules import (
    Declaration,
    ExpressionMember,
    FunctionCall,
    ImportRule,
    Literal,
    MediaRule,
    NamespaceRule,
    StyleRule,
    Stylesheet,
    TopLevelRule,
    UnsupportedAtRule,
    UriReference,
    parse_declarations,
    parse_stylesheet,
    serialize_declarations,
    serialize_stylesheet,
)
from .patterns import (
    SAFE_PROPERTIES,
    contains_dangerous_content,
    contains_dangerous_name,
    decode_css_escapes,
    is_uri_safe,
    safe_default_for,
)
from .types import DEFAULT_OPTIONS, FilterStats, NestingLimitExceeded, SanitizationOptions
from .utils import log_error, log_op, log_warning

# =============================================================================
# Pre-pass Patterns
# =============================================================================

IMPORT_PATTERN = re.compile(
    r"@import\s+(?:url\s*\([^)]*\)|['\"][^'\"]*['\"])\s*[^;]*;?",
    re.IGNORECASE,
)

# A comment, or an unterminated comment running to the end of the text
COMMENT_PATTERN = re.compile(r"/\*.*?(?:\*/|\Z)", re.DOTALL)

# CSS whitespace controls keep their token-separating role
WHITESPACE_CONTROL_PATTERN = re.compile(r"[\t\n\r\f]+")
CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b\x0e-\x1f\x7f]")

# =============================================================================
# Pre-pass
# =============================================================================


def _strip_until_stable(text: str) -> str:
    # Removing one construct can splice the text around it into a new one
    while True:
        stripped = COMMENT_PATTERN.sub("", IMPORT_PATTERN.sub("", text))
        if stripped == text:
            return text
        text = stripped


def pre_sanitize(css: str, options: SanitizationOptions) -> str:
    """Text-level cleanup applied before the stylesheet is parsed."""
    css = WHITESPACE_CONTROL_PATTERN.sub(" ", css)
    css = CONTROL_PATTERN.sub("", css)
    css = _strip_until_stable(css)

    if len(css) > options.max_css_length:
        log_warning(
            "css_truncated",
            original_length=len(css),
            max_length=options.max_css_length,
        )
        css = css[: options.max_css_length]

    return css


# =============================================================================
# Declarations
# =============================================================================


def _is_uri_allowed(uri: str, options: SanitizationOptions) -> bool:
    return options.allow_uris and is_uri_safe(uri)


def is_dangerous_member(member: ExpressionMember, options: SanitizationOptions) -> bool:
    """Decide whether one value member makes its declaration dangerous."""
    if isinstance(member, UriReference):
        return not _is_uri_allowed(member.uri, options)

    if isinstance(member, FunctionCall):
        if not all(_is_uri_allowed(uri, options) for uri in member.uris):
            return True
        text = f"{member.name}({member.arguments})"
    else:
        text = member.text

    decoded = decode_css_escapes(text)
    return contains_dangerous_content(decoded) or contains_dangerous_name(decoded)


def sanitize_declarations(
    declarations: list[Declaration],
    options: SanitizationOptions,
    stats: FilterStats | None = None,
) -> list[Declaration]:
    """Filter and neutralize a declaration list, preserving order."""
    kept = []
    for declaration in declarations:
        prop = declaration.property.strip().lower()
        if not prop or not declaration.value or contains_dangerous_name(prop):
            continue
        if options.strict_property_whitelist and prop not in SAFE_PROPERTIES:
            continue

        if any(is_dangerous_member(member, options) for member in declaration.value):
            replacement = safe_default_for(prop)
            log_op(
                "css_declaration_neutralized",
                property=prop,
                replacement=replacement,
            )
            declaration.value = [Literal(replacement)]
            if stats is not None:
                stats.css_declarations_neutralized += 1

        kept.append(declaration)
    return kept


# =============================================================================
# Rules
# =============================================================================


def _sanitize_style_rule(
    rule: StyleRule,
    options: SanitizationOptions,
    stats: FilterStats | None,
) -> bool:
    """Sanitize a style rule in place. Returns False if the rule must go."""
    if contains_dangerous_content(decode_css_escapes(rule.selector)):
        return False
    rule.declarations = sanitize_declarations(rule.declarations, options, stats)
    return bool(rule.declarations)


def _check_nesting(depth: int, options: SanitizationOptions) -> None:
    if depth > options.max_nesting_depth:
        raise NestingLimitExceeded(depth, options.max_nesting_depth)


def sanitize_stylesheet(
    sheet: Stylesheet,
    options: SanitizationOptions,
    stats: FilterStats | None = None,
) -> Stylesheet:
    """Sanitize a rule tree in place.

    Media rules are walked with an explicit work-list. A media rule nested
    deeper than ``max_nesting_depth`` is dropped with everything inside it.
    Media rules left empty are removed afterwards, innermost first.
    """
    removed = 0
    media_rules: list[tuple[list[TopLevelRule], MediaRule]] = []
    work: list[tuple[list[TopLevelRule], int]] = [(sheet.rules, 0)]

    while work:
        rules, depth = work.pop()
        kept: list[TopLevelRule] = []
        for rule in rules:
            if isinstance(rule, StyleRule):
                if _sanitize_style_rule(rule, options, stats):
                    kept.append(rule)
                else:
                    removed += 1
            elif isinstance(rule, MediaRule):
                try:
                    _check_nesting(depth + 1, options)
                except NestingLimitExceeded as e:
                    log_warning(
                        "css_nesting_limit_exceeded",
                        depth=e.depth,
                        max_nesting_depth=e.limit,
                    )
                    removed += 1
                    continue
                if contains_dangerous_content(decode_css_escapes(rule.query)):
                    removed += 1
                    continue
                kept.append(rule)
                media_rules.append((rules, rule))
                work.append((rule.rules, depth + 1))
            elif isinstance(rule, (ImportRule, NamespaceRule, UnsupportedAtRule)):
                removed += 1
            else:
                raise TypeError(f"Unknown rule type: {type(rule).__name__}")
        rules[:] = kept

    # Discovery order puts parents before children; reverse it so a parent
    # emptied by removing its last child is seen after that child
    for parent, media in reversed(media_rules):
        if not media.rules:
            parent[:] = [rule for rule in parent if rule is not media]
            removed += 1

    if stats is not None:
        stats.css_rules_removed += removed
    return sheet


# =============================================================================
# Entry Points
# =============================================================================


def sanitize_css(
    css: str | None,
    options: SanitizationOptions | None = None,
    stats: FilterStats | None = None,
) -> str:
    """Sanitize stylesheet text (a ``<style>`` body or a CSS file).

    Args:
        css: Stylesheet text; None or blank yields ""
        options: Sanitization options, DEFAULT_OPTIONS if omitted
        stats: Optional counters updated with removed rules and
            neutralized declarations

    Returns:
        Minified, sanitized CSS. Empty string if nothing survives or
        anything goes wrong.
    """
    if css is None:
        return ""
    if options is None:
        options = DEFAULT_OPTIONS

    try:
        if not css.strip():
            return ""
        sheet = parse_stylesheet(pre_sanitize(css, options))
        if sheet.parse_errors:
            log_warning("css_parse_failed", parse_errors=sheet.parse_errors)
        return serialize_stylesheet(sanitize_stylesheet(sheet, options, stats))
    except Exception as e:
        log_error("css_sanitize_error", e, css_length=len(css))
        return ""


def sanitize_style_attribute(
    css: str | None,
    options: SanitizationOptions | None = None,
    stats: FilterStats | None = None,
) -> str:
    """Sanitize the declaration list of a ``style="..."`` attribute.

    Same rules as sanitize_css, applied to declarations only. Returns "" when
    no declaration survives.
    """
    if css is None:
        return ""
    if options is None:
        options = DEFAULT_OPTIONS

    try:
        if not css.strip():
            return ""
        declarations, errors = parse_declarations(pre_sanitize(css, options))
        if errors:
            log_warning("css_parse_failed", parse_errors=errors, mode="style_attribute")
        return serialize_declarations(sanitize_declarations(declarations, options, stats))
    except Exception as e:
        log_error("css_sanitize_error", e, css_length=len(css), mode="style_attribute")
        return ""
