# src/svg_sanitizer/patterns.py
"""Classification tables for the markup and CSS sanitizers.

All tables are frozensets built once at import time and never mutated, so
they are shared across threads without locking.

The helpers at the bottom of this module are the single source of truth for
"is this attribute unsafe" so that the sanitizer and the detection predicates
can never disagree about what counts as a script or an external reference.
"""

import re

# =============================================================================
# Markup Tables
# =============================================================================

# Elements removed together with their entire subtree (compared lowercase)
UNSAFE_ELEMENTS = frozenset(
    {
        "script",
        "foreignobject",
        "iframe",
        "embed",
        "object",
    }
)

# Element whose text content is handed to the CSS sanitizer
STYLE_ELEMENT = "style"

# Attributes whose value is loaded or navigated to by the renderer
REFERENCE_ATTRIBUTES = frozenset({"href", "src", "data"})

# URL schemes that execute code when followed
SCRIPT_SCHEMES = ("javascript:", "vbscript:", "livescript:")

# =============================================================================
# CSS Tables
# =============================================================================

# The only at-rule whose nested rules are kept
CONTAINER_AT_RULES = frozenset({"media"})

DANGEROUS_FUNCTIONS = frozenset(
    {
        "expression",
        "javascript",
        "behavior",
        "-moz-binding",
        "binding",
    }
)

# Function names that reference a resource the same way url() does
URI_FUNCTIONS = frozenset({"url", "src"})

DANGEROUS_PROTOCOLS = (
    "javascript:",
    "vbscript:",
    "data:",
    "file:",
    "ftp:",
)

DANGEROUS_KEYWORDS = (
    "<script",
    "<iframe",
    "<object",
    "<embed",
    "<form",
    "<input",
    "<textarea",
    "<select",
    "<button",
    "<link",
    "<meta",
    "<base",
    "srcdoc=",
    "onload=",
    "onerror=",
    "onclick=",
    "eval(",
    "@import",
)

# Properties kept when strict_property_whitelist is enabled
SAFE_PROPERTIES = frozenset(
    {
        "color",
        "background-color",
        "border-color",
        "font-family",
        "font-size",
        "font-weight",
        "font-style",
        "text-align",
        "text-decoration",
        "margin",
        "padding",
        "border",
        "border-width",
        "border-style",
        "width",
        "height",
        "display",
        "position",
        "top",
        "left",
        "right",
        "bottom",
        "z-index",
        "opacity",
        "visibility",
        "overflow",
        "float",
        "clear",
        "line-height",
        # SVG paint properties
        "fill",
        "fill-opacity",
        "fill-rule",
        "stroke",
        "stroke-width",
        "stroke-linecap",
        "stroke-linejoin",
        "stroke-opacity",
    }
)

# Replacement values for neutralized declarations, keyed by property
SAFE_DEFAULTS = {
    "background": "none",
    "background-image": "none",
    "content": "normal",
}
COLOR_DEFAULT = "transparent"
FALLBACK_DEFAULT = "initial"

# =============================================================================
# CSS Escapes
# =============================================================================

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_MAX_CODE_POINT = 0x10FFFF
_REPLACEMENT_CHARACTER = "\ufffd"


def decode_css_escapes(text: str | None) -> str:
    """Decode CSS backslash escapes.

    Handles hexadecimal escapes of 1-6 digits (one trailing whitespace
    character, or CRLF, is part of the escape), escaped newlines (removed),
    and single-character escapes (``\\:`` becomes ``:``). Null, surrogate and
    out-of-range code points decode to U+FFFD. A trailing lone backslash is
    kept.

    Examples:
        >>> decode_css_escapes(r"\\65 xpression")
        'expression'
        >>> decode_css_escapes(r"java\\script")
        'javascript'
    """
    if not text or "\\" not in text:
        return text or ""

    result = []
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char != "\\" or i + 1 >= length:
            result.append(char)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in _HEX_DIGITS:
            j = i + 1
            while j < length and j - (i + 1) < 6 and text[j] in _HEX_DIGITS:
                j += 1
            code_point = int(text[i + 1 : j], 16)
            if code_point == 0 or 0xD800 <= code_point <= 0xDFFF or code_point > _MAX_CODE_POINT:
                result.append(_REPLACEMENT_CHARACTER)
            else:
                result.append(chr(code_point))
            if text.startswith("\r\n", j):
                j += 2
            elif j < length and text[j] in " \t\n\r\f":
                j += 1
            i = j
        elif nxt in "\n\r\f":
            # Escaped newline is a line continuation
            i += 3 if text.startswith("\r\n", i + 1) else 2
        else:
            result.append(nxt)
            i += 2

    return "".join(result)


# =============================================================================
# Classification Helpers
# =============================================================================

# Browsers drop ASCII whitespace and C0 controls while parsing a URL scheme
_URL_NOISE_RE = re.compile(r"[\x00-\x20\x7f]+")

# url(...) references inside an attribute value such as fill="url(#grad)"
_ATTRIBUTE_URL_RE = re.compile(r"url\(\s*(['\"]?)(.*?)\1\s*\)", re.IGNORECASE | re.DOTALL)


def local_name(qualified_name: str) -> str:
    """Return the part of a qualified XML name after the prefix, lowercased."""
    return qualified_name.rpartition(":")[2].lower()


def normalize_url(value: str) -> str:
    """Lowercase a URL and remove characters browsers ignore in the scheme."""
    return _URL_NOISE_RE.sub("", value).lower()


def is_script_uri(value: str) -> bool:
    """Check if a URL-ish value starts with a script-capable scheme.

    Only the start of the value is checked. A scheme inside a list value,
    such as ``values="#a;javascript:x"`` on ``<animate>``, is not matched.
    """
    return normalize_url(value).startswith(SCRIPT_SCHEMES)


def is_local_reference(value: str) -> bool:
    """Check if a reference stays inside the document (fragment or data: URI)."""
    normalized = normalize_url(value)
    return normalized.startswith("#") or normalized.startswith("data:")


def is_external_reference(value: str | None) -> bool:
    """Check if a non-empty reference points outside the document."""
    if value is None or not value.strip():
        return False
    return not is_local_reference(value)


def attribute_urls(value: str) -> list[str]:
    """Extract url(...) targets from an attribute value.

    Presentation attributes are parsed as CSS, so escapes are decoded first:
    ``u\\72l(x.svg)`` is a real ``url(`` to the renderer.
    """
    decoded = decode_css_escapes(value)
    return [match.group(2) for match in _ATTRIBUTE_URL_RE.finditer(decoded)]


def is_unsafe_attribute(name: str, value: str) -> bool:
    """Classify an attribute as unsafe.

    An attribute is unsafe when it is an event handler (``on*``), when its
    value starts with a script-capable scheme, when it is a reference
    attribute (``href``, ``xlink:href``, ``src``, ``data``) pointing outside
    the document, or when it holds a ``url(...)`` that does.

    Args:
        name: Qualified attribute name, e.g. ``xlink:href``
        value: Attribute value as parsed (entities already decoded)

    Returns:
        True if the attribute must be removed.
    """
    attr_name = local_name(name)
    if attr_name.startswith("on"):
        return True
    if is_script_uri(value):
        return True
    if attr_name in REFERENCE_ATTRIBUTES and not is_local_reference(value):
        return True
    return any(not is_local_reference(url) for url in attribute_urls(value))


def safe_default_for(property_name: str) -> str:
    """Return the value a neutralized declaration is rewritten to."""
    if property_name in SAFE_DEFAULTS:
        return SAFE_DEFAULTS[property_name]
    if property_name.endswith("color"):
        return COLOR_DEFAULT
    return FALLBACK_DEFAULT


def contains_dangerous_content(text: str | None) -> bool:
    """Check decoded CSS text for dangerous functions, protocols or keywords."""
    if not text:
        return False

    lower = text.lower()

    for func in DANGEROUS_FUNCTIONS:
        if func + "(" in lower:
            return True

    for protocol in DANGEROUS_PROTOCOLS:
        if protocol in lower:
            return True

    return any(keyword in lower for keyword in DANGEROUS_KEYWORDS)


def contains_dangerous_name(text: str | None) -> bool:
    """Check decoded CSS text for a dangerous function name, called or not.

    An escaped identifier is written back in clear text, so a bare name such
    as ``\\65 xpression`` must be caught even without a following ``(``.
    """
    if not text:
        return False
    lower = text.lower()
    return any(func in lower for func in DANGEROUS_FUNCTIONS)


def is_uri_safe(uri: str | None) -> bool:
    """Check if a CSS URI may be kept when URIs are allowed.

    ``data:`` URIs are only kept when their payload carries no script.
    """
    if uri is None:
        return False

    lower_uri = uri.strip().lower()

    if lower_uri.startswith("data:"):
        return "javascript" not in lower_uri and "<script" not in lower_uri

    return not normalize_url(uri).startswith(DANGEROUS_PROTOCOLS)
