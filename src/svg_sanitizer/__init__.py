# src/svg_sanitizer/__init__.py
"""Streaming SVG/XML and CSS sanitizer.

Removes script, event handlers, external references and entity expansion
from untrusted SVG, and rewrites embedded CSS to a safe subset.

Usage:
    from svg_sanitizer import sanitize, sanitize_css

    clean_svg = sanitize(untrusted_svg)
    clean_css = sanitize_css(untrusted_css)
"""

from .css_sanitizer import sanitize_css, sanitize_style_attribute
from .detection import (
    contains_entity_declaration,
    contains_external_resource,
    contains_script,
    contains_script_in_style,
)
from .patterns import decode_css_escapes
from .streaming import SanitizedStream, sanitize_to_stream
from .svg_sanitizer import sanitize, sanitize_stream, sanitize_tokens
from .types import (
    DEFAULT_OPTIONS,
    Attribute,
    Characters,
    Comment,
    ConfigurationError,
    DocTypeDeclaration,
    EndElement,
    EntityReference,
    NestingLimitExceeded,
    ParseError,
    ProcessingInstruction,
    SanitizationOptions,
    SanitizerError,
    StartElement,
    StreamCancelled,
    StreamError,
    Token,
    XmlDeclaration,
)

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_OPTIONS",
    "Attribute",
    "Characters",
    "Comment",
    "ConfigurationError",
    "DocTypeDeclaration",
    "EndElement",
    "EntityReference",
    "NestingLimitExceeded",
    "ParseError",
    "ProcessingInstruction",
    "SanitizationOptions",
    "SanitizedStream",
    "SanitizerError",
    "StartElement",
    "StreamCancelled",
    "StreamError",
    "Token",
    "XmlDeclaration",
    "contains_entity_declaration",
    "contains_external_resource",
    "contains_script",
    "contains_script_in_style",
    "decode_css_escapes",
    "sanitize",
    "sanitize_css",
    "sanitize_stream",
    "sanitize_style_attribute",
    "sanitize_to_stream",
    "sanitize_tokens",
]
