# src/svg_sanitizer/detection.py
"""Read-only checks for dangerous constructs in a document.

These answer "does this document still contain X" and are meant for
verifying sanitizer output. The sanitizer itself never calls them.

Documents are tokenized with the same hardened tokenizer the sanitizer uses,
so checking a hostile document never expands entities or fetches anything.
Malformed documents raise ParseError.
"""

import re

from .patterns import (
    REFERENCE_ATTRIBUTES,
    STYLE_ELEMENT,
    attribute_urls,
    is_external_reference,
    is_script_uri,
)
from .types import Characters, DocTypeDeclaration, EndElement, StartElement
from .xml_tokens import iter_tokens

_SCRIPT_IN_STYLE_RE = re.compile(
    r"(<script.*?>|</script>|expression\(|behavior:|javascript:|iframe|textarea)",
    re.IGNORECASE,
)

_DOCTYPE_RE = re.compile(r"<!DOCTYPE", re.IGNORECASE)
_DOCTYPE_BYTES_RE = re.compile(rb"<!DOCTYPE", re.IGNORECASE)

_FOREIGN_OBJECT = "foreignobject"


def contains_script(document: str | bytes) -> bool:
    """Check for script elements, event handlers, script URIs or foreignObject content."""
    foreign_depth = 0
    for token in iter_tokens(document):
        if isinstance(token, EndElement):
            if foreign_depth:
                foreign_depth -= 1
            continue
        if not isinstance(token, StartElement):
            continue

        if foreign_depth:
            # Any element inside foreignObject is foreign (usually XHTML) content
            return True

        name = token.local_name
        if name == "script":
            return True

        for attribute in token.attributes:
            if attribute.local_name.startswith("on"):
                return True
            if is_script_uri(attribute.value):
                return True

        if name == _FOREIGN_OBJECT:
            foreign_depth = 1

    return False


def contains_script_in_style(document: str | bytes) -> bool:
    """Check style element bodies for script-like payloads."""
    style_parts: list[str] | None = None
    for token in iter_tokens(document):
        if isinstance(token, StartElement) and token.local_name == STYLE_ELEMENT:
            style_parts = []
        elif isinstance(token, Characters) and style_parts is not None:
            style_parts.append(token.text)
        elif (
            isinstance(token, EndElement)
            and token.local_name == STYLE_ELEMENT
            and style_parts is not None
        ):
            if _SCRIPT_IN_STYLE_RE.search("".join(style_parts)):
                return True
            style_parts = None
    return False


def contains_external_resource(document: str | bytes) -> bool:
    """Check for an external DOCTYPE subset or references leaving the document.

    Fragment (``#id``) and ``data:`` references are local and do not count.
    """
    for token in iter_tokens(document):
        if isinstance(token, DocTypeDeclaration) and token.is_external:
            return True
        if not isinstance(token, StartElement):
            continue
        for attribute in token.attributes:
            if attribute.local_name in REFERENCE_ATTRIBUTES and is_external_reference(
                attribute.value
            ):
                return True
            if any(is_external_reference(url) for url in attribute_urls(attribute.value)):
                return True
    return False


def contains_entity_declaration(document: str | bytes) -> bool:
    """Check for a DOCTYPE, the only place entities can be declared. Text scan only."""
    if isinstance(document, (bytes, bytearray)):
        return _DOCTYPE_BYTES_RE.search(document) is not None
    return _DOCTYPE_RE.search(document) is not None
