# src/svg_sanitizer/css_rules.py
"""CSS rule tree: parse stylesheet text with tinycss2, write it back minified.

The tree is deliberately small. A stylesheet is a list of top-level rules;
only ``@media`` nests. Declaration values are flattened into expression
members (literal text, URI references and function calls) because those are
the units the sanitizer inspects.

Nested ``@media`` blocks are expanded with an explicit work-list, so an
adversarially deep stylesheet costs heap, not Python stack.
"""

from dataclasses import dataclass, field
from typing import Any

import tinycss2
from tinycss2.serializer import serialize_identifier, serialize_url

from .patterns import CONTAINER_AT_RULES, URI_FUNCTIONS

#: tinycss2 node; the library ships no type stubs
CssNode = Any

# =============================================================================
# Rule Tree
# =============================================================================


@dataclass(slots=True)
class Literal:
    """Any value token other than a URI or a function, as CSS text."""

    text: str


@dataclass(slots=True)
class UriReference:
    uri: str


@dataclass(slots=True)
class FunctionCall:
    """A function such as rgb(...) or expression(...).

    Attributes:
        name: Function name as written (escapes decoded)
        arguments: Argument list as minified CSS text
        uris: Targets of url()/src() found anywhere inside the arguments
    """

    name: str
    arguments: str
    uris: tuple[str, ...] = ()


type ExpressionMember = Literal | UriReference | FunctionCall


@dataclass(slots=True)
class Declaration:
    property: str
    value: list[ExpressionMember]
    important: bool = False


@dataclass(slots=True)
class StyleRule:
    selector: str
    declarations: list[Declaration]


@dataclass(slots=True)
class ImportRule:
    prelude: str


@dataclass(slots=True)
class NamespaceRule:
    prelude: str


@dataclass(slots=True)
class MediaRule:
    query: str
    rules: list["TopLevelRule"] = field(default_factory=list)


@dataclass(slots=True)
class UnsupportedAtRule:
    """Any other at-rule (@font-face, @keyframes, ...). Kept only by name."""

    at_keyword: str


type TopLevelRule = ImportRule | NamespaceRule | MediaRule | StyleRule | UnsupportedAtRule


@dataclass(slots=True)
class Stylesheet:
    rules: list[TopLevelRule] = field(default_factory=list)
    parse_errors: int = 0


# =============================================================================
# Token Helpers
# =============================================================================

_BLOCK_BRACKETS = {
    "() block": ("(", ")"),
    "[] block": ("[", "]"),
    "{} block": ("{", "}"),
}


def _children(token: CssNode) -> list[CssNode]:
    if token.type == "function":
        return token.arguments
    if token.type in _BLOCK_BRACKETS:
        return token.content
    return []


def contains_error(tokens: list[CssNode]) -> bool:
    """Check a token list, including nested blocks, for tinycss2 parse errors."""
    stack = [tokens]
    while stack:
        for token in stack.pop():
            if token.type == "error":
                return True
            children = _children(token)
            if children:
                stack.append(children)
    return False


def serialize_tokens(tokens: list[CssNode]) -> str:
    """Serialize component values, collapsing whitespace and dropping comments."""
    parts: list[str] = []
    for token in tokens:
        token_type = token.type
        if token_type in ("comment", "error"):
            continue
        if token_type == "whitespace":
            if parts and parts[-1] != " ":
                parts.append(" ")
        elif token_type == "function":
            parts.append(
                f"{serialize_identifier(token.name)}({serialize_tokens(token.arguments)})"
            )
        elif token_type in _BLOCK_BRACKETS:
            opening, closing = _BLOCK_BRACKETS[token_type]
            parts.append(f"{opening}{serialize_tokens(token.content)}{closing}")
        else:
            parts.append(token.serialize())
    return "".join(parts).strip()


def _string_argument(arguments: list[CssNode]) -> str | None:
    """Return the value of the first string argument of a url()-like function."""
    for token in arguments:
        if token.type in ("whitespace", "comment"):
            continue
        if token.type == "string":
            return token.value
        return None
    return None


def _collect_uris(function: CssNode) -> tuple[str, ...]:
    uris = []
    stack = [function]
    while stack:
        token = stack.pop()
        if token.type == "url":
            uris.append(token.value)
        elif token.type == "function" and token.lower_name in URI_FUNCTIONS:
            uri = _string_argument(token.arguments)
            if uri is not None:
                uris.append(uri)
        stack.extend(reversed(_children(token)))
    return tuple(uris)


def build_members(tokens: list[CssNode]) -> list[ExpressionMember]:
    """Convert a declaration value into expression members."""
    members: list[ExpressionMember] = []
    pending_space = False
    for token in tokens:
        if token.type == "comment":
            continue
        if token.type == "whitespace":
            pending_space = bool(members)
            continue
        if pending_space:
            members.append(Literal(" "))
            pending_space = False

        if token.type == "url":
            members.append(UriReference(token.value))
        elif token.type == "function":
            uri = None
            if token.lower_name in URI_FUNCTIONS:
                significant = [
                    t for t in token.arguments if t.type not in ("whitespace", "comment")
                ]
                if len(significant) == 1:
                    uri = _string_argument(significant)
            if uri is not None:
                members.append(UriReference(uri))
            else:
                members.append(
                    FunctionCall(
                        name=token.name,
                        arguments=serialize_tokens(token.arguments),
                        uris=_collect_uris(token),
                    )
                )
        else:
            members.append(Literal(serialize_tokens([token])))
    return members


# =============================================================================
# Parsing
# =============================================================================


def _build_declaration(node: CssNode) -> Declaration | None:
    if contains_error(node.value):
        return None
    return Declaration(
        property=node.name,
        value=build_members(node.value),
        important=node.important,
    )


def parse_declarations(css: str | list[CssNode]) -> tuple[list[Declaration], int]:
    """Parse a declaration list (a style attribute or a {} block body).

    Returns:
        Tuple of (declarations, parse_error_count). Nested rules and
        at-rules inside the list are discarded.
    """
    declarations = []
    errors = 0
    for node in tinycss2.parse_blocks_contents(css, skip_comments=True, skip_whitespace=True):
        if node.type == "declaration":
            declaration = _build_declaration(node)
            if declaration is None:
                errors += 1
            else:
                declarations.append(declaration)
        elif node.type == "error":
            errors += 1
    return declarations, errors


def parse_stylesheet(css: str) -> Stylesheet:
    """Parse stylesheet text into a rule tree.

    Rules that cannot be represented (broken selectors, parse errors) are
    left out and counted in ``Stylesheet.parse_errors``.
    """
    sheet = Stylesheet()
    work = [
        (tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True), sheet.rules)
    ]

    while work:
        nodes, target = work.pop()
        for node in nodes:
            if node.type == "error":
                sheet.parse_errors += 1
                continue

            if node.type == "qualified-rule":
                if contains_error(node.prelude):
                    sheet.parse_errors += 1
                    continue
                declarations, errors = parse_declarations(node.content)
                sheet.parse_errors += errors
                target.append(StyleRule(serialize_tokens(node.prelude), declarations))
                continue

            if node.type != "at-rule":
                continue

            keyword = node.lower_at_keyword
            prelude = serialize_tokens(node.prelude)
            if keyword == "import":
                target.append(ImportRule(prelude))
            elif keyword == "namespace":
                target.append(NamespaceRule(prelude))
            elif keyword in CONTAINER_AT_RULES and node.content is not None:
                media = MediaRule(prelude)
                target.append(media)
                work.append(
                    (
                        tinycss2.parse_rule_list(
                            node.content, skip_comments=True, skip_whitespace=True
                        ),
                        media.rules,
                    )
                )
            else:
                target.append(UnsupportedAtRule(keyword))

    return sheet


# =============================================================================
# Serialization
# =============================================================================


def serialize_member(member: ExpressionMember) -> str:
    if isinstance(member, UriReference):
        return f"url({serialize_url(member.uri)})"
    if isinstance(member, FunctionCall):
        return f"{serialize_identifier(member.name)}({member.arguments})"
    return member.text


def serialize_value(members: list[ExpressionMember]) -> str:
    return "".join(serialize_member(member) for member in members).strip()


def serialize_declarations(declarations: list[Declaration]) -> str:
    """Write declarations as ``name:value;name:value`` with no trailing ';'."""
    parts = []
    for declaration in declarations:
        important = "!important" if declaration.important else ""
        name = declaration.property
        if not name.startswith("--"):
            name = serialize_identifier(name)
        parts.append(f"{name}:{serialize_value(declaration.value)}{important}")
    return ";".join(parts)


def serialize_stylesheet(sheet: Stylesheet) -> str:
    """Write the rule tree as minified CSS text."""
    parts: list[str] = []
    # Work items are rules to write or literal closing braces
    work: list[TopLevelRule | str] = list(reversed(sheet.rules))

    while work:
        item = work.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, StyleRule):
            parts.append(f"{item.selector}{{{serialize_declarations(item.declarations)}}}")
        elif isinstance(item, MediaRule):
            query = f" {item.query}" if item.query else ""
            parts.append(f"@media{query}{{")
            work.append("}")
            work.extend(reversed(item.rules))
        elif isinstance(item, ImportRule):
            parts.append(f"@import {item.prelude};")
        elif isinstance(item, NamespaceRule):
            parts.append(f"@namespace {item.prelude};")
        # UnsupportedAtRule keeps no body and is never written

    return "".join(parts)
