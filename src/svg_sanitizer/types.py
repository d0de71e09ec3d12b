# src/svg_sanitizer/types.py
"""Type definitions for the SVG sanitizer."""

from dataclasses import dataclass, field
from typing import Self

from .config import DEFAULT_MAX_CSS_LENGTH, DEFAULT_MAX_NESTING_DEPTH
from .patterns import local_name

# =============================================================================
# Errors
# =============================================================================


class SanitizerError(Exception):
    """Base class for all sanitizer errors."""


class ParseError(SanitizerError):
    """Malformed markup. Fatal: the sanitize call produces no output."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is not None and self.column is not None:
            return f"({self.line},{self.column}): {self.message}"
        return self.message


class NestingLimitExceeded(SanitizerError):
    """Media rules nested deeper than max_nesting_depth."""

    def __init__(self, depth: int, limit: int):
        super().__init__(f"CSS nesting depth {depth} exceeds limit {limit}")
        self.depth = depth
        self.limit = limit


class ConfigurationError(SanitizerError, ValueError):
    """Invalid SanitizationOptions value."""


class StreamError(SanitizerError, OSError):
    """Read failure on a sanitized stream."""


class StreamCancelled(SanitizerError):
    """The reader closed a sanitized stream while the producer was running."""


# =============================================================================
# Options
# =============================================================================


@dataclass(frozen=True, slots=True)
class SanitizationOptions:
    """CSS sanitization settings. Immutable and validated on construction.

    Attributes:
        allow_uris: Keep url(...) values that pass the URI checks
        strict_property_whitelist: Drop declarations outside SAFE_PROPERTIES
        max_css_length: Stylesheet text is truncated to this many characters
        max_nesting_depth: Deepest @media nesting that is kept
    """

    allow_uris: bool = False
    strict_property_whitelist: bool = False
    max_css_length: int = DEFAULT_MAX_CSS_LENGTH
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH

    def __post_init__(self) -> None:
        for flag in ("allow_uris", "strict_property_whitelist"):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigurationError(f"{flag} must be a bool")
        for bound in ("max_css_length", "max_nesting_depth"):
            value = getattr(self, bound)
            # bool is an int subclass but never a meaningful bound
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{bound} must be an int")
            if value < 0:
                raise ConfigurationError(f"{bound} must not be negative, got {value}")


DEFAULT_OPTIONS = SanitizationOptions()


# =============================================================================
# Markup Tokens
# =============================================================================


@dataclass(frozen=True, slots=True)
class Attribute:
    """A single attribute, qualified name as written in the source."""

    name: str
    value: str

    @property
    def local_name(self) -> str:
        return local_name(self.name)

    @property
    def is_namespace_binding(self) -> bool:
        return self.name == "xmlns" or self.name.startswith("xmlns:")


@dataclass(frozen=True, slots=True)
class XmlDeclaration:
    version: str = "1.0"
    encoding: str | None = None
    standalone: bool | None = None


@dataclass(frozen=True, slots=True)
class DocTypeDeclaration:
    """A DOCTYPE, including the names of the entities it declares."""

    name: str
    system_id: str | None = None
    public_id: str | None = None
    entities: tuple[str, ...] = ()

    @property
    def is_external(self) -> bool:
        return self.system_id is not None or self.public_id is not None


@dataclass(frozen=True, slots=True)
class StartElement:
    """Start tag. Namespace bindings are kept apart from ordinary attributes."""

    name: str
    attributes: tuple[Attribute, ...] = ()
    namespaces: tuple[Attribute, ...] = ()

    @property
    def local_name(self) -> str:
        return local_name(self.name)

    def with_attributes(self, attributes: tuple[Attribute, ...]) -> Self:
        return type(self)(self.name, attributes, self.namespaces)


@dataclass(frozen=True, slots=True)
class EndElement:
    name: str

    @property
    def local_name(self) -> str:
        return local_name(self.name)


@dataclass(frozen=True, slots=True)
class Characters:
    text: str


@dataclass(frozen=True, slots=True)
class Comment:
    text: str


@dataclass(frozen=True, slots=True)
class ProcessingInstruction:
    target: str
    data: str = ""


@dataclass(frozen=True, slots=True)
class EntityReference:
    name: str


type Token = (
    XmlDeclaration
    | DocTypeDeclaration
    | StartElement
    | EndElement
    | Characters
    | Comment
    | ProcessingInstruction
    | EntityReference
)


# =============================================================================
# Sanitization Statistics
# =============================================================================


@dataclass(slots=True)
class FilterStats:
    """Counters collected by the markup filter during one pass."""

    elements_removed: int = 0
    attributes_removed: int = 0
    attributes_rewritten: int = 0
    entity_references_removed: int = 0
    doctypes_removed: int = 0
    style_blocks: int = 0
    css_rules_removed: int = 0
    css_declarations_neutralized: int = 0
    removed_element_names: list[str] = field(default_factory=list)
