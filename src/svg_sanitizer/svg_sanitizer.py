# src/svg_sanitizer/svg_sanitizer.py
"""SVG/XML markup sanitization.

The filter is a single forward pass over the token stream. It never builds a
tree: unsafe elements are skipped with a depth counter and the only text it
retains is the body of the ``<style>`` element currently being read.

Entry points:
    sanitize(markup) -> str                 whole document in memory
    sanitize_stream(source, sink)           binary source to binary sink
    sanitize_tokens(tokens)                 the filter itself

Markup failures are fatal. A ParseError propagates to the caller and
sanitize() returns nothing; there is no "best effort" partial result.
"""

from collections.abc import Iterable, Iterator
from typing import BinaryIO

from .css_sanitizer import sanitize_css, sanitize_style_attribute
from .observability import MAX_RECORDED_ELEMENT_NAMES, SanitizationEvent, Timer, emit_event
from .patterns import STYLE_ELEMENT, UNSAFE_ELEMENTS, is_script_uri, is_unsafe_attribute
from .types import (
    DEFAULT_OPTIONS,
    Attribute,
    Characters,
    DocTypeDeclaration,
    EndElement,
    EntityReference,
    FilterStats,
    ParseError,
    SanitizationOptions,
    StartElement,
    StreamCancelled,
    Token,
)
from .utils import log_error
from .xml_tokens import EncodedWriter, XmlWriter, iter_tokens

STYLE_ATTRIBUTE = "style"

# Encoding written into the XML declaration of byte output
OUTPUT_ENCODING = "UTF-8"


# =============================================================================
# Token Filter
# =============================================================================


def _record_removed_element(stats: FilterStats, name: str) -> None:
    stats.elements_removed += 1
    if len(stats.removed_element_names) < MAX_RECORDED_ELEMENT_NAMES:
        stats.removed_element_names.append(name)


def _skip_subtree(stream: Iterator[Token]) -> None:
    """Consume tokens up to and including the end tag of an opened element."""
    depth = 1
    for token in stream:
        if isinstance(token, StartElement):
            depth += 1
        elif isinstance(token, EndElement):
            depth -= 1
            if depth == 0:
                return


def _collect_style_text(
    start: StartElement,
    stream: Iterator[Token],
    stats: FilterStats,
) -> tuple[str, EndElement]:
    """Read a style element's direct character data up to its end tag.

    Nested elements are dropped with their subtree; comments, processing
    instructions and entity references inside the element are dropped.
    """
    parts = []
    for token in stream:
        if isinstance(token, Characters):
            parts.append(token.text)
        elif isinstance(token, StartElement):
            _record_removed_element(stats, token.name)
            _skip_subtree(stream)
        elif isinstance(token, EndElement):
            return "".join(parts), token
        elif isinstance(token, EntityReference):
            stats.entity_references_removed += 1
    # Token source ended inside the element
    return "".join(parts), EndElement(start.name)


def _filter_attributes(
    token: StartElement,
    options: SanitizationOptions,
    stats: FilterStats,
) -> StartElement:
    """Drop unsafe attributes and sanitize style attributes.

    Returns the token unchanged when nothing was removed or rewritten.
    """
    kept: list[Attribute] = []
    changed = False

    for attribute in token.attributes:
        if attribute.local_name == STYLE_ATTRIBUTE:
            # url() targets in a style attribute are judged by the CSS rules
            clean = sanitize_style_attribute(attribute.value, options, stats)
            if not clean or is_script_uri(clean):
                stats.attributes_removed += 1
                changed = True
                continue
            if clean != attribute.value:
                attribute = Attribute(attribute.name, clean)
                stats.attributes_rewritten += 1
                changed = True
        elif is_unsafe_attribute(attribute.name, attribute.value):
            stats.attributes_removed += 1
            changed = True
            continue

        kept.append(attribute)

    return token.with_attributes(tuple(kept)) if changed else token


def sanitize_tokens(
    tokens: Iterable[Token],
    options: SanitizationOptions | None = None,
    stats: FilterStats | None = None,
) -> Iterator[Token]:
    """Filter a token stream, yielding only safe tokens in document order.

    Args:
        tokens: Any token source, typically iter_tokens()
        options: CSS options for style elements and attributes
        stats: Optional counters updated as tokens are dropped

    Yields:
        Tokens with no DOCTYPE, no entity reference, no unsafe element and
        no unsafe attribute. Processing instructions pass through untouched,
        including an ``xml-stylesheet`` whose ``href`` leaves the document.
    """
    if options is None:
        options = DEFAULT_OPTIONS
    if stats is None:
        stats = FilterStats()

    stream = iter(tokens)
    for token in stream:
        if isinstance(token, DocTypeDeclaration):
            stats.doctypes_removed += 1
            continue

        if isinstance(token, EntityReference):
            stats.entity_references_removed += 1
            continue

        if not isinstance(token, StartElement):
            yield token
            continue

        name = token.local_name
        if name in UNSAFE_ELEMENTS:
            _record_removed_element(stats, token.name)
            _skip_subtree(stream)
            continue

        start = _filter_attributes(token, options, stats)
        if name != STYLE_ELEMENT:
            yield start
            continue

        stats.style_blocks += 1
        css, end = _collect_style_text(token, stream, stats)
        clean = sanitize_css(css, options, stats)
        yield start
        if clean:
            yield Characters(clean)
        yield end


# =============================================================================
# Entry Points
# =============================================================================


def _record_failure(event: SanitizationEvent, error: Exception) -> None:
    if isinstance(error, StreamCancelled):
        event.outcome = "cancelled"
        return
    event.record_error(error)
    if isinstance(error, ParseError):
        log_error(
            "markup_parse_error",
            error,
            request_id=event.request_id,
            line=error.line,
            column=error.column,
        )


def sanitize(markup: str | bytes, options: SanitizationOptions | None = None) -> str:
    """Sanitize a whole document held in memory.

    Args:
        markup: SVG/XML document text (or bytes in any encoding expat reads)
        options: CSS options for style elements and attributes

    Returns:
        The sanitized document.

    Raises:
        ParseError: If the markup is not well-formed. Nothing is returned.
    """
    stats = FilterStats()
    event = SanitizationEvent(mode="string", input_bytes=len(markup))
    parts: list[str] = []
    timer = Timer()

    try:
        with timer:
            writer = XmlWriter(parts.append)
            writer.write_tokens(sanitize_tokens(iter_tokens(markup), options, stats))
            writer.close()
    except Exception as e:
        _record_failure(event, e)
        raise
    finally:
        event.wall_time_ms = timer.elapsed_ms
        event.record_stats(stats)
        if event.outcome == "success":
            event.output_bytes = sum(len(part) for part in parts)
        emit_event(event)

    return "".join(parts)


class _CountingReader:
    """Binary source wrapper that counts bytes read."""

    def __init__(self, source: BinaryIO):
        self._source = source
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        self.bytes_read += len(data)
        return data


def sanitize_stream(
    source: BinaryIO,
    sink: BinaryIO,
    options: SanitizationOptions | None = None,
    *,
    mode: str = "stream",
) -> None:
    """Sanitize from a binary source into a binary sink as UTF-8.

    Memory stays bounded by one chunk plus the largest retained element. The
    sink is flushed but not closed.

    Raises:
        ParseError: If the markup is not well-formed. Bytes already written
            to the sink are incomplete and must be discarded by the caller.
        OSError: Read or write failures of source and sink propagate as-is.
    """
    stats = FilterStats()
    event = SanitizationEvent(mode=mode)
    reader = _CountingReader(source)
    output = EncodedWriter(sink)
    timer = Timer()

    try:
        with timer:
            writer = XmlWriter(output.write, encoding=OUTPUT_ENCODING)
            writer.write_tokens(sanitize_tokens(iter_tokens(reader), options, stats))
            writer.close()
            output.flush()
            sink.flush()
    except Exception as e:
        _record_failure(event, e)
        raise
    finally:
        event.wall_time_ms = timer.elapsed_ms
        event.input_bytes = reader.bytes_read
        event.output_bytes = output.bytes_written
        event.record_stats(stats)
        emit_event(event)
