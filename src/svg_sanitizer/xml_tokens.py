# src/svg_sanitizer/xml_tokens.py
"""XML tokenizer and serializer.

The tokenizer drives expat in push mode and hands out tokens in document
order, so a document is never held in memory as a tree. Expat is configured
so that nothing outside the input is ever read:

- parameter entities are never parsed and no external entity handler is set,
  so external DTD subsets and SYSTEM entities are never fetched
- a default handler is installed, which switches off expansion of internal
  general entities in content; every ``&name;`` reference is reported as an
  EntityReference token instead of its replacement text
- DOCTYPE declarations are reported as one DocTypeDeclaration token and
  everything inside the internal subset is swallowed

Attribute values are still expanded by expat (XML requires it); expat's own
amplification limits turn an entity bomb hidden in an attribute into a
ParseError.
"""

import re
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import BinaryIO
from xml.parsers import expat

from .config import DEFAULT_CHUNK_SIZE
from .types import (
    Attribute,
    Characters,
    Comment,
    DocTypeDeclaration,
    EndElement,
    EntityReference,
    ParseError,
    ProcessingInstruction,
    StartElement,
    Token,
    XmlDeclaration,
)

_ENTITY_REFERENCE_RE = re.compile(r"^&([^;&\s]+);$")


# =============================================================================
# Tokenizer
# =============================================================================


class XmlTokenizer:
    """Push XML into expat with feed(), pull tokens with read_tokens().

    Usage:
        tokenizer = XmlTokenizer()
        tokenizer.feed(b"<svg>")
        tokens = list(tokenizer.read_tokens())
        tokenizer.feed(b"</svg>")
        tokenizer.close()
    """

    def __init__(self) -> None:
        self._pending: deque[Token] = deque()
        self._in_doctype = False
        self._doctype: tuple[str, str | None, str | None] | None = None
        self._entities: list[str] = []
        self._parser = self._create_parser()

    def _create_parser(self) -> expat.XMLParserType:
        # No namespace processing: qualified names and xmlns attributes are
        # reported exactly as written, which is what the serializer needs
        parser = expat.ParserCreate()
        parser.ordered_attributes = True
        parser.specified_attributes = True
        parser.buffer_text = True
        parser.SetParamEntityParsing(expat.XML_PARAM_ENTITY_PARSING_NEVER)

        parser.XmlDeclHandler = self._xml_decl
        parser.StartDoctypeDeclHandler = self._start_doctype
        parser.EndDoctypeDeclHandler = self._end_doctype
        parser.EntityDeclHandler = self._entity_decl
        parser.StartElementHandler = self._start_element
        parser.EndElementHandler = self._end_element
        parser.CharacterDataHandler = self._characters
        parser.CommentHandler = self._comment
        parser.ProcessingInstructionHandler = self._processing_instruction
        parser.SkippedEntityHandler = self._skipped_entity
        parser.StartCdataSectionHandler = self._cdata_marker
        parser.EndCdataSectionHandler = self._cdata_marker
        parser.DefaultHandler = self._default
        return parser

    def feed(self, data: str | bytes) -> None:
        self._parse(data, final=False)

    def close(self) -> None:
        self._parse(b"", final=True)

    def read_tokens(self) -> Iterator[Token]:
        """Yield the tokens produced so far, oldest first."""
        while self._pending:
            yield self._pending.popleft()

    def _parse(self, data: str | bytes, final: bool) -> None:
        try:
            self._parser.Parse(data, final)
        except expat.ExpatError as e:
            raise ParseError(
                expat.ErrorString(e.code),
                code=e.code,
                line=e.lineno,
                column=e.offset,
            ) from e

    # -------------------------------------------------------------------------
    # expat handlers
    # -------------------------------------------------------------------------

    def _xml_decl(self, version: str | None, encoding: str | None, standalone: int) -> None:
        self._pending.append(
            XmlDeclaration(
                version=version or "1.0",
                encoding=encoding,
                standalone=None if standalone == -1 else bool(standalone),
            )
        )

    def _start_doctype(
        self,
        name: str,
        system_id: str | None,
        public_id: str | None,
        has_internal_subset: int,
    ) -> None:
        self._in_doctype = True
        self._doctype = (name, system_id, public_id)
        self._entities = []

    def _end_doctype(self) -> None:
        self._in_doctype = False
        if self._doctype is None:
            return
        name, system_id, public_id = self._doctype
        self._pending.append(
            DocTypeDeclaration(
                name=name,
                system_id=system_id,
                public_id=public_id,
                entities=tuple(self._entities),
            )
        )
        self._doctype = None

    def _entity_decl(
        self,
        name: str,
        is_parameter_entity: int,
        value: str | None,
        base: str | None,
        system_id: str | None,
        public_id: str | None,
        notation_name: str | None,
    ) -> None:
        if not is_parameter_entity:
            self._entities.append(name)

    def _start_element(self, name: str, attrs: list[str]) -> None:
        attributes = []
        namespaces = []
        for i in range(0, len(attrs), 2):
            attribute = Attribute(attrs[i], attrs[i + 1])
            if attribute.is_namespace_binding:
                namespaces.append(attribute)
            else:
                attributes.append(attribute)
        self._pending.append(StartElement(name, tuple(attributes), tuple(namespaces)))

    def _end_element(self, name: str) -> None:
        self._pending.append(EndElement(name))

    def _characters(self, data: str) -> None:
        self._pending.append(Characters(data))

    def _comment(self, data: str) -> None:
        if not self._in_doctype:
            self._pending.append(Comment(data))

    def _processing_instruction(self, target: str, data: str) -> None:
        if not self._in_doctype:
            self._pending.append(ProcessingInstruction(target, data))

    def _skipped_entity(self, name: str, is_parameter_entity: int) -> None:
        if not is_parameter_entity and not self._in_doctype:
            self._pending.append(EntityReference(name))

    def _cdata_marker(self) -> None:
        # CDATA content arrives through _characters; the markers carry nothing
        pass

    def _default(self, data: str) -> None:
        if data.startswith("<!DOCTYPE"):
            # The keyword arrives before StartDoctypeDeclHandler fires
            self._in_doctype = True
        if self._in_doctype:
            return
        match = _ENTITY_REFERENCE_RE.match(data)
        if match:
            self._pending.append(EntityReference(match.group(1)))
        elif data.isspace():
            # Whitespace around the root element
            self._pending.append(Characters(data))
        # Anything else is prolog markup belonging to a DOCTYPE


def _chunks(source: str | bytes | BinaryIO, chunk_size: int) -> Iterator[str | bytes]:
    if isinstance(source, (str, bytes, bytearray)):
        for start in range(0, len(source), chunk_size):
            yield source[start : start + chunk_size]
        return
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk


def iter_tokens(
    source: str | bytes | BinaryIO,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[Token]:
    """Tokenize XML from a string, bytes, or binary file, lazily.

    Raises:
        ParseError: On malformed input, at the point it is detected.
    """
    tokenizer = XmlTokenizer()
    for chunk in _chunks(source, chunk_size):
        tokenizer.feed(chunk)
        yield from tokenizer.read_tokens()
    tokenizer.close()
    yield from tokenizer.read_tokens()


# =============================================================================
# Serializer
# =============================================================================


def escape_text(text: str) -> str:
    """Escape character data. CR is kept as a reference so it survives reparsing."""
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace("\r", "&#13;")
    return text


def escape_attribute(value: str) -> str:
    """Escape an attribute value for double quotes, keeping whitespace exact."""
    value = value.replace("&", "&amp;")
    value = value.replace("<", "&lt;")
    value = value.replace('"', "&quot;")
    value = value.replace("\t", "&#9;")
    value = value.replace("\n", "&#10;")
    value = value.replace("\r", "&#13;")
    return value


class XmlWriter:
    """Write tokens as XML text through a write callable.

    A start tag is left open until the next token arrives, so an element
    with no content is written in its short form (``<rect/>``).
    """

    def __init__(self, write: Callable[[str], object], encoding: str | None = None):
        self._write = write
        self._encoding = encoding
        self._start_open = False

    def write_token(self, token: Token) -> None:
        if self._start_open:
            self._start_open = False
            if isinstance(token, EndElement):
                self._write("/>")
                return
            self._write(">")

        if isinstance(token, StartElement):
            self._write_start(token)
        elif isinstance(token, EndElement):
            self._write(f"</{token.name}>")
        elif isinstance(token, Characters):
            self._write(escape_text(token.text))
        elif isinstance(token, Comment):
            self._write(f"<!--{token.text}-->")
        elif isinstance(token, ProcessingInstruction):
            data = f" {token.data}" if token.data else ""
            self._write(f"<?{token.target}{data}?>")
        elif isinstance(token, XmlDeclaration):
            self._write_declaration(token)
        elif isinstance(token, DocTypeDeclaration):
            self._write_doctype(token)
        elif isinstance(token, EntityReference):
            self._write(f"&{token.name};")
        else:
            raise TypeError(f"Not a token: {token!r}")

    def write_tokens(self, tokens: Iterable[Token]) -> None:
        for token in tokens:
            self.write_token(token)

    def close(self) -> None:
        if self._start_open:
            self._start_open = False
            self._write(">")

    def _write_start(self, token: StartElement) -> None:
        parts = [f"<{token.name}"]
        for attribute in (*token.namespaces, *token.attributes):
            parts.append(f' {attribute.name}="{escape_attribute(attribute.value)}"')
        self._write("".join(parts))
        self._start_open = True

    def _write_declaration(self, token: XmlDeclaration) -> None:
        parts = [f'<?xml version="{token.version}"']
        if self._encoding:
            parts.append(f' encoding="{self._encoding}"')
        if token.standalone is not None:
            parts.append(f' standalone="{"yes" if token.standalone else "no"}"')
        parts.append("?>")
        self._write("".join(parts))

    def _write_doctype(self, token: DocTypeDeclaration) -> None:
        # Only reachable when a caller serializes unfiltered tokens
        parts = [f"<!DOCTYPE {token.name}"]
        if token.public_id is not None:
            parts.append(f' PUBLIC "{token.public_id}" "{token.system_id or ""}"')
        elif token.system_id is not None:
            parts.append(f' SYSTEM "{token.system_id}"')
        parts.append(">")
        self._write("".join(parts))


def render_tokens(tokens: Iterable[Token]) -> str:
    """Serialize tokens to a string."""
    parts: list[str] = []
    writer = XmlWriter(parts.append)
    writer.write_tokens(tokens)
    writer.close()
    return "".join(parts)


class EncodedWriter:
    """Encode text to UTF-8 and pass it to a binary sink in large chunks.

    The serializer writes one small string per token; batching them keeps the
    number of sink writes (and channel hand-offs) proportional to the output
    size rather than the token count.
    """

    def __init__(self, sink: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._sink = sink
        self._chunk_size = chunk_size
        self._parts: list[str] = []
        self._pending = 0
        self.bytes_written = 0

    def write(self, text: str) -> None:
        self._parts.append(text)
        self._pending += len(text)
        if self._pending >= self._chunk_size:
            self.flush()

    def flush(self) -> None:
        if not self._parts:
            return
        data = "".join(self._parts).encode("utf-8")
        self._parts.clear()
        self._pending = 0
        self._sink.write(data)
        self.bytes_written += len(data)
