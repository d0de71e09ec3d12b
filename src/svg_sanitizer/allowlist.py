# src/svg_sanitizer/allowlist.py
"""Allow-list SVG sanitizer backed by bleach.

An alternative to the streaming sanitizer for callers that prefer "keep only
what is listed" over "remove what is dangerous". It parses with an HTML
parser, so element and attribute names come back lowercased and the output
is HTML-serialized SVG, suitable for inline embedding rather than for
standalone .svg files.
"""

from typing import Protocol

import bleach
from bleach.css_sanitizer import ALLOWED_SVG_PROPERTIES, CSSSanitizer


class ContentSanitizer(Protocol):
    """Protocol for SVG sanitization - enables testing with mocks."""

    def clean(self, svg: str) -> str: ...


_PAINT_ATTRS = ["stroke", "fill", "stroke-width", "stroke-linecap", "stroke-linejoin", "style"]


class BleachSvgSanitizer:
    """Production allow-list sanitizer using bleach."""

    ALLOWED_TAGS = [
        "svg",
        "g",
        "path",
        "circle",
        "rect",
        "line",
        "polyline",
        "polygon",
        "text",
        "tspan",
    ]
    # The HTML parser may hand names over lowercased or SVG-adjusted
    ALLOWED_ATTRS = {
        "svg": ["viewbox", "viewBox", "xmlns", "width", "height"],
        "path": ["d", *_PAINT_ATTRS],
        "circle": ["cx", "cy", "r", *_PAINT_ATTRS],
        "rect": ["x", "y", "width", "height", *_PAINT_ATTRS],
        "line": ["x1", "y1", "x2", "y2", *_PAINT_ATTRS],
        "polyline": ["points", *_PAINT_ATTRS],
        "polygon": ["points", *_PAINT_ATTRS],
        "text": ["x", "y", *_PAINT_ATTRS],
        "tspan": ["x", "y"],
    }

    def __init__(self) -> None:
        self._css_sanitizer = CSSSanitizer(allowed_svg_properties=ALLOWED_SVG_PROPERTIES)

    def clean(self, svg: str) -> str:
        return bleach.clean(
            svg,
            tags=self.ALLOWED_TAGS,
            attributes=self.ALLOWED_ATTRS,
            protocols=[],
            strip=True,
            strip_comments=True,
            css_sanitizer=self._css_sanitizer,
        )
