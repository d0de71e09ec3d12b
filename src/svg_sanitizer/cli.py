# src/svg_sanitizer/cli.py
"""
svg-sanitize: sanitize an SVG document or a stylesheet from the command line.

Usage:
    svg-sanitize upload.svg -o clean.svg
    cat upload.svg | svg-sanitize > clean.svg
    svg-sanitize --css theme.css
    svg-sanitize --check clean.svg

Exit codes:
    0   success (with --check: nothing dangerous found)
    1   --check found a dangerous construct
    2   input is not well-formed XML, or invalid options
"""

import argparse
import dataclasses
import io
import logging
import sys
from pathlib import Path

from .config import options_from_env
from .css_sanitizer import sanitize_css
from .detection import (
    contains_entity_declaration,
    contains_external_resource,
    contains_script,
    contains_script_in_style,
)
from .svg_sanitizer import sanitize_stream
from .types import ConfigurationError, ParseError, SanitizationOptions
from .utils import configure_logging

EXIT_OK = 0
EXIT_FOUND = 1
EXIT_INVALID = 2

CHECKS = {
    "script": contains_script,
    "script-in-style": contains_script_in_style,
    "external-resource": contains_external_resource,
    "entity-declaration": contains_entity_declaration,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svg-sanitize",
        description="Remove scripts, external references and entity tricks from SVG/XML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    svg-sanitize upload.svg -o clean.svg
    svg-sanitize --css --allow-uris theme.css
    svg-sanitize --check clean.svg

Options not given on the command line are read from SVG_SANITIZER_ALLOW_URIS,
SVG_SANITIZER_STRICT_PROPERTIES, SVG_SANITIZER_MAX_CSS_LENGTH and
SVG_SANITIZER_MAX_NESTING_DEPTH.
""",
    )
    parser.add_argument("input", nargs="?", default="-", help="Input file (default: stdin)")
    parser.add_argument("-o", "--output", default="-", help="Output file (default: stdout)")
    parser.add_argument("--css", action="store_true", help="Treat input as a stylesheet")
    parser.add_argument(
        "--allow-uris",
        action="store_true",
        default=None,
        help="Keep url(...) values that pass the URI checks",
    )
    parser.add_argument(
        "--strict-properties",
        action="store_true",
        default=None,
        help="Keep only allow-listed CSS properties",
    )
    parser.add_argument("--max-css-length", type=int, help="Truncate stylesheets to N characters")
    parser.add_argument("--max-nesting-depth", type=int, help="Deepest @media nesting kept")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Report dangerous constructs instead of sanitizing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log events to stderr")
    return parser


def resolve_options(args: argparse.Namespace) -> SanitizationOptions:
    """Environment defaults, overridden by whatever was given on the command line."""
    overrides = {
        "allow_uris": args.allow_uris,
        "strict_property_whitelist": args.strict_properties,
        "max_css_length": args.max_css_length,
        "max_nesting_depth": args.max_nesting_depth,
    }
    options = options_from_env()
    return dataclasses.replace(
        options, **{key: value for key, value in overrides.items() if value is not None}
    )


def _read_input(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()


def _write_output(path: str, data: bytes) -> None:
    if path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    else:
        Path(path).write_bytes(data)


def run_checks(data: bytes) -> list[str]:
    """Return the names of the checks that found something."""
    return [name for name, check in CHECKS.items() if check(data)]


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        configure_logging(logging.INFO)
    else:
        configure_logging(logging.ERROR)

    try:
        options = resolve_options(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID

    data = _read_input(args.input)

    try:
        if args.check:
            found = run_checks(data)
            for name in found:
                print(f"found: {name}")
            return EXIT_FOUND if found else EXIT_OK

        if args.css:
            clean = sanitize_css(data.decode("utf-8", errors="replace"), options)
            _write_output(args.output, clean.encode("utf-8"))
            return EXIT_OK

        # Sanitize into memory first so a parse error leaves no partial output
        buffer = io.BytesIO()
        sanitize_stream(io.BytesIO(data), buffer, options)
        _write_output(args.output, buffer.getvalue())
        return EXIT_OK
    except ParseError as e:
        print(f"Error: input is not well-formed XML {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
