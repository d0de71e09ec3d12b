# src/svg_sanitizer/__main__.py
"""Allow ``python -m svg_sanitizer``."""

import sys

from .cli import main

sys.exit(main())
