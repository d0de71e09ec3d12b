# src/svg_sanitizer/observability.py
"""
Wide event logging for sanitize calls.

One comprehensive event per operation with high cardinality and high
dimensionality, instead of a trail of small log lines.

Usage:
    event = SanitizationEvent(mode="string", input_bytes=len(data))
    with Timer() as timer:
        ...  # sanitize, updating event fields
    event.wall_time_ms = timer.elapsed_ms
    emit_event(event)
"""

import json
import logging
import random
import secrets
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from .config import DEFAULT_EVENT_SAMPLE_RATE, SLOW_SANITIZE_THRESHOLD_MS
from .types import FilterStats
from .utils import LOGGER_NAME, get_iso_timestamp, truncate_error

# Removed element names recorded per event
MAX_RECORDED_ELEMENT_NAMES = 20

_logger = logging.getLogger(LOGGER_NAME)


def generate_request_id() -> str:
    """Generate a unique request ID for tracing."""
    return secrets.token_hex(8)


@dataclass
class SanitizationEvent:
    """
    Canonical log line for one sanitize call.

    Emitted once per sanitize(), sanitize_stream() or sanitize_to_stream()
    call, whether it succeeded or failed.
    """

    # Identifiers (high cardinality)
    event_type: str = field(default="svg_sanitize", init=False)
    request_id: str = ""
    mode: str = "string"  # "string" | "stream" | "channel"

    # Timing
    timestamp: str = ""
    wall_time_ms: float = 0

    # Sizes
    input_bytes: int = 0
    output_bytes: int = 0

    # Filter results
    elements_removed: int = 0
    removed_element_names: list[str] = field(default_factory=list)
    attributes_removed: int = 0
    attributes_rewritten: int = 0
    entity_references_removed: int = 0
    doctypes_removed: int = 0
    style_blocks: int = 0
    css_rules_removed: int = 0
    css_declarations_neutralized: int = 0

    # Outcome
    outcome: str = "success"  # "success" | "error" | "cancelled"
    error_type: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = get_iso_timestamp()
        if not self.request_id:
            self.request_id = generate_request_id()

    def record_stats(self, stats: FilterStats) -> None:
        """Copy the filter counters into the event."""
        self.elements_removed = stats.elements_removed
        self.removed_element_names = stats.removed_element_names[:MAX_RECORDED_ELEMENT_NAMES]
        self.attributes_removed = stats.attributes_removed
        self.attributes_rewritten = stats.attributes_rewritten
        self.entity_references_removed = stats.entity_references_removed
        self.doctypes_removed = stats.doctypes_removed
        self.style_blocks = stats.style_blocks
        self.css_rules_removed = stats.css_rules_removed
        self.css_declarations_neutralized = stats.css_declarations_neutralized

    def record_error(self, error: BaseException) -> None:
        self.outcome = "error"
        self.error_type = type(error).__name__
        self.error_message = truncate_error(error)


def should_sample(
    event: dict[str, Any],
    sample_rate: float = DEFAULT_EVENT_SAMPLE_RATE,
) -> bool:
    """
    Tail sampling strategy for high-traffic deployments.

    Always keep:
    - Errors (100%)
    - Slow operations (above SLOW_SANITIZE_THRESHOLD_MS)

    Sample:
    - Successful, fast operations (default 10%)

    Args:
        event: The event dict to evaluate
        sample_rate: Sampling rate for successful fast operations

    Returns:
        True if this event should be emitted, False to drop
    """
    if event.get("outcome") == "error":
        return True

    if event.get("wall_time_ms", 0) > SLOW_SANITIZE_THRESHOLD_MS:
        return True

    return random.random() < sample_rate  # noqa: S311


def emit_event(
    event: SanitizationEvent | dict[str, Any],
    sample_rate: float = DEFAULT_EVENT_SAMPLE_RATE,
    force: bool = False,
) -> bool:
    """
    Emit an event with optional tail sampling.

    Args:
        event: The event to emit (dataclass or dict)
        sample_rate: Sampling rate for successful fast operations
        force: If True, skip sampling and always emit

    Returns:
        True if event was emitted, False if dropped by sampling
    """
    event_dict = event if isinstance(event, dict) else asdict(event)

    if force or should_sample(event_dict, sample_rate):
        _logger.info(json.dumps(event_dict))
        return True
    return False


class Timer:
    """Context manager for timing operations."""

    def __init__(self) -> None:
        self.start_time: float = 0
        self.end_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def elapsed(self) -> float:
        """Return elapsed time in milliseconds."""
        if self.end_time:
            return self.elapsed_ms
        return (time.perf_counter() - self.start_time) * 1000
