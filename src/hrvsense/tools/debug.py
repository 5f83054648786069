"""Minimal helpers for opt-in debug/instrumentation hooks and logging setup."""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Callable, Iterator

DEBUG_HRVSENSE = os.getenv("HRVSENSE_DEBUG", "").lower() in {"1", "true", "yes", "on"}

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def debug_enabled() -> bool:
    """Return True when lightweight instrumentation should run."""
    return DEBUG_HRVSENSE


@contextmanager
def time_block(label: str, *, emitter: Callable[[str], None] | None = None) -> Iterator[None]:
    """
    Context manager that emits elapsed time when debugging is enabled.

    The overhead is essentially a couple of perf_counter() calls when disabled.
    """
    if not DEBUG_HRVSENSE:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        target = emitter or (lambda msg: print(msg, file=sys.stderr, flush=True))
        target(f"[DEBUG] {label} took {elapsed_ms:.3f} ms")


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; ``HRVSENSE_DEBUG`` forces DEBUG level."""
    level_value = logging.DEBUG if DEBUG_HRVSENSE else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level_value,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
