"""
core/timing.py -- Elapsed-time instrumentation for slow steps.

Usage:
    with timed("db:connect"):
        conn = engine.connect()

Logs "<label>: <ms>ms" at DEBUG on the sessionauth.timing logger, so the
cost is a single perf_counter() pair when DEBUG logging is off.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger("sessionauth.timing")


@contextmanager
def timed(label: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s: %.3fms", label, elapsed_ms)
