"""Timing of hot paths, switched on with ``SIGNGLOVE_DEBUG=1``."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator, Mapping

_TRUTHY = {"1", "true", "yes", "on"}

logger = logging.getLogger(__name__)


def flag_from_env(environ: Mapping[str, str] = os.environ) -> bool:
    return environ.get("SIGNGLOVE_DEBUG", "").strip().lower() in _TRUTHY


TIMING_ENABLED = flag_from_env()


@contextmanager
def time_block(label: str, log: logging.Logger | None = None) -> Iterator[None]:
    """
    Log how long the ``with`` body took, at DEBUG level on ``log``.

    Does nothing unless :data:`TIMING_ENABLED` is set.
    """
    if not TIMING_ENABLED:
        yield
        return

    started = time.perf_counter()
    try:
        yield
    finally:
        (log or logger).debug("%s took %.1f us", label, (time.perf_counter() - started) * 1e6)
