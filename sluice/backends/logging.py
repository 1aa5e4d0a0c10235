"""Logging-based tracing backend (zero external dependencies)."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sluice.backends.base import TracingBackend

logger = logging.getLogger("sluice")


class LoggingBackend(TracingBackend):
    """Emits structured log records for each stage dispatch start/end."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    @contextmanager
    def span(self, stage_name: str, flow_name: str, **attrs: Any) -> Iterator[None]:
        extra = {
            "flow": flow_name,
            "stage": stage_name,
            "correlation_id": self.get_correlation_id(),
            **attrs,
        }
        logger.log(self.level, "stage.start", extra=extra)
        start = time.monotonic()
        try:
            yield
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.log(
                self.level,
                "stage.end",
                extra={**extra, "duration_ms": duration_ms},
            )
