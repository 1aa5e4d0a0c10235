"""OpenTelemetry tracing backend.

Requires ``opentelemetry-api`` (and an SDK for exporting) to be installed.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sluice._context import get_pass_context
from sluice.backends.base import TracingBackend

try:
    from opentelemetry import trace  # type: ignore[import-not-found]

    _HAS_OTEL = True
except ImportError:  # pragma: no cover
    _HAS_OTEL = False


class OTelBackend(TracingBackend):
    """Emits one OpenTelemetry span per stage dispatch.

    Spans carry ``sluice.flow`` and ``sluice.stage``; keyword attributes
    handed to :meth:`span` are added under a ``sluice.`` prefix.  Inside a
    pass the span also records ``sluice.pass_id`` and the 1-based
    ``sluice.dispatch`` index of the stage within that pass, so a join
    stage dispatched twice produces two distinguishable spans.

    *tracer_provider* defaults to the globally registered provider.

    Raises :class:`RuntimeError` at construction time if ``opentelemetry-api``
    is missing.
    """

    def __init__(
        self, tracer_name: str = "sluice", tracer_provider: Any = None
    ) -> None:
        if not _HAS_OTEL:
            raise RuntimeError(
                "opentelemetry-api is required for OTelBackend. "
                "Install it with: pip install 'sluice[otel]'"
            )
        self._tracer = trace.get_tracer(tracer_name, tracer_provider=tracer_provider)

    @contextmanager
    def span(self, stage_name: str, flow_name: str, **attrs: Any) -> Iterator[None]:
        attributes = {
            "sluice.flow": flow_name,
            "sluice.stage": stage_name,
            **{f"sluice.{key}": value for key, value in attrs.items()},
        }
        ctx = get_pass_context()
        if ctx is not None:
            attributes["sluice.pass_id"] = ctx.correlation_id
            attributes["sluice.dispatch"] = len(ctx.visited)
        with self._tracer.start_as_current_span(stage_name, attributes=attributes):
            yield

    def get_correlation_id(self) -> str:
        """Return the current OTel trace id as 32 hex digits, or ``""``."""
        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            return format(ctx.trace_id, "032x")
        return ""
