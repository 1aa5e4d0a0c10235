"""Global flow defaults: tracing backend and propagation mode (thread-safe)."""

from __future__ import annotations

import threading
from typing import Literal, get_args

from sluice.backends.base import TracingBackend

Propagation = Literal["queue", "ordered"]
PROPAGATION_MODES: tuple[str, ...] = get_args(Propagation)

_lock = threading.Lock()
_backend: TracingBackend | None = None
_configured = False
_propagation: Propagation = "queue"


def configure(
    backend: TracingBackend | str | None = "auto",
    *,
    propagation: Propagation | None = None,
) -> None:
    """Set the defaults used by flows created without explicit overrides.

    *backend* can be:
    - A :class:`TracingBackend` instance
    - ``"logging"``: use the built-in :class:`LoggingBackend`
    - ``"otel"``: use :class:`OTelBackend` (requires ``opentelemetry-api``)
    - ``"auto"``: try OTel, fall back to logging
    - ``None``: leave the current backend untouched

    *propagation* selects how passes walk the graph: ``"queue"`` re-dispatches
    a stage once per predecessor path that reaches it, ``"ordered"`` dispatches
    each reachable stage once in topological order.
    """
    global _backend, _configured, _propagation
    if propagation is not None:
        propagation = validate_propagation(propagation)
    with _lock:
        if backend is not None:
            _backend = _resolve_backend(backend)
            _configured = True
        if propagation is not None:
            _propagation = propagation


def get_backend() -> TracingBackend:
    """Return the configured backend, auto-detecting on first call."""
    global _backend, _configured
    if _configured:
        assert _backend is not None
        return _backend
    with _lock:
        if _configured:
            assert _backend is not None
            return _backend
        _backend = _auto_detect()
        _configured = True
        return _backend


def get_propagation() -> Propagation:
    """Return the default propagation mode."""
    return _propagation


def validate_propagation(mode: str) -> Propagation:
    if mode not in PROPAGATION_MODES:
        raise ValueError(
            f"Unknown propagation mode: {mode!r} "
            f"(expected one of {', '.join(PROPAGATION_MODES)})"
        )
    return mode  # type: ignore[return-value]


def reset() -> None:
    """Reset configuration to unconfigured state. Intended for testing."""
    global _backend, _configured, _propagation
    with _lock:
        _backend = None
        _configured = False
        _propagation = "queue"


def _resolve_backend(backend: TracingBackend | str) -> TracingBackend:
    if isinstance(backend, TracingBackend):
        return backend
    if backend == "logging":
        from sluice.backends.logging import LoggingBackend

        return LoggingBackend()
    if backend == "otel":
        from sluice.backends.otel import OTelBackend

        return OTelBackend()
    if backend == "auto":
        return _auto_detect()
    raise ValueError(f"Unknown backend: {backend!r}")


def _auto_detect() -> TracingBackend:
    """Try to build an OTel backend; fall back to LoggingBackend."""
    try:
        from sluice.backends.otel import OTelBackend

        return OTelBackend()
    except RuntimeError:
        from sluice.backends.logging import LoggingBackend

        return LoggingBackend()
