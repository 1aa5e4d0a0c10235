"""structlog processor that injects the active pass into log entries.

Usage::

    import structlog
    from sluice.contrib.structlog import pass_processor

    structlog.configure(
        processors=[
            pass_processor,
            structlog.dev.ConsoleRenderer(),
        ]
    )

Every log entry emitted by a flow listener will include ``pass_id`` (the
correlation ID of the running propagation pass), ``flow`` and ``stage``,
the stage whose listeners are being dispatched.
"""

from __future__ import annotations

from typing import Any

from sluice._context import get_pass_context


def pass_processor(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor that adds the active pass to log events.

    ``stage`` is left out before the first dispatch of a pass. Outside of a
    pass all keys are omitted rather than set to ``None``.
    Keys already bound by the caller are left alone.
    """
    ctx = get_pass_context()
    if ctx is not None:
        event_dict.setdefault("pass_id", ctx.correlation_id)
        event_dict.setdefault("flow", ctx.flow_name)
        if ctx.visited:
            event_dict.setdefault("stage", ctx.visited[-1])
    return event_dict
