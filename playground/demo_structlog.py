"""Demo: structlog integration.

Run this to see pass_id automatically injected into structlog output.
Note: requires `structlog` to be installed (pip install structlog).
"""

from __future__ import annotations

from typing import Any

from sluice import Flow, current_pass_id
from sluice.contrib.structlog import pass_processor

try:
    import structlog
except ImportError:
    print("This demo requires structlog: pip install structlog")
    raise SystemExit(1) from None

structlog.configure(
    processors=[
        pass_processor,
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.BoundLogger,
    logger_factory=structlog.PrintLoggerFactory(),
)

log = structlog.get_logger()

editor = Flow(
    [
        {"name": "document"},
        {"name": "selection", "requires": ["document"]},
        {"name": "layout", "requires": ["document", "selection"]},
    ],
    name="editor",
)


@editor.on("document")
def on_document(state: Any, flow: Flow) -> None:
    log.info("document changed", cid=current_pass_id(), text=state)
    flow.set_state("selection", {"start": 0, "end": len(state)})


@editor.on("selection")
def on_selection(state: Any, flow: Flow) -> None:
    log.info("selection updated", **state)


@editor.after("layout")
def after_layout(flow: Flow) -> None:
    log.warning("layout recomputed", stages=flow.get_stage_names())


if __name__ == "__main__":
    # Outside a pass, no pass_id injected.
    log.info("before pass")

    # Inside a pass, pass_id is injected automatically.
    editor.set_state("document", "hello world")

    # Outside again.
    log.info("after pass")
