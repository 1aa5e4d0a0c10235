"""Propagation-pass context via contextvars."""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from typing import Any


class PassContext:
    """Describes the propagation pass currently being dispatched.

    Carries a correlation ID, the flow and root stage that started the pass,
    the stages dispatched so far, and arbitrary metadata listeners can use to
    hand values to later stages of the same pass.
    """

    __slots__ = ("_metadata", "correlation_id", "flow_name", "root", "visited")

    def __init__(
        self,
        flow_name: str,
        root: str,
        correlation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.correlation_id: str = correlation_id or uuid.uuid4().hex
        self.flow_name = flow_name
        self.root = root
        self.visited: list[str] = []
        self._metadata: dict[str, Any] = metadata if metadata is not None else {}

    # -- value helpers --------------------------------------------------------

    def get_value(self, key: str, default: Any = None) -> Any:
        """Return a metadata value, or *default* if the key is absent."""
        return self._metadata.get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def delete_value(self, key: str) -> None:
        """Remove a metadata key. Raises ``KeyError`` if absent."""
        del self._metadata[key]

    @property
    def metadata(self) -> dict[str, Any]:
        """Read-only snapshot of the current metadata."""
        return dict(self._metadata)

    def __repr__(self) -> str:
        return (
            f"PassContext(flow={self.flow_name!r}, root={self.root!r}, "
            f"correlation_id={self.correlation_id!r})"
        )


# ---------------------------------------------------------------------------
# ContextVar holding the active PassContext (None outside of a pass)
# ---------------------------------------------------------------------------

_pass_context_var: ContextVar[PassContext | None] = ContextVar(
    "sluice_pass_context", default=None
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _set_context(ctx: PassContext) -> Token[PassContext | None]:
    """Install *ctx* as the active pass; returns the token to restore with."""
    return _pass_context_var.set(ctx)


def _reset_context(token: Token[PassContext | None]) -> None:
    """Restore whatever pass context was active before ``_set_context``."""
    _pass_context_var.reset(token)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def current_pass_id() -> str | None:
    """Return the correlation ID of the active pass, or ``None``."""
    ctx = _pass_context_var.get()
    return ctx.correlation_id if ctx is not None else None


def get_pass_context() -> PassContext | None:
    """Return the active :class:`PassContext`, or ``None``."""
    return _pass_context_var.get()


def set_pass_value(key: str, value: Any) -> None:
    """Set a metadata value on the active pass.

    Raises ``RuntimeError`` when called outside of a propagation pass.
    """
    ctx = _pass_context_var.get()
    if ctx is None:
        raise RuntimeError(
            "set_pass_value() called outside of a propagation pass. "
            "Call it from a flow listener."
        )
    ctx.set_value(key, value)


def get_pass_value(key: str, default: Any = None) -> Any:
    """Get a metadata value from the active pass.

    Returns *default* if no pass is active or the key is absent.
    """
    ctx = _pass_context_var.get()
    if ctx is None:
        return default
    return ctx.get_value(key, default)
