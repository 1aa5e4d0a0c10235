"""The flow scheduler: per-stage state and dependency-ordered propagation."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, TypeVar, overload

from sluice._config import (
    Propagation,
    get_backend,
    get_propagation,
    validate_propagation,
)
from sluice._context import PassContext, _reset_context, _set_context
from sluice._emitter import ListenerRegistry, Subscription
from sluice._errors import UnknownStageError
from sluice._graph import Graph, compile_graph
from sluice._types import Listener, Phase, StagesInput
from sluice.backends.base import TracingBackend

if TYPE_CHECKING:
    from contextvars import Token

logger = logging.getLogger("sluice")

L = TypeVar("L", bound=Listener)

_PHASE_PREFIXES = (Phase.BEFORE.value, Phase.AFTER.value)


class Flow:
    """Holds state per stage and notifies listeners in dependency order.

    Calling :meth:`set_state` for a stage starts a propagation pass: the stage
    and everything that transitively requires it are dispatched, each through
    three phases (``before:<stage>``, ``<stage>``, ``after:<stage>``).  Main
    listeners receive ``(state, flow)``, phase listeners receive ``(flow)``.

    A state change made by a listener while a pass is running is stored but
    does not start a second pass; the running pass picks it up if it still
    has to dispatch that stage.

    Passes are serialised by a per-flow lock that the running pass holds
    until it ends.  A listener that hands a state change to another thread
    and waits for it deadlocks: the other thread cannot start until the
    listener returns.  Call :meth:`set_state` from the listener itself, or
    let the other thread run without waiting on it.

    *stages* is a compiled :class:`Graph` (shared, not copied) or anything
    :func:`compile_graph` accepts.  *context* is handed through untouched for
    listeners to use.
    """

    def __init__(
        self,
        stages: StagesInput | Graph,
        context: Any = None,
        *,
        name: str = "flow",
        propagation: Propagation | None = None,
        backend: TracingBackend | None = None,
    ) -> None:
        self.context = context
        self.name = name
        self._graph = compile_graph(stages)
        self._propagation = (
            validate_propagation(propagation)
            if propagation is not None
            else get_propagation()
        )
        self._backend = backend
        self._state: dict[str, Any] = {}
        self._listeners = ListenerRegistry()
        self._lock = threading.RLock()
        self._is_flowing = False

    # -- introspection --------------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def propagation(self) -> Propagation:
        return self._propagation

    @property
    def backend(self) -> TracingBackend:
        """The tracing backend; the globally configured one unless overridden."""
        return self._backend if self._backend is not None else get_backend()

    @property
    def is_flowing(self) -> bool:
        """``True`` while a propagation pass is being dispatched."""
        return self._is_flowing

    @property
    def state(self) -> Mapping[str, Any]:
        """Read-only snapshot of the stored state of every stage set so far."""
        with self._lock:
            return MappingProxyType(dict(self._state))

    def get_stage_names(self) -> list[str]:
        """Return all stage names in topological order."""
        return list(self._graph.sorted_stages)

    def get_state(self, name: str, default: Any = None) -> Any:
        self._require_stage(name)
        with self._lock:
            return self._state.get(name, default)

    # -- state updates --------------------------------------------------------

    def set_state(self, name: str, value: Any) -> None:
        """Store *value* for stage *name* and propagate the change.

        Raises
        ------
        UnknownStageError
            If *name* is not a stage of this flow.
        """
        self._require_stage(name)
        with self._lock:
            self._state[name] = value
            self._process(name)

    def update_state(self, name: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge *partial* into the state of *name*, then propagate.

        A stage without state merges into an empty mapping.  The stored
        mapping is replaced by a merged copy, never mutated in place.

        Raises
        ------
        UnknownStageError
            If *name* is not a stage of this flow.
        TypeError
            If the stored state of *name* is not a mapping.
        """
        self._require_stage(name)
        with self._lock:
            current = self._state.get(name)
            if current is None:
                current = {}
            elif not isinstance(current, Mapping):
                raise TypeError(
                    f"Cannot merge into state of stage '{name}': "
                    f"stored value is a {type(current).__name__}, not a mapping"
                )
            self._state[name] = {**current, **partial}
            self._process(name)

    # -- listeners ------------------------------------------------------------

    @overload
    def on(self, event: str, listener: L, owner: Any = ...) -> Subscription: ...

    @overload
    def on(
        self, event: str, listener: None = ..., owner: Any = ...
    ) -> Callable[[L], L]: ...

    def on(
        self, event: str, listener: Listener | None = None, owner: Any = None
    ) -> Any:
        """Register a listener for *event*.

        *event* is ``"<stage>"``, ``"before:<stage>"`` or ``"after:<stage>"``.
        Without *listener* this returns a decorator::

            @flow.on("layout")
            def relayout(state, flow): ...

        Raises
        ------
        UnknownStageError
            If *event* does not refer to a stage of this flow.
        """
        self._check_event(event)
        if listener is not None:
            return self._listeners.on(event, listener, owner)

        def decorator(fn: L) -> L:
            self._listeners.on(event, fn, owner)
            return fn

        return decorator

    def before(
        self, stage: str, listener: Listener | None = None, owner: Any = None
    ) -> Any:
        """Register a listener for the ``before:<stage>`` phase."""
        self._require_stage(stage)
        return self.on(Phase.BEFORE.event_name(stage), listener, owner)

    def after(
        self, stage: str, listener: Listener | None = None, owner: Any = None
    ) -> Any:
        """Register a listener for the ``after:<stage>`` phase."""
        self._require_stage(stage)
        return self.on(Phase.AFTER.event_name(stage), listener, owner)

    def off(
        self,
        event: str | None = None,
        listener: Listener | Subscription | None = None,
        owner: Any = None,
    ) -> int:
        """Unregister listeners; see :meth:`ListenerRegistry.off`."""
        return self._listeners.off(event, listener, owner)

    def listeners(self, event: str) -> tuple[Subscription, ...]:
        return self._listeners.listeners(event)

    # -- propagation ----------------------------------------------------------

    def _process(self, root: str) -> None:
        if self._is_flowing:
            logger.debug("state.deferred", extra={"flow": self.name, "stage": root})
            return
        token: Token[PassContext | None] | None = None
        try:
            self._is_flowing = True
            ctx = PassContext(flow_name=self.name, root=root)
            token = _set_context(ctx)
            logger.debug(
                "pass.start",
                extra={
                    "flow": self.name,
                    "root": root,
                    "correlation_id": ctx.correlation_id,
                },
            )
            if self._propagation == "ordered":
                self._dispatch_all(self._graph.downstream(root), ctx)
            else:
                self._dispatch_queue(root, ctx)
            logger.debug(
                "pass.end",
                extra={
                    "flow": self.name,
                    "root": root,
                    "correlation_id": ctx.correlation_id,
                    "dispatched": len(ctx.visited),
                },
            )
        finally:
            self._is_flowing = False
            if token is not None:
                _reset_context(token)

    def _dispatch_queue(self, root: str, ctx: PassContext) -> None:
        # Stages reachable along several paths are dispatched once per path.
        queue = deque([root])
        while queue:
            name = queue.popleft()
            if name not in self._graph:
                raise UnknownStageError(name)
            self._process_stage(name, ctx)
            queue.extend(self._graph.out_edges(name))

    def _dispatch_all(self, names: Iterable[str], ctx: PassContext) -> None:
        for name in names:
            self._process_stage(name, ctx)

    def _process_stage(self, name: str, ctx: PassContext) -> None:
        ctx.visited.append(name)
        emit = self._listeners.emit
        with self.backend.span(name, self.name, root=ctx.root):
            emit(Phase.BEFORE.event_name(name), self)
            # read after the before-phase so its state changes are visible
            emit(name, self._state.get(name), self)
            emit(Phase.AFTER.event_name(name), self)

    # -- helpers --------------------------------------------------------------

    def _require_stage(self, name: str) -> None:
        if name not in self._graph:
            raise UnknownStageError(name)

    def _check_event(self, event: str) -> None:
        if event in self._graph:
            return
        prefix, sep, stage = event.partition(":")
        if sep and prefix in _PHASE_PREFIXES and stage in self._graph:
            return
        raise UnknownStageError(
            event, message=f"Event '{event}' does not refer to a known stage"
        )

    def __repr__(self) -> str:
        return f"Flow(name={self.name!r}, stages={self.get_stage_names()!r})"
