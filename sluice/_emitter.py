"""Thread-safe listener registry keyed by event name."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from sluice._types import Listener


@dataclass(frozen=True, slots=True, eq=False)
class Subscription:
    """A registered listener.

    ``owner`` groups listeners of one consumer so they can be removed together.
    Subscriptions compare by identity: registering the same callable twice
    yields two subscriptions that are dispatched and removed independently.
    """

    event: str
    listener: Listener
    owner: Any = None


class ListenerRegistry:
    """Maps event names to listeners in registration order.

    :meth:`emit` iterates over a snapshot taken when it starts, so listeners
    added or removed while an event is being dispatched only affect later
    emits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, tuple[Subscription, ...]] = {}

    def on(self, event: str, listener: Listener, owner: Any = None) -> Subscription:
        """Register *listener* for *event*; returns the new subscription."""
        if not callable(listener):
            raise TypeError(f"Listener for '{event}' is not callable: {listener!r}")
        sub = Subscription(event=event, listener=listener, owner=owner)
        with self._lock:
            self._subscriptions[event] = (*self._subscriptions.get(event, ()), sub)
        return sub

    def off(
        self,
        event: str | None = None,
        listener: Listener | Subscription | None = None,
        owner: Any = None,
    ) -> int:
        """Remove matching listeners and return how many were removed.

        Filters combine: ``off("a")`` drops every listener of event ``"a"``,
        ``off(owner=obj)`` drops everything *obj* registered, and
        ``off("a", fn)`` drops *fn* from ``"a"`` only.  A :class:`Subscription`
        may be passed as *listener* to remove exactly that registration.
        Calling with no filter removes nothing.
        """
        if event is None and listener is None and owner is None:
            return 0
        removed = 0
        with self._lock:
            events = [event] if event is not None else list(self._subscriptions)
            for name in events:
                subs = self._subscriptions.get(name, ())
                kept = tuple(s for s in subs if not _matches(s, listener, owner))
                removed += len(subs) - len(kept)
                if kept:
                    self._subscriptions[name] = kept
                else:
                    self._subscriptions.pop(name, None)
        return removed

    def listeners(self, event: str) -> tuple[Subscription, ...]:
        with self._lock:
            return self._subscriptions.get(event, ())

    def has_listeners(self, event: str) -> bool:
        return bool(self.listeners(event))

    def emit(self, event: str, *args: Any) -> None:
        """Call every listener of *event* with *args*, in registration order.

        Exceptions raised by a listener propagate immediately; listeners after
        it are not called.
        """
        for sub in self.listeners(event):
            sub.listener(*args)

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()


def _matches(
    sub: Subscription,
    listener: Listener | Subscription | None,
    owner: Any,
) -> bool:
    if isinstance(listener, Subscription):
        if sub is not listener:
            return False
    elif listener is not None and sub.listener != listener:
        return False
    return owner is None or sub.owner is owner
