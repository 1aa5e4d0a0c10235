"""Core type definitions for sluice stage graphs."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from sluice._flow import Flow

# Listener callables.  Main-phase listeners receive ``(state, flow)``,
# before/after listeners receive ``(flow)``.
StateListener = Callable[[Any, "Flow"], Any]
PhaseListener = Callable[["Flow"], Any]
Listener = Callable[..., Any]

StageSpec = Union["StageDescriptor", Mapping[str, Any]]
StagesInput = Union[Iterable[StageSpec], Mapping[str, Any]]


class Phase(str, enum.Enum):
    """Dispatch phases of a single stage within a propagation pass."""

    BEFORE = "before"
    MAIN = "main"
    AFTER = "after"

    def event_name(self, stage: str) -> str:
        """Return the listener key for *stage* in this phase."""
        if self is Phase.MAIN:
            return stage
        return f"{self.value}:{stage}"


@dataclass(frozen=True, slots=True)
class StageDescriptor:
    """A named stage and the stages it requires."""

    name: str
    requires: tuple[str, ...] = ()

    @classmethod
    def coerce(cls, spec: StageSpec, name: str | None = None) -> StageDescriptor:
        """Build a descriptor from a descriptor or a ``{name, requires}`` mapping.

        *name* is the key the definition was stored under when stages are given as
        a mapping; it must agree with an explicit ``name`` in *spec*.
        """
        if isinstance(spec, StageDescriptor):
            if name is not None and spec.name != name:
                raise ValueError(
                    f"Stage stored under '{name}' is named '{spec.name}'"
                )
            return spec
        if not isinstance(spec, Mapping):
            raise TypeError(
                f"Expected a StageDescriptor or mapping, got {type(spec).__name__}"
            )
        spec_name = spec.get("name", name)
        if spec_name is None:
            raise ValueError(f"Stage definition without a name: {dict(spec)!r}")
        if name is not None and spec_name != name:
            raise ValueError(f"Stage stored under '{name}' is named '{spec_name}'")
        return cls(name=spec_name, requires=_normalize_requires(spec.get("requires")))


def _normalize_requires(requires: str | Iterable[str] | None) -> tuple[str, ...]:
    if requires is None:
        return ()
    if isinstance(requires, str):
        return (requires,)
    return tuple(requires)
