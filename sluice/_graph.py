"""Stage graph compilation: edge indices and topological ordering."""

from __future__ import annotations

import enum
import logging
from collections import deque
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from sluice._errors import CyclicDependencyError, DuplicateStageError, UnknownStageError
from sluice._types import StageDescriptor, StagesInput

logger = logging.getLogger("sluice")


class _Mark(enum.Enum):
    UNVISITED = 0
    VISITING = 1
    DONE = 2


class Graph:
    """An immutable, topologically sorted set of stages.

    ``in_edges(name)`` are the stages *name* requires; ``out_edges(name)`` are
    the stages that require *name* and must be re-triggered when it changes.
    Both preserve the order in which edges were declared.
    """

    __slots__ = ("_in_edges", "_out_edges", "_roots", "_sorted", "_stages")

    def __init__(self, stages: StagesInput) -> None:
        self._stages: Mapping[str, StageDescriptor] = MappingProxyType(
            _normalize_stages(stages)
        )
        self._in_edges: dict[str, tuple[str, ...]] = {}
        self._out_edges: dict[str, tuple[str, ...]] = {}
        self._extract_edges()
        self._roots = tuple(name for name in self._stages if not self._in_edges[name])
        self._sorted = self._compile()
        logger.debug(
            "graph.compiled",
            extra={"stage_count": len(self._sorted), "roots": self._roots},
        )

    # -- accessors ------------------------------------------------------------

    @property
    def stages(self) -> Mapping[str, StageDescriptor]:
        """Read-only mapping of stage name to descriptor, in input order."""
        return self._stages

    @property
    def sorted_stages(self) -> tuple[str, ...]:
        return self._sorted

    @property
    def roots(self) -> tuple[str, ...]:
        """Stages without prerequisites, in input order."""
        return self._roots

    def in_edges(self, name: str) -> tuple[str, ...]:
        """Return the stages *name* depends on."""
        try:
            return self._in_edges[name]
        except KeyError:
            raise UnknownStageError(name) from None

    def out_edges(self, name: str) -> tuple[str, ...]:
        """Return the stages depending on *name*."""
        try:
            return self._out_edges[name]
        except KeyError:
            raise UnknownStageError(name) from None

    def downstream(self, name: str) -> tuple[str, ...]:
        """Return *name* and every stage transitively depending on it.

        The result follows :attr:`sorted_stages`, so each stage comes after
        all of its prerequisites that are part of the result.
        """
        reached = {name}
        pending = deque(self.out_edges(name))
        while pending:
            current = pending.popleft()
            if current not in reached:
                reached.add(current)
                pending.extend(self._out_edges[current])
        return tuple(s for s in self._sorted if s in reached)

    def __contains__(self, name: object) -> bool:
        return name in self._stages

    def __iter__(self) -> Iterator[str]:
        return iter(self._sorted)

    def __len__(self) -> int:
        return len(self._sorted)

    def __repr__(self) -> str:
        return f"Graph({list(self._sorted)!r})"

    # -- compilation ----------------------------------------------------------

    def _extract_edges(self) -> None:
        in_edges: dict[str, dict[str, None]] = {name: {} for name in self._stages}
        out_edges: dict[str, dict[str, None]] = {name: {} for name in self._stages}
        missing: list[tuple[str, str]] = []
        for stage in self._stages.values():
            for other in stage.requires:
                if other not in self._stages:
                    missing.append((stage.name, other))
                    continue
                # dicts keep insertion order and collapse repeated requirements
                in_edges[stage.name][other] = None
                out_edges[other][stage.name] = None
        if missing:
            raise UnknownStageError(
                missing[0][1],
                missing=[ref for _, ref in missing],
                message="Invalid stage references:\n"
                + "\n".join(
                    f"  - Stage '{name}' requires unknown stage '{ref}'"
                    for name, ref in missing
                ),
            )
        self._in_edges = {name: tuple(edges) for name, edges in in_edges.items()}
        self._out_edges = {name: tuple(edges) for name, edges in out_edges.items()}

    def _compile(self) -> tuple[str, ...]:
        """Order the stages with a depth-first walk from every root.

        A stage is prepended to the result once all of its dependents are
        done.  Reaching a stage that is still on the walk stack means a cycle.
        Stages that no root reaches can only sit on a cycle themselves.
        """
        marks = dict.fromkeys(self._stages, _Mark.UNVISITED)
        result: deque[str] = deque()

        for root in self._roots:
            marks[root] = _Mark.VISITING
            stack: list[tuple[str, Iterator[str]]] = [
                (root, iter(self._out_edges[root]))
            ]
            while stack:
                name, dependents = stack[-1]
                for dep in dependents:
                    mark = marks[dep]
                    if mark is _Mark.VISITING:
                        raise CyclicDependencyError(
                            f"Detected cyclic dependency for stage '{dep}'",
                            stage=dep,
                            stages=[s for s, m in marks.items() if m is not _Mark.DONE],
                        )
                    if mark is _Mark.UNVISITED:
                        marks[dep] = _Mark.VISITING
                        stack.append((dep, iter(self._out_edges[dep])))
                        break
                else:
                    stack.pop()
                    marks[name] = _Mark.DONE
                    result.appendleft(name)

        if len(result) != len(self._stages):
            unreached = [s for s, m in marks.items() if m is not _Mark.DONE]
            raise CyclicDependencyError(
                "Cyclic dependencies found among stages: " + ", ".join(unreached),
                stages=unreached,
            )
        return tuple(result)


def compile_graph(stages: StagesInput | Graph) -> Graph:
    """Compile *stages* into a :class:`Graph`.

    *stages* is a sequence of :class:`StageDescriptor` objects or
    ``{"name": ..., "requires": [...]}`` mappings, or a mapping from stage
    name to such a definition.  An already compiled graph is returned as is.

    Raises
    ------
    CyclicDependencyError
        If the stages do not form a DAG.
    UnknownStageError
        If a stage requires a stage that is not declared.
    DuplicateStageError
        If two definitions share a name.
    """
    if isinstance(stages, Graph):
        return stages
    return Graph(stages)


def _normalize_stages(stages: StagesInput) -> dict[str, StageDescriptor]:
    result: dict[str, StageDescriptor] = {}
    if isinstance(stages, Mapping):
        items = [StageDescriptor.coerce(spec, name) for name, spec in stages.items()]
    else:
        items = [StageDescriptor.coerce(spec) for spec in stages]
    for descriptor in items:
        if descriptor.name in result:
            raise DuplicateStageError(descriptor.name)
        result[descriptor.name] = descriptor
    return result
