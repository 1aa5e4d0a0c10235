"""DAG visualization for compiled stage graphs."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal, overload

from sluice._graph import Graph

if TYPE_CHECKING:
    from sluice._flow import Flow


@overload
def generate_dag(
    graph: Graph | Flow,
    *,
    format: Literal["mermaid"] = ...,
    output: None = ...,
) -> str: ...


@overload
def generate_dag(
    graph: Graph | Flow,
    *,
    format: Literal["mermaid"] = ...,
    output: str | Path,
) -> None: ...


def generate_dag(
    graph: Graph | Flow,
    *,
    format: Literal["mermaid"] = "mermaid",
    output: str | Path | None = None,
) -> str | None:
    """Generate a DAG diagram for a compiled graph (or a flow's graph).

    Edges point from a prerequisite to the stage that requires it, i.e. in
    the direction changes propagate.

    Parameters
    ----------
    graph:
        A :class:`Graph` or a :class:`Flow` whose graph is drawn.
    format:
        Output format. Currently only ``"mermaid"`` is supported.
    output:
        Optional file path. When provided the diagram is written to this path
        and the function returns ``None``. Otherwise the diagram string is
        returned.

    Raises
    ------
    ValueError
        If *format* is not supported.
    """
    if format != "mermaid":
        raise ValueError(f"Unsupported format: {format!r}")

    if not isinstance(graph, Graph):
        graph = graph.graph

    lines: list[str] = ["graph TD"]
    # Node ids follow topological order; the stage name is only ever a label
    # so names with spaces, colons or brackets stay valid Mermaid.
    ids = {name: f"s{index}" for index, name in enumerate(graph)}
    lines.extend(f'    {ids[name]}["{_label(name)}"]' for name in graph)
    # Dependents in declaration order.
    lines.extend(
        f"    {ids[src]} --> {ids[dst]}"
        for src in graph
        for dst in graph.out_edges(src)
    )

    diagram = "\n".join(lines) + "\n"

    if output is not None:
        Path(output).write_text(diagram)
        return None

    return diagram


def _label(name: str) -> str:
    return name.replace('"', "#quot;")
