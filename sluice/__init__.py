"""sluice: dependency-ordered state propagation between named stages."""

from sluice._config import configure
from sluice._context import (
    PassContext,
    current_pass_id,
    get_pass_context,
    get_pass_value,
    set_pass_value,
)
from sluice._dag import generate_dag
from sluice._emitter import ListenerRegistry, Subscription
from sluice._errors import (
    CyclicDependencyError,
    DuplicateStageError,
    SluiceError,
    UnknownStageError,
)
from sluice._flow import Flow
from sluice._graph import Graph, compile_graph
from sluice._types import Phase, StageDescriptor

__all__ = [
    "CyclicDependencyError",
    "DuplicateStageError",
    "Flow",
    "Graph",
    "ListenerRegistry",
    "PassContext",
    "Phase",
    "SluiceError",
    "StageDescriptor",
    "Subscription",
    "UnknownStageError",
    "compile_graph",
    "configure",
    "current_pass_id",
    "generate_dag",
    "get_pass_context",
    "get_pass_value",
    "set_pass_value",
]
