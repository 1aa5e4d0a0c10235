"""Abstract base class for tracing backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sluice._context import current_pass_id


class TracingBackend(ABC):
    """Wraps every stage dispatch of a propagation pass.

    :meth:`span` is entered once per dispatch, around the ``before:``, main
    and ``after:`` phases of that stage, so a stage reached along two paths
    opens two spans.  It must re-raise listener exceptions.
    """

    @abstractmethod
    @contextmanager
    def span(self, stage_name: str, flow_name: str, **attrs: Any) -> Iterator[None]:
        """Open a span for one stage dispatch of *flow_name*.

        *attrs* carries pass details such as the ``root`` stage.
        """

    def get_correlation_id(self) -> str:
        """Return the id tying together the spans of the active pass.

        Defaults to the pass id, or ``""`` outside of a pass.
        """
        return current_pass_id() or ""
