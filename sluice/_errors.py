"""Exception hierarchy for graph compilation and state propagation."""

from __future__ import annotations

from collections.abc import Sequence


class SluiceError(Exception):
    """Base class for all errors raised by sluice."""


class CyclicDependencyError(SluiceError, ValueError):
    """Raised when the stage set contains a dependency cycle.

    ``stage`` names a stage found on the cycle during the depth-first walk.
    It is ``None`` when the cycle is a clique that no root stage reaches, in
    which case ``stages`` lists every stage that could not be ordered.
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        stages: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.stages = tuple(stages)


class UnknownStageError(SluiceError, LookupError):
    """Raised when a stage name is not part of the compiled graph."""

    def __init__(
        self,
        stage: str,
        missing: Sequence[str] = (),
        message: str | None = None,
    ) -> None:
        super().__init__(message or f"Unknown stage '{stage}'")
        self.stage = stage
        self.missing = tuple(missing) or (stage,)


class DuplicateStageError(SluiceError, ValueError):
    """Raised when two stage definitions share a name."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Duplicate stage '{stage}'")
        self.stage = stage
