"""Shared fixtures for the sluice test suite."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pytest

from sluice._config import reset
from sluice.backends.base import TracingBackend


@pytest.fixture(autouse=True)
def _reset_config() -> Iterator[None]:
    """Give every test an unconfigured backend and the default propagation."""
    reset()
    yield
    reset()


class RecordingBackend(TracingBackend):
    """Backend that records the stage name of every span it opens."""

    def __init__(self) -> None:
        self.spans: list[tuple[str, str, dict[str, Any]]] = []

    @contextmanager
    def span(self, stage_name: str, flow_name: str, **attrs: Any) -> Iterator[None]:
        self.spans.append((stage_name, flow_name, attrs))
        yield

    def get_correlation_id(self) -> str:
        return "recording"

    @property
    def stages(self) -> list[str]:
        return [stage for stage, _, _ in self.spans]


@pytest.fixture
def recorder() -> RecordingBackend:
    return RecordingBackend()
