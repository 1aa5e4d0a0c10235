"""Tracing backends wrapping each stage dispatch in a span."""

from sluice.backends.base import TracingBackend
from sluice.backends.logging import LoggingBackend

__all__ = ["LoggingBackend", "TracingBackend"]
