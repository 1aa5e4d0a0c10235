"""Tests for sluice._config."""

from __future__ import annotations

import importlib.util

import pytest

from sluice._config import configure, get_backend, get_propagation, reset
from sluice.backends.logging import LoggingBackend

HAS_OTEL = importlib.util.find_spec("opentelemetry") is not None


class TestConfigure:
    def test_configure_with_string_logging(self) -> None:
        configure("logging")
        backend = get_backend()
        assert isinstance(backend, LoggingBackend)

    def test_configure_with_instance(self) -> None:
        instance = LoggingBackend()
        configure(instance)
        assert get_backend() is instance

    @pytest.mark.skipif(HAS_OTEL, reason="opentelemetry is installed")
    def test_configure_otel_without_package_raises(self) -> None:
        with pytest.raises(RuntimeError, match="opentelemetry-api is required"):
            configure("otel")

    def test_configure_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend"):
            configure("bogus")

    @pytest.mark.skipif(HAS_OTEL, reason="opentelemetry is installed")
    def test_configure_auto(self) -> None:
        configure("auto")
        # Without opentelemetry installed, should fall back to logging
        assert isinstance(get_backend(), LoggingBackend)

    @pytest.mark.skipif(not HAS_OTEL, reason="opentelemetry is not installed")
    def test_configure_otel_and_auto_with_package(self) -> None:
        from sluice.backends.otel import OTelBackend

        configure("otel")
        assert isinstance(get_backend(), OTelBackend)
        configure("auto")
        assert isinstance(get_backend(), OTelBackend)

    def test_configure_propagation(self) -> None:
        configure(None, propagation="ordered")
        assert get_propagation() == "ordered"

    def test_none_backend_keeps_current(self) -> None:
        instance = LoggingBackend()
        configure(instance)
        configure(None, propagation="queue")
        assert get_backend() is instance

    def test_unknown_propagation_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown propagation mode"):
            configure(None, propagation="random")  # type: ignore[arg-type]
        assert get_propagation() == "queue"


class TestGetBackend:
    @pytest.mark.skipif(HAS_OTEL, reason="opentelemetry is installed")
    def test_auto_detection_on_first_call(self) -> None:
        assert isinstance(get_backend(), LoggingBackend)

    def test_returns_same_instance(self) -> None:
        b1 = get_backend()
        b2 = get_backend()
        assert b1 is b2


class TestReset:
    def test_reset_clears_backend(self) -> None:
        configure("logging")
        b1 = get_backend()
        reset()
        b2 = get_backend()
        # After reset, a new backend is auto-detected
        assert b1 is not b2

    def test_reset_restores_queue_propagation(self) -> None:
        configure(None, propagation="ordered")
        reset()
        assert get_propagation() == "queue"
