"""
Integration tests for the dependency injection container.

Tests the complete wiring of the error pipeline and its lifecycle.
"""

import asyncio

import pytest

from src.di import ApplicationContainer, DIContainer, create_container
from src.errors import DiagnosticSink, DomainErrorHandlers, ErrorHandler, ErrorMetrics, ThrottleWindow
from src.errors.taxonomy import ErrorKind


class TestDIContainer:
    """Test the generic container."""

    def test_singleton_is_cached(self):
        container = DIContainer()
        container.singleton("metrics", ErrorMetrics)

        assert container.get("metrics") is container.get("metrics")

    def test_factory_creates_new_instances(self):
        container = DIContainer()
        container.factory("metrics", ErrorMetrics)

        assert container.get("metrics") is not container.get("metrics")

    def test_missing_provider(self):
        with pytest.raises(KeyError):
            DIContainer().get("nope")


class TestApplicationContainer:
    """Test the composed diagnostics services."""

    async def test_initialization_wires_services(self, test_config, presenter):
        container = await create_container(test_config, presenter)

        try:
            assert container.initialized
            assert container.get("config") is test_config
            assert isinstance(container.get("diagnostic_sink"), DiagnosticSink)
            assert isinstance(container.get("error_metrics"), ErrorMetrics)
            assert isinstance(container.get("throttle"), ThrottleWindow)

            handler = container.get("error_handler")
            assert isinstance(handler, ErrorHandler)
            assert handler.sink is container.get("diagnostic_sink")
            assert handler.presenter is presenter
            assert handler.issue_tracker_url == test_config.issue_tracker_url

            diagnostics = container.get("diagnostics")
            assert isinstance(diagnostics, DomainErrorHandlers)
            assert diagnostics.error_handler is handler
        finally:
            await container.shutdown()

    async def test_bot_data(self, test_config, presenter):
        container = await create_container(test_config, presenter)

        try:
            data = container.bot_data()
            assert set(data) == {"diagnostics", "error_handler", "error_metrics", "diagnostic_sink"}
            assert data["error_metrics"] is container.get("error_metrics")
        finally:
            await container.shutdown()

    async def test_throttle_configured_from_settings(self, test_config, presenter):
        container = await create_container(test_config, presenter)

        try:
            throttle = container.get("throttle")
            assert throttle.window_seconds == 5.0
            assert throttle.max_entries == test_config.throttle_max_entries
        finally:
            await container.shutdown()

    async def test_failure_flows_to_log_file_and_metrics(self, test_config, presenter):
        container = await create_container(test_config, presenter)

        await container.get("diagnostics").handle_failure(asyncio.TimeoutError(), "list pods")
        await container.shutdown()

        assert container.get("error_metrics").count(ErrorKind.TIMEOUT) == 1
        assert len(presenter.prompts) == 1
        content = test_config.log_file.read_text(encoding="utf-8")
        assert "ERROR: Operation timed out after 30 seconds" in content
        assert "Kind: Timeout" in content

    async def test_view_logs_reaches_presenter(self, test_config, presenter):
        container = await create_container(test_config, presenter)
        presenter.choose_label("View Logs")

        try:
            await container.get("diagnostics").handle_failure(KeyError("spec"), "render tree")
        finally:
            await container.shutdown()

        assert "Kind: Unexpected" in presenter.logs[0]

    async def test_shutdown_dismisses_prompts_and_closes_sink(self, test_config, presenter):
        container = await create_container(test_config, presenter)
        sink = container.get("diagnostic_sink")
        assert sink.is_open

        await container.shutdown()

        assert presenter.dismissed == 1
        assert not sink.is_open
        assert not container.initialized

    async def test_double_initialize_is_ignored(self, test_config, presenter):
        container = ApplicationContainer()
        await container.initialize(test_config, presenter)
        sink = container.get("diagnostic_sink")

        await container.initialize(test_config, presenter)

        try:
            assert container.get("diagnostic_sink") is sink
        finally:
            await container.shutdown()
