"""Unit tests for logging and tracing setup."""

import logging
import os
from unittest.mock import Mock, patch

import pytest
from pythonjsonlogger.json import JsonFormatter

from restaurant_menu_service.observability import configure_logging, setup_observability, traced
from restaurant_menu_service.observability.config import (
    build_resource,
    exporters_enabled,
    install_providers,
)


@pytest.mark.unit
class TestTraced:
    """Test suite for the traced decorator."""

    def test_sync_function_result_passes_through(self) -> None:
        """Test that sync functions keep their return value."""

        @traced("test.sync")
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    @pytest.mark.asyncio
    async def test_async_function_result_passes_through(self) -> None:
        """Test that coroutines are awaited inside the span."""

        @traced()
        async def fetch() -> str:
            return "menu"

        assert await fetch() == "menu"

    @pytest.mark.asyncio
    async def test_exceptions_are_reraised(self) -> None:
        """Test that failures propagate unchanged."""

        @traced("test.failure")
        async def explode() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await explode()


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        """Put the root logger back the way pytest set it up."""
        root = logging.getLogger()
        original_handlers = root.handlers[:]
        original_level = root.level
        yield
        root.handlers = original_handlers
        root.setLevel(original_level)

    def test_installs_single_json_handler(self) -> None:
        """Test that the root logger gets one JSON handler at the given level."""
        configure_logging("warning")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_quiets_client_libraries(self) -> None:
        """Test that boto and httpx request chatter stays at WARNING."""
        configure_logging("DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.unit
class TestExportersEnabled:
    """Test suite for exporters_enabled."""

    @pytest.mark.parametrize(
        ("environ", "expected"),
        [
            ({"ENVIRONMENT": "production", "ENABLE_OTEL_EXPORTERS": "true"}, True),
            ({"ENVIRONMENT": "production", "ENABLE_OTEL_EXPORTERS": "TRUE"}, True),
            ({"ENVIRONMENT": "production"}, False),
            ({"ENVIRONMENT": "test", "ENABLE_OTEL_EXPORTERS": "true"}, False),
            ({"ENABLE_OTEL_EXPORTERS": "true"}, True),
        ],
    )
    def test_exporters_enabled(self, environ: dict, expected: bool) -> None:
        """Test that the flag is honored everywhere except under tests."""
        with patch.dict(os.environ, environ, clear=True):
            assert exporters_enabled() is expected


@pytest.mark.unit
class TestSetupObservability:
    """Test suite for setup_observability."""

    @patch.dict(os.environ, {"ENVIRONMENT": "test", "ENABLE_OTEL_EXPORTERS": "true"}, clear=True)
    @patch("restaurant_menu_service.observability.config.FastAPIInstrumentor")
    @patch("restaurant_menu_service.observability.config.HTTPXClientInstrumentor")
    @patch("restaurant_menu_service.observability.config.BotocoreInstrumentor")
    @patch("restaurant_menu_service.observability.config.install_providers")
    def test_instruments_without_exporting_in_tests(
        self,
        mock_install: Mock,
        mock_botocore: Mock,
        mock_httpx: Mock,
        mock_fastapi: Mock,
    ) -> None:
        """Test that the test environment never configures OTLP exporters."""
        app = Mock()

        setup_observability(app)

        resource = mock_install.call_args.args[0]
        assert resource.attributes["service.name"] == "menu-svc"
        assert resource.attributes["deployment.environment"] == "test"
        assert mock_install.call_args.kwargs == {"export": False}
        mock_botocore.return_value.instrument.assert_called_once()
        mock_httpx.return_value.instrument.assert_called_once()
        mock_fastapi.instrument_app.assert_called_once_with(app)

    @patch.dict(
        os.environ,
        {"ENVIRONMENT": "production", "OTEL_EXPORTER_OTLP_ENDPOINT": "http://collector:4318"},
        clear=True,
    )
    @patch("restaurant_menu_service.observability.config.metrics.set_meter_provider")
    @patch("restaurant_menu_service.observability.config.trace.set_tracer_provider")
    @patch("restaurant_menu_service.observability.config.PeriodicExportingMetricReader")
    @patch("restaurant_menu_service.observability.config.BatchSpanProcessor")
    @patch("restaurant_menu_service.observability.config.OTLPMetricExporter")
    @patch("restaurant_menu_service.observability.config.OTLPSpanExporter")
    def test_install_providers_with_exporters(
        self,
        mock_span_exporter: Mock,
        mock_metric_exporter: Mock,
        mock_span_processor: Mock,
        mock_metric_reader: Mock,
        mock_set_tracer: Mock,
        mock_set_meter: Mock,
    ) -> None:
        """Test that exporters point at the configured collector."""
        install_providers(build_resource(), export=True)

        mock_span_exporter.assert_called_once_with(endpoint="http://collector:4318/v1/traces")
        mock_metric_exporter.assert_called_once_with(endpoint="http://collector:4318/v1/metrics")
        mock_span_processor.assert_called_once_with(mock_span_exporter.return_value)
        assert mock_metric_reader.call_args.kwargs == {"export_interval_millis": 60000}
        mock_set_tracer.assert_called_once()
        mock_set_meter.assert_called_once()

    @patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True)
    @patch("restaurant_menu_service.observability.config.metrics.set_meter_provider")
    @patch("restaurant_menu_service.observability.config.trace.set_tracer_provider")
    @patch("restaurant_menu_service.observability.config.OTLPSpanExporter")
    def test_install_providers_in_process(
        self, mock_span_exporter: Mock, mock_set_tracer: Mock, mock_set_meter: Mock
    ) -> None:
        """Test that no exporter is created when exporting is off."""
        install_providers(build_resource(), export=False)

        mock_span_exporter.assert_not_called()
        mock_set_tracer.assert_called_once()
        mock_set_meter.assert_called_once()
