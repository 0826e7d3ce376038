"""Tests for logging and tracing setup."""

import io
import json
import logging
from unittest.mock import patch

from riskchat.configs.system import LoggingConfig, TracingConfig
from riskchat.infra import telemetry
from riskchat.infra.logging import setup_logging


class TestSetupLogging:
    def test_json_lines_with_empty_trace_ids_outside_spans(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            with patch("riskchat.infra.logging.sys.stdout", new=io.StringIO()) as out:
                setup_logging(LoggingConfig(level="info", json_output=True))
                logging.getLogger("riskchat.test").warning("section failed")

            line = json.loads(out.getvalue().strip().splitlines()[-1])
            assert line["message"] == "section failed"
            assert line["level"] == "WARNING"
            assert line["logger"] == "riskchat.test"
            assert line["trace_id"] == ""
        finally:
            root.handlers, level = saved
            root.setLevel(level)

    def test_quiets_http_client_loggers(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging(LoggingConfig(level="debug", json_output=False))
            assert logging.getLogger("httpx").level == logging.WARNING
            assert root.level == logging.DEBUG
        finally:
            root.handlers, level = saved
            root.setLevel(level)


class TestTelemetry:
    def test_disabled_by_default(self):
        assert telemetry.init_telemetry(None, TracingConfig()) is False
        assert not telemetry.tracing_active()

    def test_enabled_without_endpoint_stays_off(self):
        assert telemetry.init_telemetry(None, TracingConfig(enabled=True)) is False
        assert not telemetry.tracing_active()

    def test_basic_auth_only_when_user_is_set(self):
        assert telemetry.exporter_headers(TracingConfig()) == {}
        headers = telemetry.exporter_headers(
            TracingConfig(username="otel", password="secret")
        )
        assert headers == {"Authorization": "Basic b3RlbDpzZWNyZXQ="}
