"""
Unit tests for structured logging configuration.

Tests verify:
- Logging configuration works for JSON and console output
- Context variables (trace_id, request_id) are set and retrieved
- Log entries carry service and request context
"""
import logging
import uuid
from io import StringIO

from podsearch.core import logging as podsearch_logging
from podsearch.core.logging import (
    add_request_context,
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
    get_request_id,
    get_trace_id,
    new_id,
)


class TestLoggingConfiguration:
    """Test logging configuration and setup."""

    def test_configure_logging_json_output(self):
        output = StringIO()
        configure_logging(log_level="INFO", json_output=True)

        root_logger = logging.getLogger()
        handler = logging.StreamHandler(output)
        root_logger.addHandler(handler)
        try:
            get_logger("test_json").info("test_message", test_field="test_value")
            handler.flush()
        finally:
            root_logger.removeHandler(handler)

        output_str = output.getvalue()
        assert "test_message" in output_str
        assert "test_field" in output_str

    def test_configure_logging_console_output(self):
        configure_logging(log_level="INFO", json_output=False)

        # Should not raise
        get_logger(__name__).info("test_message", test_field="test_value")

    def test_configure_logging_sets_level(self):
        configure_logging(log_level="warning", json_output=True)
        assert logging.getLogger().level == logging.WARNING

        configure_logging(log_level="INFO", json_output=True)
        assert logging.getLogger().level == logging.INFO


class TestContextVariables:
    """Test trace and request ID context."""

    def test_bind_keeps_given_trace_id(self):
        try:
            trace_id, request_id = bind_request_context("trace-123")
            assert trace_id == "trace-123"
            assert get_trace_id() == "trace-123"
            assert get_request_id() == request_id
        finally:
            clear_request_context()

        assert get_trace_id() is None
        assert get_request_id() is None

    def test_bind_generates_missing_trace_id(self):
        try:
            trace_id, request_id = bind_request_context(None)
        finally:
            clear_request_context()

        assert uuid.UUID(trace_id).version == 4
        assert uuid.UUID(request_id).version == 4
        assert trace_id != request_id

    def test_new_id_is_unique(self):
        assert new_id() != new_id()


class TestRequestContextProcessor:
    def test_adds_service_and_ids(self):
        try:
            trace_id, request_id = bind_request_context("trace-abc")
            event = add_request_context(None, "info", {"event": "something"})
        finally:
            clear_request_context()

        assert event["trace_id"] == "trace-abc"
        assert event["request_id"] == request_id
        assert event["service"] == podsearch_logging.SERVICE_NAME
        assert "timestamp" in event

    def test_omits_ids_outside_request(self):
        event = add_request_context(None, "info", {"event": "startup"})

        assert "trace_id" not in event
        assert "request_id" not in event
        assert event["service"] == podsearch_logging.SERVICE_NAME

    def test_keeps_existing_timestamp(self):
        event = add_request_context(None, "info", {"event": "e", "timestamp": "fixed"})
        assert event["timestamp"] == "fixed"
