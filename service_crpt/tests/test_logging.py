"""
Unit tests for the logging processors.
"""

import pytest

from shared.logging import (
    add_correlation_context,
    add_trace_context,
    clear_context,
    service_context,
    set_document_context,
    set_request_id,
)


class TestLoggingProcessors:
    """Test cases for the structlog processors."""

    @pytest.fixture(autouse=True)
    def reset_context(self):
        yield
        clear_context()

    def test_service_context_names_component(self):
        """Test that the component comes from the logger name."""
        processor = service_context("crpt")

        event = processor(None, "info", {"event": "x", "logger": "crpt.admission_gate"})

        assert event["service"] == "crpt"
        assert event["component"] == "admission_gate"

    def test_service_context_plain_logger_name(self):
        """Test that a logger without a component still gets the service."""
        event = service_context("crpt")(None, "info", {"event": "x", "logger": "uvicorn"})

        assert event["service"] == "crpt"
        assert "component" not in event

    def test_correlation_context(self):
        """Test that request and document ids are attached when set."""
        request_id = set_request_id()
        set_document_context("doc-42")

        event = add_correlation_context(None, "info", {"event": "x"})

        assert event["request_id"] == request_id
        assert event["document_id"] == "doc-42"

    def test_correlation_context_cleared(self):
        """Test that nothing is attached once the context is cleared."""
        set_request_id("req-1")
        set_document_context("doc-1")
        clear_context()

        event = add_correlation_context(None, "info", {"event": "x"})

        assert "request_id" not in event
        assert "document_id" not in event

    def test_no_trace_ids_outside_a_span(self):
        """Test that trace ids are omitted when no span is active."""
        event = add_trace_context(None, "info", {"event": "x"})

        assert "trace_id" not in event
        assert "span_id" not in event
