"""
Tests for the logging module.
"""

import pytest

from deal_analysis.logging import (
    PipelineTimer,
    logging_context,
    get_trace_id,
    get_deal_id,
    get_user_id,
    add_request_context,
    current_log_context,
)


class TestLoggingContext:
    """Test logging context management."""

    def test_logging_context_sets_values(self):
        with logging_context(
            trace_id="trace_123",
            deal_id="deal_abc",
            user_id="user_xyz",
        ):
            assert get_trace_id() == "trace_123"
            assert get_deal_id() == "deal_abc"
            assert get_user_id() == "user_xyz"

    def test_logging_context_restores_values(self):
        with logging_context(trace_id="outer"):
            assert get_trace_id() == "outer"

            with logging_context(trace_id="inner"):
                assert get_trace_id() == "inner"

            assert get_trace_id() == "outer"

        assert get_trace_id() is None

    def test_logging_context_partial_values(self):
        with logging_context(deal_id="deal_only"):
            assert get_deal_id() == "deal_only"
            assert get_trace_id() is None
            assert get_user_id() is None

    def test_logging_context_restored_on_error(self):
        with pytest.raises(RuntimeError):
            with logging_context(deal_id="failing"):
                raise RuntimeError("boom")
        assert get_deal_id() is None

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with logging_context(tenant_id="t1"):
                pass

    def test_processor_adds_identifiers(self):
        with logging_context(trace_id="trace_1", deal_id="deal_1"):
            assert current_log_context() == {"trace_id": "trace_1", "deal_id": "deal_1"}
            event = add_request_context(None, "info", {"event": "stage.parsed"})

        assert event == {"event": "stage.parsed", "trace_id": "trace_1", "deal_id": "deal_1"}

    def test_processor_keeps_explicit_values(self):
        with logging_context(deal_id="deal_1"):
            event = add_request_context(None, "info", {"event": "x", "deal_id": "override"})

        assert event["deal_id"] == "override"


class TestPipelineTimer:
    """Test pipeline timing functionality."""

    def test_timer_records_stages(self):
        timer = PipelineTimer()

        with timer.stage("standards"):
            pass

        with timer.stage("analysis"):
            pass

        assert timer.stages["standards"] >= 0
        assert timer.stages["analysis"] >= 0

    def test_timer_records_failed_stage(self):
        timer = PipelineTimer()

        with pytest.raises(ValueError):
            with timer.stage("recommendations"):
                raise ValueError("bad")

        assert "recommendations" in timer.stages

    def test_timer_summary(self):
        timer = PipelineTimer()
        timer.record("analysis", 100.0)
        timer.record("recommendations", 50.0)

        summary = timer.summary()

        assert summary["total_ms"] >= 0
        assert summary["stages"] == {"analysis": 100.0, "recommendations": 50.0}
