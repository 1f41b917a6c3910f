"""Tests for the observability module (logging and statistics)."""

import io
import json
import logging
import threading

import pytest

from webcam_snapshot.observability.logging import (
    DEBUG_FORMAT,
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    _format_value,
    _log_context,
    configure_logging,
    get_logger,
    reset_logging,
)
from webcam_snapshot.observability.stats import (
    CameraStatsCollector,
    CaptureStats,
    StatsSummary,
    _percentile,
)

# =============================================================================
# Structured Logging Tests
# =============================================================================


def _record(msg="Saved screenshot", structured_data=None, level=logging.INFO):
    record = logging.LogRecord(
        name="webcam_snapshot.orchestrator",
        level=level,
        pathname="orchestrator.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if structured_data is not None:
        record.structured_data = structured_data
    return record


class TestStructuredLogger:
    """Tests for keyword data on StructuredLogger level methods."""

    def test_kwargs_become_structured_data(self, log_stream):
        """Verifies keyword arguments reach the record, merged over context."""
        logger = get_logger("webcam_snapshot.test")

        with LogContext(camera="dock", stage="render"):
            logger.warning("Slow page", stage="fullscreen", elapsed_s=41)

        line = log_stream.getvalue().strip()
        assert "[WARNING]" in line
        assert line.endswith("| camera=dock stage=fullscreen elapsed_s=41")

    def test_exception_keeps_traceback_and_data(self, log_stream):
        """Verifies logger.exception() carries both exc_info and kwargs."""
        logger = get_logger("webcam_snapshot.test")

        try:
            raise RuntimeError("driver crashed")
        except RuntimeError:
            logger.exception("Unexpected error", camera="pier")

        output = log_stream.getvalue()
        assert "Traceback" in output
        assert "RuntimeError: driver crashed" in output
        assert "camera=pier" in output

    def test_extra_is_not_mutated(self, log_stream):
        """Verifies a caller's extra dict is left as it was."""
        extra = {"request_id": "abc"}

        get_logger("webcam_snapshot.test").info("Options", extra=extra, debug=True)

        assert extra == {"request_id": "abc"}


class TestStructuredFormatter:
    """Tests for the human-readable formatter."""

    def test_appends_key_values(self):
        """Verifies ' | key=value' pairs follow the message."""
        formatter = StructuredFormatter(fmt="%(levelname)s %(message)s")

        line = formatter.format(_record(structured_data={"camera": "dock", "n": 3}))

        assert line == "INFO Saved screenshot | camera=dock n=3"

    def test_no_structured_data(self):
        """Verifies lines without data have no separator."""
        formatter = StructuredFormatter(fmt="%(message)s")
        assert formatter.format(_record()) == "Saved screenshot"

    def test_default_format_has_milliseconds(self):
        """Verifies the default layout ends the time with .mmm and braces the level."""
        line = StructuredFormatter().format(_record())

        date, time_part, level = line.split(" ")[:3]
        assert len(date.split("/")) == 3
        assert len(time_part.split(".")[1]) == 3
        assert level == "[INFO]"


class TestJSONFormatter:
    """Tests for the NDJSON formatter."""

    def test_single_line_json(self):
        """Verifies structured data becomes top-level keys."""
        payload = json.loads(
            JSONFormatter().format(_record(structured_data={"camera": "dock"}))
        )

        assert payload["message"] == "Saved screenshot"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "webcam_snapshot.orchestrator"
        assert payload["camera"] == "dock"
        assert "timestamp" in payload

    def test_non_serialisable_values(self):
        """Verifies odd values fall back to str()."""
        payload = json.loads(
            JSONFormatter().format(_record(structured_data={"obj": object()}))
        )
        assert payload["obj"].startswith("<object object")


class TestFormatValue:
    """Tests for _format_value()."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            ("dock", "dock"),
            ("has spaces", '"has spaces"'),
            ({"a": 1}, '{"a": 1}'),
            (["dock", "pier"], '["dock", "pier"]'),
            (3.5, "3.5"),
            (True, "True"),
        ],
    )
    def test_values(self, value, expected):
        """Verifies the formatting rules per type."""
        assert _format_value(value) == expected


class TestLogContext:
    """Tests for LogContext."""

    def test_nesting_and_restore(self):
        """Verifies inner values override outer ones and exit restores them."""
        with LogContext(camera="dock"):
            with LogContext(stage="render", camera="pier"):
                assert _log_context.get() == {"camera": "pier", "stage": "render"}
            assert _log_context.get() == {"camera": "dock"}
        assert _log_context.get() == {}

    def test_restored_after_exception(self):
        """Verifies context is popped even when the block raises."""
        with pytest.raises(RuntimeError):
            with LogContext(camera="dock"):
                raise RuntimeError("boom")
        assert _log_context.get() == {}

    def test_context_reaches_output(self, log_stream):
        """Verifies context values appear in emitted lines."""
        logger = get_logger("webcam_snapshot.test")

        with LogContext(camera="dock"):
            logger.info("Navigating", url="https://example.test")

        line = log_stream.getvalue().strip()
        assert "Navigating | camera=dock url=https://example.test" in line

    def test_context_is_per_thread(self):
        """Verifies a context in one thread does not leak to another."""
        seen = {}

        def worker():
            seen["other"] = dict(_log_context.get())

        with LogContext(camera="dock"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen["other"] == {}


class TestConfigureLogging:
    """Tests for configure_logging(), reset_logging() and get_logger()."""

    def teardown_method(self):
        reset_logging()

    def test_get_logger_returns_structured_logger(self):
        """Verifies project loggers accept keyword data."""
        assert isinstance(get_logger("webcam_snapshot.x"), StructuredLogger)

    def test_idempotent_without_force(self):
        """Verifies a second call does not add another handler."""
        configure_logging(stream=io.StringIO(), force=True)
        configure_logging(stream=io.StringIO())

        assert len(logging.getLogger("webcam_snapshot").handlers) == 1

    def test_level_filters(self):
        """Verifies messages below the level are dropped."""
        stream = io.StringIO()
        configure_logging(level=logging.WARNING, stream=stream, force=True)
        logger = get_logger("webcam_snapshot.test")

        logger.info("quiet")
        logger.warning("loud")

        assert "quiet" not in stream.getvalue()
        assert "loud" in stream.getvalue()

    def test_debug_adds_caller(self):
        """Verifies debug mode logs file, line and function of the caller."""
        stream = io.StringIO()
        configure_logging(stream=stream, force=True, debug=True)
        logger = get_logger("webcam_snapshot.test")

        logger.debug("Navigating")

        handler = logging.getLogger("webcam_snapshot").handlers[0]
        assert handler.formatter._fmt == DEBUG_FORMAT
        assert "{test_observability.py:" in stream.getvalue()
        assert "test_debug_adds_caller}" in stream.getvalue()

    def test_json_format(self):
        """Verifies json_format emits parseable lines."""
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream, force=True)

        get_logger("webcam_snapshot.test").info("Options", save_path="/srv")

        payload = json.loads(stream.getvalue().strip())
        assert payload["save_path"] == "/srv"

    def test_reset_removes_handlers(self):
        """Verifies reset_logging() leaves the root unconfigured."""
        configure_logging(stream=io.StringIO(), force=True)
        reset_logging()

        assert logging.getLogger("webcam_snapshot").handlers == []


# =============================================================================
# Statistics Tests
# =============================================================================


class TestPercentile:
    """Tests for _percentile()."""

    def test_median(self):
        assert _percentile([1.0, 2.0, 3.0, 4.0, 5.0], 50) == 3.0

    def test_interpolates(self):
        assert _percentile([100.0, 150.0, 200.0], 95) == pytest.approx(195.0)

    def test_empty(self):
        assert _percentile([], 95) == 0.0

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            _percentile([1.0], 101)


class TestCameraStatsCollector:
    """Tests for the per-camera collector."""

    def test_summary(self):
        """Verifies totals, rate and durations from successes only."""
        collector = CameraStatsCollector("dock")
        collector.record(100, True)
        collector.record(200, True)
        collector.record(60_000, False, "render_timeout")

        summary = collector.get_summary()

        assert isinstance(summary, StatsSummary)
        assert summary.total_attempts == 3
        assert summary.successful_attempts == 2
        assert summary.failed_attempts == 1
        assert summary.success_rate == pytest.approx(2 / 3)
        assert summary.min_duration_ms == 100
        assert summary.max_duration_ms == 200
        assert summary.avg_duration_ms == 150
        assert summary.error_counts == {"render_timeout": 1}
        assert summary.last_attempt_time is not None

    def test_window_limits_durations(self):
        """Verifies the rolling window bounds duration history."""
        collector = CameraStatsCollector("dock", window_size=2)
        for duration in (1000, 10, 20):
            collector.record(duration, True)

        summary = collector.get_summary()

        assert summary.total_attempts == 3
        assert summary.max_duration_ms == 20

    def test_reset(self):
        """Verifies reset() zeroes everything."""
        collector = CameraStatsCollector("dock")
        collector.record(100, False, "render")
        collector.reset()

        summary = collector.get_summary()
        assert summary.total_attempts == 0
        assert summary.error_counts == {}
        assert summary.last_attempt_time is None


class TestCaptureStats:
    """Tests for the fleet-wide statistics container."""

    def test_to_dict_shape(self):
        """Verifies the JSON export lists cycles and every camera."""
        stats = CaptureStats()
        stats.record_attempt("dock", 100, True)
        stats.record_attempt("pier", 60_000, False, "render")
        stats.record_cycle()

        data = stats.to_dict()

        assert data["cycles"] == 1
        assert list(data["cameras"]) == ["dock", "pier"]
        assert data["cameras"]["pier"]["error_counts"] == {"render": 1}
        json.dumps(data)

    def test_unknown_camera_summary_is_zero(self):
        """Verifies summaries exist for cameras not yet attempted."""
        assert CaptureStats().get_summary("dock").total_attempts == 0

    def test_reset_single_camera(self):
        """Verifies reset(camera) leaves other cameras alone."""
        stats = CaptureStats()
        stats.record_attempt("dock", 100, True)
        stats.record_attempt("pier", 100, True)
        stats.record_cycle()

        stats.reset("dock")

        assert stats.get_summary("dock").total_attempts == 0
        assert stats.get_summary("pier").total_attempts == 1
        assert stats.cycles == 1

    def test_reset_all(self):
        """Verifies reset() clears cameras and the cycle counter."""
        stats = CaptureStats()
        stats.record_attempt("dock", 100, True)
        stats.record_cycle()

        stats.reset()

        assert stats.get_summary("dock").total_attempts == 0
        assert stats.cycles == 0

    def test_concurrent_recording(self):
        """Verifies counts are exact under concurrent writers."""
        stats = CaptureStats()

        def worker():
            for _ in range(200):
                stats.record_attempt("dock", 5, True)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert stats.get_summary("dock").total_attempts == 800
