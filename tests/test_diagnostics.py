"""Tests for diagnostic sinks."""

import logging
import threading

from linearity._diagnostics import TRACE, DiagnosticEvent, DiagnosticsRecorder, LoggingSink, NullSink
from linearity.outcomes import OutcomeCollector
from tests.objects import counter_race


class TestDiagnosticsRecorder:
    def test_records_events(self) -> None:
        """Emitted events are kept in order with their details."""
        recorder = DiagnosticsRecorder()
        recorder.emit(DiagnosticEvent("summary", "done", {"outcomes": 2}))
        recorder.emit(DiagnosticEvent("outcome", "{0: 1}"))
        assert [e.kind for e in recorder.events] == ["summary", "outcome"]
        assert recorder.of_kind("summary")[0].details == {"outcomes": 2}
        assert recorder.events[1].details == {}

    def test_kind_filter(self) -> None:
        """A kind filter limits both wants() and what gets recorded."""
        recorder = DiagnosticsRecorder(kinds=frozenset({"summary"}))
        assert recorder.wants("summary")
        assert not recorder.wants("visibility")
        OutcomeCollector(sink=recorder).collect(counter_race())
        assert [e.kind for e in recorder.events] == ["summary"]

    def test_disabled(self) -> None:
        """A disabled recorder keeps nothing."""
        recorder = DiagnosticsRecorder(enabled=False)
        recorder.emit(DiagnosticEvent("summary", "done"))
        assert recorder.events == []

    def test_clear(self) -> None:
        """clear() empties the recorder."""
        recorder = DiagnosticsRecorder()
        recorder.emit(DiagnosticEvent("summary", "done"))
        recorder.clear()
        assert recorder.events == []

    def test_concurrent_emit(self) -> None:
        """Events emitted from several threads are all kept."""
        recorder = DiagnosticsRecorder()

        def emit_many():
            for i in range(200):
                recorder.emit(DiagnosticEvent("outcome", str(i)))

        threads = [threading.Thread(target=emit_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(recorder.events) == 800


def test_null_sink_wants_nothing():
    """The default sink declines every kind."""
    sink = NullSink()
    assert not sink.wants("summary")
    sink.emit(DiagnosticEvent("summary", "ignored"))


class TestLoggingSink:
    def test_summary_logged_at_info(self, caplog) -> None:
        """At INFO only harness, summary and cutoff events are logged."""
        caplog.set_level(logging.INFO, logger="linearity.outcomes")
        OutcomeCollector(sink=LoggingSink()).collect(counter_race())
        messages = [r.getMessage() for r in caplog.records]
        assert "summary: got 2 unique outcomes from 2 configurations" in messages
        assert messages[0].startswith("harness: computing outcomes for { increment() } || { read() }")
        assert not any(m.startswith("visibility:") for m in messages)

    def test_details_attached_to_records(self, caplog) -> None:
        """Event details travel on the log record."""
        caplog.set_level(logging.INFO, logger="linearity.outcomes")
        OutcomeCollector(sink=LoggingSink()).collect(counter_race())
        summary = [r for r in caplog.records if r.getMessage().startswith("summary:")][0]
        assert summary.linearity_details["configurations"] == 2
        assert summary.levelno == logging.INFO

    def test_trace_level(self, caplog) -> None:
        """Per-configuration events log at TRACE, linearizations at DEBUG."""
        caplog.set_level(TRACE, logger="linearity.outcomes")
        OutcomeCollector(sink=LoggingSink()).collect(counter_race())
        levels = {r.getMessage().split(":")[0]: r.levelname for r in caplog.records}
        assert levels["visibility"] == "TRACE"
        assert levels["linearization"] == "DEBUG"

    def test_custom_logger(self) -> None:
        """wants() follows the level of the given logger."""
        logger = logging.getLogger("linearity.tests.custom")
        logger.setLevel(logging.WARNING)
        sink = LoggingSink(logger)
        assert not sink.wants("summary")
        logger.setLevel(logging.INFO)
        assert sink.wants("summary")
        assert not sink.wants("outcome")
