"""Tests for report results and diagnostics."""

import pytest

from docx_report_engine.shared.exceptions import CommandExecutionError
from docx_report_engine.shared.result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ReportMetrics,
    ReportResult,
)


class TestDiagnosticEntry:
    """Test diagnostic entry validation."""

    def test_valid_entry(self):
        """Test a complete entry."""
        entry = DiagnosticEntry(DiagnosticSeverity.WARNING, "recovered", "errors", command="INS x")

        assert entry.command == "INS x"
        assert entry.timestamp > 0

    def test_empty_message_rejected(self):
        """Test messages are required."""
        with pytest.raises(ValueError, match="message"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "", "errors")

    def test_empty_component_rejected(self):
        """Test components are required."""
        with pytest.raises(ValueError, match="component"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "message", "")


class TestReportMetrics:
    """Test report metrics."""

    def test_commands_per_second(self):
        """Test throughput calculation."""
        metrics = ReportMetrics(processing_time_ms=500.0, commands_executed=10)

        assert metrics.commands_per_second == 20.0

    def test_commands_per_second_without_time(self):
        """Test throughput is zero when no time was measured."""
        assert ReportMetrics().commands_per_second == 0.0


class TestReportResult:
    """Test report results."""

    def test_success_depends_on_errors(self):
        """Test success is false once an error is recorded."""
        result = ReportResult()
        assert result.success is True

        result.errors.append(CommandExecutionError(ValueError("x"), "INS x"))
        assert result.success is False

    def test_add_diagnostic_uses_correlation_id(self):
        """Test diagnostics inherit the result's correlation ID."""
        result = ReportResult(correlation_id="run-1")

        result.add_diagnostic(DiagnosticSeverity.ERROR, "failed", "errors", command="INS x")

        assert result.diagnostics[0].correlation_id == "run-1"
        assert result.get_diagnostics_by_severity(DiagnosticSeverity.ERROR) == result.diagnostics
        assert result.get_diagnostics_by_severity(DiagnosticSeverity.INFO) == []

    def test_statistics(self):
        """Test statistics summarize metrics and errors."""
        result = ReportResult(metrics=ReportMetrics(commands_found=3, loop_iterations=2))

        stats = result.statistics

        assert stats["commands_found"] == 3
        assert stats["loop_iterations"] == 2
        assert stats["error_count"] == 0
