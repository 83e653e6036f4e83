"""Result objects and diagnostic types for docx report generation.

This module defines the result returned by a report invocation together with
the diagnostics and counters gathered while the template was processed.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from .exceptions import ReportEngineError


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()    # Command error recovered through the error policy
    ERROR = auto()      # Command error recorded for the final report
    CRITICAL = auto()   # Run aborted


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    command: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")


@dataclass
class ReportMetrics:
    """Counters for one report invocation."""

    processing_time_ms: float = 0.0
    parts_processed: int = 0
    commands_found: int = 0
    commands_executed: int = 0
    loop_iterations: int = 0
    branches_removed: int = 0
    images_added: int = 0
    links_added: int = 0

    @property
    def commands_per_second(self) -> float:
        """Calculate commands executed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.commands_executed * 1000.0) / self.processing_time_ms


@dataclass
class ReportResult:
    """Outcome of a report invocation.

    ``output`` holds the generated document bytes. ``errors`` holds the command
    errors recorded under the collect-all policy.
    """

    output: bytes = b""
    errors: List[ReportEngineError] = field(default_factory=list)
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    metrics: ReportMetrics = field(default_factory=ReportMetrics)
    correlation_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.errors

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        command: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add diagnostic entry to result."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                command=command,
                details=details,
                correlation_id=self.correlation_id,
            )
        )

    def get_diagnostics_by_severity(
        self,
        severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get report processing statistics."""
        return {
            "parts_processed": self.metrics.parts_processed,
            "commands_found": self.metrics.commands_found,
            "commands_executed": self.metrics.commands_executed,
            "loop_iterations": self.metrics.loop_iterations,
            "branches_removed": self.metrics.branches_removed,
            "images_added": self.metrics.images_added,
            "links_added": self.metrics.links_added,
            "error_count": len(self.errors),
            "processing_time_ms": self.metrics.processing_time_ms,
        }
