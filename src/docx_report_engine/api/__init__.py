"""Public report generation API."""

from .report import (
    PROBE_MODES,
    ReportGenerator,
    TemplateInput,
    create_report,
    create_report_sync,
    get_metadata,
    list_commands,
    read_template,
    render_report,
)

__all__ = [
    "PROBE_MODES",
    "ReportGenerator",
    "TemplateInput",
    "create_report",
    "create_report_sync",
    "get_metadata",
    "list_commands",
    "read_template",
    "render_report",
]
