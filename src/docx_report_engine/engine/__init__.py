"""Command execution engine.

Key Components:
    TemplateProcessor: Depth-first execution of linked commands
    ErrorCollector: Fail-fast / collect-all error policy
"""

from .errors import ErrorCollector, substitute_text
from .processor import PreparedPart, TemplateProcessor

__all__ = [
    "ErrorCollector",
    "PreparedPart",
    "TemplateProcessor",
    "substitute_text",
]
