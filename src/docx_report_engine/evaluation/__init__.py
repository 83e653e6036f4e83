"""Expression evaluation for template commands.

Key Components:
    Evaluator: Runs command code through the configured strategy
    ExecutionContext: Layered data visible to command code
    SandboxedStrategy / DirectStrategy / CustomStrategy: Interchangeable backends
"""

from .context import ExecutionContext, LoopFrame
from .evaluator import Evaluator
from .results import (
    ImageDescriptor,
    LinkDescriptor,
    to_bool,
    to_html,
    to_image,
    to_link,
    to_sequence,
    to_text,
)
from .strategies import (
    CustomStrategy,
    DirectStrategy,
    EvaluationOutcome,
    EvaluationStrategy,
    SandboxedStrategy,
    create_strategy,
)

__all__ = [
    "CustomStrategy",
    "DirectStrategy",
    "EvaluationOutcome",
    "EvaluationStrategy",
    "Evaluator",
    "ExecutionContext",
    "ImageDescriptor",
    "LinkDescriptor",
    "LoopFrame",
    "SandboxedStrategy",
    "create_strategy",
    "to_bool",
    "to_html",
    "to_image",
    "to_link",
    "to_sequence",
    "to_text",
]
