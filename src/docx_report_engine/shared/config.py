"""Configuration classes for docx report generation.

This module provides the configuration objects resolved once per report
invocation: command delimiters, expression evaluation, error policy and
output handling, aggregated into an immutable ``RunConfig``.
"""

import difflib
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

# (error, raw command text) -> value inserted in place of the command output
ErrorHandler = Callable[[BaseException, Optional[str]], Any]

# (sandbox, context) -> (modified sandbox, result); sandbox["__code__"] holds the code
CustomEvaluator = Callable[[Dict[str, Any], Dict[str, Any]], Tuple[Dict[str, Any], Any]]

DelimiterOption = Union[str, Sequence[str]]

DEFAULT_CMD_DELIMITER = "+++"
DEFAULT_LITERAL_XML_DELIMITER = "||"


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class DelimiterConfig:
    """Command and literal-XML delimiters."""

    start: str = DEFAULT_CMD_DELIMITER
    end: str = DEFAULT_CMD_DELIMITER
    literal_xml: str = DEFAULT_LITERAL_XML_DELIMITER

    def __post_init__(self) -> None:
        """Validate delimiter configuration."""
        if not self.start or not self.end:
            raise ValueError("command delimiters cannot be empty")
        if not self.literal_xml:
            raise ValueError("literal_xml delimiter cannot be empty")
        if self.literal_xml in (self.start, self.end):
            raise ValueError("literal_xml delimiter must differ from command delimiters")

    @classmethod
    def from_option(
        cls,
        cmd_delimiter: Optional[DelimiterOption] = None,
        literal_xml_delimiter: Optional[str] = None,
    ) -> "DelimiterConfig":
        """Build delimiters from a string or a ``(start, end)`` pair."""
        literal = literal_xml_delimiter or DEFAULT_LITERAL_XML_DELIMITER
        if cmd_delimiter is None:
            return cls(literal_xml=literal)
        if isinstance(cmd_delimiter, str):
            return cls(start=cmd_delimiter, end=cmd_delimiter, literal_xml=literal)
        pair = list(cmd_delimiter)
        if len(pair) != 2:
            raise ConfigValidationError(
                "cmd_delimiter must be a string or a pair of strings",
                field_name="cmd_delimiter",
            )
        return cls(start=pair[0], end=pair[1], literal_xml=literal)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.start, self.end)


@dataclass(frozen=True)
class EvaluationConfig:
    """Configuration for the expression evaluator."""

    no_sandbox: bool = False
    custom_evaluator: Optional[CustomEvaluator] = None
    additional_context: Mapping[str, Any] = field(default_factory=dict)
    fix_smart_quotes: bool = False

    def __post_init__(self) -> None:
        """Validate evaluation configuration."""
        if self.custom_evaluator is not None and not callable(self.custom_evaluator):
            raise ValueError("custom_evaluator must be callable")
        if not isinstance(self.additional_context, Mapping):
            raise ValueError("additional_context must be a mapping")


@dataclass(frozen=True)
class ErrorPolicyConfig:
    """Configuration for per-command error propagation."""

    fail_fast: bool = True
    reject_nullish: bool = False
    error_handler: Optional[ErrorHandler] = None

    def __post_init__(self) -> None:
        """Validate error policy configuration."""
        if self.error_handler is not None and not callable(self.error_handler):
            raise ValueError("error_handler must be callable")


@dataclass(frozen=True)
class OutputConfig:
    """Configuration for how command results are written into the document."""

    process_line_breaks: bool = True
    exec_emits_result: bool = False


# Maps flat user option names onto (section, field) of RunConfig
_OPTION_FIELDS: Dict[str, Tuple[str, str]] = {
    "no_sandbox": ("evaluation", "no_sandbox"),
    "custom_evaluator": ("evaluation", "custom_evaluator"),
    "additional_context": ("evaluation", "additional_context"),
    "fix_smart_quotes": ("evaluation", "fix_smart_quotes"),
    "fail_fast": ("errors", "fail_fast"),
    "reject_nullish": ("errors", "reject_nullish"),
    "error_handler": ("errors", "error_handler"),
    "process_line_breaks": ("output", "process_line_breaks"),
    "exec_emits_result": ("output", "exec_emits_result"),
}
_DELIMITER_OPTIONS = ("cmd_delimiter", "literal_xml_delimiter")


@dataclass(frozen=True)
class RunConfig:
    """Complete configuration for one report invocation.

    Immutable once resolved; every component of the engine reads from the same
    instance for the duration of a run.
    """

    delimiters: DelimiterConfig = field(default_factory=DelimiterConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    errors: ErrorPolicyConfig = field(default_factory=ErrorPolicyConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate cross-section constraints."""
        if self.evaluation.no_sandbox and self.evaluation.custom_evaluator is not None:
            raise ConfigValidationError(
                "no_sandbox and custom_evaluator are mutually exclusive",
                field_name="custom_evaluator",
            )

    @classmethod
    def strict(cls) -> "RunConfig":
        """Fail on the first error and on any nullish command result."""
        return cls(errors=ErrorPolicyConfig(fail_fast=True, reject_nullish=True))

    @classmethod
    def lenient(cls) -> "RunConfig":
        """Process the whole template, collecting every command error."""
        return cls(errors=ErrorPolicyConfig(fail_fast=False))

    @classmethod
    def trusted(cls) -> "RunConfig":
        """Evaluate commands directly as Python. Use only with trusted templates."""
        return cls(evaluation=EvaluationConfig(no_sandbox=True))

    @classmethod
    def from_options(cls, base: Optional["RunConfig"] = None, **options: Any) -> "RunConfig":
        """Resolve flat keyword options into a ``RunConfig``.

        Args:
            base: Configuration to start from (defaults to ``RunConfig()``)
            **options: Flat options such as ``cmd_delimiter`` or ``fail_fast``

        Returns:
            New resolved configuration

        Raises:
            ConfigValidationError: If an option name is unknown or invalid
        """
        config = base or cls()
        sections: Dict[str, Dict[str, Any]] = {}
        correlation_id = options.pop("correlation_id", config.correlation_id)

        for name, value in options.items():
            if name in _DELIMITER_OPTIONS:
                continue
            if name not in _OPTION_FIELDS:
                known = list(_OPTION_FIELDS) + list(_DELIMITER_OPTIONS)
                raise ConfigValidationError(
                    f"Unknown option: {name}",
                    field_name=name,
                    suggestions=difflib.get_close_matches(name, known),
                )
            section, attr = _OPTION_FIELDS[name]
            sections.setdefault(section, {})[attr] = value

        try:
            delimiters = config.delimiters
            if any(name in options for name in _DELIMITER_OPTIONS):
                delimiters = DelimiterConfig.from_option(
                    options.get("cmd_delimiter", delimiters.pair),
                    options.get("literal_xml_delimiter", delimiters.literal_xml),
                )
            return replace(
                config,
                delimiters=delimiters,
                evaluation=replace(config.evaluation, **sections.get("evaluation", {})),
                errors=replace(config.errors, **sections.get("errors", {})),
                output=replace(config.output, **sections.get("output", {})),
                correlation_id=correlation_id,
            )
        except ValueError as e:
            raise ConfigValidationError(f"Invalid option value: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Summarize the configuration for diagnostics (callables by name only)."""
        summary: Dict[str, Any] = {
            "cmd_delimiter": list(self.delimiters.pair),
            "literal_xml_delimiter": self.delimiters.literal_xml,
            "correlation_id": self.correlation_id,
        }
        for section_name in ("evaluation", "errors", "output"):
            section = getattr(self, section_name)
            for f in fields(section):
                value = getattr(section, f.name)
                if callable(value):
                    value = getattr(value, "__name__", type(value).__name__)
                elif isinstance(value, Mapping):
                    value = sorted(value)
                summary[f.name] = value
        return summary
