"""Main CLI entry point for the docx-report command-line tool.

Provides report generation from a template and a JSON data file, plus
template inspection (command listing and document metadata).
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from docx_report_engine import __version__
from docx_report_engine.api import ReportGenerator, get_metadata, list_commands
from docx_report_engine.shared import (
    ConfigValidationError,
    ReportEngineError,
    RunConfig,
)
from docx_report_engine.shared.logging import get_logger

PRESETS = {
    "default": RunConfig,
    "strict": RunConfig.strict,
    "lenient": RunConfig.lenient,
    "trusted": RunConfig.trusted,
}

# JSON config keys passed through to RunConfig.from_options
CONFIG_OPTIONS = (
    "cmd_delimiter",
    "literal_xml_delimiter",
    "process_line_breaks",
    "fail_fast",
    "reject_nullish",
    "fix_smart_quotes",
    "exec_emits_result",
)


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self):
        self.preset = "default"
        self.options: Dict[str, Any] = {}
        self.output_format = "text"

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file."""
        config = cls()
        if config_path.exists():
            try:
                with config_path.open() as f:
                    data = json.load(f)
                if data.get("preset") in PRESETS:
                    config.preset = data["preset"]
                config.options = {
                    name: data[name] for name in CONFIG_OPTIONS if name in data
                }
                config.output_format = data.get("output_format", config.output_format)

            except (OSError, json.JSONDecodeError) as e:
                print(f"Warning: Could not load config file: {e}", file=sys.stderr)

        return config

    def run_config(self, **overrides: Any) -> RunConfig:
        """Resolve the preset, file options and command-line overrides."""
        options = dict(self.options)
        options.update({name: value for name, value in overrides.items() if value is not None})
        return RunConfig.from_options(base=PRESETS[self.preset](), **options)


def _delimiter(values: Optional[List[str]]) -> Any:
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return values[:2]


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="docx-report",
        description="Generate Word reports from docx templates and data"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    generate_parser = subparsers.add_parser("generate", help="Render a template with data")
    generate_parser.add_argument("template", type=Path, help="Docx template")
    generate_parser.add_argument(
        "--data", "-d",
        type=Path,
        help="JSON data file (default: no data)"
    )
    generate_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output docx file (default: <template>_report.docx)"
    )
    generate_parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    generate_parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        help="Configuration preset"
    )
    generate_parser.add_argument(
        "--delimiter",
        nargs="+",
        metavar="DELIM",
        help="Command delimiter, or start and end delimiters"
    )
    generate_parser.add_argument(
        "--collect-errors",
        action="store_true",
        help="Process the whole template and report every command error"
    )
    generate_parser.add_argument(
        "--probe",
        choices=["xml"],
        help="Print the processed main document XML instead of writing a file"
    )

    # List-commands command
    list_parser = subparsers.add_parser("list-commands", help="List the commands of a template")
    list_parser.add_argument("template", type=Path, help="Docx template")
    list_parser.add_argument(
        "--delimiter",
        nargs="+",
        metavar="DELIM",
        help="Command delimiter, or start and end delimiters"
    )
    list_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )

    # Metadata command
    metadata_parser = subparsers.add_parser("metadata", help="Show document metadata")
    metadata_parser.add_argument("template", type=Path, help="Docx file")
    metadata_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle generate command."""
    logger = get_logger(__name__, None, "cli")

    config = CLIConfig()
    if args.config and args.config.exists():
        config = CLIConfig.from_file(args.config)
    if args.preset:
        config.preset = args.preset

    try:
        run_config = config.run_config(
            cmd_delimiter=_delimiter(args.delimiter),
            fail_fast=False if args.collect_errors else None,
        )
    except ConfigValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    data = None
    if args.data:
        try:
            data = json.loads(args.data.read_text())
        except (OSError, json.JSONDecodeError) as e:
            print(f"Could not read data file: {e}", file=sys.stderr)
            return 2

    generator = ReportGenerator(run_config)
    try:
        if args.probe:
            print(asyncio.run(generator.create(args.template, data, probe=args.probe)))
            return 0
        result = asyncio.run(generator.render(args.template, data))
    except ReportEngineError as e:
        print(f"Report generation failed: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Could not read template: {e}", file=sys.stderr)
        return 2

    output = args.output or args.template.with_name(f"{args.template.stem}_report.docx")
    try:
        output.write_bytes(result.output)
    except OSError as e:
        logger.exception("Failed to write report", extra={"output": str(output)})
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    print(f"Report written to {output}", file=sys.stderr)
    for error in result.errors:
        print(f"   Error: {error}", file=sys.stderr)
    return 0 if result.success else 1


def cmd_list_commands(args: argparse.Namespace) -> int:
    """Handle list-commands command."""
    try:
        commands = list_commands(args.template, _delimiter(args.delimiter))
    except (ReportEngineError, OSError) as e:
        print(f"Could not list commands: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps([command.to_dict() for command in commands], indent=2))
    else:
        print(f"Found {len(commands)} commands")
        print("-" * 50)
        for command in commands:
            print(f"{command.type:<8} {command.raw}")
    return 0


def cmd_metadata(args: argparse.Namespace) -> int:
    """Handle metadata command."""
    try:
        metadata = get_metadata(args.template)
    except (ReportEngineError, OSError) as e:
        print(f"Could not read metadata: {e}", file=sys.stderr)
        return 1

    values = metadata.to_dict()
    if args.format == "json":
        print(json.dumps(values, indent=2))
    else:
        for name, value in values.items():
            if value is not None:
                print(f"{name}: {value}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        import logging
        logging.basicConfig(level=logging.ERROR)

    # Route to appropriate command handler
    try:
        if args.command == "generate":
            return cmd_generate(args)
        elif args.command == "list-commands":
            return cmd_list_commands(args)
        elif args.command == "metadata":
            return cmd_metadata(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
