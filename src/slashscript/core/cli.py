"""
Command line runner for slash scripts.

Runs a script file (or inline text given with ``-e``) with the core
built-ins plus an ``echo`` command, and prints the final pipe value.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from slashscript.core.commands.builtins import register_core_commands
from slashscript.core.commands.macros import stringify
from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.common.exceptions import (
    ConfigurationError,
    ExecutionError,
    ParseError,
)
from slashscript.core.config.app_config import EngineConfig, LogLevel, load_config
from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType
from slashscript.core.domain.command_context import CommandArguments
from slashscript.core.repositories.in_memory_variable_store import (
    InMemoryVariableStore,
)
from slashscript.core.services.script_service import ExecuteOptions, ScriptService

EXIT_OK = 0
EXIT_EXECUTION_ERROR = 1
EXIT_PARSE_ERROR = 2
EXIT_ABORTED = 3


def build_cli_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Run a slash-command script")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("script", nargs="?", help="Path to a script file")
    source.add_argument(
        "-e",
        "--execute",
        dest="text",
        metavar="TEXT",
        help="Script text to run instead of a file",
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--strict-escaping",
        action="store_true",
        default=None,
        help="Parse with STRICT_ESCAPING enabled",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
        help="Logging level (overrides configuration)",
    )
    return parser


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_cli_parser().parse_args(argv)


def apply_cli_args(args: argparse.Namespace) -> EngineConfig:
    """Load configuration and apply command line overrides."""
    cfg = load_config(args.config_file)
    if args.strict_escaping:
        cfg.parser.strict_escaping = True
    if args.log_level:
        cfg.logging.level = LogLevel(args.log_level)
    return cfg


def _configure_logging(cfg: EngineConfig) -> None:
    from slashscript.core.common.logging_utils import (
        configure_logging_with_environment_tagging,
    )

    configure_logging_with_environment_tagging(
        level=cfg.logging.level.to_logging_level(),
        log_file=cfg.logging.log_file,
    )


def build_registry(output: TextIO) -> CommandRegistry:
    """Core built-ins plus ``echo``, which writes its value to ``output``."""
    registry = register_core_commands(CommandRegistry())

    def echo(args: CommandArguments, value: Any) -> Any:
        output.write(stringify(value) + "\n")
        return value

    registry.register(
        "echo",
        echo,
        unnamed_argument_list=(
            ArgumentSpec(
                "text",
                types=(
                    ArgumentType.STRING,
                    ArgumentType.LIST,
                    ArgumentType.DICTIONARY,
                ),
            ),
        ),
        help_string="Prints its value and passes it through.",
    )
    return registry


def _read_script(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    return Path(args.script).read_text(encoding="utf-8")


async def run_script(
    text: str,
    cfg: EngineConfig,
    source: str,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Execute ``text`` and return the process exit code."""
    service = ScriptService(
        registry=build_registry(stdout),
        variable_store=InMemoryVariableStore(),
        config=cfg,
    )
    options = ExecuteOptions(
        handle_parser_errors=False,
        handle_execution_errors=False,
        source=source,
    )
    try:
        result = await service.execute(text, options)
    except ParseError as exc:
        stderr.write(f"Parse error: {exc.describe()}\n")
        return EXIT_PARSE_ERROR
    except ExecutionError as exc:
        stderr.write(f"Execution error: {exc.describe()}\n")
        return EXIT_EXECUTION_ERROR

    if result is None:
        return EXIT_OK
    if result.is_aborted:
        if not result.is_quietly_aborted:
            stderr.write(f"Aborted: {result.abort_reason}\n")
        return EXIT_ABORTED
    output = stringify(result.pipe)
    if output:
        stdout.write(output + "\n")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the exit code."""
    args = parse_cli_args(argv)
    try:
        cfg = apply_cli_args(args)
    except ConfigurationError as e:
        sys.stderr.write(f"\nERROR: {e.message}\n")
        return EXIT_EXECUTION_ERROR
    _configure_logging(cfg)

    try:
        text = _read_script(args)
    except OSError as e:
        logging.error("Could not read script %s: %s", args.script, e)
        sys.stderr.write(f"\nERROR: Could not read script: {e}\n")
        return EXIT_EXECUTION_ERROR

    source = "<inline>" if args.text is not None else str(args.script)
    return asyncio.run(run_script(text, cfg, source, sys.stdout, sys.stderr))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
