"""Slash-command script engine: parser, scopes, closures and executor."""

from slashscript.core.commands.builtins import register_core_commands
from slashscript.core.commands.parser import ScriptParser
from slashscript.core.commands.registry import CommandRegistry, command, command_registry
from slashscript.core.domain.closure import Block
from slashscript.core.domain.execution_result import ExecutionResult
from slashscript.core.domain.scope import Scope
from slashscript.core.services.script_service import ExecuteOptions, ScriptService

__all__ = [
    "Block",
    "CommandRegistry",
    "ExecuteOptions",
    "ExecutionResult",
    "Scope",
    "ScriptParser",
    "ScriptService",
    "command",
    "command_registry",
    "register_core_commands",
]
