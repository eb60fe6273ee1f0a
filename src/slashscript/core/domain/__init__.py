# Domain package

from .arguments import ArgumentSpec, ArgumentType, EnumValue
from .command_definition import CommandDefinition
from .controllers import AbortController, BreakController, DebugController
from .parser_flags import ParserFlag

__all__ = [
    "AbortController",
    "ArgumentSpec",
    "ArgumentType",
    "BreakController",
    "CommandDefinition",
    "DebugController",
    "EnumValue",
    "ParserFlag",
]
