"""
Engine-level built-in commands.

These are the commands the language itself depends on: variables, closures,
loops, early return and abort. Host applications register their own
commands next to them.
"""

from __future__ import annotations

import logging
from typing import Any

from slashscript.core.commands.macros import stringify
from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.common.exceptions import ExecutionError
from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType
from slashscript.core.domain.closure import Block
from slashscript.core.domain.command_context import CommandArguments, CommandContext
from slashscript.core.domain.controllers import BreakController
from slashscript.core.interfaces.variable_store_interface import (
    IVariableStore,
    VariableTier,
)

logger = logging.getLogger(__name__)

ANY_VALUE = (
    ArgumentType.STRING,
    ArgumentType.NUMBER,
    ArgumentType.BOOLEAN,
    ArgumentType.LIST,
    ArgumentType.DICTIONARY,
    ArgumentType.CLOSURE,
)


def _split_name_and_value(args: CommandArguments, parts: list[Any]) -> tuple[str, Any]:
    """Interpret ``/let key=name value`` and ``/let name value`` alike."""
    key = args.get("key")
    if key:
        if not parts:
            return key, ""
        if len(parts) == 1:
            return key, parts[0]
        return key, " ".join(stringify(part) for part in parts)
    if not parts:
        raise ExecutionError("Variable name is required")
    name = stringify(parts[0])
    value = parts[1] if len(parts) > 1 else ""
    return name, value


def _bind_closure(block: Block, context: CommandContext) -> Block:
    """Link a per-call copy of ``block`` into the calling context."""
    return block.get_copy().bind_to_caller(
        context.scope,
        context.abort_controller,
        context.debug_controller,
        BreakController(),
        context.variable_store,
        context.progress,
    )


def _require_store(context: CommandContext) -> IVariableStore:
    if context.variable_store is None:
        raise ExecutionError("No variable store is configured")
    return context.variable_store


def cmd_pass(args: CommandArguments, value: Any) -> Any:
    return value


def cmd_return(args: CommandArguments, value: Any) -> Any:
    args.context.request_return(value)
    return value


def cmd_let(args: CommandArguments, value: list[Any]) -> Any:
    name, new_value = _split_name_and_value(args, value)
    args.context.scope.let_variable(name, new_value)
    return new_value


def cmd_var(args: CommandArguments, value: list[Any]) -> Any:
    scope = args.context.scope
    index = args.get("index")
    name, new_value = _split_name_and_value(args, value)
    assign = new_value != "" if args.get("key") else len(value) > 1
    if assign:
        return scope.set_variable(name, new_value, index)
    return scope.get_variable(name, index)


async def cmd_run(args: CommandArguments, value: Any) -> Any:
    context = args.context
    closure = value
    if isinstance(value, str):
        closure = context.scope.get_variable(value)
        if not isinstance(closure, Block):
            raise ExecutionError(f"No closure named {value!r} was found")
    if not isinstance(closure, Block):
        raise ExecutionError("/run requires a closure or the name of a variable holding one")
    closure = _bind_closure(closure, context)
    result = await closure.execute(provided_arguments=dict(args))
    return result.pipe


def cmd_abort(args: CommandArguments, value: Any) -> str:
    reason = stringify(value) or "No reason."
    args.context.abort_controller.abort(reason, quiet=bool(args.get("quiet", False)))
    return ""


async def cmd_times(args: CommandArguments, value: list[Any]) -> Any:
    context = args.context
    if len(value) < 2 or not isinstance(value[1], Block):
        raise ExecutionError("/times requires a repeat count and a closure")
    count = int(value[0])
    closure = _bind_closure(value[1], context)
    pipe: Any = ""
    for index in range(count):
        if context.abort_controller.signal.aborted:
            break
        closure.break_controller.reset()
        result = await closure.execute(provided_arguments={"timesIndex": index})
        pipe = result.pipe
        if result.is_break or result.is_aborted:
            break
    return pipe


def cmd_setvar(args: CommandArguments, value: Any, tier: VariableTier = VariableTier.LOCAL) -> Any:
    _require_store(args.context).set(args["key"], value, tier)
    return value


def cmd_getvar(args: CommandArguments, value: Any, tier: VariableTier = VariableTier.LOCAL) -> Any:
    name = args.get("key") or stringify(value)
    if not name:
        raise ExecutionError("Variable name is required")
    return _require_store(args.context).get(name, tier)


def cmd_setglobalvar(args: CommandArguments, value: Any) -> Any:
    return cmd_setvar(args, value, VariableTier.GLOBAL)


def cmd_getglobalvar(args: CommandArguments, value: Any) -> Any:
    return cmd_getvar(args, value, VariableTier.GLOBAL)


def register_core_commands(registry: CommandRegistry) -> CommandRegistry:
    """Register the built-in commands into ``registry`` and return it."""
    key_spec = ArgumentSpec(
        "key", "variable name", types=(ArgumentType.VARIABLE_NAME,)
    )
    required_key = ArgumentSpec(
        "key", "variable name", types=(ArgumentType.VARIABLE_NAME,), is_required=True
    )
    name_and_value = (
        ArgumentSpec(
            "name", "variable name", types=(ArgumentType.STRING, ArgumentType.CLOSURE)
        ),
        ArgumentSpec("value", "value to assign", types=ANY_VALUE),
    )

    registry.register(
        "pass",
        cmd_pass,
        aliases=("return-value",),
        unnamed_argument_list=(ArgumentSpec("value", types=ANY_VALUE),),
        help_string="Passes its value through to the pipe.",
    )
    registry.register(
        "return",
        cmd_return,
        unnamed_argument_list=(ArgumentSpec("value", types=ANY_VALUE),),
        help_string="Ends the current closure with the given value as its result.",
    )
    registry.register(
        "let",
        cmd_let,
        named_argument_list=(key_spec,),
        unnamed_argument_list=name_and_value,
        split_unnamed_argument=True,
        split_unnamed_argument_count=2,
        help_string="Declares a variable in the current scope.",
    )
    registry.register(
        "var",
        cmd_var,
        named_argument_list=(
            key_spec,
            ArgumentSpec("index", "list index or dictionary key"),
        ),
        unnamed_argument_list=name_and_value,
        split_unnamed_argument=True,
        split_unnamed_argument_count=2,
        help_string="Gets or sets a variable declared in this or an enclosing scope.",
    )
    registry.register(
        "run",
        cmd_run,
        aliases=("call", "exec"),
        unnamed_argument_list=(
            ArgumentSpec(
                "closure",
                "closure or name of a variable holding one",
                types=(ArgumentType.CLOSURE, ArgumentType.VARIABLE_NAME),
                is_required=True,
            ),
        ),
        help_string="Runs a closure. Named arguments are passed to the closure.",
    )
    registry.register(
        "abort",
        cmd_abort,
        named_argument_list=(
            ArgumentSpec(
                "quiet",
                "do not report the abort",
                types=(ArgumentType.BOOLEAN,),
                default_value=False,
            ),
        ),
        unnamed_argument_list=(ArgumentSpec("reason"),),
        help_string="Aborts script execution.",
    )
    registry.register(
        "times",
        cmd_times,
        unnamed_argument_list=(
            ArgumentSpec(
                "repeats", types=(ArgumentType.NUMBER,), is_required=True
            ),
            ArgumentSpec("command", types=(ArgumentType.CLOSURE,), is_required=True),
        ),
        split_unnamed_argument=True,
        split_unnamed_argument_count=2,
        help_string=(
            "Runs a closure the given number of times. The iteration index is "
            "available as the variable timesIndex; /break stops the loop."
        ),
    )
    registry.register(
        "setvar",
        cmd_setvar,
        named_argument_list=(required_key,),
        unnamed_argument_list=(ArgumentSpec("value", types=ANY_VALUE),),
        help_string="Sets a local variable in the shared variable store.",
    )
    registry.register(
        "getvar",
        cmd_getvar,
        named_argument_list=(key_spec,),
        unnamed_argument_list=(ArgumentSpec("key", types=(ArgumentType.VARIABLE_NAME,)),),
        help_string="Gets a local variable from the shared variable store.",
    )
    registry.register(
        "setglobalvar",
        cmd_setglobalvar,
        named_argument_list=(required_key,),
        unnamed_argument_list=(ArgumentSpec("value", types=ANY_VALUE),),
        help_string="Sets a global variable in the shared variable store.",
    )
    registry.register(
        "getglobalvar",
        cmd_getglobalvar,
        named_argument_list=(key_spec,),
        unnamed_argument_list=(ArgumentSpec("key", types=(ArgumentType.VARIABLE_NAME,)),),
        help_string="Gets a global variable from the shared variable store.",
    )
    logger.debug("Registered %d core commands", len(registry))
    return registry
