"""
Command registry: lookup of command definitions by name or alias.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

from slashscript.core.common.exceptions import CommandRegistrationError
from slashscript.core.domain.command_definition import (
    CommandCallback,
    CommandDefinition,
)

logger = logging.getLogger(__name__)


class CommandRegistry:
    """
    Registry of command definitions.

    Definitions are added once and never removed; names and aliases share a
    single namespace.
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandDefinition] = {}
        self._lookup: dict[str, CommandDefinition] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._lookup

    def __len__(self) -> int:
        return len(self._commands)

    def add_command(self, definition: CommandDefinition) -> CommandDefinition:
        """
        Register a command definition.

        Args:
            definition: The definition to add

        Returns:
            The registered definition

        Raises:
            CommandRegistrationError: If the name or any alias is already taken
        """
        if not isinstance(definition, CommandDefinition):
            raise CommandRegistrationError(
                "Only CommandDefinition instances can be registered.",
                command_name=getattr(definition, "name", None),
            )
        names = definition.all_names
        if len(set(names)) != len(names):
            raise CommandRegistrationError(
                f"Command '{definition.name}' lists an alias more than once or aliases its own name.",
                command_name=definition.name,
            )
        for name in names:
            existing = self._lookup.get(name)
            if existing is not None:
                raise CommandRegistrationError(
                    f"Command name '{name}' is already registered by '{existing.name}'.",
                    command_name=definition.name,
                    details={"conflict": name, "existing": existing.name},
                )

        self._commands[definition.name] = definition
        for name in names:
            self._lookup[name] = definition
        logger.debug("Registered command: %s (aliases: %s)", definition.name, definition.aliases)
        return definition

    def register(
        self, name: str, callback: CommandCallback, **kwargs: Any
    ) -> CommandDefinition:
        """Build a definition from keyword arguments and register it."""
        try:
            definition = CommandDefinition(name=name, callback=callback, **kwargs)
        except (TypeError, ValueError) as exc:
            raise CommandRegistrationError(str(exc), command_name=name) from exc
        return self.add_command(definition)

    def get_command(self, name: str) -> CommandDefinition | None:
        """Return the definition registered under ``name`` or an alias, if any."""
        return self._lookup.get(name)

    def has_command(self, name: str) -> bool:
        return name in self._lookup

    def all_names(self) -> Iterator[str]:
        """Iterate over every registered name and alias, sorted."""
        return iter(sorted(self._lookup))

    def all_commands(self) -> list[CommandDefinition]:
        return [self._commands[name] for name in sorted(self._commands)]

    def get_help_string(self, name: str) -> str:
        """Render a one-paragraph usage description of a command."""
        definition = self.get_command(name)
        if definition is None:
            raise KeyError(name)
        parts = [f"/{definition.name}"]
        for spec in definition.named_argument_list:
            types = "|".join(t.value for t in spec.types)
            marker = "" if spec.is_required else "?"
            parts.append(f"{spec.name}{marker}=({types})")
        for spec in definition.unnamed_argument_list:
            types = "|".join(t.value for t in spec.types)
            parts.append(f"({types})" if spec.is_required else f"[({types})]")
        usage = " ".join(parts)
        lines = [usage]
        if definition.aliases:
            lines.append("Aliases: " + ", ".join(f"/{a}" for a in definition.aliases))
        if definition.help_string:
            lines.append(definition.help_string)
        return "\n".join(lines)


# Global instance of the registry
command_registry = CommandRegistry()


def command(
    name: str, registry: CommandRegistry | None = None, **kwargs: Any
) -> Callable[[CommandCallback], CommandCallback]:
    """
    A decorator to register a callback as a command.

    Args:
        name: The name of the command to register.
        registry: Target registry; defaults to the global ``command_registry``.
        **kwargs: Remaining ``CommandDefinition`` fields.

    Returns:
        A decorator that registers the callback and returns it unchanged.
    """

    def decorator(callback: CommandCallback) -> CommandCallback:
        (registry or command_registry).register(name, callback, **kwargs)
        return callback

    return decorator
