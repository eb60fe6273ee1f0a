"""Tests for the command registry."""

import pytest
from slashscript.core.commands.registry import CommandRegistry, command
from slashscript.core.common.exceptions import CommandRegistrationError
from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType
from slashscript.core.domain.command_definition import CommandDefinition


def _noop(args, value):
    return value


class TestCommandRegistry:
    def test_lookup_by_name_and_alias(self) -> None:
        registry = CommandRegistry()
        definition = registry.register("echo", _noop, aliases=("say", "print"))

        assert registry.get_command("echo") is definition
        assert registry.get_command("say") is definition
        assert registry.get_command("print") is definition
        assert registry.get_command("missing") is None
        assert "say" in registry
        assert len(registry) == 1

    def test_duplicate_name_is_rejected(self) -> None:
        registry = CommandRegistry()
        registry.register("echo", _noop)

        with pytest.raises(CommandRegistrationError) as exc_info:
            registry.register("echo", _noop)

        assert exc_info.value.command_name == "echo"

    def test_alias_colliding_with_existing_name_is_rejected(self) -> None:
        registry = CommandRegistry()
        registry.register("echo", _noop)

        with pytest.raises(CommandRegistrationError) as exc_info:
            registry.register("print", _noop, aliases=("echo",))

        assert exc_info.value.details["conflict"] == "echo"
        # The failed definition must not be partially registered.
        assert registry.get_command("print") is None

    def test_self_alias_is_rejected(self) -> None:
        registry = CommandRegistry()
        with pytest.raises(CommandRegistrationError):
            registry.register("echo", _noop, aliases=("echo",))

    def test_invalid_definition_is_wrapped(self) -> None:
        registry = CommandRegistry()
        with pytest.raises(CommandRegistrationError):
            registry.register("echo", "not callable")  # type: ignore[arg-type]
        with pytest.raises(CommandRegistrationError):
            registry.add_command("echo")  # type: ignore[arg-type]

    def test_all_names_is_sorted_and_includes_aliases(self) -> None:
        registry = CommandRegistry()
        registry.register("zeta", _noop)
        registry.register("alpha", _noop, aliases=("beta",))

        assert list(registry.all_names()) == ["alpha", "beta", "zeta"]
        assert [d.name for d in registry.all_commands()] == ["alpha", "zeta"]

    def test_help_string_describes_arguments(self) -> None:
        registry = CommandRegistry()
        registry.register(
            "fetch",
            _noop,
            aliases=("get",),
            named_argument_list=(
                ArgumentSpec("url", types=(ArgumentType.STRING,), is_required=True),
                ArgumentSpec("retries", types=(ArgumentType.NUMBER,)),
            ),
            unnamed_argument_list=(ArgumentSpec("body"),),
            help_string="Fetches a resource.",
        )

        help_text = registry.get_help_string("get")

        assert help_text.splitlines()[0] == "/fetch url=(string) retries?=(number) [(string)]"
        assert "Aliases: /get" in help_text
        assert "Fetches a resource." in help_text

    def test_help_string_for_unknown_command(self) -> None:
        with pytest.raises(KeyError):
            CommandRegistry().get_help_string("nope")


class TestCommandDecorator:
    def test_decorator_registers_into_given_registry(self) -> None:
        registry = CommandRegistry()

        @command("shout", registry=registry, aliases=("yell",))
        def shout(args, value):
            return str(value).upper()

        definition = registry.get_command("yell")
        assert isinstance(definition, CommandDefinition)
        assert definition.callback is shout
        assert shout(None, "hi") == "HI"


class TestCommandDefinition:
    def test_duplicate_named_arguments_are_rejected(self) -> None:
        with pytest.raises(ValueError):
            CommandDefinition(
                name="bad",
                callback=_noop,
                named_argument_list=(ArgumentSpec("a"), ArgumentSpec("a")),
            )

    def test_only_last_unnamed_argument_may_accept_multiple(self) -> None:
        with pytest.raises(ValueError):
            CommandDefinition(
                name="bad",
                callback=_noop,
                unnamed_argument_list=(
                    ArgumentSpec("first", accepts_multiple=True),
                    ArgumentSpec("second"),
                ),
            )

    def test_structured_return(self) -> None:
        listing = CommandDefinition(name="ls", callback=_noop, return_type=ArgumentType.LIST)
        plain = CommandDefinition(name="cat", callback=_noop)

        assert listing.is_structured_return
        assert not plain.is_structured_return

    def test_argument_spec_normalizes_types_and_enums(self) -> None:
        spec = ArgumentSpec("mode", types="bool", enum_list=("on", "off"))

        assert spec.types == (ArgumentType.BOOLEAN,)
        assert spec.permitted_values() == ["on", "off"]
