"""Tests for argument binding and coercion."""

import pytest
from slashscript.core.commands.binder import parse_number, split_words, strip_quotes
from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.common.exceptions import (
    ArgumentTypeError,
    EnumValidationError,
    MissingArgumentError,
)
from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType, EnumValue


@pytest.fixture
def show(registry: CommandRegistry, make_recorder):
    recorder = make_recorder()
    registry.register("show", recorder)
    return recorder


class TestHelpers:
    def test_strip_quotes(self) -> None:
        assert strip_quotes('"text"') == "text"
        assert strip_quotes('"') == '"'
        assert strip_quotes('"half') == '"half'

    def test_split_words_keeps_quoted_runs(self) -> None:
        assert split_words('a "b c" d') == ["a", '"b c"', "d"]
        assert split_words("one two three", 2) == ["one", "two three"]
        assert split_words("   ") == []

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("3", 3), ("-2", -2), ("3.0", 3.0), ("2.5", 2.5), ("1e3", 1000.0)],
    )
    def test_parse_number(self, text: str, expected: float) -> None:
        number = parse_number(text)
        assert number == expected
        assert type(number) is type(expected)

    @pytest.mark.parametrize("text", ["abc", "", "nan", "inf"])
    def test_parse_number_rejects(self, text: str) -> None:
        assert parse_number(text) is None


class TestNamedArguments:
    @pytest.mark.asyncio
    async def test_default_value_is_used(self, registry, make_recorder, run_script) -> None:
        greet = make_recorder()
        registry.register(
            "greet",
            greet,
            named_argument_list=(ArgumentSpec("name", default_value="world"),),
        )

        await run_script("/greet")

        assert greet.calls == [({"name": "world"}, "")]

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, registry, make_recorder, run_script) -> None:
        registry.register(
            "fetch",
            make_recorder(),
            named_argument_list=(ArgumentSpec("url", is_required=True),),
        )

        with pytest.raises(MissingArgumentError) as exc_info:
            await run_script("/pass a |\n/fetch")

        error = exc_info.value
        assert error.argument_name == "url"
        assert error.command_name == "fetch"
        assert (error.line, error.column) == (2, 1)

    @pytest.mark.asyncio
    async def test_coercion_by_type(self, registry, make_recorder, run_script) -> None:
        typed = make_recorder()
        registry.register(
            "typed",
            typed,
            named_argument_list=(
                ArgumentSpec("count", types=(ArgumentType.NUMBER,)),
                ArgumentSpec("ratio", types=(ArgumentType.NUMBER,)),
                ArgumentSpec("flag", types=(ArgumentType.BOOLEAN,)),
                ArgumentSpec("items", types=(ArgumentType.LIST,)),
                ArgumentSpec("cfg", types=(ArgumentType.DICTIONARY,)),
                ArgumentSpec("span", types=(ArgumentType.RANGE,)),
            ),
        )

        await run_script(
            '/typed count=3 ratio=2.5 flag=yes items=["a", 1] cfg={"k": true} span=1-5'
        )

        named, _ = typed.calls[0]
        assert named == {
            "count": 3,
            "ratio": 2.5,
            "flag": True,
            "items": ["a", 1],
            "cfg": {"k": True},
            "span": (1, 5),
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text", ["/typed count=many", "/typed flag=maybe", "/typed items={}"]
    )
    async def test_uncoercible_value(self, registry, make_recorder, run_script, text) -> None:
        registry.register(
            "typed",
            make_recorder(),
            named_argument_list=(
                ArgumentSpec("count", types=(ArgumentType.NUMBER,)),
                ArgumentSpec("flag", types=(ArgumentType.BOOLEAN,)),
                ArgumentSpec("items", types=(ArgumentType.LIST,)),
            ),
        )

        with pytest.raises(ArgumentTypeError):
            await run_script(text)

    @pytest.mark.asyncio
    async def test_forced_enum(self, registry, make_recorder, run_script) -> None:
        toggle = make_recorder()
        registry.register(
            "toggle",
            toggle,
            named_argument_list=(
                ArgumentSpec("mode", enum_list=("on", "off"), force_enum=True),
            ),
        )

        await run_script("/toggle mode=on")
        assert toggle.calls[0][0] == {"mode": "on"}

        with pytest.raises(EnumValidationError) as exc_info:
            await run_script("/toggle mode=maybe")
        assert "Permitted values: on, off" in exc_info.value.message
        assert exc_info.value.allowed_values == ["on", "off"]

    @pytest.mark.asyncio
    async def test_enum_provider(self, registry, make_recorder, run_script) -> None:
        registry.register(
            "paint",
            make_recorder(),
            named_argument_list=(
                ArgumentSpec(
                    "color",
                    enum_provider=lambda: ["red", EnumValue("blue")],
                    force_enum=True,
                ),
            ),
        )

        await run_script("/paint color=blue")
        with pytest.raises(EnumValidationError) as exc_info:
            await run_script("/paint color=green")
        assert exc_info.value.allowed_values == ["red", "blue"]

    @pytest.mark.asyncio
    async def test_repeated_arguments(self, registry, make_recorder, run_script) -> None:
        tags = make_recorder()
        registry.register(
            "tags",
            tags,
            named_argument_list=(
                ArgumentSpec("tag", accepts_multiple=True),
                ArgumentSpec("label"),
            ),
        )

        await run_script("/tags tag=a tag=b label=x label=y")

        assert tags.calls[0][0] == {"tag": ["a", "b"], "label": "y"}

    @pytest.mark.asyncio
    async def test_undeclared_arguments_pass_through(self, show, run_script) -> None:
        await run_script('/show extra="a b" other={{pipe}}')

        assert show.calls[0][0] == {"extra": "a b", "other": ""}

    @pytest.mark.asyncio
    async def test_variable_name_resolves_unless_quoted(
        self, registry, make_recorder, run_script
    ) -> None:
        inspect = make_recorder()
        registry.register(
            "inspect",
            inspect,
            named_argument_list=(
                ArgumentSpec(
                    "target",
                    types=(ArgumentType.VARIABLE_NAME, ArgumentType.STRING),
                ),
            ),
        )

        await run_script(
            '/let x hello | /inspect target=x | /inspect target="x" | /inspect target=y'
        )

        assert [named["target"] for named, _ in inspect.calls] == ["hello", "x", "y"]


class TestUnnamedArgument:
    @pytest.mark.asyncio
    async def test_pipe_is_injected(self, show, run_script) -> None:
        await run_script("/pass hello | /show")

        assert show.values == ["hello"]

    @pytest.mark.asyncio
    async def test_double_pipe_does_not_inject(self, show, run_script) -> None:
        await run_script("/pass hello || /show")

        assert show.values == [None]

    @pytest.mark.asyncio
    async def test_pipe_reference(self, show, run_script) -> None:
        await run_script("/pass hello || /show {{pipe}} world")

        assert show.values == ["hello world"]

    @pytest.mark.asyncio
    async def test_quotes_are_stripped(self, registry, make_recorder, show, run_script) -> None:
        raw = make_recorder()
        registry.register("raw", raw, raw_quotes=True)

        await run_script('/show "quoted text" | /raw "quoted text"')

        assert show.values == ["quoted text"]
        assert raw.values == ['"quoted text"']

    @pytest.mark.asyncio
    async def test_required_and_default(self, registry, make_recorder, run_script) -> None:
        need = make_recorder()
        registry.register(
            "need", need, unnamed_argument_list=(ArgumentSpec("x", is_required=True),)
        )
        registry.register(
            "opt", need, unnamed_argument_list=(ArgumentSpec("x", default_value="dflt"),)
        )

        await run_script("/pass v | /need | /opt")
        assert need.values == ["v", "v"]

        await run_script("/opt")
        assert need.values[-1] == "dflt"

        with pytest.raises(MissingArgumentError, match="'x'"):
            await run_script("/need")

    @pytest.mark.asyncio
    async def test_split_into_parts(self, registry, make_recorder, run_script) -> None:
        pair = make_recorder()
        registry.register(
            "pair",
            pair,
            unnamed_argument_list=(ArgumentSpec("a"), ArgumentSpec("b")),
            split_unnamed_argument=True,
            split_unnamed_argument_count=2,
        )

        await run_script('/pair one two three | /pair "first word" rest')

        assert pair.values == [["one", "two three"], ["first word", "rest"]]

    @pytest.mark.asyncio
    async def test_multiple_values(self, registry, make_recorder, run_script) -> None:
        nums = make_recorder()
        registry.register(
            "nums",
            nums,
            unnamed_argument_list=(
                ArgumentSpec("n", types=(ArgumentType.NUMBER,), accepts_multiple=True),
            ),
            split_unnamed_argument=True,
        )

        await run_script("/nums 1 2 3.5")

        assert nums.values == [[1, 2, 3.5]]

    @pytest.mark.asyncio
    async def test_closure_mixed_with_text_is_rejected(self, show, run_script) -> None:
        with pytest.raises(ArgumentTypeError, match="closures mixed with text"):
            await run_script("/show text {: /pass x :}")

    @pytest.mark.asyncio
    async def test_immediate_closure_yields_its_pipe(self, show, run_script) -> None:
        await run_script("/show {: /pass computed :}()")

        assert show.values == ["computed"]

    @pytest.mark.asyncio
    async def test_references_are_substituted(self, show, run_script) -> None:
        await run_script("/let who bob | /show hi {{var::who}}!")

        assert show.values == ["hi bob!"]

    @pytest.mark.asyncio
    async def test_references_resolve_on_every_execution(self, show, run_script) -> None:
        await run_script(
            "/let x 1 | /let f {: /show {{var::x}} :} | /:f | /var x 2 | /:f"
        )

        assert show.values == ["1", "2"]
