import pytest
from slashscript.core.common.positions import SourcePosition, build_hint


@pytest.mark.parametrize(
    ("index", "expected"),
    [(0, (1, 1)), (3, (1, 4)), (4, (2, 1)), (6, (2, 3)), (99, (2, 4))],
)
def test_from_index(index: int, expected: tuple[int, int]) -> None:
    position = SourcePosition.from_index("abc\ndef", index)

    assert (position.line, position.column) == expected


def test_hint_points_at_column() -> None:
    assert build_hint("first\nsecond line", 9) == "second line\n   ^"


def test_hint_windows_long_lines() -> None:
    text = "x" * 100 + "!" + "y" * 100

    hint = build_hint(text, 100, window=20)
    excerpt, caret = hint.split("\n")

    assert excerpt.startswith("…") and excerpt.endswith("…")
    assert excerpt[caret.index("^")] == "!"
