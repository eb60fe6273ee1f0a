"""Unit tests for logging utilities."""

import logging

import pytest
from slashscript.core.common.logging_utils import (
    EnvironmentTaggingFilter,
    LogContext,
    configure_logging_with_environment_tagging,
    get_logger,
    summarize,
)


def test_environment_tag_under_pytest() -> None:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)

    assert EnvironmentTaggingFilter().filter(record)
    assert record.env_tag == "test"


def test_root_handlers_are_tagged() -> None:
    configure_logging_with_environment_tagging(level=logging.WARNING)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert root.handlers
    for handler in root.handlers:
        assert any(isinstance(f, EnvironmentTaggingFilter) for f in handler.filters)


def test_log_file(tmp_path) -> None:
    log_file = tmp_path / "engine.log"
    configure_logging_with_environment_tagging(level=logging.INFO, log_file=str(log_file))

    logging.getLogger("slashscript.test").info("written to file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert "written to file" in content
    assert "[test]" in content


def test_structured_logger_goes_through_logging(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_logger("slashscript.test")

    with caplog.at_level(logging.INFO):
        logger.info("Script finished", pipe="done")

    assert "event='Script finished'" in caplog.text
    assert "pipe='done'" in caplog.text


def test_log_context_binds_values(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO):
        with LogContext(get_logger("slashscript.test"), source="chat") as log:
            log.info("Executing script")

    assert "source='chat'" in caplog.text


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("short", "short"),
        ("two\nlines", "two\\nlines"),
        (["a"], "['a']"),
        ("x" * 100, "x" * 77 + "..."),
    ],
)
def test_summarize(value, expected: str) -> None:
    assert summarize(value) == expected
