"""
Common exception classes for the slash-script engine.

This module defines custom exception classes used throughout the engine
for better error handling and categorization.
"""

from __future__ import annotations

from typing import Any


class ScriptEngineError(Exception):
    """Base exception class for all script engine errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        **kwargs: Any,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        # Attach any extra attributes provided by callers
        for key, value in (kwargs or {}).items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        error_dict = {
            "message": self.message,
            "type": self.__class__.__name__,
            "details": self.details,
        }

        for attr_name in dir(self):
            if (
                not attr_name.startswith("_")
                and attr_name not in ["message", "details", "args"]
                and not callable(getattr(self, attr_name))
            ):
                error_dict[attr_name] = getattr(self, attr_name)

        return {"error": error_dict}


class ScriptPositionError(ScriptEngineError):
    """An error that can be attributed to a position in the script text."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        hint: str = "",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
        self.line = line
        self.column = column
        self.hint = hint

    def describe(self) -> str:
        """Render the message with its position and caret hint."""
        if self.line is None:
            return self.message
        text = f"{self.message}\nLine: {self.line} Column: {self.column}"
        if self.hint:
            text = f"{text}\n{self.hint}"
        return text


class ParseError(ScriptPositionError):
    """Raised when script text is malformed."""

    def __init__(
        self,
        message: str = "Failed to parse script",
        line: int | None = None,
        column: int | None = None,
        hint: str = "",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, line, column, hint, details, **kwargs)


class ExecutionError(ScriptPositionError):
    """Raised when a command fails while a block is executing."""

    def __init__(
        self,
        message: str = "Command execution failed",
        line: int | None = None,
        column: int | None = None,
        hint: str = "",
        command_name: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, line, column, hint, details, **kwargs)
        self.command_name = command_name


class ArgumentBindingError(ExecutionError):
    """Raised when a command's arguments cannot be resolved."""

    def __init__(
        self,
        message: str = "Invalid argument",
        argument_name: str | None = None,
        command_name: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        det = details.copy() if details else {}
        if argument_name:
            det.setdefault("argument_name", argument_name)
        super().__init__(message, command_name=command_name, details=det, **kwargs)
        self.argument_name = argument_name


class MissingArgumentError(ArgumentBindingError):
    """Raised when a required argument has no value and no default."""


class ArgumentTypeError(ArgumentBindingError):
    """Raised when an argument value cannot be coerced to an accepted type."""


class EnumValidationError(ArgumentBindingError):
    """Raised when a forced-enum argument receives a value outside its set."""

    def __init__(
        self,
        message: str = "Invalid enum value",
        argument_name: str | None = None,
        allowed_values: list[str] | None = None,
        command_name: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, argument_name, command_name, **kwargs)
        self.allowed_values = list(allowed_values or [])


class CommandRegistrationError(ScriptEngineError):
    def __init__(
        self,
        message: str = "Failed to register command",
        command_name: str | None = None,
        details: dict | None = None,
    ):
        det = details.copy() if details else {}
        if command_name:
            det.setdefault("command_name", command_name)
        super().__init__(message, det)
        self.command_name = command_name


class ScopeVariableNotFoundError(ScriptEngineError):
    """Raised when assigning to a variable that no scope in the chain declares."""

    def __init__(self, variable_name: str, details: dict | None = None):
        super().__init__(f"No such variable: {variable_name!r}", details)
        self.variable_name = variable_name


class ConfigurationError(ScriptEngineError):
    """Raised when there's a configuration issue."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
