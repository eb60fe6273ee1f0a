"""
Execution result domain model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from slashscript.core.common.exceptions import ExecutionError


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one block invocation.

    Aborts are not failures: they are reported through ``is_aborted``, while
    failures set ``is_error``.
    """

    pipe: Any = ""
    is_break: bool = False
    is_aborted: bool = False
    is_quietly_aborted: bool = False
    abort_reason: str = ""
    is_error: bool = False
    error_message: str = ""
    error: ExecutionError | None = None

    @property
    def is_completed(self) -> bool:
        return not (self.is_aborted or self.is_error)

    @classmethod
    def from_error(cls, error: Exception, pipe: Any = "") -> ExecutionResult:
        message = getattr(error, "message", None) or str(error)
        return cls(
            pipe=pipe,
            is_error=True,
            error_message=message,
            error=error if isinstance(error, ExecutionError) else None,
        )
