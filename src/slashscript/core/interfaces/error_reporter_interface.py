from abc import ABC, abstractmethod

from slashscript.core.common.exceptions import ParseError
from slashscript.core.domain.execution_result import ExecutionResult


class IErrorReporter(ABC):
    """Surfaces parse errors, execution errors and aborts to the user."""

    @abstractmethod
    def report_parse_error(self, error: ParseError, source: str | None = None) -> None:
        pass

    @abstractmethod
    def report_execution_error(
        self, error: Exception, source: str | None = None
    ) -> None:
        pass

    @abstractmethod
    def report_abort(self, result: ExecutionResult, source: str | None = None) -> None:
        pass
