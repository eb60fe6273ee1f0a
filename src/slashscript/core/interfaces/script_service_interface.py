from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from slashscript.core.domain.execution_result import ExecutionResult
    from slashscript.core.services.script_service import ExecuteOptions


class IScriptService(ABC):
    """Entry point for parsing and executing scripts."""

    @abstractmethod
    async def execute(
        self, text: str, options: ExecuteOptions | None = None
    ) -> ExecutionResult | None:
        """Parse and execute ``text``.

        Returns None for empty input.
        """
