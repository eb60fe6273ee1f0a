from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class VariableTier(str, Enum):
    """Where a shared variable lives."""

    LOCAL = "local"  # chat-scoped
    GLOBAL = "global"  # persistent across chats


class IVariableStore(ABC):
    """Shared variable storage owned outside the engine.

    Scripts reach it through ``{{getvar::}}``/``{{getglobalvar::}}`` and the
    ``setvar``/``getvar`` family of commands. No locking is performed;
    concurrent scripts writing the same name get last-write-wins.
    """

    @abstractmethod
    def get(self, name: str, tier: VariableTier = VariableTier.LOCAL) -> Any:
        pass

    @abstractmethod
    def set(self, name: str, value: Any, tier: VariableTier = VariableTier.LOCAL) -> None:
        pass

    @abstractmethod
    def exists(self, name: str, tier: VariableTier = VariableTier.LOCAL) -> bool:
        pass
