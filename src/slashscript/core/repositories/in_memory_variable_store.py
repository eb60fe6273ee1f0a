from __future__ import annotations

import logging
from typing import Any

from slashscript.core.interfaces.variable_store_interface import (
    IVariableStore,
    VariableTier,
)

logger = logging.getLogger(__name__)


class InMemoryVariableStore(IVariableStore):
    """In-memory implementation of the shared variable store.

    Values are kept per tier and do not persist. It is suitable for the CLI,
    development and testing.
    """

    def __init__(self) -> None:
        self._variables: dict[VariableTier, dict[str, Any]] = {
            tier: {} for tier in VariableTier
        }

    def get(self, name: str, tier: VariableTier = VariableTier.LOCAL) -> Any:
        return self._variables[VariableTier(tier)].get(name)

    def set(self, name: str, value: Any, tier: VariableTier = VariableTier.LOCAL) -> None:
        self._variables[VariableTier(tier)][name] = value
        logger.debug("Stored %s variable %s", VariableTier(tier).value, name)

    def exists(self, name: str, tier: VariableTier = VariableTier.LOCAL) -> bool:
        return name in self._variables[VariableTier(tier)]

    def snapshot(self, tier: VariableTier = VariableTier.LOCAL) -> dict[str, Any]:
        """Return a copy of every variable stored in ``tier``."""
        return dict(self._variables[VariableTier(tier)])
