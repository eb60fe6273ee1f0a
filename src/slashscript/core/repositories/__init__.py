# Repositories package

from .in_memory_variable_store import InMemoryVariableStore

__all__ = [
    "InMemoryVariableStore",
]
