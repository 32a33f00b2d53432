from .in_memory import InMemoryLedger

__all__ = ["InMemoryLedger"]
