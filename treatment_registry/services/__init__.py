"""
Core services for the registry.

This package contains the registry engine and the seams it uses to talk to
external collaborators: event sinks and the value-transfer service.
"""

from .events import EventDispatcher, EventSink, InMemoryEventSink, StructlogEventSink
from .payments import InsufficientFunds, TransferReceipt, ValueTransfer
from .registry import Registry, build_registry, next_star_rating
from .results import Result
from .store import SparseTable

__all__ = [
    "EventDispatcher",
    "EventSink",
    "InMemoryEventSink",
    "StructlogEventSink",
    "InsufficientFunds",
    "TransferReceipt",
    "ValueTransfer",
    "Registry",
    "build_registry",
    "next_star_rating",
    "Result",
    "SparseTable",
]
