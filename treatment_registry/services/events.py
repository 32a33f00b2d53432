"""
Event delivery for registry mutations.

Key patterns:
- Protocol-based sinks so indexers and observability backends plug in freely
- Fire-and-forget dispatch: a failing sink is logged, never propagated
"""

from typing import Protocol

import structlog

from treatment_registry.domain.events import RegistryEvent

logger = structlog.get_logger(__name__)


class EventSink(Protocol):
    """
    Protocol for anything that receives registry events.

    Why Protocol over ABC: structural typing, trivial test doubles.
    """

    def publish(self, event: RegistryEvent) -> None: ...


class StructlogEventSink:
    """Writes every event to the structured log."""

    def __init__(self, sink_name: str = "registry-events") -> None:
        self.sink_name = sink_name
        self.logger = logger.bind(sink=sink_name)

    def publish(self, event: RegistryEvent) -> None:
        fields = event.model_dump(mode="json", exclude={"event_type"})
        self.logger.info(event.event_type, **fields)


class InMemoryEventSink:
    """Keeps events in order of emission. Useful for indexing and tests."""

    def __init__(self) -> None:
        self.events: list[RegistryEvent] = []

    def publish(self, event: RegistryEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[RegistryEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


class EventDispatcher:
    """
    Fans events out to registered sinks.

    Delivery never affects the outcome of the operation that emitted the event.
    """

    def __init__(self, sinks: list[EventSink] | None = None, enabled: bool = True) -> None:
        self.sinks: list[EventSink] = list(sinks or [])
        self.enabled = enabled
        self.logger = logger.bind(component="event_dispatcher")

    def add_sink(self, sink: EventSink) -> None:
        if not hasattr(sink, "publish"):
            raise TypeError(f"Sink {sink} must implement EventSink protocol")
        self.sinks.append(sink)
        self.logger.info("sink_added", sink_type=type(sink).__name__)

    def remove_sink(self, sink: EventSink) -> None:
        self.sinks.remove(sink)
        self.logger.info("sink_removed", sink_type=type(sink).__name__)

    def emit(self, event: RegistryEvent) -> None:
        if not self.enabled:
            return
        for sink in self.sinks:
            try:
                sink.publish(event)
            except Exception as e:
                self.logger.exception(
                    "event_delivery_failed",
                    event_type=event.event_type,
                    sink_type=type(sink).__name__,
                    error=str(e),
                )
