"""Structured debug events emitted by the reconcilers."""

import logging
from typing import Any, Protocol


class EventLogger(Protocol):
    """Sink for named lifecycle events.

    Implementations must not raise; the reconcilers behave identically
    with or without a sink attached.
    """

    def debug(self, event: str, data: dict[str, Any] | None = None) -> None: ...


class LoggingEventSink:
    """Forward reconciler events to a standard library logger.

    Events are logged at DEBUG with the event name and payload attached to
    the record as ``event`` and ``data``, which the CLI's JSON formatter
    serialises as separate fields.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("blocksync.events")

    def debug(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        self.logger.debug(
            f"{event} {data}" if data else event,
            extra={"event": event, "data": data or {}},
        )


class RecordingEventSink:
    """Keep events in memory, mostly useful for inspecting a dry run."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def debug(self, event: str, data: dict[str, Any] | None = None) -> None:
        self.events.append((event, dict(data or {})))

    def names(self) -> list[str]:
        """Event names in emission order."""
        return [name for name, _ in self.events]
