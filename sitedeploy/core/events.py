"""Event stream for deployment progress."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sitedeploy.models.hosting import ProgressInfo


@dataclass
class Event:
    """A deployment event."""

    event_type: str
    deployment_id: UUID
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    """Simple event bus for deployment events.

    Subscribers either follow one deployment or, with no id, all of them.
    Queues are unbounded so publishing never blocks the workflow.
    """

    def __init__(self):
        self._subscribers: dict[UUID, asyncio.Queue[Event]] = {}
        self._wildcard: list[asyncio.Queue[Event]] = []

    def subscribe(self, deployment_id: UUID | None = None) -> asyncio.Queue[Event]:
        """Subscribe to events for a deployment, or for every deployment."""
        if deployment_id is None:
            queue: asyncio.Queue[Event] = asyncio.Queue()
            self._wildcard.append(queue)
            return queue
        if deployment_id not in self._subscribers:
            self._subscribers[deployment_id] = asyncio.Queue()
        return self._subscribers[deployment_id]

    def unsubscribe(self, deployment_id: UUID) -> None:
        """Unsubscribe from deployment events."""
        self._subscribers.pop(deployment_id, None)

    def unsubscribe_queue(self, queue: asyncio.Queue[Event]) -> None:
        if queue in self._wildcard:
            self._wildcard.remove(queue)

    def publish_nowait(self, event: Event) -> None:
        """Publish without awaiting; safe from synchronous progress sinks."""
        queue = self._subscribers.get(event.deployment_id)
        if queue is not None:
            queue.put_nowait(event)
        for wildcard in self._wildcard:
            wildcard.put_nowait(event)

    async def publish(self, event: Event) -> None:
        """Publish an event."""
        self.publish_nowait(event)

    async def publish_stage_changed(self, deployment_id: UUID, status: str) -> None:
        await self.publish(
            Event(event_type="stage_changed", deployment_id=deployment_id, data={"status": status})
        )

    def publish_progress(self, deployment_id: UUID, info: ProgressInfo) -> None:
        self.publish_nowait(
            Event(
                event_type="progress",
                deployment_id=deployment_id,
                data={
                    "stage": info.stage,
                    "percent_complete": info.percent_complete,
                    "message": info.message,
                    "level": info.level.value,
                },
            )
        )

    async def publish_deployment_complete(
        self, deployment_id: UUID, url: str, duration_seconds: int
    ) -> None:
        """Publish a deployment complete event."""
        await self.publish(
            Event(
                event_type="deployment_complete",
                deployment_id=deployment_id,
                data={"url": url, "duration_seconds": duration_seconds},
            )
        )

    async def publish_rolled_back(self, deployment_id: UUID) -> None:
        await self.publish(
            Event(event_type="rolled_back", deployment_id=deployment_id, data={})
        )

    async def publish_error(
        self, deployment_id: UUID, error: str, stage: str | None = None
    ) -> None:
        """Publish an error event."""
        await self.publish(
            Event(
                event_type="error",
                deployment_id=deployment_id,
                data={"error": error, "stage": stage},
            )
        )


# Singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
