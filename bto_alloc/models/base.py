"""Base models shared across the engine."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Standard event envelope for domain events."""

    event_id: str
    event_type: str  # entity.action (e.g., application.approved)
    event_time: datetime
    source: str  # Component that emitted the event
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        event_type: str,
        subject: str,
        data: dict,
        *,
        source: str = "bto_alloc",
        event_time: datetime | None = None,
        metadata: dict | None = None,
    ) -> "Event":
        """Build an event with a fresh id."""
        return cls(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            event_time=event_time or datetime.now(),
            source=source,
            subject=subject,
            data=data,
            metadata=metadata or {},
        )

    @property
    def entity(self) -> str:
        """Entity part of the event type (``application``)."""
        return self.event_type.split(".", 1)[0]
