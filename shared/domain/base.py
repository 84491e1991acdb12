"""
Base Domain Classes

Building blocks shared by the booking domain:
- ValueObject: Immutable objects compared by value
- DomainEvent: Something that happened to a reservation
- EventRecorder: Collects domain events until the unit of work publishes them
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Events are recorded while a transaction is open and published
    to the message bus only after the transaction commits.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: Any = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        data = {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id is not None else None,
        }
        for f in fields(self):
            if f.name in data:
                continue
            value = getattr(self, f.name)
            data[f.name] = value.isoformat() if hasattr(value, 'isoformat') else value
        return data


class EventRecorder:
    """
    Mixin for objects that emit domain events

    The unit of work drains recorded events with collect_events().
    """

    def __init__(self):
        self._events: List[DomainEvent] = []

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List[DomainEvent]:
        """Get copy of recorded events"""
        return self._events.copy()
