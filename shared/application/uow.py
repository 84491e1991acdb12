"""
Unit of Work Pattern

Wraps a database transaction and holds domain events until the
transaction commits. Reservation commands use it as their critical
section: every check and write inside the block sees one snapshot
and either all of it commits or none of it does.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def collect_events(self, source):
        """Collect events from an event recorder"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            court = lock_court(court_id)
            lifecycle = ReservationLifecycle.create(...)
            uow.collect_events(lifecycle)
        # ReservationCreated is published here, after commit
    """

    def __init__(self, using=None):
        self._events: List[DomainEvent] = []
        self._using = using
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic(using=self._using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing

        transaction.on_commit() defers the publish until the outermost
        atomic block commits, so a rolled back reservation never
        announces itself.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, source):
        """
        Collect events from an event recorder

        Drains the recorder so the same event is never published twice.
        """
        new_events = getattr(source, 'events', None)
        if new_events:
            self._events.extend(new_events)
            source.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from {source.__class__.__name__}"
            )

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The reservation rows are already committed at this point
            logger.error(f"Error publishing events: {e}", exc_info=True)
