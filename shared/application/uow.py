"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from django.db import transaction

from shared.application.message_bus import MessageBus
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
        pass

    @abstractmethod
    def rollback(self):
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Wraps transaction.atomic() and hands collected domain events to the
    message bus with transaction.on_commit(), so subscribers never see
    events from a rolled back transaction.

    Usage:
        with DjangoUnitOfWork(bus) as uow:
            booking = booking_repo.get(booking_id, lock=True)
            booking.confirm()
            booking_repo.save(booking)
            uow.collect_events(booking)
    """

    def __init__(self, message_bus: Optional[MessageBus] = None, using: Optional[str] = None):
        self._message_bus = message_bus
        self._using = using
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        self._transaction = transaction.atomic(using=self._using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events and self._message_bus is not None:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _publish_events(self, events: List[DomainEvent]):
        logger.info(f"Publishing {len(events)} domain events after commit")
        self._message_bus.publish_events(events)
