"""
ChangeFeed -- in-process change notification for workflow collections.

Responsibility:
    Delivers committed entity changes to subscribers that keep derived views
    (dashboards, cached lists) fresh.  This is a notification mechanism only,
    never a write path: subscribers receive immutable DTOs and cannot reach
    the session.

Architecture position:
    Kernel > Services.  Module services publish to the feed AFTER their
    transaction commits, so a subscriber never observes a change that is
    later rolled back.

Invariants enforced:
    - Events carry a feed-wide, strictly increasing ``sequence``; each
      subscriber receives events in publication order.
    - A failing subscriber is logged and skipped; the write that produced
      the event and the remaining subscribers are unaffected.

Failure modes:
    - ValueError on subscribe to an unknown collection.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.logging_config import get_logger

logger = get_logger("services.change_feed")


class Collection(str, Enum):
    """Collections whose changes are published."""

    CREDIT_REQUESTS = "creditRequests"
    LOANS = "loans"
    PAYMENTS = "payments"
    INPUT_ORDERS = "inputOrders"


class ChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one entity."""

    collection: Collection
    entity_id: UUID
    change_type: ChangeType
    document: Any
    action: str = ""
    sequence: int = 0
    occurred_at: datetime | None = None


ChangeCallback = Callable[[ChangeEvent], None]
ChangeFilter = Callable[[Any], bool]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``; ``cancel()`` to stop."""

    collection: Collection
    callback: ChangeCallback
    where: ChangeFilter | None = None
    active: bool = True
    _feed: ChangeFeed | None = field(default=None, repr=False)

    def matches(self, event: ChangeEvent) -> bool:
        if not self.active or event.collection != self.collection:
            return False
        return self.where is None or bool(self.where(event.document))

    def cancel(self) -> None:
        self.active = False
        if self._feed is not None:
            self._feed._remove(self)


class ChangeFeed:
    """
    Ordered publish/subscribe hub keyed by collection.

    Usage:
        feed = ChangeFeed()
        sub = feed.subscribe(
            Collection.LOANS,
            refresh_dashboard,
            where=lambda loan: loan.status is LoanStatus.ACTIVE,
        )
        ...
        sub.cancel()
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []
        self._sequence = 0

    @property
    def last_sequence(self) -> int:
        return self._sequence

    def subscribe(
        self,
        collection: Collection | str,
        callback: ChangeCallback,
        where: ChangeFilter | None = None,
    ) -> Subscription:
        """Register ``callback`` for changes in ``collection`` matching ``where``."""
        try:
            resolved = Collection(collection)
        except ValueError as exc:
            raise ValueError(f"Unknown collection: {collection!r}") from exc

        subscription = Subscription(
            collection=resolved, callback=callback, where=where, _feed=self,
        )
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(
            "change_feed_subscribed",
            extra={"collection": resolved.value},
        )
        return subscription

    def publish(self, event: ChangeEvent) -> ChangeEvent:
        """
        Stamp ``event`` with the next sequence and deliver it.

        Delivery happens under the feed lock so concurrent publishers
        cannot interleave events out of sequence order.

        Returns:
            The stamped event as delivered to subscribers.
        """
        with self._lock:
            self._sequence += 1
            stamped = ChangeEvent(
                collection=event.collection,
                entity_id=event.entity_id,
                change_type=event.change_type,
                document=event.document,
                action=event.action,
                sequence=self._sequence,
                occurred_at=event.occurred_at or self._clock.now(),
            )
            targets = [s for s in self._subscriptions if s.active]
            delivered = 0
            for subscription in targets:
                try:
                    if not subscription.matches(stamped):
                        continue
                    subscription.callback(stamped)
                    delivered += 1
                except Exception:
                    logger.exception(
                        "change_subscriber_failed",
                        extra={
                            "collection": stamped.collection.value,
                            "entity_id": str(stamped.entity_id),
                            "sequence": stamped.sequence,
                        },
                    )

        logger.debug(
            "change_published",
            extra={
                "collection": stamped.collection.value,
                "entity_id": str(stamped.entity_id),
                "change_type": stamped.change_type.value,
                "sequence": stamped.sequence,
                "delivered": delivered,
            },
        )
        return stamped

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
