"""In-memory subscription registry."""

import copy
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from .models.types import Subscriber

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Holds subscribers keyed by id.

    Subscribers handed out are snapshots; ``last_notified_at`` only moves
    through ``record_notification``. Lifetime is the process lifetime.
    """

    def __init__(self, known_resource_type_ids: Iterable[str]):
        """Initialize an empty registry.

        Args:
            known_resource_type_ids: Ids used as the default interest set
        """
        self._known_ids = list(known_resource_type_ids)
        self._subscribers: dict[str, Subscriber] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers

    @staticmethod
    def _snapshot(subscriber: Subscriber) -> Subscriber:
        return Subscriber(
            id=subscriber.id,
            push_descriptor=copy.deepcopy(subscriber.push_descriptor),
            interest_set=set(subscriber.interest_set),
            last_notified_at=dict(subscriber.last_notified_at),
        )

    def upsert(
        self,
        subscriber_id: str,
        push_descriptor: dict[str, Any],
        interest_set: Optional[Iterable[str]] = None,
    ) -> Subscriber:
        """Create or replace a subscriber.

        Omitting ``interest_set`` subscribes to every known resource type.
        Re-subscribing keeps the existing notification timestamps.
        """
        interests = set(self._known_ids) if interest_set is None else set(interest_set)
        existing = self._subscribers.get(subscriber_id)
        last_notified_at = dict(existing.last_notified_at) if existing else {}

        self._subscribers[subscriber_id] = Subscriber(
            id=subscriber_id,
            push_descriptor=copy.deepcopy(push_descriptor),
            interest_set=interests,
            last_notified_at=last_notified_at,
        )
        logger.info(
            f"{'Updated' if existing else 'Added'} subscription {subscriber_id} "
            f"for {sorted(interests)}"
        )
        return self._snapshot(self._subscribers[subscriber_id])

    def get(self, subscriber_id: str) -> Optional[Subscriber]:
        subscriber = self._subscribers.get(subscriber_id)
        return self._snapshot(subscriber) if subscriber else None

    def update_interest(self, subscriber_id: str, interest_set: Iterable[str]) -> Optional[Subscriber]:
        """Replace a subscriber's interest set. Returns None for unknown ids."""
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return None
        subscriber.interest_set = set(interest_set)
        logger.info(f"Subscription {subscriber_id} now watching {sorted(subscriber.interest_set)}")
        return self._snapshot(subscriber)

    def remove(self, subscriber_id: str) -> bool:
        removed = self._subscribers.pop(subscriber_id, None) is not None
        if removed:
            logger.info(f"Removed subscription {subscriber_id}")
        return removed

    def list(self) -> list[Subscriber]:
        return [self._snapshot(s) for s in self._subscribers.values()]

    def record_notification(self, subscriber_id: str, resource_type_id: str, at: datetime) -> bool:
        """Advance the last-notified time for a subscriber and resource type.

        The timestamp never moves backwards. Returns False if the subscriber
        is gone (e.g. unsubscribed while a delivery was in flight).
        """
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return False
        previous = subscriber.last_notified_at.get(resource_type_id)
        if previous is None or at > previous:
            subscriber.last_notified_at[resource_type_id] = at
        return True
