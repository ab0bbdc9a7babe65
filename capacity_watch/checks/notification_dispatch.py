"""Cooldown-gated delivery of availability notifications."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from ..models.types import (
    CheckResult,
    DeliveryOutcome,
    DeliveryStatus,
    ErrorKind,
    Subscriber,
    SweepOutcome,
)
from ..push_transport import PushTransport
from ..registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=1)


def build_payload(result: CheckResult, droplet_create_url: str) -> dict[str, Any]:
    """Build the push payload announcing an available resource type."""
    return {
        "title": "GPU Available!",
        "body": f"{result.resource_type_id} is now available on DigitalOcean",
        "data": {
            "url": droplet_create_url,
            "gpuInfo": result.to_dict(),
        },
    }


class NotificationDispatcher:
    """Notifies subscribers about resource types that became available.

    A (subscriber, resource type) pair is eligible when the latest result is
    available and the subscriber was not notified about that type within the
    cooldown. Eligible pairs are delivered concurrently; the registry's
    timestamp only advances after the transport acknowledges delivery.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        transport: PushTransport,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        droplet_create_url: str = "https://cloud.digitalocean.com/droplets/new",
        max_concurrent_deliveries: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.registry = registry
        self.transport = transport
        self.cooldown = cooldown
        self.droplet_create_url = droplet_create_url
        self.max_concurrent_deliveries = max_concurrent_deliveries
        self.clock = clock

    def eligible_pairs(self, outcome: SweepOutcome, now: datetime) -> list[tuple[Subscriber, CheckResult]]:
        """List the (subscriber, result) pairs that should be notified."""
        pairs = []
        for subscriber in self.registry.list():
            for type_id in sorted(subscriber.interest_set):
                result = outcome.results.get(type_id)
                if result is None or not result.available:
                    continue
                last_notified = subscriber.last_notified_at.get(type_id)
                if last_notified is not None and now - last_notified < self.cooldown:
                    logger.debug(f"Skipping {subscriber.id}/{type_id}: notified at {last_notified}")
                    continue
                pairs.append((subscriber, result))
        return pairs

    async def dispatch(self, outcome: SweepOutcome) -> list[DeliveryOutcome]:
        """Deliver notifications for every eligible pair and wait for all of them.

        Args:
            outcome: A completed sweep outcome

        Returns:
            One DeliveryOutcome per eligible pair
        """
        now = self.clock()
        pairs = self.eligible_pairs(outcome, now)
        if not pairs:
            logger.info("No subscribers eligible for notification")
            return []

        logger.info(f"Dispatching {len(pairs)} notification(s)")
        semaphore = (
            asyncio.Semaphore(self.max_concurrent_deliveries)
            if self.max_concurrent_deliveries
            else None
        )

        async def deliver(subscriber: Subscriber, result: CheckResult) -> DeliveryOutcome:
            if semaphore is None:
                return await self._deliver(subscriber, result, now)
            async with semaphore:
                return await self._deliver(subscriber, result, now)

        deliveries = await asyncio.gather(*(deliver(s, r) for s, r in pairs))

        delivered = sum(1 for d in deliveries if d.success)
        logger.info(f"Notifications delivered: {delivered}/{len(deliveries)}")
        return list(deliveries)

    async def _deliver(self, subscriber: Subscriber, result: CheckResult, dispatched_at: datetime) -> DeliveryOutcome:
        type_id = result.resource_type_id
        payload = build_payload(result, self.droplet_create_url)

        try:
            push_result = await self.transport.send(subscriber.push_descriptor, payload)
        except Exception as e:
            logger.error(f"Error sending notification to {subscriber.id}: {e}")
            return DeliveryOutcome(
                subscriber_id=subscriber.id,
                resource_type_id=type_id,
                status=DeliveryStatus.FAILED,
                error=str(e) or type(e).__name__,
            )

        if push_result.delivered:
            self.registry.record_notification(subscriber.id, type_id, dispatched_at)
            return DeliveryOutcome(
                subscriber_id=subscriber.id,
                resource_type_id=type_id,
                status=DeliveryStatus.DELIVERED,
            )

        if push_result.status == DeliveryStatus.EXPIRED:
            logger.warning(f"Subscription {subscriber.id} has expired")
            return DeliveryOutcome(
                subscriber_id=subscriber.id,
                resource_type_id=type_id,
                status=DeliveryStatus.EXPIRED,
                error_kind=ErrorKind.SUBSCRIPTION_EXPIRED,
                error=push_result.reason,
            )

        return DeliveryOutcome(
            subscriber_id=subscriber.id,
            resource_type_id=type_id,
            status=DeliveryStatus.FAILED,
            error=push_result.reason or "Delivery failed",
        )
