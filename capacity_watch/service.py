"""Service facade owning the monitoring loop and its state."""

import logging
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Iterable, Optional

from .alerts import send_slack_alert
from .capacity_client import CapacityClient
from .checks.capacity_probe import CapacityProbe
from .checks.notification_dispatch import NotificationDispatcher
from .config import Settings
from .models.types import DeliveryOutcome, DeliveryStatus, ResourceType, Subscriber, SweepOutcome
from .push_transport import DryRunPushTransport, PushTransport, WebhookPushTransport, WebPushTransport
from .registry import SubscriptionRegistry
from .scheduling.scheduler import SweepScheduler
from .scheduling.sweep import AlertSender, StatusStore, SweepCoordinator

logger = logging.getLogger(__name__)


class InvalidResourceTypesError(ValueError):
    """Raised when an interest set names unknown resource types."""

    def __init__(self, invalid_types: list[str], valid_types: list[str]):
        self.invalid_types = invalid_types
        self.valid_types = valid_types
        super().__init__(
            f"Invalid GPU types: {', '.join(invalid_types)} "
            f"(valid: {', '.join(valid_types)})"
        )


class CapacityWatchService:
    """Wires the probe, sweep, scheduler, registry and dispatcher together.

    All state lives on the instance; callers hold a reference to the
    service instead of reaching for module globals.
    """

    def __init__(
        self,
        settings: Settings,
        client: CapacityClient,
        transport: PushTransport,
        alert_sender: Optional[AlertSender] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self.client = client
        self.transport = transport
        self.resource_types: list[ResourceType] = settings.load_resource_types()

        self.registry = SubscriptionRegistry(rt.id for rt in self.resource_types)
        self.status_store = StatusStore(
            check_interval=timedelta(seconds=settings.check_interval_seconds)
        )
        self.probe = CapacityProbe(client, settings.regions_to_check, clock=clock)
        self.dispatcher = NotificationDispatcher(
            self.registry,
            transport,
            cooldown=timedelta(seconds=settings.notification_cooldown_seconds),
            droplet_create_url=settings.droplet_create_url,
            max_concurrent_deliveries=settings.max_concurrent_deliveries,
            clock=clock,
        )
        self.coordinator = SweepCoordinator(
            self.resource_types,
            self.probe,
            self.status_store,
            self.dispatcher,
            probe_delay_seconds=settings.probe_delay_seconds,
            alert_sender=alert_sender,
            delivery_hook=self.prune_expired if settings.prune_expired_subscriptions else None,
            clock=clock,
        )
        self.scheduler = SweepScheduler(self.coordinator, interval_seconds=settings.check_interval_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CapacityWatchService":
        """Build a service with the HTTP client and transport the settings describe."""
        client = CapacityClient(
            api_token=settings.do_api_token,
            base_url=settings.do_api_base_url,
            timeout=settings.provider_timeout_seconds,
        )
        if settings.dry_run_mode:
            transport = DryRunPushTransport()
        elif settings.vapid_private_key:
            transport = WebPushTransport(
                vapid_private_key=settings.vapid_private_key,
                vapid_subject=settings.vapid_subject,
                timeout=settings.push_timeout_seconds,
            )
        else:
            logger.warning("No VAPID private key configured, delivering notifications as plain webhooks")
            transport = WebhookPushTransport(timeout=settings.push_timeout_seconds)
        alert_sender = partial(
            send_slack_alert,
            webhook_url=settings.slack_webhook_url,
            dry_run=settings.dry_run_mode,
        )
        return cls(settings, client, transport, alert_sender=alert_sender)

    # Lifecycle

    def start(self) -> None:
        """Start periodic sweeps. Must be called from a running event loop."""
        self.scheduler.start()

    async def shutdown(self) -> None:
        """Stop sweeping, let the in-flight sweep finish and close connections."""
        await self.scheduler.shutdown()
        await self.client.close()
        await self.transport.close()

    # Status

    def list_resource_types(self) -> list[ResourceType]:
        return list(self.resource_types)

    def get_status(self) -> SweepOutcome:
        return self.status_store.snapshot()

    async def trigger_check(self) -> SweepOutcome:
        """Run a sweep now, or join the one in progress, and return the outcome."""
        return await self.scheduler.run_now()

    def get_push_public_key(self) -> Optional[str]:
        return self.settings.push_public_key

    # Subscriptions

    def _validate_interest(self, interest_set: Iterable[str]) -> list[str]:
        interests = list(interest_set)
        valid = [rt.id for rt in self.resource_types]
        invalid = [type_id for type_id in interests if type_id not in valid]
        if invalid:
            raise InvalidResourceTypesError(invalid, valid)
        return interests

    def subscribe(
        self,
        subscriber_id: str,
        push_descriptor: dict[str, Any],
        interest_set: Optional[Iterable[str]] = None,
    ) -> Subscriber:
        """Register a subscriber; no interest set means every resource type.

        Raises:
            ValueError: If the id or push descriptor is missing
            InvalidResourceTypesError: If the interest set names unknown types
        """
        if not subscriber_id or not push_descriptor:
            raise ValueError("Missing required fields")
        if interest_set is not None:
            interest_set = self._validate_interest(interest_set)
        return self.registry.upsert(subscriber_id, push_descriptor, interest_set)

    def get_subscription(self, subscriber_id: str) -> Optional[Subscriber]:
        return self.registry.get(subscriber_id)

    def update_interest(self, subscriber_id: str, interest_set: Iterable[str]) -> Optional[Subscriber]:
        """Replace a subscriber's interest set.

        Returns:
            The updated subscriber, or None if the id is unknown

        Raises:
            InvalidResourceTypesError: If the interest set names unknown types
        """
        return self.registry.update_interest(subscriber_id, self._validate_interest(interest_set))

    def unsubscribe(self, subscriber_id: str) -> bool:
        return self.registry.remove(subscriber_id)

    def prune_expired(self, deliveries: Iterable[DeliveryOutcome]) -> list[str]:
        """Remove subscribers whose push destination reported itself gone.

        Returns:
            Ids of the removed subscribers
        """
        removed = []
        for delivery in deliveries:
            if delivery.status != DeliveryStatus.EXPIRED:
                continue
            if self.registry.remove(delivery.subscriber_id):
                logger.info(f"Pruned expired subscription {delivery.subscriber_id}")
                removed.append(delivery.subscriber_id)
        return removed
