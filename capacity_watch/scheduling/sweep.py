"""Sweep coordinator and the status store it publishes to."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Optional

from ..checks.capacity_probe import CapacityProbe
from ..checks.notification_dispatch import NotificationDispatcher
from ..models.types import (
    CheckResult,
    DeliveryOutcome,
    ErrorKind,
    NotificationSeverity,
    ResourceType,
    SweepOutcome,
)

logger = logging.getLogger(__name__)

# Error kinds that mean we could not learn anything from the provider
HARD_ERROR_KINDS = frozenset({
    ErrorKind.REQUEST_FAILED,
    ErrorKind.INVALID_RESPONSE,
    ErrorKind.CHECK_FAILED,
})

AlertSender = Callable[[str, NotificationSeverity], Awaitable[bool]]
DeliveryHook = Callable[[list[DeliveryOutcome]], None]


class StatusStore:
    """Holds the latest completed sweep outcome.

    An outcome is replaced as a whole, so readers never see results from two
    different sweeps. While a sweep runs, ``snapshot`` returns the previous
    outcome with ``in_progress`` set.
    """

    def __init__(self, check_interval: Optional[timedelta] = None):
        self.check_interval = check_interval
        self._outcome = SweepOutcome()
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def begin(self) -> None:
        self._in_progress = True

    def finish(self) -> None:
        self._in_progress = False

    def publish(self, outcome: SweepOutcome) -> None:
        if outcome.timestamp is not None and self.check_interval is not None:
            outcome = replace(outcome, next_check_at=outcome.timestamp + self.check_interval)
        self._outcome = outcome

    def record_error(self, error: str) -> None:
        """Attach a sweep-level error to the current outcome."""
        self._outcome = replace(self._outcome, sweep_error=error)

    def snapshot(self) -> SweepOutcome:
        return replace(self._outcome, results=dict(self._outcome.results), in_progress=self._in_progress)


class SweepCoordinator:
    """Probes every resource type once and publishes the outcome.

    Probes run sequentially in configuration order with a fixed delay
    between provider calls. A failure for one resource type is recorded in
    its CheckResult and never stops the remaining probes.
    """

    def __init__(
        self,
        resource_types: Iterable[ResourceType],
        probe: CapacityProbe,
        status_store: StatusStore,
        dispatcher: NotificationDispatcher,
        probe_delay_seconds: float = 1.0,
        alert_sender: Optional[AlertSender] = None,
        delivery_hook: Optional[DeliveryHook] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.resource_types = list(resource_types)
        self.probe = probe
        self.status_store = status_store
        self.dispatcher = dispatcher
        self.probe_delay_seconds = probe_delay_seconds
        self.alert_sender = alert_sender
        self.delivery_hook = delivery_hook
        self.clock = clock
        self.last_deliveries: list[DeliveryOutcome] = []
        # Severity of the last alert sent for the current failure streak
        self._alerted_severity: Optional[NotificationSeverity] = None

    async def run_sweep(self) -> SweepOutcome:
        """Run one sweep.

        Returns:
            The published SweepOutcome
        """
        type_ids = ", ".join(rt.id for rt in self.resource_types)
        logger.info(f"Starting availability sweep for: {type_ids}")

        self.status_store.begin()
        try:
            results = await self._probe_all()
            outcome = SweepOutcome(timestamp=self.clock(), results=results)
            self.status_store.publish(outcome)

            available = outcome.available_resource_types
            if available:
                logger.info(f"GPUs available: {', '.join(available)}")
                await self._notify(outcome)

        except Exception as e:
            logger.error(f"Error in availability sweep: {e}")
            self.status_store.record_error(str(e) or type(e).__name__)
        finally:
            self.status_store.finish()

        outcome = self.status_store.snapshot()
        logger.info(f"Sweep completed: {outcome}")
        await self._alert_on_failure(outcome)
        return outcome

    async def _probe_all(self) -> dict[str, CheckResult]:
        results: dict[str, CheckResult] = {}
        for index, resource_type in enumerate(self.resource_types):
            if index > 0 and self.probe_delay_seconds > 0:
                await asyncio.sleep(self.probe_delay_seconds)
            try:
                results[resource_type.id] = await self.probe.probe(resource_type)
            except Exception as e:
                logger.error(f"Error checking {resource_type.id}: {e}")
                results[resource_type.id] = CheckResult(
                    resource_type_id=resource_type.id,
                    available=False,
                    message=str(e) or type(e).__name__,
                    size_slug=resource_type.size_slug,
                    image=resource_type.default_image,
                    error_kind=ErrorKind.CHECK_FAILED,
                    checked_at=self.clock(),
                )
        return results

    async def _notify(self, outcome: SweepOutcome) -> None:
        self.last_deliveries = await self.dispatcher.dispatch(outcome)
        for delivery in self.last_deliveries:
            if not delivery.success:
                logger.warning(f"Delivery failed: {delivery}")
        if self.delivery_hook is not None:
            self.delivery_hook(self.last_deliveries)

    async def _alert_on_failure(self, outcome: SweepOutcome) -> None:
        if self.alert_sender is None:
            return

        if outcome.sweep_error:
            message = f"Availability sweep failed: {outcome.sweep_error}"
            severity = NotificationSeverity.CRITICAL
        elif outcome.results and all(
            r.error_kind in HARD_ERROR_KINDS for r in outcome.results.values()
        ):
            details = "; ".join(f"{r.resource_type_id}: {r.message}" for r in outcome.results.values())
            message = f"Every capacity check failed: {details}"
            severity = NotificationSeverity.ERROR
        else:
            if self._alerted_severity is not None:
                logger.info("Sweep recovered, re-arming failure alerts")
            self._alerted_severity = None
            return

        if severity == self._alerted_severity:
            logger.info(f"Sweep still failing, {severity.value} alert already sent")
            return

        try:
            await self.alert_sender(message, severity)
            self._alerted_severity = severity
        except Exception as notify_error:
            logger.error(f"Failed to send alert: {notify_error}")
