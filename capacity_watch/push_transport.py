"""Push transports that deliver availability notifications to subscribers."""

import asyncio
import json
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from pywebpush import WebPushException, webpush

from .models.types import DeliveryStatus, PushResult

logger = logging.getLogger(__name__)

# Status codes meaning the push destination is permanently gone
EXPIRED_STATUS_CODES = frozenset({404, 410})


@runtime_checkable
class PushTransport(Protocol):
    """Protocol for outbound push delivery.

    ``send`` reports delivery problems through the returned PushResult
    instead of raising.
    """

    async def send(self, push_descriptor: dict[str, Any], payload: dict[str, Any]) -> PushResult: ...

    async def close(self) -> None: ...


class WebhookPushTransport:
    """Delivers the JSON payload to the endpoint in the push descriptor."""

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def send(self, push_descriptor: dict[str, Any], payload: dict[str, Any]) -> PushResult:
        """Send a payload to a subscriber's endpoint.

        Args:
            push_descriptor: Subscription object; must contain ``endpoint``
            payload: JSON-serializable notification body

        Returns:
            PushResult: delivered on 2xx, expired on 404/410, failed otherwise
        """
        endpoint = push_descriptor.get("endpoint") if isinstance(push_descriptor, dict) else None
        if not endpoint:
            return PushResult(status=DeliveryStatus.FAILED, reason="Push descriptor has no endpoint")

        try:
            response = await self.client.post(endpoint, json=payload, headers={"TTL": "86400"})
        except httpx.HTTPError as e:
            logger.error(f"Error sending notification to {endpoint}: {e}")
            return PushResult(status=DeliveryStatus.FAILED, reason=str(e) or type(e).__name__)

        if response.status_code in EXPIRED_STATUS_CODES:
            logger.warning(f"Push endpoint {endpoint} is gone (HTTP {response.status_code})")
            return PushResult(
                status=DeliveryStatus.EXPIRED,
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.is_success:
            return PushResult(status=DeliveryStatus.DELIVERED, status_code=response.status_code)

        logger.error(f"Push endpoint {endpoint} rejected notification (HTTP {response.status_code})")
        return PushResult(
            status=DeliveryStatus.FAILED,
            reason=f"HTTP {response.status_code}",
            status_code=response.status_code,
        )


class WebPushTransport:
    """Delivers encrypted Web Push messages signed with the VAPID key pair.

    ``push_descriptor`` is the browser PushSubscription object:
    ``{"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}``.
    """

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        timeout: float = 10.0,
        ttl: int = 86400,
    ):
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout = timeout
        self.ttl = ttl

    async def close(self) -> None:
        return None

    def _send_sync(self, push_descriptor: dict[str, Any], data: str) -> None:
        webpush(
            subscription_info=push_descriptor,
            data=data,
            vapid_private_key=self.vapid_private_key,
            # webpush adds aud/exp to the claims dict, so pass a fresh one
            vapid_claims={"sub": self.vapid_subject},
            timeout=self.timeout,
            ttl=self.ttl,
        )

    async def send(self, push_descriptor: dict[str, Any], payload: dict[str, Any]) -> PushResult:
        """Encrypt and send a payload to a browser push subscription.

        Returns:
            PushResult: delivered on success, expired on 404/410, failed otherwise
        """
        endpoint = push_descriptor.get("endpoint") if isinstance(push_descriptor, dict) else None
        if not endpoint:
            return PushResult(status=DeliveryStatus.FAILED, reason="Push descriptor has no endpoint")

        try:
            await asyncio.to_thread(self._send_sync, push_descriptor, json.dumps(payload))
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in EXPIRED_STATUS_CODES:
                logger.warning(f"Push subscription {endpoint} has expired (HTTP {status_code})")
                return PushResult(
                    status=DeliveryStatus.EXPIRED,
                    reason=f"HTTP {status_code}",
                    status_code=status_code,
                )
            logger.error(f"Error sending notification to {endpoint}: {e}")
            return PushResult(status=DeliveryStatus.FAILED, reason=str(e), status_code=status_code)
        except Exception as e:
            # Malformed subscription keys or network errors from requests
            logger.error(f"Error sending notification to {endpoint}: {e}")
            return PushResult(status=DeliveryStatus.FAILED, reason=str(e) or type(e).__name__)

        return PushResult(status=DeliveryStatus.DELIVERED)


class DryRunPushTransport:
    """Logs notifications instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[dict[str, Any], dict[str, Any]]] = []

    async def close(self) -> None:
        return None

    async def send(self, push_descriptor: dict[str, Any], payload: dict[str, Any]) -> PushResult:
        logger.info(f"[DRY RUN] Would send notification: {payload.get('body')}")
        self.sent.append((push_descriptor, payload))
        return PushResult(status=DeliveryStatus.DELIVERED)
