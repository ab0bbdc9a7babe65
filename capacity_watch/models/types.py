"""Type definitions for capacity monitoring."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class CapacityLevel(str, Enum):
    """Capacity signal a provider reports per region for a size slug."""

    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Levels at which a region counts as having capacity
AVAILABLE_LEVELS = frozenset({CapacityLevel.MEDIUM.value, CapacityLevel.HIGH.value})


class ErrorKind(str, Enum):
    """Classification of a failed check or delivery."""

    INVALID_RESPONSE = "invalid_response"
    NO_REGIONS = "no_regions"
    NO_CAPACITY = "no_capacity"
    REQUEST_FAILED = "request_failed"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    CHECK_FAILED = "check_failed"


class NotificationSeverity(str, Enum):
    """Notification severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DeliveryStatus(str, Enum):
    """Result of handing a payload to a push transport."""

    DELIVERED = "delivered"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class ResourceType:
    """A quota-limited offering identified by a provider size slug."""

    id: str
    size_slug: str
    default_image: Optional[str] = None

    def __str__(self) -> str:
        """String representation."""
        return f"{self.id} ({self.size_slug})"


@dataclass
class RegionCapacity:
    """Capacity reported for one region."""

    region: str
    capacity: str

    @property
    def is_available(self) -> bool:
        return self.capacity in AVAILABLE_LEVELS


@dataclass
class CheckResult:
    """Outcome of probing one resource type."""

    resource_type_id: str
    available: bool
    message: str
    size_slug: str
    image: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    regions: Optional[list[RegionCapacity]] = None
    available_regions: Optional[list[RegionCapacity]] = None
    best_capacity: Optional[str] = None
    checked_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-friendly representation."""
        data = asdict(self)
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind.value
        if self.checked_at is not None:
            data["checked_at"] = self.checked_at.isoformat()
        return data

    def __str__(self) -> str:
        """String representation."""
        status = "AVAILABLE" if self.available else "UNAVAILABLE"
        error_str = f" [{self.error_kind.value}]" if self.error_kind else ""
        return f"{self.resource_type_id}: {status}{error_str} - {self.message}"


@dataclass
class SweepOutcome:
    """Aggregate result of one pass over every known resource type."""

    timestamp: Optional[datetime] = None
    results: dict[str, CheckResult] = field(default_factory=dict)
    sweep_error: Optional[str] = None
    in_progress: bool = False
    next_check_at: Optional[datetime] = None

    @property
    def available_resource_types(self) -> list[str]:
        return [type_id for type_id, result in self.results.items() if result.available]

    def __str__(self) -> str:
        """String representation."""
        errored = sum(1 for r in self.results.values() if r.error_kind is not None and not r.available)
        available = self.available_resource_types
        available_str = ", ".join(available) if available else "none"
        result = (
            f"Checked {len(self.results)} resource types - "
            f"Available: {available_str}, Unavailable/errored: {errored}"
        )
        if self.sweep_error:
            result += f", sweep error: {self.sweep_error}"
        return result


@dataclass
class Subscriber:
    """A push subscriber and the resource types it wants to hear about."""

    id: str
    push_descriptor: dict[str, Any]
    interest_set: set[str] = field(default_factory=set)
    last_notified_at: dict[str, datetime] = field(default_factory=dict)


@dataclass
class PushResult:
    """Answer from a push transport for one send."""

    status: DeliveryStatus
    reason: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


@dataclass
class DeliveryOutcome:
    """Result of notifying one subscriber about one resource type."""

    subscriber_id: str
    resource_type_id: str
    status: DeliveryStatus
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    def __str__(self) -> str:
        """String representation."""
        if self.success:
            return f"[{self.subscriber_id}] {self.resource_type_id}: delivered"
        reason = self.error_kind.value if self.error_kind else self.error
        return f"[{self.subscriber_id}] {self.resource_type_id}: {self.status.value} ({reason})"
