"""Data models for capacity monitoring."""

from .types import (
    AVAILABLE_LEVELS,
    CapacityLevel,
    CheckResult,
    DeliveryOutcome,
    DeliveryStatus,
    ErrorKind,
    NotificationSeverity,
    PushResult,
    RegionCapacity,
    ResourceType,
    Subscriber,
    SweepOutcome,
)

__all__ = [
    "AVAILABLE_LEVELS",
    "CapacityLevel",
    "CheckResult",
    "DeliveryOutcome",
    "DeliveryStatus",
    "ErrorKind",
    "NotificationSeverity",
    "PushResult",
    "RegionCapacity",
    "ResourceType",
    "Subscriber",
    "SweepOutcome",
]
