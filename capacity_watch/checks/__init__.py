"""Capacity checks and notification delivery."""

from .capacity_probe import CapacityProbe, best_capacity_label, filter_regions, parse_capacities
from .notification_dispatch import NotificationDispatcher, build_payload

__all__ = [
    "CapacityProbe",
    "NotificationDispatcher",
    "best_capacity_label",
    "build_payload",
    "filter_regions",
    "parse_capacities",
]
