"""GPU capacity watch: probe provider capacity and notify subscribers."""

from .service import CapacityWatchService, InvalidResourceTypesError

__all__ = [
    "CapacityWatchService",
    "InvalidResourceTypesError",
]
