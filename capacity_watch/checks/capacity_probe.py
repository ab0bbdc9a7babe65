"""Capacity probe: classify one resource type's provider report."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from ..capacity_client import CapacityClient
from ..models.types import CheckResult, ErrorKind, RegionCapacity, ResourceType

logger = logging.getLogger(__name__)


def parse_capacities(payload: Any) -> Optional[list[RegionCapacity]]:
    """Parse the provider payload into region capacities.

    Returns:
        The regions in provider order, or None if the payload is malformed
    """
    if not isinstance(payload, dict):
        return None
    capacities = payload.get("capacities")
    if not isinstance(capacities, list):
        return None

    regions = []
    for entry in capacities:
        if not isinstance(entry, dict):
            return None
        region = entry.get("region")
        capacity = entry.get("capacity")
        if not isinstance(region, str) or not isinstance(capacity, str):
            return None
        regions.append(RegionCapacity(region=region, capacity=capacity))
    return regions


def filter_regions(regions: list[RegionCapacity], allowed: Iterable[str]) -> list[RegionCapacity]:
    """Keep only allow-listed regions. An empty allow-list keeps everything."""
    allowed = set(allowed)
    if not allowed:
        return list(regions)
    return [r for r in regions if r.region in allowed]


def best_capacity_label(regions: Iterable[RegionCapacity]) -> Optional[str]:
    """Pick the "best capacity" diagnostic for an unavailable resource.

    The label is the minimum under case-insensitive string ordering, not a
    severity ranking: "LOW" sorts before "NONE", so any LOW region wins over
    NONE. Unknown labels take part in the same textual comparison.
    """
    lowest = None
    for r in regions:
        if lowest is None or r.capacity.lower() < lowest.lower():
            lowest = r.capacity
    return lowest


class CapacityProbe:
    """Queries the provider for one resource type and classifies the answer.

    ``probe`` never raises: every failure comes back as a CheckResult with
    ``error_kind`` set.
    """

    def __init__(
        self,
        client: CapacityClient,
        regions_to_check: Iterable[str] = (),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = client
        self.regions_to_check = list(regions_to_check)
        self.clock = clock

    def _result(self, resource_type: ResourceType, **kwargs) -> CheckResult:
        return CheckResult(
            resource_type_id=resource_type.id,
            size_slug=resource_type.size_slug,
            image=resource_type.default_image,
            checked_at=self.clock(),
            **kwargs,
        )

    async def probe(self, resource_type: ResourceType) -> CheckResult:
        """Check capacity for a single resource type.

        Args:
            resource_type: The resource type to check

        Returns:
            CheckResult describing availability or the failure
        """
        logger.info(f"Checking capacity for {resource_type}")

        try:
            payload = await self.client.query_capacity(resource_type.size_slug)
        except ValueError as e:
            # Body was not JSON
            logger.warning(f"Undecodable capacity response for {resource_type.id}: {e}")
            payload = None
        except Exception as e:
            logger.error(f"Error checking capacity for {resource_type.id}: {e}")
            return self._result(
                resource_type,
                available=False,
                message=str(e) or "Request failed",
                error_kind=ErrorKind.REQUEST_FAILED,
            )

        regions = parse_capacities(payload)
        if regions is None:
            logger.warning(f"Invalid capacity response for {resource_type.id}")
            return self._result(
                resource_type,
                available=False,
                message="Invalid response from DigitalOcean API",
                error_kind=ErrorKind.INVALID_RESPONSE,
            )

        filtered = filter_regions(regions, self.regions_to_check)
        if not filtered:
            logger.info(f"No allow-listed regions reported for {resource_type.id}")
            return self._result(
                resource_type,
                available=False,
                message="No capacity information available for specified regions",
                error_kind=ErrorKind.NO_REGIONS,
            )

        available_regions = [r for r in filtered if r.is_available]
        if available_regions:
            result = self._result(
                resource_type,
                available=True,
                message=f"GPU is available in {len(available_regions)} region(s)",
                regions=filtered,
                available_regions=available_regions,
            )
        else:
            best = best_capacity_label(filtered)
            result = self._result(
                resource_type,
                available=False,
                message=f"GPU is not available (Best capacity: {best or 'NONE'})",
                error_kind=ErrorKind.NO_CAPACITY,
                regions=filtered,
                available_regions=[],
                best_capacity=best,
            )

        logger.info(str(result))
        return result
