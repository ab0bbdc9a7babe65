"""Client for the DigitalOcean droplet capacity API."""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class CapacityClient:
    """Client for querying per-region droplet capacity."""

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.digitalocean.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the capacity API client.

        Args:
            api_token: API token for authentication
            base_url: Base URL for the DigitalOcean API
            timeout: Timeout in seconds for a single request
            transport: Optional transport override, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def query_capacity(self, size_slug: str) -> Any:
        """Fetch the capacity report for a droplet size.

        The payload is returned as decoded JSON without validation; callers
        decide what a well-formed report looks like.

        Args:
            size_slug: The droplet size slug to query

        Returns:
            Decoded JSON body, normally ``{"capacities": [{"region", "capacity"}, ...]}``

        Raises:
            httpx.HTTPError: If the API request fails
            ValueError: If the body is not valid JSON
        """
        logger.info(f"Fetching capacity for size: {size_slug}")

        try:
            response = await self.client.get(
                f"{self.base_url}/v2/droplets/capacity",
                params={"size": size_slug},
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                logger.error(
                    f"Rate limited when fetching capacity for {size_slug}. "
                    f"Retry-After: {e.response.headers.get('Retry-After')} seconds"
                )
            else:
                logger.error(f"Failed to fetch capacity for {size_slug}: {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch capacity for {size_slug}: {e}")
            raise
