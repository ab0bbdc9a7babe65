"""Configuration management for GPU capacity monitoring."""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .models.types import ResourceType


class ResourceTypeSpec(BaseModel):
    """One entry of the resource type table."""

    size: str
    image: Optional[str] = None


DEFAULT_RESOURCE_TYPES: dict[str, dict[str, Optional[str]]] = {
    "L40S": {"size": "gpu-l40sx1-48gb", "image": None},
    "H100-1X": {"size": "gpu-h100x1-80gb", "image": "gpu-h100x1-base"},
    "H100-8X": {"size": "gpu-h100x8-640gb", "image": "gpu-h100x8-base"},
}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider API Settings
    do_api_token: str = Field(
        ...,
        description="DigitalOcean API token used to query droplet capacity",
    )
    do_api_base_url: str = Field(
        default="https://api.digitalocean.com",
        description="Base URL for the DigitalOcean API",
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single capacity query",
    )

    # Sweep Settings
    check_interval_seconds: float = Field(
        default=100.0,
        gt=0,
        description="Seconds between scheduled availability sweeps",
    )
    probe_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay between capacity queries within one sweep",
    )
    regions_to_check: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["nyc1", "sfo3", "fra1"],
        description="Regions to consider (comma-separated); empty means all regions",
    )
    resource_types: dict[str, ResourceTypeSpec] = Field(
        default_factory=lambda: {
            type_id: ResourceTypeSpec(**spec) for type_id, spec in DEFAULT_RESOURCE_TYPES.items()
        },
        description="Resource types to watch as JSON: id -> {size, image}",
    )

    # Notification Settings
    notification_cooldown_seconds: float = Field(
        default=3600.0,
        ge=0,
        description="Minimum time between notifications for the same subscriber and resource type",
    )
    max_concurrent_deliveries: Optional[int] = Field(
        default=None,
        gt=0,
        description="Cap on simultaneous push deliveries (unbounded if unset)",
    )
    push_public_key: Optional[str] = Field(
        default=None,
        description="VAPID public key handed to clients that register for push",
    )
    vapid_private_key: Optional[str] = Field(
        default=None,
        description="VAPID private key used to sign Web Push messages",
    )
    vapid_subject: str = Field(
        default="mailto:example@example.com",
        description="Contact URI sent in the VAPID claims",
    )
    push_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single push delivery",
    )
    droplet_create_url: str = Field(
        default="https://cloud.digitalocean.com/droplets/new",
        description="Link included in availability notifications",
    )
    prune_expired_subscriptions: bool = Field(
        default=False,
        description="Remove subscribers whose push destination reported expired",
    )
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for sweep failure alerts",
    )

    # Operational Settings
    dry_run_mode: bool = Field(
        default=False,
        description="If true, log notifications instead of delivering them",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for scripts",
    )

    @field_validator("regions_to_check", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: Any):
        """Parse comma-separated string into list."""
        if isinstance(v, str):
            return [region.strip() for region in v.split(",") if region.strip()]
        return v or []

    @field_validator("resource_types")
    @classmethod
    def validate_resource_types(cls, v):
        """Require at least one resource type."""
        if not v:
            raise ValueError("At least one resource type must be configured")
        return v

    def load_resource_types(self) -> list[ResourceType]:
        """Build the static resource type table in configuration order."""
        return [
            ResourceType(id=type_id, size_slug=spec.size, default_image=spec.image)
            for type_id, spec in self.resource_types.items()
        ]


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings
