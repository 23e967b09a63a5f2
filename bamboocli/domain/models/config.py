"""Read-only configuration structures consumed by the API client.

Built by the configuration loader (infrastructure.config.settings) and
handed to the client at construction time.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .common import (
    ANALYTICS,
    COMPANY,
    DEFAULT_RESOURCE_CLASS,
    EMPLOYEES,
    REPORTS,
    TIME_OFF,
    ResourceClass,
)

DEFAULT_BASE_URL_TEMPLATE = "https://api.bamboohr.com/api/gateway.php/{subdomain}/v1"


@dataclass(frozen=True)
class ResourceClassConfig:
    """Cache TTL and fixed-window rate budget for one resource class."""
    cache_ttl_seconds: float
    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must not be negative.")
        if self.max_requests <= 0 or self.window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive.")


def default_resource_classes() -> Dict[ResourceClass, ResourceClassConfig]:
    """Built-in resource classes: volatile data short-lived, company metadata long-lived."""
    return {
        EMPLOYEES: ResourceClassConfig(cache_ttl_seconds=300, max_requests=60, window_seconds=60),
        TIME_OFF: ResourceClassConfig(cache_ttl_seconds=300, max_requests=60, window_seconds=60),
        REPORTS: ResourceClassConfig(cache_ttl_seconds=600, max_requests=30, window_seconds=60),
        ANALYTICS: ResourceClassConfig(cache_ttl_seconds=900, max_requests=20, window_seconds=60),
        COMPANY: ResourceClassConfig(cache_ttl_seconds=3600, max_requests=30, window_seconds=60),
        DEFAULT_RESOURCE_CLASS: ResourceClassConfig(cache_ttl_seconds=300, max_requests=60, window_seconds=60),
    }


def resolve_resource_class(
    classes: Mapping[ResourceClass, ResourceClassConfig], resource_class: ResourceClass
) -> Optional[ResourceClassConfig]:
    """Config for a class, falling back to the default class (None if neither exists)."""
    return classes.get(resource_class) or classes.get(DEFAULT_RESOURCE_CLASS)


@dataclass(frozen=True)
class ClientSettings:
    """Everything the resilient client needs to know at construction time."""
    api_key: str
    subdomain: str
    base_url: Optional[str] = None
    request_timeout_seconds: float = 30.0
    max_retry_attempts: int = 3
    retry_max_delay_ms: float = 30_000
    retry_jitter_ms: float = 1_000
    coalesce_requests: bool = False
    resource_classes: Dict[ResourceClass, ResourceClassConfig] = field(default_factory=default_resource_classes)

    def __post_init__(self) -> None:
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive.")
        if self.max_retry_attempts < 0:
            raise ValueError("max_retry_attempts must not be negative.")
        if DEFAULT_RESOURCE_CLASS not in self.resource_classes:
            raise ValueError(f"resource_classes must define '{DEFAULT_RESOURCE_CLASS}'.")

    @property
    def effective_base_url(self) -> str:
        return self.base_url or DEFAULT_BASE_URL_TEMPLATE.format(subdomain=self.subdomain)
