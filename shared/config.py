"""
Shared configuration management for the Storefront Access Layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Remote key-value cache
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_pattern_invalidation: bool = Field(default=False)

    # Cache TTL overrides (seconds); None keeps the tier default
    cache_ttl_categories: Optional[int] = Field(default=None)
    cache_ttl_books_by_category: Optional[int] = Field(default=None)
    cache_ttl_book_data: Optional[int] = Field(default=None)
    cache_ttl_search_results: Optional[int] = Field(default=None)
    cache_ttl_image_urls: Optional[int] = Field(default=None)
    super_cache_ttl: int = Field(default=60 * 60)

    # Upstream catalog provider
    catalog_environment: str = Field(default="sandbox")
    catalog_base_url: Optional[str] = Field(default=None)
    catalog_access_token: Optional[str] = Field(default=None)
    catalog_api_version: str = Field(default="2025-01-09")
    catalog_retry_attempts: int = Field(default=4)
    catalog_retry_base_delay: float = Field(default=0.5)
    catalog_timeout: float = Field(default=10.0)
    catalog_location_id: Optional[str] = Field(default=None)

    # Vector search provider
    search_api_key: Optional[str] = Field(default=None)
    search_index_host: Optional[str] = Field(default=None)
    search_namespace: str = Field(default="books")
    search_api_version: str = Field(default="2025-04")

    # Events feed
    events_api_key: Optional[str] = Field(default=None)
    events_spreadsheet_id: Optional[str] = Field(default=None)
    events_range: str = Field(default="Events!A2:G50")

    # Store defaults (comma separated, index aligned)
    default_category_ids: str = Field(default="")
    default_category_names: str = Field(default="")

    # Cache administration
    cache_admin_username: str = Field(default="admin")
    cache_admin_password: str = Field(default="change_me_in_production")
    cache_admin_key: Optional[str] = Field(default=None)

    def resolved_catalog_base_url(self) -> str:
        """Return the catalog API root for the configured environment."""
        if self.catalog_base_url:
            return self.catalog_base_url.rstrip("/")
        if self.catalog_environment == "production":
            return "https://connect.squareup.com"
        return "https://connect.squareupsandbox.com"

    def default_categories(self) -> List[dict]:
        """Statically configured categories used when nothing is cached."""
        ids = _split_csv(self.default_category_ids)
        names = _split_csv(self.default_category_names)
        return [
            {"id": category_id, "name": names[i] if i < len(names) and names[i] else f"Category {i + 1}"}
            for i, category_id in enumerate(ids)
        ]


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]
