"""
Core configuration and settings for the Review Service.

Every option is read from the environment (or a local .env file) through
pydantic-settings. Field names match their environment variable names
case-insensitively, e.g. ``mongodb_host`` <- ``MONGODB_HOST``.
"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Service information
    service_name: str = "review-service"
    service_version: str = "1.0.0"
    environment: str = "development"
    host: str = "0.0.0.0"  # nosec B104
    port: int = 8000
    app_url: str = "http://localhost:8000"

    # Database configuration
    mongodb_uri: Optional[str] = None
    mongodb_host: str = "localhost"
    mongodb_port: int = 27017
    mongodb_username: Optional[str] = None
    mongodb_password: Optional[str] = None
    mongodb_database: str = "reviews_db"
    mongodb_auth_source: str = "admin"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "console"
    log_to_file: bool = False
    log_to_console: bool = True
    log_file_path: str = "logs/review-service.log"
    correlation_id_header: str = "X-Correlation-ID"

    # Queues
    statistics_queue: str = "statistics"
    cache_invalidation_queue: str = "cache-invalidation"
    statistics_visibility_timeout: int = 300
    cache_invalidation_visibility_timeout: int = 120
    worker_poll_interval: float = 1.0

    # Aggregation
    statistics_page_size: int = 100
    statistics_max_iterations: int = 10_000
    statistics_recompute_on_miss: bool = True

    # Translation provider
    google_translate_api_key: Optional[str] = None
    google_translate_endpoint: str = "https://translation.googleapis.com/language/translate/v2"
    translation_timeout: float = 10.0

    # AWS defaults, shared by CloudFront and S3 unless overridden
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_default_region: str = "us-east-1"

    # CDN invalidation
    cloudfront_distribution_id: Optional[str] = None
    cloudfront_region: Optional[str] = None
    cloudfront_key: Optional[str] = None
    cloudfront_secret: Optional[str] = None
    cloudfront_caller_reference_prefix: str = "reviews"

    # Media storage
    filesystem_disk: str = "public"
    media_local_root: str = "storage/app"
    media_public_root: str = "storage/app/public"
    aws_bucket: Optional[str] = None

    # Dapr secret store
    dapr_enabled: bool = False
    dapr_secret_store: str = "local-secret-store"

    # Rate limiting
    rate_limit_enabled: bool = True
    review_create_rate_limit: str = "10/minute"

    # Accepted media uploads
    media_allowed_extensions: List[str] = Field(
        default_factory=lambda: ["jpeg", "png", "jpg", "gif", "mp4", "mov", "avi"]
    )
    media_max_bytes: int = 10 * 1024 * 1024

    @property
    def visibility_timeouts(self) -> Dict[str, int]:
        return {
            self.statistics_queue: self.statistics_visibility_timeout,
            self.cache_invalidation_queue: self.cache_invalidation_visibility_timeout,
        }

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "local")


# Global config instance
config = Config()
