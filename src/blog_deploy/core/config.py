"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables (or a ``.env`` file)
following 12-factor principles. CLI options override individual fields.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deploy settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Site
    site_dir: str = Field(
        default="public",
        description="Directory containing the rendered site",
    )
    deployment_config: str = Field(
        default="hugo.toml",
        description="Site config file holding the [deployment] section",
    )

    # Target
    deploy_target: str | None = Field(
        default=None,
        description="Name of the deployment target (defaults to the first configured)",
    )
    deploy_bucket: str | None = Field(
        default=None,
        description="Bucket override for the selected target",
    )
    deploy_region: str | None = Field(
        default=None,
        description="Region override for the selected target",
    )
    deploy_prefix: str | None = Field(
        default=None,
        description="Key prefix override within the bucket",
    )
    cloudfront_distribution_id: str | None = Field(
        default=None,
        description="CloudFront distribution override for invalidation",
    )
    aws_endpoint_url: str | None = Field(
        default=None,
        description="Custom S3-compatible endpoint URL",
    )

    # Sync behaviour
    max_deletes: int = Field(
        default=256,
        description="Maximum number of remote files a run may delete (-1 for no limit)",
        ge=-1,
    )
    workers: int = Field(
        default=10,
        description="Concurrent uploads within a priority group",
        gt=0,
    )
    strict_ordering: bool = Field(
        default=True,
        description="Finish each upload priority group before starting the next",
    )
    invalidate_cdn: bool = Field(
        default=True,
        description="Invalidate changed paths on the CDN after a deploy",
    )
    invalidation_path_limit: int = Field(
        default=1000,
        description="Above this many changed paths, invalidate /* instead",
        gt=0,
    )

    # Network
    upload_max_attempts: int = Field(
        default=3,
        description="Attempts per file before aborting the run",
        gt=0,
    )
    retry_base_delay: float = Field(
        default=1.0,
        description="Initial upload retry backoff in seconds (doubles each attempt)",
        ge=0,
    )
    connect_timeout: float = Field(
        default=10.0,
        description="Connection timeout for AWS requests in seconds",
        gt=0,
    )
    read_timeout: float = Field(
        default=60.0,
        description="Read timeout for AWS requests in seconds",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit stderr logs as JSON lines",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log_level: {v!r}"
            raise ValueError(msg)
        return level


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
