"""Pydantic configuration schema for CDK Cost Guardian."""

from typing import Literal

from pydantic import BaseModel, Field


class AWSConfig(BaseModel):
    """AWS account configuration."""

    region: str = "us-east-1"  # Region the stacks deploy to


class PricingConfig(BaseModel):
    """Cost estimation configuration."""

    resource_map_path: str = "config/resource-map.json"
    api_region: str = "us-east-1"  # Pricing API endpoint, only in a few regions
    price_selector: Literal["first_nonzero_usd", "first_dimension", "max_usd"] = (
        "first_nonzero_usd"
    )
    max_workers: int = Field(default=1, ge=1, le=32)
    timeout_seconds: float | None = Field(default=None, gt=0)
    connect_timeout: float = Field(default=10, gt=0)
    read_timeout: float = Field(default=10, gt=0)
    max_attempts: int = Field(default=3, ge=1, le=10)


class SlackConfig(BaseModel):
    """Slack notification configuration."""

    enabled: bool = True
    webhook_url: str | None = None  # Usually from SLACK_WEBHOOK_URL
    webhook_secret_name: str | None = None  # Secrets Manager fallback
    webhook_secret_key: str = "webhook_url"
    username: str = "CDK Cost Guardian"
    max_stacks: int = Field(default=5, ge=1, le=20)
    timeout_seconds: float = Field(default=10, gt=0)


class S3SyncConfig(BaseModel):
    """Defaults for syncing a local directory to S3."""

    delete_removed: bool = False
    exclude_patterns: list[str] = Field(default_factory=lambda: [".git/*", ".DS_Store"])
    include_patterns: list[str] = Field(default_factory=list)
    extra_args: list[str] = Field(default_factory=list)


class Config(BaseModel):
    """Root configuration for CDK Cost Guardian."""

    project_name: str = "cdk-cost-guardian"
    environment: Literal["dev", "staging", "prod"] = "dev"

    aws: AWSConfig = Field(default_factory=AWSConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    s3_sync: S3SyncConfig = Field(default_factory=S3SyncConfig)
