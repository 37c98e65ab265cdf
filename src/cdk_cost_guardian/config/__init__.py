"""Configuration management for CDK Cost Guardian."""

from cdk_cost_guardian.config.schema import (
    AWSConfig,
    Config,
    PricingConfig,
    S3SyncConfig,
    SlackConfig,
)
from cdk_cost_guardian.config.loader import get_cached_config, load_config

__all__ = [
    "Config",
    "AWSConfig",
    "PricingConfig",
    "SlackConfig",
    "S3SyncConfig",
    "load_config",
    "get_cached_config",
]
