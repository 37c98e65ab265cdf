"""CDK diff report models and helpers."""

from cdk_cost_guardian.diff.models import (
    ChangeReport,
    PropertyChange,
    ResourceChange,
    StackDiff,
    StackDrift,
    clean_id,
    display_value,
    environment_for,
    load_change_report,
    short_type,
)

__all__ = [
    "ChangeReport",
    "StackDiff",
    "StackDrift",
    "ResourceChange",
    "PropertyChange",
    "load_change_report",
    "clean_id",
    "display_value",
    "short_type",
    "environment_for",
]
