"""Pydantic models for the CDK diff report consumed by the cost estimator.

The report is produced by the diff step of the CI pipeline. Keys follow that
tool's camelCase JSON; both the raw toolkit names (``hasDifferences``,
``resourceType``, ``changeImpact``) and the normalised ones (``hasDiff``,
``type``, ``impact``) are accepted.
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from cdk_cost_guardian.exceptions import InputError

Action = Literal["ADD", "UPDATE", "REMOVE"]

_HASH_SUFFIX = re.compile(r"[A-F0-9]{8}$", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def clean_id(logical_id: str) -> str:
    """Drop the CDK hash suffix from a logical ID and split camel case.

    ``MyBucketF68F3FF0`` becomes ``My Bucket``.
    """
    return _CAMEL_BOUNDARY.sub(r"\1 \2", _HASH_SUFFIX.sub("", logical_id))


def short_type(resource_type: str) -> str:
    """Return the last segment of a namespaced type (``AWS::EC2::Instance`` -> ``Instance``)."""
    return resource_type.split("::")[-1]


def display_value(value: Any, missing: str = "") -> str:
    """Render a property value for humans; empty values become ``missing``."""
    if value is None or value == "":
        return missing
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def environment_for(stack_name: str) -> str:
    """Guess the deployment environment from a stack name."""
    name = stack_name.lower()
    if "prod" in name:
        return "production"
    if "staging" in name:
        return "staging"
    return "dev"


class PropertyChange(BaseModel):
    """A single changed property of a resource."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    old_value: Any = Field(default=None, validation_alias=AliasChoices("oldValue", "old_value"))
    new_value: Any = Field(default=None, validation_alias=AliasChoices("newValue", "new_value"))
    impact: str = Field(
        default="UNKNOWN",
        validation_alias=AliasChoices("impact", "changeImpact"),
    )

    @property
    def will_replace(self) -> bool:
        return self.impact == "WILL_REPLACE"


class ResourceChange(BaseModel):
    """A resource added, updated or removed by the diff."""

    model_config = ConfigDict(populate_by_name=True)

    logical_id: str = Field(validation_alias=AliasChoices("logicalId", "logical_id"))
    resource_type: str = Field(
        validation_alias=AliasChoices("type", "resourceType", "resource_type")
    )
    action: Action
    properties: list[PropertyChange] = Field(default_factory=list)

    @property
    def will_replace(self) -> bool:
        return any(p.will_replace for p in self.properties)

    def get_property(self, name: str) -> PropertyChange | None:
        """Return the first property change with the given name, if any."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


class StackDrift(BaseModel):
    """Drift detection result for a stack."""

    status: Literal["DRIFTED", "IN_SYNC"]
    count: int = Field(default=0, ge=0)

    @property
    def drifted(self) -> bool:
        return self.status == "DRIFTED"


class StackDiff(BaseModel):
    """Diff result for one stack."""

    model_config = ConfigDict(populate_by_name=True)

    stack_name: str = Field(validation_alias=AliasChoices("stackName", "stack_name"))
    has_diff: bool = Field(
        default=False,
        validation_alias=AliasChoices("hasDiff", "hasDifferences", "has_diff"),
    )
    resources: list[ResourceChange] = Field(default_factory=list)
    drift: StackDrift | None = None  # None when drift detection did not run

    @property
    def environment(self) -> str:
        return environment_for(self.stack_name)

    def count(self, action: Action) -> int:
        return sum(1 for r in self.resources if r.action == action)

    def by_action(self) -> dict[str, list[ResourceChange]]:
        """Group resources by action, keeping the report order."""
        grouped: dict[str, list[ResourceChange]] = {"ADD": [], "UPDATE": [], "REMOVE": []}
        for resource in self.resources:
            grouped[resource.action].append(resource)
        return grouped


class ChangeReport(BaseModel):
    """Structured diff report across all stacks of a deployment."""

    success: bool = True
    error: str | None = None
    stacks: list[StackDiff] = Field(default_factory=list)

    @property
    def changed_stacks(self) -> list[StackDiff]:
        return [s for s in self.stacks if s.has_diff]

    @property
    def unchanged_stacks(self) -> list[StackDiff]:
        return [s for s in self.stacks if not s.has_diff]

    def count(self, action: Action) -> int:
        """Count resources with the given action across all stacks."""
        return sum(stack.count(action) for stack in self.stacks)

    @classmethod
    def combine(cls, reports: list[ChangeReport]) -> ChangeReport:
        """
        Merge per-account diff results into a single report.

        Stacks keep their order; the combined report succeeds only if every
        input report did.
        """
        errors = [r.error for r in reports if r.error]
        return cls(
            success=all(r.success for r in reports),
            error="; ".join(errors) or None,
            stacks=[stack for report in reports for stack in report.stacks],
        )


def load_change_report(data: str | bytes | dict[str, Any]) -> ChangeReport:
    """
    Parse a change report from JSON text or an already decoded mapping.

    Args:
        data: JSON document or dict produced by the diff step.

    Returns:
        ChangeReport: Validated report.

    Raises:
        InputError: If the document is not valid JSON or does not match the schema.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InputError(f"Change report is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InputError("Change report must be a JSON object")

    try:
        return ChangeReport.model_validate(data)
    except ValidationError as e:
        raise InputError(f"Malformed change report: {e}") from e
