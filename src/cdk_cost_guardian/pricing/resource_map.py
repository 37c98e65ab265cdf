"""Resource map: declarative pricing rules keyed by CloudFormation resource type.

The map is a versioned, hand-edited JSON document (``config/resource-map.json``)::

    {
      "_free": ["AWS::IAM::Role", ...],
      "AWS::EC2::Instance": {
        "serviceCode": "AmazonEC2",
        "unit": "Hrs",
        "monthlyHours": 730,
        "filters": [
          {"Field": "instanceType", "Value": {"cfProperty": "InstanceType"}},
          {"Field": "operatingSystem", "Value": {"default": "Linux"}}
        ]
      }
    }

Keys starting with ``_`` are metadata rather than resource types.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from cdk_cost_guardian.diff.models import ResourceChange
from cdk_cost_guardian.exceptions import InputError

Direction = Literal["old", "new"]

FREE_KEY = "_free"
_NULL_LIKE = ("", "null", "undefined")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _NULL_LIKE
    if isinstance(value, (list, dict)):
        return not value
    return False


def _as_filter_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def property_value(resource: ResourceChange, path: str, direction: Direction) -> Any:
    """
    Read a property value of a resource change for one pricing direction.

    Dotted paths (``ClusterConfig.InstanceType``) fall back to walking into
    the value of the top-level property when no property carries the full
    dotted name.

    Returns:
        The raw value, or None when the property is absent or empty.
    """
    attr = "new_value" if direction == "new" else "old_value"

    prop = resource.get_property(path)
    if prop is not None:
        value = getattr(prop, attr)
        return None if _is_empty(value) else value

    head, _, rest = path.partition(".")
    if not rest:
        return None
    prop = resource.get_property(head)
    if prop is None:
        return None

    value: Any = getattr(prop, attr)
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    for key in rest.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return None if _is_empty(value) else value


class ValueSpec(BaseModel):
    """Where a filter value comes from: a literal, a resource property, or both."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    default: str | None = None
    cf_property: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cfProperty", "fromProperty", "cf_property"),
    )

    @model_validator(mode="after")
    def _requires_source(self) -> ValueSpec:
        if self.default is None and self.cf_property is None:
            raise ValueError("filter value needs a 'default' or a 'cfProperty'")
        return self

    def resolve(self, resource: ResourceChange, direction: Direction) -> str | None:
        """
        Resolve to a concrete filter value.

        Returns:
            The property value for the direction, else the default, else None
            (meaning the filter is left out of the query).
        """
        if self.cf_property:
            value = property_value(resource, self.cf_property, direction)
            if value is not None:
                return _as_filter_value(value)
        if _is_empty(self.default):
            return None
        return self.default


class FilterSpec(BaseModel):
    """One Pricing API filter field and how to obtain its value."""

    model_config = ConfigDict(populate_by_name=True)

    field: str = Field(validation_alias=AliasChoices("Field", "field"))
    value: ValueSpec = Field(validation_alias=AliasChoices("Value", "value"))


class PricingRule(BaseModel):
    """How to price one resource type."""

    model_config = ConfigDict(populate_by_name=True)

    service_code: str = Field(validation_alias=AliasChoices("serviceCode", "service_code"))
    unit: str = ""
    monthly_hours: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("monthlyHours", "monthly_hours"),
    )
    monthly_quantity: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("monthlyQuantity", "monthly_quantity"),
    )
    note: str | None = None
    filters: list[FilterSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_multiplier(self) -> PricingRule:
        if self.monthly_hours is not None and self.monthly_quantity is not None:
            raise ValueError("set at most one of 'monthlyHours' and 'monthlyQuantity'")
        return self

    def resolve_filters(
        self, resource: ResourceChange, direction: Direction
    ) -> list[tuple[str, str]]:
        """Resolve the rule's filters in order, omitting those without a value."""
        resolved = []
        for spec in self.filters:
            value = spec.value.resolve(resource, direction)
            if value is not None:
                resolved.append((spec.field, value))
        return resolved

    def monthly_cost(self, unit_price: float) -> float:
        """Scale a unit price to a monthly cost."""
        if self.monthly_hours is not None:
            return unit_price * self.monthly_hours
        if self.monthly_quantity is not None:
            return unit_price * self.monthly_quantity
        return unit_price

    def change_detail(self, resource: ResourceChange) -> str:
        """
        Describe the change of the first property-backed filter whose value changed.

        Returns:
            ``"old → new"`` or an empty string.
        """
        for spec in self.filters:
            if not spec.value.cf_property:
                continue
            old = property_value(resource, spec.value.cf_property, "old")
            new = property_value(resource, spec.value.cf_property, "new")
            if old is not None and new is not None and old != new:
                return f"{_as_filter_value(old)} → {_as_filter_value(new)}"
        return ""


class ResourceMap(BaseModel):
    """Pricing rules per resource type plus the list of free resource types."""

    rules: dict[str, PricingRule] = Field(default_factory=dict)
    free: frozenset[str] = Field(default_factory=frozenset)

    def is_free(self, resource_type: str) -> bool:
        return resource_type in self.free

    def rule_for(self, resource_type: str) -> PricingRule | None:
        return self.rules.get(resource_type)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceMap:
        """
        Build a resource map from the JSON document layout.

        Raises:
            InputError: If the document is not an object or a rule is malformed.
        """
        if not isinstance(data, dict):
            raise InputError("Resource map must be a JSON object")

        free = data.get(FREE_KEY, [])
        if not isinstance(free, list) or not all(isinstance(t, str) for t in free):
            raise InputError(f"Resource map '{FREE_KEY}' must be a list of resource types")

        rules: dict[str, PricingRule] = {}
        for resource_type, rule in data.items():
            if resource_type.startswith("_"):
                continue
            try:
                rules[resource_type] = PricingRule.model_validate(rule)
            except ValidationError as e:
                raise InputError(
                    f"Malformed pricing rule for '{resource_type}': {e}"
                ) from e

        return cls(rules=rules, free=frozenset(free))


def load_resource_map(source: str | Path | dict[str, Any]) -> ResourceMap:
    """
    Load a resource map from a file path, its JSON text, or a decoded mapping.

    A string whose first non-blank character is ``{`` is parsed as the JSON
    document itself; any other string is a path.

    Raises:
        InputError: If the file cannot be read, is not valid JSON, or is malformed.
    """
    if isinstance(source, dict):
        return ResourceMap.from_dict(source)

    if isinstance(source, str) and source.lstrip().startswith("{"):
        try:
            data = json.loads(source)
        except json.JSONDecodeError as e:
            raise InputError(f"Resource map is not valid JSON: {e}") from e
        return ResourceMap.from_dict(data)

    path = Path(source)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise InputError(f"Resource map not found: {path}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputError(f"Resource map {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise InputError(f"Cannot read resource map {path}: {e}") from e

    return ResourceMap.from_dict(data)
