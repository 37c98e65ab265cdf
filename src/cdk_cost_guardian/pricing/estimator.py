"""
Cost delta estimation for CDK changes.

Walks every changed resource of a diff report, prices it before and after the
change using the resource map's declarative rules, and aggregates a monthly
delta. A resource that cannot be priced is reported with ``delta=None``
rather than failing the run; only malformed inputs raise.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

from cdk_cost_guardian.diff.models import (
    Action,
    ChangeReport,
    ResourceChange,
    StackDiff,
    clean_id,
    load_change_report,
    short_type,
)
from cdk_cost_guardian.exceptions import InputError
from cdk_cost_guardian.pricing.cache import PriceCache
from cdk_cost_guardian.pricing.client import AWSPricingLookup, PricingLookup
from cdk_cost_guardian.pricing.regions import get_pricing_location
from cdk_cost_guardian.pricing.resource_map import (
    Direction,
    PricingRule,
    ResourceMap,
    load_resource_map,
)

logger = logging.getLogger(__name__)

UnpricedReason = Literal["no_mapping", "no_quote", "timeout"]

# Which side of the change each action is priced on.
PRICED_DIRECTIONS: dict[str, tuple[Direction, ...]] = {
    "ADD": ("new",),
    "REMOVE": ("old",),
    "UPDATE": ("old", "new"),
}

SKIPPED_TYPES = ("Unknown",)


class CostRow(BaseModel):
    """Estimated monthly cost impact of one changed resource."""

    stack: str
    logical_id: str = ""
    resource_id: str
    resource_type: str
    detail: str = ""
    action: Action
    before: float | None = None
    after: float | None = None
    delta: float | None = None  # None: no pricing data, 0.0: priced and unchanged
    reason: UnpricedReason | None = None


class CostEstimate(BaseModel):
    """Result of one estimation run."""

    region: str
    location: str
    rows: list[CostRow] = Field(default_factory=list)
    total_delta: float = 0.0
    priced_count: int = 0
    free_count: int = 0
    unpriced_count: int = 0
    lookups: int = 0
    notes: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def unmapped_count(self) -> int:
        """Unpriced rows caused by a missing resource map entry."""
        return sum(1 for row in self.rows if row.reason == "no_mapping")

    @computed_field
    @property
    def unmapped_types(self) -> list[str]:
        """Resource types to add to the resource map, in first-seen order."""
        return list(
            dict.fromkeys(row.resource_type for row in self.rows if row.reason == "no_mapping")
        )

    @property
    def is_complete(self) -> bool:
        return self.unpriced_count == 0


class CostEstimator:
    """
    Estimate the monthly cost delta of a change report.

    Each call to ``estimate`` owns a fresh PriceCache, so repeated or
    concurrent runs never share lookup results.
    """

    def __init__(
        self,
        lookup: PricingLookup,
        max_workers: int = 1,
        timeout_seconds: float | None = None,
    ):
        """
        Initialize the estimator.

        Args:
            lookup: Pricing lookup service.
            max_workers: Threads used to prefetch prices. 1 prices sequentially.
            timeout_seconds: Budget for a whole run. Resources not priced in
                time are reported with reason "timeout".
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.lookup = lookup
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds

    def estimate(
        self,
        report: ChangeReport | dict[str, Any] | str,
        resource_map: ResourceMap | dict[str, Any] | str | Path,
        region: str,
    ) -> CostEstimate:
        """
        Estimate the monthly cost impact of every changed resource.

        Args:
            report: Change report, or its JSON document.
            resource_map: Resource map, its JSON document, or a path to it.
            region: AWS region code the stacks deploy to.

        Returns:
            CostEstimate with one row per changed, non-free resource.

        Raises:
            InputError: If the report, resource map or region is malformed.
        """
        if not isinstance(report, ChangeReport):
            report = load_change_report(report)
        if not isinstance(resource_map, ResourceMap):
            resource_map = load_resource_map(resource_map)
        if not isinstance(region, str) or not region.strip():
            raise InputError("Region must be a non-empty region code")

        deadline = (
            time.monotonic() + self.timeout_seconds
            if self.timeout_seconds is not None
            else None
        )
        cache = PriceCache(self.lookup)
        location = get_pricing_location(region)
        logger.info(
            "Pricing region: %s (%s); %d priced types, %d free",
            region,
            location,
            len(resource_map.rules),
            len(resource_map.free),
        )

        free_count = 0
        work: list[tuple[StackDiff, ResourceChange]] = []
        for stack in report.changed_stacks:
            for resource in stack.resources:
                if resource.resource_type.startswith("_") or resource.resource_type in SKIPPED_TYPES:
                    continue
                if resource_map.is_free(resource.resource_type):
                    free_count += 1
                    continue
                work.append((stack, resource))

        if self.max_workers > 1:
            self._prefetch(work, resource_map, cache, region, deadline)

        result = CostEstimate(region=region, location=location, free_count=free_count)
        notes: dict[str, None] = {}

        for stack, resource in work:
            rule = resource_map.rule_for(resource.resource_type)
            if rule is None:
                row = _unpriced_row(stack, resource, "no_mapping")
            elif _expired(resource, rule, cache, deadline):
                row = _unpriced_row(stack, resource, "timeout")
            else:
                row = self._price_resource(stack, resource, rule, cache, region, deadline)

            result.rows.append(row)
            if row.delta is None:
                result.unpriced_count += 1
                continue

            result.priced_count += 1
            result.total_delta += row.delta
            if rule is not None and rule.note:
                notes[rule.note] = None

        result.notes = list(notes)
        result.lookups = cache.misses
        logger.info(
            "Estimated %+.2f/mo: %d priced, %d unpriced, %d free, %d lookups",
            result.total_delta,
            result.priced_count,
            result.unpriced_count,
            result.free_count,
            result.lookups,
        )
        return result

    def _price_resource(
        self,
        stack: StackDiff,
        resource: ResourceChange,
        rule: PricingRule,
        cache: PriceCache,
        region: str,
        deadline: float | None,
    ) -> CostRow:
        logger.info(
            "  Pricing %s %s (%s)...",
            resource.action,
            resource.resource_type,
            resource.logical_id,
        )
        costs: dict[Direction, float | None] = {"old": None, "new": None}
        try:
            for direction in PRICED_DIRECTIONS[resource.action]:
                filters = rule.resolve_filters(resource, direction)
                quote = cache.get(
                    rule.service_code,
                    filters,
                    region,
                    timeout=_remaining(deadline),
                )
                if quote is not None:
                    costs[direction] = rule.monthly_cost(quote.usd)
        except FutureTimeoutError:
            logger.warning("Timed out pricing %s", resource.logical_id)
            return _unpriced_row(stack, resource, "timeout")

        before, after = costs["old"], costs["new"]
        if before is None and after is None:
            delta = None
        else:
            delta = (after or 0.0) - (before or 0.0)

        return CostRow(
            stack=stack.stack_name,
            logical_id=resource.logical_id,
            resource_id=clean_id(resource.logical_id),
            resource_type=short_type(resource.resource_type),
            detail=rule.change_detail(resource) if resource.action == "UPDATE" else "",
            action=resource.action,
            before=before,
            after=after,
            delta=delta,
            reason="no_quote" if delta is None else None,
        )

    def _prefetch(
        self,
        work: list[tuple[StackDiff, ResourceChange]],
        resource_map: ResourceMap,
        cache: PriceCache,
        region: str,
        deadline: float | None,
    ) -> None:
        """Warm the cache concurrently; the single-flight cache dedupes keys."""
        requests = []
        for _, resource in work:
            rule = resource_map.rule_for(resource.resource_type)
            if rule is None:
                continue
            for direction in PRICED_DIRECTIONS[resource.action]:
                requests.append((rule.service_code, rule.resolve_filters(resource, direction)))

        if not requests:
            return

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="pricing"
        )
        try:
            futures = [
                executor.submit(cache.get, service_code, filters, region)
                for service_code, filters in requests
            ]
            done, not_done = wait(futures, timeout=_remaining(deadline))
            if not_done:
                logger.warning("%d price lookups still pending at deadline", len(not_done))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def _expired(
    resource: ResourceChange,
    rule: PricingRule,
    cache: PriceCache,
    deadline: float | None,
) -> bool:
    """Past the deadline with at least one of the resource's lookups unfinished."""
    if deadline is None or time.monotonic() < deadline:
        return False
    return not all(
        cache.is_resolved(rule.service_code, rule.resolve_filters(resource, direction))
        for direction in PRICED_DIRECTIONS[resource.action]
    )


def _unpriced_row(
    stack: StackDiff, resource: ResourceChange, reason: UnpricedReason
) -> CostRow:
    return CostRow(
        stack=stack.stack_name,
        logical_id=resource.logical_id,
        resource_id=clean_id(resource.logical_id),
        resource_type=short_type(resource.resource_type),
        action=resource.action,
        reason=reason,
    )


def estimate(
    report: ChangeReport | dict[str, Any] | str,
    resource_map: ResourceMap | dict[str, Any] | str | Path,
    region: str,
    lookup: PricingLookup | None = None,
) -> CostEstimate:
    """
    Estimate a change report's monthly cost delta with default settings.

    Uses the AWS Pricing API unless another lookup service is given.
    """
    estimator = CostEstimator(lookup or AWSPricingLookup())
    return estimator.estimate(report, resource_map, region)
