"""Cost delta estimation against the AWS Pricing API."""

from cdk_cost_guardian.pricing.cache import PriceCache
from cdk_cost_guardian.pricing.client import (
    AWSPricingLookup,
    PriceQuote,
    PricingLookup,
    get_price_selector,
)
from cdk_cost_guardian.pricing.estimator import CostEstimate, CostEstimator, CostRow, estimate
from cdk_cost_guardian.pricing.resource_map import (
    FilterSpec,
    PricingRule,
    ResourceMap,
    ValueSpec,
    load_resource_map,
)

__all__ = [
    "CostEstimator",
    "CostEstimate",
    "CostRow",
    "estimate",
    "PricingLookup",
    "AWSPricingLookup",
    "PriceQuote",
    "PriceCache",
    "get_price_selector",
    "ResourceMap",
    "PricingRule",
    "FilterSpec",
    "ValueSpec",
    "load_resource_map",
]
