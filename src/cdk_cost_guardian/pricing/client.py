"""Pricing lookup service backed by the AWS Price List API."""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from cdk_cost_guardian.pricing.regions import get_pricing_location

logger = logging.getLogger(__name__)

# The Pricing API endpoint only exists in a few regions.
PRICING_API_REGION = "us-east-1"

Filters = list[tuple[str, str]]


@dataclass(frozen=True)
class PriceQuote:
    """Unit price for one pricing product."""

    usd: float
    unit: str = ""
    description: str = ""


PriceSelector = Callable[[dict[str, Any]], PriceQuote | None]


def _on_demand_dimensions(product: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Yield the on-demand price dimensions of a product in document order."""
    on_demand = product.get("terms", {}).get("OnDemand") or {}
    for offer in on_demand.values():
        for dimension in (offer.get("priceDimensions") or {}).values():
            yield dimension


def _quote(dimension: dict[str, Any], usd: float) -> PriceQuote:
    return PriceQuote(
        usd=usd,
        unit=dimension.get("unit", ""),
        description=dimension.get("description", ""),
    )


def _usd(dimension: dict[str, Any]) -> float:
    try:
        return float(dimension.get("pricePerUnit", {}).get("USD") or 0)
    except (TypeError, ValueError):
        return 0.0


def first_nonzero_usd(product: dict[str, Any]) -> PriceQuote | None:
    """
    Pick the first on-demand dimension with a non-zero USD price.

    Best-effort heuristic: products with tiered or free-tier dimensions are
    priced at whichever paid tier the API happens to list first.
    """
    for dimension in _on_demand_dimensions(product):
        usd = _usd(dimension)
        if usd > 0:
            return _quote(dimension, usd)
    return None


def first_dimension(product: dict[str, Any]) -> PriceQuote | None:
    """Pick the first on-demand dimension, even when it is free."""
    for dimension in _on_demand_dimensions(product):
        return _quote(dimension, _usd(dimension))
    return None


def max_usd(product: dict[str, Any]) -> PriceQuote | None:
    """Pick the most expensive on-demand dimension (a pessimistic estimate)."""
    best: PriceQuote | None = None
    for dimension in _on_demand_dimensions(product):
        usd = _usd(dimension)
        if usd > 0 and (best is None or usd > best.usd):
            best = _quote(dimension, usd)
    return best


PRICE_SELECTORS: dict[str, PriceSelector] = {
    "first_nonzero_usd": first_nonzero_usd,
    "first_dimension": first_dimension,
    "max_usd": max_usd,
}


def get_price_selector(name: str) -> PriceSelector:
    """Look up a price selector by its configured name."""
    try:
        return PRICE_SELECTORS[name]
    except KeyError:
        raise ValueError(
            f"Unknown price selector '{name}'. Choose from: {', '.join(PRICE_SELECTORS)}"
        ) from None


class PricingLookup(ABC):
    """A service that returns a unit price for a set of filter criteria."""

    @abstractmethod
    def lookup(
        self,
        service_code: str,
        filters: Filters,
        region: str,
    ) -> PriceQuote | None:
        """
        Look up the unit price of a product.

        Implementations must not raise: any failure is reported as None,
        the same as "no matching product".

        Args:
            service_code: Pricing service identifier (e.g., 'AmazonEC2').
            filters: (field, value) pairs to match.
            region: Region code the resource is deployed to.

        Returns:
            PriceQuote, or None if no product matched or the lookup failed.
        """
        pass


class AWSPricingLookup(PricingLookup):
    """Query on-demand prices from the AWS Price List API."""

    def __init__(
        self,
        api_region: str = PRICING_API_REGION,
        selector: PriceSelector = first_nonzero_usd,
        pricing_client: boto3.client | None = None,
        connect_timeout: float = 10,
        read_timeout: float = 10,
        max_attempts: int = 3,
    ):
        """
        Initialize the pricing lookup.

        Args:
            api_region: Region of the Pricing API endpoint.
            selector: Chooses a quote among a product's price dimensions.
            pricing_client: Optional boto3 Pricing client.
            connect_timeout: Seconds to wait for a connection.
            read_timeout: Seconds to wait for a response.
            max_attempts: Total attempts per call, including retries.
        """
        self.api_region = api_region
        self.selector = selector
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_attempts = max_attempts
        self._pricing_client = pricing_client
        self._client_lock = threading.Lock()

    @property
    def pricing_client(self) -> boto3.client:
        """Get or create the Pricing client."""
        with self._client_lock:
            if self._pricing_client is None:
                self._pricing_client = boto3.client(
                    "pricing",
                    region_name=self.api_region,
                    config=BotoConfig(
                        connect_timeout=self.connect_timeout,
                        read_timeout=self.read_timeout,
                        retries={"max_attempts": self.max_attempts, "mode": "standard"},
                    ),
                )
            return self._pricing_client

    def lookup(
        self,
        service_code: str,
        filters: Filters,
        region: str,
    ) -> PriceQuote | None:
        location = get_pricing_location(region)
        api_filters = [
            {"Type": "TERM_MATCH", "Field": field, "Value": value}
            for field, value in filters
        ]
        api_filters.append({"Type": "TERM_MATCH", "Field": "location", "Value": location})

        try:
            response = self.pricing_client.get_products(
                ServiceCode=service_code,
                Filters=api_filters,
                MaxResults=1,
            )
            price_list = response.get("PriceList") or []
            if not price_list:
                logger.info("No pricing product for %s %s", service_code, filters)
                return None

            product = price_list[0]
            if isinstance(product, str):
                product = json.loads(product)
            return self.selector(product)

        except (ClientError, BotoCoreError) as e:
            logger.warning("Pricing API error for %s: %s", service_code, e)
            return None
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Unreadable pricing response for %s: %s", service_code, e)
            return None
