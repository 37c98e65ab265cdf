"""Tests for the AWS pricing lookup and price selectors."""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cdk_cost_guardian.pricing.client import (
    AWSPricingLookup,
    PriceQuote,
    first_dimension,
    first_nonzero_usd,
    get_price_selector,
    max_usd,
)
from cdk_cost_guardian.pricing.regions import (
    REGION_LOCATIONS,
    get_pricing_location,
    supported_regions,
)


def _product(*prices):
    """A price list product with one on-demand offer and the given USD dimensions."""
    dimensions = {
        f"DIM{i}": {
            "unit": "Hrs",
            "description": f"tier {i}",
            "pricePerUnit": {"USD": price},
        }
        for i, price in enumerate(prices)
    }
    return {
        "product": {"sku": "ABC"},
        "terms": {"OnDemand": {"ABC.JRTCKXETXF": {"priceDimensions": dimensions}}},
    }


class TestPriceSelectors:
    """Tests for choosing a price from a price list document."""

    def test_first_nonzero_skips_free_tier(self):
        """Test that a free first tier is skipped for the first paid price."""
        quote = first_nonzero_usd(_product("0.0000000000", "0.0000166667", "0.0000133334"))
        assert quote.usd == pytest.approx(0.0000166667)
        assert quote.description == "tier 1"

    def test_first_nonzero_all_free(self):
        """Test that an all-free product prices at zero."""
        assert first_nonzero_usd(_product("0", "0.0")) is None

    def test_first_dimension_keeps_free(self):
        """Test that the first dimension is used even when free."""
        assert first_dimension(_product("0", "0.5")).usd == 0.0

    def test_max_usd(self):
        """Test picking the highest USD price."""
        assert max_usd(_product("0.1", "0.3", "0.2")).usd == pytest.approx(0.3)

    def test_no_on_demand_terms(self):
        """Test a product without on-demand terms."""
        assert first_nonzero_usd({"terms": {}}) is None
        assert first_dimension({}) is None

    def test_unparseable_price_is_zero(self):
        """Test that unparseable prices count as zero."""
        assert first_nonzero_usd(_product("n/a", "0.25")).usd == pytest.approx(0.25)

    def test_get_price_selector(self):
        """Test looking up selectors by name."""
        assert get_price_selector("max_usd") is max_usd
        with pytest.raises(ValueError, match="Unknown price selector"):
            get_price_selector("cheapest")


class TestRegions:
    """Tests for region to pricing location mapping."""

    def test_known_region(self):
        """Test a known region's pricing location."""
        assert get_pricing_location("eu-west-1") == "EU (Ireland)"

    def test_unknown_region_falls_back(self, caplog):
        """Test the logged fallback for unknown regions."""
        assert get_pricing_location("xx-nowhere-1") == "US East (N. Virginia)"
        assert "xx-nowhere-1" in caplog.text

    def test_supported_regions(self):
        """Test the list of supported regions."""
        assert supported_regions() == list(REGION_LOCATIONS)
        assert "us-east-1" in supported_regions()


class TestAWSPricingLookup:
    """Tests for AWSPricingLookup with a mocked boto3 client."""

    def test_builds_term_match_filters(self):
        """Test the TERM_MATCH filters sent to the API."""
        client = MagicMock()
        client.get_products.return_value = {"PriceList": [json.dumps(_product("0.0084"))]}
        lookup = AWSPricingLookup(pricing_client=client)

        quote = lookup.lookup("AmazonEC2", [("instanceType", "t3.micro")], "eu-west-1")

        assert quote == PriceQuote(usd=0.0084, unit="Hrs", description="tier 0")
        client.get_products.assert_called_once_with(
            ServiceCode="AmazonEC2",
            Filters=[
                {"Type": "TERM_MATCH", "Field": "instanceType", "Value": "t3.micro"},
                {"Type": "TERM_MATCH", "Field": "location", "Value": "EU (Ireland)"},
            ],
            MaxResults=1,
        )

    def test_empty_price_list(self):
        """Test that an empty price list is no quote."""
        client = MagicMock()
        client.get_products.return_value = {"PriceList": []}
        lookup = AWSPricingLookup(pricing_client=client)

        assert lookup.lookup("AmazonEC2", [], "us-east-1") is None

    def test_uses_configured_selector(self):
        """Test that the configured selector picks the price."""
        client = MagicMock()
        client.get_products.return_value = {"PriceList": [json.dumps(_product("0.1", "0.4"))]}
        lookup = AWSPricingLookup(selector=max_usd, pricing_client=client)

        assert lookup.lookup("AmazonS3", [], "us-east-1").usd == pytest.approx(0.4)

    def test_client_error_returns_none(self):
        """Test that API errors become no quote."""
        client = MagicMock()
        client.get_products.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "GetProducts",
        )
        lookup = AWSPricingLookup(pricing_client=client)

        assert lookup.lookup("AmazonEC2", [], "us-east-1") is None

    def test_connection_error_returns_none(self):
        """Test that connection errors become no quote."""
        client = MagicMock()
        client.get_products.side_effect = EndpointConnectionError(endpoint_url="https://api.pricing")
        lookup = AWSPricingLookup(pricing_client=client)

        assert lookup.lookup("AmazonEC2", [], "us-east-1") is None

    def test_unreadable_product_returns_none(self):
        """Test that unreadable products become no quote."""
        client = MagicMock()
        client.get_products.return_value = {"PriceList": ["{broken"]}
        lookup = AWSPricingLookup(pricing_client=client)

        assert lookup.lookup("AmazonEC2", [], "us-east-1") is None

    def test_lazy_client_uses_api_region(self, monkeypatch):
        """Test that the client is created lazily in the API region."""
        created = {}

        def fake_client(service, region_name=None, config=None):
            created.update(service=service, region_name=region_name, config=config)
            return MagicMock()

        monkeypatch.setattr("cdk_cost_guardian.pricing.client.boto3.client", fake_client)
        lookup = AWSPricingLookup(api_region="ap-south-1", max_attempts=5)

        client = lookup.pricing_client

        assert client is lookup.pricing_client
        assert created["service"] == "pricing"
        assert created["region_name"] == "ap-south-1"
        assert created["config"].retries == {"max_attempts": 5, "mode": "standard"}
