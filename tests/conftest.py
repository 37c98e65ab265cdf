"""Pytest configuration and fixtures."""

import threading
import time

import pytest

from cdk_cost_guardian.pricing.client import PriceQuote, PricingLookup


class FakeLookup(PricingLookup):
    """
    Pricing lookup returning fixed unit prices keyed by one filter field.

    Records every call so tests can assert on caching behaviour.
    """

    def __init__(self, prices=None, key_field="instanceType", delay=0.0, fail_on=(), slow_on=()):
        self.prices = prices or {}
        self.key_field = key_field
        self.delay = delay
        self.fail_on = set(fail_on)
        self.slow_on = set(slow_on)
        self.calls = []
        self._lock = threading.Lock()

    def lookup(self, service_code, filters, region):
        with self._lock:
            self.calls.append((service_code, list(filters), region))
        value = dict(filters).get(self.key_field)
        if self.delay and (not self.slow_on or value in self.slow_on):
            time.sleep(self.delay)
        if value in self.fail_on:
            raise RuntimeError(f"lookup failed for {value}")
        if value not in self.prices:
            return None
        return PriceQuote(usd=self.prices[value], unit="Hrs")


@pytest.fixture
def fake_lookup():
    """Lookup pricing small=0.05/hr, large=0.20/hr, t3.micro=0.0084/hr."""
    return FakeLookup(prices={"small": 0.05, "large": 0.20, "t3.micro": 0.0084})


@pytest.fixture
def sample_resource_map_dict():
    """Resource map with one hourly compute rule and a free list."""
    return {
        "_comment": "test map",
        "_free": ["AWS::IAM::Role", "AWS::IAM::Policy"],
        "Compute::Instance": {
            "serviceCode": "AmazonEC2",
            "unit": "Hrs",
            "monthlyHours": 730,
            "note": "Linux on-demand pricing",
            "filters": [
                {"Field": "instanceType", "Value": {"cfProperty": "InstanceType"}},
                {"Field": "operatingSystem", "Value": {"default": "Linux"}},
            ],
        },
        "AWS::S3::Bucket": {
            "serviceCode": "AmazonS3",
            "unit": "GB-Mo",
            "monthlyQuantity": 100,
            "note": "Estimate based on 100 GB standard storage",
            "filters": [
                {"Field": "productFamily", "Value": {"default": "Storage"}},
                {"Field": "volumeType", "Value": {"default": "Standard"}},
            ],
        },
    }


def make_report(*resources, stack_name="Net", has_diff=True):
    """Build a single-stack diff report document."""
    return {
        "success": True,
        "stacks": [
            {
                "stackName": stack_name,
                "hasDiff": has_diff,
                "resources": list(resources),
            }
        ],
    }


def instance_change(logical_id, action, old=None, new=None):
    """A Compute::Instance change with an InstanceType property."""
    return {
        "logicalId": logical_id,
        "type": "Compute::Instance",
        "action": action,
        "properties": [
            {"name": "InstanceType", "oldValue": old, "newValue": new, "impact": "WILL_UPDATE"}
        ],
    }


@pytest.fixture
def sample_diff_dict():
    """Diff report with priced, free and unmapped resources in one stack."""
    return make_report(
        instance_change("WebServer1A2B3C4D", "ADD", new="t3.micro"),
        instance_change("Worker", "UPDATE", old="small", new="large"),
        {"logicalId": "AppRole", "type": "AWS::IAM::Role", "action": "ADD"},
        {"logicalId": "Broker", "type": "AWS::MQ::Broker", "action": "ADD"},
    )


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary."""
    return {
        "project_name": "test-guardian",
        "environment": "dev",
        "aws": {
            "region": "eu-west-1",
        },
        "pricing": {
            "resource_map_path": "pricing/resource-map.json",
            "max_workers": 4,
            "timeout_seconds": 30,
        },
        "slack": {
            "enabled": True,
            "webhook_url": "https://hooks.slack.com/services/T000/B000/XXX",
            "max_stacks": 3,
        },
    }
