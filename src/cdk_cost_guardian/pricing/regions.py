"""AWS region code to Pricing API location name mapping.

The Price List API filters on human-readable ``location`` values rather than
region codes, and matches those more reliably.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

REGION_LOCATIONS: dict[str, str] = {
    # US
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    # Africa
    "af-south-1": "Africa (Cape Town)",
    # Asia Pacific
    "ap-east-1": "Asia Pacific (Hong Kong)",
    "ap-south-1": "Asia Pacific (Mumbai)",
    "ap-south-2": "Asia Pacific (Hyderabad)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-southeast-2": "Asia Pacific (Sydney)",
    "ap-southeast-3": "Asia Pacific (Jakarta)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ap-northeast-2": "Asia Pacific (Seoul)",
    "ap-northeast-3": "Asia Pacific (Osaka)",
    # Canada
    "ca-central-1": "Canada (Central)",
    # Europe
    "eu-central-1": "EU (Frankfurt)",
    "eu-central-2": "EU (Zurich)",
    "eu-west-1": "EU (Ireland)",
    "eu-west-2": "EU (London)",
    "eu-west-3": "EU (Paris)",
    "eu-south-1": "EU (Milan)",
    "eu-south-2": "EU (Spain)",
    "eu-north-1": "EU (Stockholm)",
    # Middle East
    "il-central-1": "Israel (Tel Aviv)",
    "me-south-1": "Middle East (Bahrain)",
    "me-central-1": "Middle East (UAE)",
    # South America
    "sa-east-1": "South America (Sao Paulo)",
}


def get_pricing_location(region_code: str) -> str:
    """
    Get the Pricing API location name for a region code.

    Unknown region codes fall back to the ``us-east-1`` location so an
    estimate is still produced.

    Args:
        region_code: AWS region code (e.g., 'eu-west-1').

    Returns:
        Pricing API location name (e.g., 'EU (Ireland)').
    """
    location = REGION_LOCATIONS.get(region_code)
    if location is None:
        logger.warning(
            "Region '%s' not in pricing location table, using %s",
            region_code,
            DEFAULT_REGION,
        )
        return REGION_LOCATIONS[DEFAULT_REGION]
    return location


def supported_regions() -> list[str]:
    """List the region codes with a known pricing location."""
    return list(REGION_LOCATIONS)
