"""
Cost estimate entry point.

Reads one or more CDK diff reports, estimates the monthly cost impact with the
AWS Pricing API and prints ``{"markdown": ..., "estimate": ...}`` on stdout.
Malformed inputs print ``{"markdown": "", "error": ...}`` and still exit 0 so
the PR workflow keeps going without a cost section.

Environment variables (used as defaults):
- DIFF_JSON: Diff report JSON
- RESOURCE_MAP_PATH: Path to resource-map.json
- PRICING_REGION / AWS_REGION: Region the stacks deploy to
- GITHUB_OUTPUT: When set, the markdown is also written as ``cost_comment``
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any

from cdk_cost_guardian.config import Config, load_config
from cdk_cost_guardian.diff.models import ChangeReport, load_change_report
from cdk_cost_guardian.exceptions import ConfigError, InputError
from cdk_cost_guardian.handlers.common import (
    configure_logging,
    read_text_arg,
    write_github_output,
)
from cdk_cost_guardian.pricing.client import AWSPricingLookup, PricingLookup, get_price_selector
from cdk_cost_guardian.pricing.estimator import CostEstimate, CostEstimator
from cdk_cost_guardian.pricing.resource_map import load_resource_map
from cdk_cost_guardian.reporting.markdown import render_cost_markdown

logger = logging.getLogger(__name__)


def build_lookup(config: Config) -> AWSPricingLookup:
    """Create the AWS pricing lookup described by the configuration."""
    pricing = config.pricing
    return AWSPricingLookup(
        api_region=pricing.api_region,
        selector=get_price_selector(pricing.price_selector),
        connect_timeout=pricing.connect_timeout,
        read_timeout=pricing.read_timeout,
        max_attempts=pricing.max_attempts,
    )


def run_estimate(
    diff_documents: list[str],
    config: Config,
    lookup: PricingLookup | None = None,
) -> tuple[CostEstimate, str]:
    """
    Estimate the cost of one or more diff reports.

    Args:
        diff_documents: Diff report JSON documents, combined in order.
        config: Loaded configuration.
        lookup: Pricing lookup. Defaults to the AWS Pricing API.

    Returns:
        Tuple of (estimate, markdown).

    Raises:
        InputError: If a report or the resource map is malformed.
    """
    if not diff_documents:
        raise InputError("No diff report given")

    reports = [load_change_report(doc) for doc in diff_documents]
    report = reports[0] if len(reports) == 1 else ChangeReport.combine(reports)
    resource_map = load_resource_map(config.pricing.resource_map_path)

    estimator = CostEstimator(
        lookup or build_lookup(config),
        max_workers=config.pricing.max_workers,
        timeout_seconds=config.pricing.timeout_seconds,
    )
    estimate = estimator.estimate(report, resource_map, config.aws.region)
    markdown = render_cost_markdown(estimate, config.pricing.resource_map_path)
    return estimate, markdown


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Estimate the monthly AWS cost impact of a CDK diff"
    )
    parser.add_argument(
        "diff",
        nargs="*",
        help="Diff report JSON, @file, or - for stdin (default: $DIFF_JSON)",
    )
    parser.add_argument("--resource-map", help="Path to resource-map.json")
    parser.add_argument("--region", help="AWS region the stacks deploy to")
    parser.add_argument("--config-dir", help="Directory holding config.yaml")
    parser.add_argument("--env", help="Config environment (dev, staging, prod)")
    parser.add_argument("--max-workers", type=int, help="Concurrent price lookups")
    parser.add_argument("--timeout", type=float, help="Seconds allowed for the whole run")
    parser.add_argument(
        "--format",
        choices=("json", "markdown"),
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    overrides: dict[str, Any] = {}
    if args.resource_map:
        overrides["resource_map_path"] = args.resource_map
    if args.max_workers is not None:
        overrides["max_workers"] = args.max_workers
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout

    data = config.model_dump()
    data["pricing"].update(overrides)
    if args.region:
        data["aws"]["region"] = args.region
    return Config(**data)


def main(argv: list[str] | None = None, lookup: PricingLookup | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = _parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = _apply_cli_overrides(load_config(args.config_dir, args.env), args)
        sources = args.diff or [os.environ.get("DIFF_JSON", "")]
        documents = [read_text_arg(source) for source in sources if source]
        estimate, markdown = run_estimate(documents, config, lookup)
    except (ConfigError, InputError, OSError, ValueError) as e:
        logger.error("Cost estimation failed: %s", e)
        print(json.dumps({"markdown": "", "error": str(e)}))
        return 0

    write_github_output("cost_comment", markdown)

    if args.format == "markdown":
        sys.stdout.write(markdown)
    else:
        print(
            json.dumps(
                {"markdown": markdown, "estimate": estimate.model_dump(mode="json")}
            )
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
