"""
Slack notification entry point.

Formats a CDK diff preview or deployment result (optionally with a cost
estimate from ``cdk-cost-estimate``) and posts it to a Slack webhook. Raw
Block Kit blocks can be sent as-is with ``--blocks``. The diff is also
rendered as the markdown PR comment written to the ``comment`` output.

Environment variables (used as defaults):
- SLACK_WEBHOOK_URL: Webhook URL; the command is skipped when missing
- REPO, RUN_URL, PR_URL, PR_NUM, ACTOR, JOB_STATUS: Notification context
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
from cdk_cost_guardian.notifications.slack.formatter import NotificationContext, SlackFormatter
from cdk_cost_guardian.notifications.slack.webhook import SlackWebhook, SlackWebhookError
from cdk_cost_guardian.pricing.estimator import CostEstimate
from cdk_cost_guardian.reporting.markdown import render_diff_markdown

logger = logging.getLogger(__name__)


def load_report(args: argparse.Namespace) -> ChangeReport | None:
    """Parse the --diff report, or None when no diff was given."""
    if not args.diff:
        return None
    return load_change_report(read_text_arg(args.diff))


def build_message(
    args: argparse.Namespace, config: Config, report: ChangeReport | None = None
) -> dict[str, Any]:
    """
    Build the Slack payload from CLI arguments.

    ``report`` is the already parsed --diff report; it is read from the
    arguments when not given.

    Raises:
        InputError: If the diff, estimate or blocks document is malformed.
    """
    if args.blocks:
        try:
            blocks = json.loads(read_text_arg(args.blocks))
        except json.JSONDecodeError as e:
            raise InputError(f"Slack blocks are not valid JSON: {e}") from e
        if not isinstance(blocks, list):
            raise InputError("Slack blocks must be a JSON array")
        return {"blocks": blocks}

    if report is None:
        report = load_report(args) or ChangeReport()

    estimate = None
    if args.estimate:
        try:
            data = json.loads(read_text_arg(args.estimate))
            # Accept the full cdk-cost-estimate output or just its "estimate" member.
            estimate = CostEstimate.model_validate(data.get("estimate", data))
        except (json.JSONDecodeError, ValueError, AttributeError) as e:
            raise InputError(f"Malformed cost estimate: {e}") from e

    context = NotificationContext(
        repo=args.repo,
        run_url=args.run_url or None,
        pr_url=args.pr_url or None,
        pr_number=args.pr_number or None,
        actor=args.actor or None,
        is_deployment=args.deployment,
        job_status=args.job_status or None,
    )
    formatter = SlackFormatter(
        username=config.slack.username, max_stacks=config.slack.max_stacks
    )
    return formatter.format_diff_notification(report, context, estimate)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    env = os.environ.get
    parser = argparse.ArgumentParser(description="Send a CDK diff notification to Slack")
    parser.add_argument("--diff", help="Diff report JSON, @file, or -")
    parser.add_argument("--estimate", help="Cost estimate JSON, @file, or -")
    parser.add_argument("--blocks", help="Raw Block Kit blocks to send as-is")
    parser.add_argument("--repo", default=env("REPO", ""), help="Repository name")
    parser.add_argument("--run-url", default=env("RUN_URL", ""), help="Workflow run URL")
    parser.add_argument("--pr-url", default=env("PR_URL", ""), help="Pull request URL")
    parser.add_argument("--pr-number", default=env("PR_NUM", ""), help="Pull request number")
    parser.add_argument("--actor", default=env("ACTOR", ""), help="User who triggered the run")
    parser.add_argument(
        "--deployment", action="store_true", help="Format as a deployment result"
    )
    parser.add_argument("--job-status", default=env("JOB_STATUS", ""), help="success or failure")
    parser.add_argument("--config-dir", help="Directory holding config.yaml")
    parser.add_argument("--env", help="Config environment (dev, staging, prod)")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print the payload instead of sending it"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, webhook: SlackWebhook | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = _parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config_dir, args.env)
        report = None if args.blocks else load_report(args)
        message = build_message(args, config, report)
    except (ConfigError, InputError, OSError, ValueError) as e:
        logger.error("Could not build Slack message: %s", e)
        return 1

    write_github_output("slack_blocks", json.dumps(message["blocks"], ensure_ascii=False))
    if not args.blocks:
        write_github_output("comment", render_diff_markdown(report))

    if args.dry_run:
        print(json.dumps(message, indent=2, ensure_ascii=False))
        return 0

    if not config.slack.enabled:
        logger.info("Slack notifications disabled, skipping")
        return 0

    if webhook is None:
        if not config.slack.webhook_url and not config.slack.webhook_secret_name:
            logger.info("No Slack webhook URL provided, skipping notification")
            return 0
        webhook = SlackWebhook(
            webhook_url=config.slack.webhook_url,
            secret_name=config.slack.webhook_secret_name,
            secret_key=config.slack.webhook_secret_key,
            region=config.aws.region,
            timeout=config.slack.timeout_seconds,
        )

    try:
        webhook.send(message)
    except SlackWebhookError as e:
        logger.error("%s", e)
        return 1

    logger.info("Slack notification sent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
