"""Slack Block Kit message formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cdk_cost_guardian.diff.models import (
    ChangeReport,
    ResourceChange,
    clean_id,
    display_value,
    short_type,
)
from cdk_cost_guardian.pricing.estimator import CostEstimate, CostRow
from cdk_cost_guardian.reporting.markdown import format_delta


@dataclass
class NotificationContext:
    """Where a diff or deployment came from, for links and headers."""

    repo: str
    run_url: str | None = None
    pr_url: str | None = None
    pr_number: str | None = None
    actor: str | None = None
    is_deployment: bool = False
    job_status: str | None = None  # "success" or "failure" for deployments


class SlackFormatter:
    """Format CDK diff and cost notifications using Slack Block Kit."""

    ACTION_EMOJI = {
        "ADD": ":large_green_circle:",
        "UPDATE": ":large_yellow_circle:",
        "REMOVE": ":red_circle:",
    }

    ACTION_LABEL = {
        "ADD": "Create",
        "UPDATE": "Update",
        "REMOVE": "Destroy",
    }

    # Property changes previewed per resource before "+N more".
    ADD_PREVIEW = 3
    UPDATE_PREVIEW = 2

    def __init__(self, username: str = "CDK Cost Guardian", max_stacks: int = 5):
        """
        Initialize the formatter.

        Args:
            username: Display name for webhook messages.
            max_stacks: Stacks detailed before collapsing into a "+N more" line.
        """
        self.username = username
        self.max_stacks = max_stacks

    def _header_text(self, context: NotificationContext) -> str:
        if not context.is_deployment:
            return ":mag: CDK Diff"
        if context.job_status == "success":
            return ":white_check_mark: CDK Deploy Succeeded"
        return ":x: CDK Deploy Failed"

    def _context_text(self, context: NotificationContext) -> str:
        if context.pr_url and context.pr_number:
            return f"<{context.pr_url}|PR #{context.pr_number}> in `{context.repo}`"
        by = f" by {context.actor}" if context.actor else ""
        return f"`{context.repo}`{by}"

    def _property_lines(self, resource: ResourceChange) -> list[str]:
        """Preview a resource's property changes under its bullet."""
        props = resource.properties
        lines = []
        if resource.action == "ADD":
            for prop in props[: self.ADD_PREVIEW]:
                value = display_value(prop.new_value)
                if value:
                    lines.append(f"   `{prop.name}`:\n```{value}```")
            if len(props) > self.ADD_PREVIEW:
                lines.append(f"   _+{len(props) - self.ADD_PREVIEW} more..._")
        elif resource.action == "UPDATE":
            for prop in props[: self.UPDATE_PREVIEW]:
                warning = " :warning:" if prop.will_replace else ""
                lines.append(f"   `{prop.name}`{warning}")
                lines.append(f"   *OLD:*\n```{display_value(prop.old_value, '(none)')}```")
                lines.append(f"   *NEW:*\n```{display_value(prop.new_value, '(removed)')}```")
            if len(props) > self.UPDATE_PREVIEW:
                lines.append(
                    f"   _+{len(props) - self.UPDATE_PREVIEW} more properties..._"
                )
        return lines

    def _cost_blocks(self, estimate: CostEstimate) -> list[dict[str, Any]]:
        priced_total = estimate.priced_count + estimate.unpriced_count
        blocks: list[dict[str, Any]] = [
            {
                "type": "section",
                "fields": [
                    {
                        "type": "mrkdwn",
                        "text": f":moneybag: *Monthly impact*\n{format_delta(estimate.total_delta)}/mo",
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Priced*\n{estimate.priced_count} of {priced_total}",
                    },
                ],
            }
        ]

        notes = []
        if estimate.unmapped_count:
            notes.append(f"{estimate.unmapped_count} without pricing rule")
        unquoted = estimate.unpriced_count - estimate.unmapped_count
        if unquoted:
            notes.append(f"{unquoted} without price data")
        if estimate.free_count:
            notes.append(f"{estimate.free_count} free")
        if notes:
            blocks.append(
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f":information_source: {' | '.join(notes)} | "
                            f"on-demand prices, {estimate.location}",
                        }
                    ],
                }
            )
        return blocks

    def format_diff_notification(
        self,
        report: ChangeReport,
        context: NotificationContext,
        estimate: CostEstimate | None = None,
    ) -> dict[str, Any]:
        """
        Format a CDK diff preview or deployment result.

        Args:
            report: The change report.
            context: Repository, PR and workflow details.
            estimate: Optional cost estimate to summarise alongside the diff.

        Returns:
            Slack Block Kit message payload.
        """
        changed = report.changed_stacks
        adds = report.count("ADD")
        updates = report.count("UPDATE")
        removes = report.count("REMOVE")

        blocks: list[dict[str, Any]] = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": self._header_text(context),
                    "emoji": True,
                },
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": self._context_text(context)}],
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f":large_green_circle: *Add*\n{adds}"},
                    {"type": "mrkdwn", "text": f":large_yellow_circle: *Update*\n{updates}"},
                    {"type": "mrkdwn", "text": f":red_circle: *Remove*\n{removes}"},
                    {"type": "mrkdwn", "text": f":package: *Stacks*\n{len(changed)}"},
                ],
            },
        ]

        if not report.success and report.error:
            blocks.append(
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f":x: *Diff error:* {report.error}"},
                }
            )

        if estimate is not None:
            blocks.extend(self._cost_blocks(estimate))

        buttons = []
        if context.pr_url:
            buttons.append(
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View PR"},
                    "url": context.pr_url,
                }
            )
        if context.run_url:
            buttons.append(
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Workflow"},
                    "url": context.run_url,
                }
            )
        if buttons:
            blocks.append({"type": "actions", "elements": buttons})

        rows_by_resource: dict[tuple[str, str, str], CostRow] = {}
        if estimate is not None:
            for row in estimate.rows:
                rows_by_resource[(row.stack, row.logical_id, row.action)] = row

        for stack in changed[: self.max_stacks]:
            blocks.append({"type": "divider"})
            lines = [f":package: *{stack.stack_name}* _({stack.environment})_"]

            for action, resources in stack.by_action().items():
                if not resources:
                    continue
                lines.append(f"{self.ACTION_EMOJI[action]} *{self.ACTION_LABEL[action]}*")
                for resource in resources:
                    resource_id = clean_id(resource.logical_id)
                    line = f"• `{short_type(resource.resource_type)}` *{resource_id}*"
                    if resource.will_replace:
                        line += " :warning: replace"
                    row = rows_by_resource.get((stack.stack_name, resource.logical_id, action))
                    if row is not None and row.delta is not None:
                        line += f" ({format_delta(row.delta)}/mo)"
                    lines.append(line)
                    lines.extend(self._property_lines(resource))

            blocks.append(
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": "\n".join(lines)},
                }
            )

        if len(changed) > self.max_stacks:
            blocks.append(
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"_+{len(changed) - self.max_stacks} more stacks..._",
                        }
                    ],
                }
            )

        return {
            "username": self.username,
            "icon_emoji": ":building_construction:",
            "text": self._header_text(context),
            "blocks": blocks,
        }

    def format_simple_message(self, text: str, emoji: str = ":robot_face:") -> dict[str, Any]:
        """Format a simple text message."""
        return {
            "username": self.username,
            "icon_emoji": ":building_construction:",
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"{emoji} {text}"},
                }
            ],
        }
