"""Markdown rendering of CDK diffs and cost estimates for pull request comments."""

from __future__ import annotations

from cdk_cost_guardian.diff.models import (
    ChangeReport,
    StackDiff,
    clean_id,
    display_value,
    short_type,
)
from cdk_cost_guardian.pricing.estimator import CostEstimate

DEFAULT_RESOURCE_MAP_PATH = "config/resource-map.json"

ACTION_ICONS = {
    "ADD": "🟢",
    "UPDATE": "🟡",
    "REMOVE": "🔴",
}

# Deltas smaller than half a cent render as "~$0.00".
NEGLIGIBLE_DELTA = 0.005


def format_money(amount: float | None) -> str:
    """Format a monthly cost, ``-`` when unknown."""
    if amount is None:
        return "-"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_delta(delta: float | None) -> str:
    """Format a signed cost delta, distinguishing "no data" from zero."""
    if delta is None:
        return "no cost data"
    if abs(delta) < NEGLIGIBLE_DELTA:
        return "~$0.00"
    sign = "+" if delta > 0 else "-"
    return f"{sign}${abs(delta):,.2f}"


def render_cost_markdown(
    estimate: CostEstimate,
    resource_map_path: str = DEFAULT_RESOURCE_MAP_PATH,
) -> str:
    """
    Render a cost estimate as a markdown section.

    Args:
        estimate: Result of a cost estimation run.
        resource_map_path: Path shown in the hint for extending map coverage.

    Returns:
        Markdown text starting with a "Cost Estimate" heading.
    """
    lines = ["", "", "## 💰 Cost Estimate", ""]

    if not estimate.rows:
        lines.append("No infrastructure changes with cost impact detected.")
    else:
        lines.append(f"**Estimated monthly impact: {format_delta(estimate.total_delta)}/mo**")
        lines.append("")
        lines.append("| Stack | Resource | Type | Change | Before | After | Delta |")
        lines.append("|-------|----------|------|--------|-------:|------:|------:|")

        for row in estimate.rows:
            type_str = f"{row.resource_type} ({row.detail})" if row.detail else row.resource_type
            icon = ACTION_ICONS.get(row.action, "")
            lines.append(
                f"| {row.stack} | {row.resource_id} | {type_str} | {icon} {row.action} "
                f"| {format_money(row.before)} | {format_money(row.after)} "
                f"| {format_delta(row.delta)} |"
            )

        if estimate.unmapped_count:
            lines.append("")
            lines.append(
                f"> ℹ️ **{estimate.unmapped_count}** resource(s) have no pricing data. "
                f"Add entries to `{resource_map_path}` to extend coverage."
            )

        unquoted = estimate.unpriced_count - estimate.unmapped_count
        if unquoted:
            lines.append("")
            lines.append(
                f"> ⚠️ **{unquoted}** resource(s) could not be priced by the AWS Pricing API "
                "and are excluded from the total."
            )

        if estimate.free_count:
            lines.append("")
            lines.append(
                f"> ✅ **{estimate.free_count}** resource(s) are free (IAM, policies, etc.) "
                "and excluded from the estimate."
            )

        if estimate.notes:
            lines.append("")
            lines.append("<details><summary>📝 Estimation notes</summary>")
            lines.append("")
            lines.extend(f"- {note}" for note in estimate.notes)
            lines.append("")
            lines.append("</details>")

    lines.append("")
    lines.append(
        f"<sub>Prices: AWS Pricing API (on-demand, {estimate.location}). "
        "Estimates are approximate.</sub>"
    )
    return "\n".join(lines) + "\n"


DIFF_HEADING = "## 🔍 CDK Diff"


def _stack_heading(stack: StackDiff) -> str:
    line = f"### {stack.stack_name}\n> _{stack.environment}_"
    if stack.drift is not None:
        if stack.drift.drifted:
            line += f" · ⚠️ drift ({stack.drift.count})"
        else:
            line += " · ✓ no drift"
    return line


def _stack_changes(stack: StackDiff) -> list[str]:
    grouped = stack.by_action()
    lines: list[str] = []

    if grouped["ADD"]:
        lines.append("**➕ Create**")
        for resource in grouped["ADD"]:
            lines.append(f"- `{short_type(resource.resource_type)}` **{clean_id(resource.logical_id)}**")
            for prop in resource.properties:
                value = display_value(prop.new_value)
                if value:
                    lines.append(f"  - `{prop.name}`: `{value}`")
        lines.append("")

    if grouped["UPDATE"]:
        lines.append("**✏️ Update**")
        for resource in grouped["UPDATE"]:
            warning = " ⚠️" if resource.will_replace else ""
            lines.append(
                f"- `{short_type(resource.resource_type)}` **{clean_id(resource.logical_id)}**{warning}"
            )
            for prop in resource.properties:
                lines.append(f"  - `{prop.name}`{' ⚠️' if prop.will_replace else ''}")
                lines.append("    | | |")
                lines.append("    |---|---|")
                lines.append(f"    | **OLD** | `{display_value(prop.old_value, '(none)')}` |")
                lines.append(f"    | **NEW** | `{display_value(prop.new_value, '(removed)')}` |")
                lines.append("")
        lines.append("")

    if grouped["REMOVE"]:
        lines.append("**🗑️ Destroy**")
        for resource in grouped["REMOVE"]:
            lines.append(f"- `{short_type(resource.resource_type)}` **{clean_id(resource.logical_id)}**")
        lines.append("")

    return lines


def render_diff_markdown(report: ChangeReport | None) -> str:
    """
    Render a change report as the "CDK Diff" pull request comment.

    Changed stacks get per-action sections; unchanged stacks are collapsed
    into a ``<details>`` block.

    Args:
        report: The change report, or None when the diff step produced nothing.

    Returns:
        Markdown text starting with a "CDK Diff" heading.
    """
    lines = [DIFF_HEADING, ""]

    if report is None:
        lines.append("⚠️ No diff results")
        return "\n".join(lines) + "\n"
    if not report.success:
        lines.append(f"❌ **Error:** {report.error or 'unknown error'}")
        return "\n".join(lines) + "\n"

    changed = report.changed_stacks
    if not changed:
        lines.append("✅ **No changes**")
        return "\n".join(lines) + "\n"

    counts = []
    if adds := report.count("ADD"):
        counts.append(f"🟢 {adds} to add")
    if updates := report.count("UPDATE"):
        counts.append(f"🟡 {updates} to update")
    if removes := report.count("REMOVE"):
        counts.append(f"🔴 {removes} to destroy")
    if counts:
        lines.append(f"**{' · '.join(counts)}**")
        lines.append("")

    for stack in changed:
        lines.append(_stack_heading(stack))
        lines.append("")
        lines.extend(_stack_changes(stack))

    unchanged = report.unchanged_stacks
    if unchanged:
        lines.append(f"<details><summary>✅ {len(unchanged)} unchanged</summary>")
        lines.append("")
        lines.extend(f"- {stack.stack_name}" for stack in unchanged)
        lines.append("</details>")

    return "\n".join(lines) + "\n"
