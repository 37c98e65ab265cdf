"""Text renderings of CDK diffs and cost estimates for PR comments."""

from cdk_cost_guardian.reporting.markdown import (
    format_delta,
    format_money,
    render_cost_markdown,
    render_diff_markdown,
)

__all__ = ["format_money", "format_delta", "render_cost_markdown", "render_diff_markdown"]
