"""Slack notification integration."""

from cdk_cost_guardian.notifications.slack.formatter import NotificationContext, SlackFormatter
from cdk_cost_guardian.notifications.slack.webhook import SlackWebhook, SlackWebhookError

__all__ = ["SlackWebhook", "SlackWebhookError", "SlackFormatter", "NotificationContext"]
