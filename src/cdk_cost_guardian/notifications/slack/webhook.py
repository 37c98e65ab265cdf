"""Slack webhook notification sender."""

from __future__ import annotations

import json
from typing import Any
from urllib import error, request

import boto3
from botocore.exceptions import ClientError


class SlackWebhookError(Exception):
    """Error sending Slack webhook."""

    pass


class SlackWebhook:
    """
    Send messages to Slack via an incoming webhook.

    The webhook URL is either given directly (typically from a CI secret
    exposed as ``SLACK_WEBHOOK_URL``) or read from AWS Secrets Manager.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        secret_name: str | None = None,
        secret_key: str = "webhook_url",
        region: str = "us-east-1",
        timeout: float = 10,
        secrets_client: boto3.client | None = None,
    ):
        """
        Initialize the Slack webhook sender.

        Args:
            webhook_url: Webhook URL. Takes precedence over the secret.
            secret_name: Name of the secret in Secrets Manager.
            secret_key: Key within the secret containing the webhook URL.
            region: AWS region for Secrets Manager.
            timeout: Seconds to wait for Slack to respond.
            secrets_client: Optional boto3 Secrets Manager client.
        """
        if not webhook_url and not secret_name:
            raise SlackWebhookError("Either a webhook URL or a secret name is required")
        self.secret_name = secret_name
        self.secret_key = secret_key
        self.region = region
        self.timeout = timeout
        self._secrets_client = secrets_client
        self._webhook_url = webhook_url or None

    @property
    def secrets_client(self) -> boto3.client:
        """Get or create Secrets Manager client."""
        if self._secrets_client is None:
            self._secrets_client = boto3.client(
                "secretsmanager", region_name=self.region
            )
        return self._secrets_client

    @property
    def webhook_url(self) -> str:
        """Get the webhook URL, reading Secrets Manager on first use."""
        if self._webhook_url is None:
            self._webhook_url = self._get_webhook_url()
        return self._webhook_url

    def _get_webhook_url(self) -> str:
        """Retrieve webhook URL from Secrets Manager."""
        try:
            response = self.secrets_client.get_secret_value(SecretId=self.secret_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ResourceNotFoundException":
                raise SlackWebhookError(f"Secret '{self.secret_name}' not found") from e
            raise SlackWebhookError(f"Error retrieving secret: {e}") from e

        if "SecretString" not in response:
            raise SlackWebhookError(
                f"Secret '{self.secret_name}' does not contain a string value"
            )

        secret_data = json.loads(response["SecretString"])
        if self.secret_key not in secret_data:
            raise SlackWebhookError(
                f"Secret key '{self.secret_key}' not found in secret '{self.secret_name}'"
            )
        return secret_data[self.secret_key]

    def send(self, message: dict[str, Any]) -> bool:
        """
        Send a message to Slack.

        Args:
            message: Slack Block Kit message payload.

        Returns:
            True if message was sent successfully.

        Raises:
            SlackWebhookError: If the message fails to send.
        """
        data = json.dumps(message).encode("utf-8")
        req = request.Request(
            self.webhook_url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                response_body = response.read().decode("utf-8")
        except error.HTTPError as e:
            raise SlackWebhookError(
                f"HTTP error sending to Slack: {e.code} - {e.reason}"
            ) from e
        except error.URLError as e:
            raise SlackWebhookError(f"URL error sending to Slack: {e.reason}") from e
        except OSError as e:
            raise SlackWebhookError(f"Error sending to Slack: {e}") from e

        if response.status != 200 or response_body != "ok":
            raise SlackWebhookError(
                f"Slack API error: {response.status} - {response_body}"
            )
        return True

    def send_blocks(self, blocks: list[dict[str, Any]], text: str | None = None) -> bool:
        """
        Send bare Block Kit blocks, with optional fallback text for notifications.

        Args:
            blocks: Slack Block Kit blocks.
            text: Plain-text fallback shown in notifications.

        Returns:
            True if message was sent successfully.
        """
        message: dict[str, Any] = {"blocks": blocks}
        if text:
            message["text"] = text
        return self.send(message)

    def send_text(self, text: str) -> bool:
        """
        Send a simple text message to Slack.

        Args:
            text: Plain text message.

        Returns:
            True if message was sent successfully.
        """
        return self.send({"text": text})
