"""CI entry points: cost estimate, Slack notification and S3 sync."""
