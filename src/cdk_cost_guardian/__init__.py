"""
CDK Cost Guardian - cost-aware CI helpers for AWS CDK pull requests.

Reusable building blocks for CI pipelines:
- Monthly cost delta estimation from a CDK diff report via the AWS Pricing API
- Markdown PR comments and Slack Block Kit summaries of the estimate
- Slack webhook notifications
- Local directory sync to S3
"""

__version__ = "0.1.0"
