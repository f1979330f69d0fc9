"""Build and deploy the Slack bot to AWS Lambda."""

__version__ = "0.1.0"
