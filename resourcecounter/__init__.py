"""Optimistic concurrency demo: racing counter increments against DynamoDB."""

__version__ = "0.1.0"
