"""Blob transport: webhook HTTP client and retry policy."""

from chunkhook.transport.base import BlobTransport
from chunkhook.transport.retry import RetryPolicy
from chunkhook.transport.webhook import WebhookTransport

__all__ = ["BlobTransport", "RetryPolicy", "WebhookTransport"]
