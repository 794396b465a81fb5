"""Webhook blob transport over httpx.

Uploads POST a multipart form with one file field to the webhook URL; the
locator is taken from the JSON reply (``attachments[0].url`` for Discord-style
webhooks, else a top-level ``url``). Downloads GET the locator, optionally
through a proxy (``{proxy_base}/?{locator}``) that refreshes expiring CDN links.

Failure classes:
  connection / timeout / 5xx / 429  → transient, retried per RetryPolicy
  429                               → waits for Retry-After (header or JSON)
  404 / 410 on download             → BlobMissing, never retried
  other 4xx, malformed upload reply,
  unsupported scheme or invalid URL → UploadRejected / DownloadRejected
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from chunkhook.errors import (
    BlobMissing,
    DownloadRejected,
    DownloadUnavailable,
    TransferCancelled,
    TransportError,
    UploadRejected,
    UploadUnavailable,
)
from chunkhook.transport.base import BlobTransport
from chunkhook.transport.retry import RetryPolicy

logger = logging.getLogger(__name__)

_USER_AGENT = "chunkhook/0.1"
_MISSING_STATUSES = frozenset({404, 410})


class WebhookTransport(BlobTransport):
    """HTTP transport for a webhook-backed blob store.

    Args:
        webhook_url: Upload endpoint. May be empty for download-only use.
        proxy_base: Optional download proxy prefix.
        retry: Backoff policy shared by uploads and downloads.
        timeout: Per-request timeout in seconds.
        field_name: Multipart form field carrying the chunk bytes.
        client: Pre-built httpx.Client (tests inject a MockTransport here).
        sleep: Wait function used when no cancel event is supplied.
    """

    def __init__(
        self,
        webhook_url: str = "",
        *,
        proxy_base: str | None = None,
        retry: RetryPolicy | None = None,
        timeout: float = 60.0,
        field_name: str = "file",
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.webhook_url = webhook_url
        self.proxy_base = proxy_base.rstrip("/") if proxy_base else None
        self.retry = retry or RetryPolicy()
        self.field_name = field_name
        self._sleep = sleep
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def upload(
        self,
        data: bytes,
        *,
        filename: str = "chunk.bin",
        cancel: threading.Event | None = None,
    ) -> str:
        if not self.webhook_url:
            raise UploadRejected("No webhook URL configured for uploads")

        def send() -> httpx.Response:
            files = {self.field_name: (filename, data, "application/octet-stream")}
            return self._client.post(self.webhook_url, files=files)

        response = self._with_retry(
            f"upload of {filename}",
            send,
            cancel,
            rejected=UploadRejected,
            unavailable=UploadUnavailable,
        )
        return _extract_locator(response)

    def download(self, locator: str, *, cancel: threading.Event | None = None) -> bytes:
        url = self.download_url(locator)
        logger.debug("GET %s", url)
        response = self._with_retry(
            "download",
            lambda: self._client.get(url),
            cancel,
            rejected=DownloadRejected,
            unavailable=DownloadUnavailable,
            missing=BlobMissing,
        )
        return response.content

    def download_url(self, locator: str) -> str:
        """URL actually fetched for *locator* (proxied when a proxy is set)."""
        if self.proxy_base:
            return f"{self.proxy_base}/?{locator}"
        return locator

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------

    def _with_retry(
        self,
        action: str,
        send: Callable[[], httpx.Response],
        cancel: threading.Event | None,
        *,
        rejected: type[TransportError],
        unavailable: type[TransportError],
        missing: type[TransportError] | None = None,
    ) -> httpx.Response:
        attempt = 0
        while True:
            if cancel is not None and cancel.is_set():
                raise TransferCancelled(f"{action} cancelled")
            attempt += 1
            retry_after: float | None = None
            try:
                response = send()
            except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
                raise rejected(f"{action} rejected: malformed request ({exc})") from exc
            except httpx.TransportError as exc:
                reason = f"{type(exc).__name__}: {exc}"
            else:
                status = response.status_code
                if status < 400:
                    return response
                if missing is not None and status in _MISSING_STATUSES:
                    raise missing(f"Remote blob is gone (HTTP {status})")
                if status == 429:
                    retry_after = _retry_after(response)
                    reason = "rate limited (HTTP 429)"
                elif status >= 500:
                    reason = f"HTTP {status}"
                else:
                    raise rejected(f"{action} rejected: HTTP {status}{_body_hint(response)}")

            if not self.retry.should_retry(attempt):
                raise unavailable(f"{action} failed after {attempt} attempts: {reason}")

            delay = self.retry.delay(attempt, retry_after)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                action,
                attempt,
                self.retry.max_attempts,
                reason,
                delay,
            )
            if self._wait(delay, cancel):
                raise TransferCancelled(f"{action} cancelled")

    def _wait(self, delay: float, cancel: threading.Event | None) -> bool:
        """Wait *delay* seconds; return True if *cancel* fired meanwhile."""
        if cancel is None:
            self._sleep(delay)
            return False
        return cancel.wait(delay)


# ------------------------------------------------------------------
# Response helpers
# ------------------------------------------------------------------


def _extract_locator(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError as exc:
        raise UploadRejected("Upload response is not JSON") from exc
    if isinstance(payload, dict):
        attachments = payload.get("attachments")
        if isinstance(attachments, list) and attachments:
            first = attachments[0]
            if isinstance(first, dict) and first.get("url"):
                return str(first["url"])
        if payload.get("url"):
            return str(payload["url"])
    raise UploadRejected("Upload response carries no locator URL")


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds the endpoint asked us to wait, from header or JSON body."""
    header = response.headers.get("Retry-After")
    if header:
        try:
            return float(header)
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(header)
        except (TypeError, ValueError):
            when = None
        if when is not None:
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        value = payload.get("retry_after")
        if isinstance(value, (int, float)):
            return float(value)
    return None


def _body_hint(response: httpx.Response) -> str:
    text = response.text.strip()
    return f" ({text[:200]})" if text else ""
