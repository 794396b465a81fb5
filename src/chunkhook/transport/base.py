"""Blob transport interface shared by the HTTP client and test doubles."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod


class BlobTransport(ABC):
    """Upload and download opaque blobs against a remote endpoint.

    Implementations retry transient failures internally and raise a
    :class:`chunkhook.errors.TransportError` subclass once a failure is
    terminal. ``cancel`` lets a coordinator stop pending retry waits.
    """

    @abstractmethod
    def upload(
        self,
        data: bytes,
        *,
        filename: str = "chunk.bin",
        cancel: threading.Event | None = None,
    ) -> str:
        """Store *data* remotely and return its locator."""

    @abstractmethod
    def download(self, locator: str, *, cancel: threading.Event | None = None) -> bytes:
        """Return the bytes stored under *locator*."""

    def close(self) -> None:
        """Release network resources. No-op by default."""

    def __enter__(self) -> BlobTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
