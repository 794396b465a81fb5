"""Exception taxonomy for the chunk pipeline.

Transient transport failures are retried inside the transport and never reach
this layer unless retries are exhausted. Everything else propagates unchanged
to the pipeline boundary, where the CLI turns it into a rich error message.
"""

from __future__ import annotations


class ChunkhookError(Exception):
    """Base class for all chunk pipeline errors.

    Attributes:
        chunk_index: Zero-based index of the chunk being processed when the
            error occurred, or None if the error is not tied to a chunk.
    """

    def __init__(self, message: str, *, chunk_index: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.chunk_index = chunk_index

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Ingest side
# ---------------------------------------------------------------------------


class SourceReadError(ChunkhookError):
    """The source file or stream could not be read (or changed while reading)."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(ChunkhookError):
    """Base class for remote endpoint failures that survived the retry loop."""


class UploadRejected(TransportError):
    """The endpoint refused an upload (4xx other than 429, or a malformed reply)."""


class UploadUnavailable(TransportError):
    """Upload retries were exhausted on transient failures."""


class BlobMissing(TransportError):
    """The endpoint reports the locator as gone (404 / 410). Never retried."""


class DownloadRejected(TransportError):
    """The endpoint refused a download with a non-transient status."""


class DownloadUnavailable(TransportError):
    """Download retries were exhausted on transient failures."""


class TransferCancelled(TransportError):
    """A transfer stopped waiting because its ingest was cancelled."""


# ---------------------------------------------------------------------------
# Retrieval / index
# ---------------------------------------------------------------------------


class ChecksumMismatch(ChunkhookError):
    """Downloaded chunk bytes do not match the recorded checksum or length."""


class FileNotFound(ChunkhookError):
    """No (complete) file with the requested id exists in the index."""


class IndexCorruption(ChunkhookError):
    """A chunk index invariant is violated. Reported, never repaired."""


class DirectoryError(ChunkhookError):
    """Invalid directory operation (missing parent, name clash, cycle)."""
