"""Bounded-concurrency upload coordinator.

Consumes the splitter's chunk sequence and uploads chunks on a fixed-size
thread pool. At most ``workers`` uploads (and therefore at most ``workers``
chunk buffers) are in flight at once. Results land in an index-addressed map,
so the returned list is ordered by chunk index no matter which upload
finished first.

On the first terminal failure the coordinator stops pulling chunks, cancels
queued uploads, sets the shared cancel event so in-flight retry waits end,
waits for in-flight calls, and re-raises the failure with its chunk index.
Blobs uploaded before that point stay on the remote as orphans.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from chunkhook.errors import ChunkhookError, TransferCancelled
from chunkhook.ingest.checksum import digest
from chunkhook.transport.base import BlobTransport

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class UploadedChunk:
    """Result of one chunk upload, ready to be committed to the index."""

    index: int
    size: int
    checksum: str
    locator: str


class UploadCoordinator:
    """Upload a chunk sequence concurrently while preserving chunk order.

    Args:
        transport: Blob transport used for every upload.
        workers: Maximum number of concurrent uploads (>= 1).
        on_progress: Called with the number of completed uploads after each
            completion, from the coordinating thread.
        name: Prefix for the per-chunk upload file names.
    """

    def __init__(
        self,
        transport: BlobTransport,
        workers: int = DEFAULT_WORKERS,
        on_progress: Callable[[int], None] | None = None,
        name: str = "chunk",
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._transport = transport
        self.workers = workers
        self._on_progress = on_progress
        self._name = name

    def run(self, chunks: Iterable[bytes]) -> list[UploadedChunk]:
        """Upload every chunk and return the results ordered by index.

        Raises:
            ChunkhookError: The first terminal upload failure (with
                ``chunk_index`` set) or a SourceReadError from the splitter.
        """
        cancel = threading.Event()
        results: dict[int, UploadedChunk] = {}
        in_flight: dict[Future[UploadedChunk], int] = {}

        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="chunkhook-upload"
        ) as pool:
            try:
                source = iter(chunks)
                index = 0
                while True:
                    while len(in_flight) >= self.workers:
                        self._collect(in_flight, results)
                    try:
                        data = next(source)
                    except StopIteration:
                        break
                    checksum = digest(data)
                    future = pool.submit(self._upload_one, index, data, checksum, cancel)
                    in_flight[future] = index
                    index += 1
                while in_flight:
                    self._collect(in_flight, results)
            except BaseException:
                cancel.set()
                for future in in_flight:
                    future.cancel()
                logger.debug(
                    "Upload cancelled with %d chunk(s) in flight, %d uploaded",
                    len(in_flight),
                    len(results),
                )
                raise

        return [results[i] for i in range(len(results))]

    def _upload_one(
        self, index: int, data: bytes, checksum: str, cancel: threading.Event
    ) -> UploadedChunk:
        try:
            locator = self._transport.upload(
                data, filename=f"{self._name}.{index}.chunk", cancel=cancel
            )
        except ChunkhookError as exc:
            exc.chunk_index = index
            raise
        logger.debug("Chunk %d uploaded (%d bytes)", index, len(data))
        return UploadedChunk(index=index, size=len(data), checksum=checksum, locator=locator)

    def _collect(
        self,
        in_flight: dict[Future[UploadedChunk], int],
        results: dict[int, UploadedChunk],
    ) -> None:
        """Wait for at least one upload to finish and record finished results.

        If any finished upload failed, the failure with the lowest chunk index
        is raised. Cancellation errors only surface when nothing else failed.
        """
        done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
        failures: list[tuple[int, BaseException]] = []
        for future in sorted(done, key=in_flight.__getitem__):
            index = in_flight.pop(future)
            exc = future.exception()
            if exc is not None:
                failures.append((index, exc))
                continue
            results[index] = future.result()
            if self._on_progress is not None:
                self._on_progress(len(results))
        if failures:
            real = [f for f in failures if not isinstance(f[1], TransferCancelled)]
            raise (real or failures)[0][1]
