"""chunkhook ingest pipeline — checksum codec, splitter, upload coordinator."""

from chunkhook.ingest.checksum import digest
from chunkhook.ingest.coordinator import UploadCoordinator, UploadedChunk
from chunkhook.ingest.pipeline import ingest_path, ingest_stream
from chunkhook.ingest.splitter import ChunkSplitter

__all__ = [
    "ChunkSplitter",
    "UploadCoordinator",
    "UploadedChunk",
    "digest",
    "ingest_path",
    "ingest_stream",
]
