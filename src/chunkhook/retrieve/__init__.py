"""Retrieval pipeline: ordered download, verification, output sinks."""

from chunkhook.retrieve.pipeline import VerifyReport, export_file, verify_file
from chunkhook.retrieve.sinks import FileSink, Sink, StreamSink, open_sink

__all__ = [
    "FileSink",
    "Sink",
    "StreamSink",
    "VerifyReport",
    "export_file",
    "open_sink",
    "verify_file",
]
