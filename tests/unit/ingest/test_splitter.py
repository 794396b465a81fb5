"""Tests for the fixed-size chunk splitter."""

from __future__ import annotations

import io
import os

import pytest

from chunkhook.errors import SourceReadError
from chunkhook.ingest.splitter import DEFAULT_CHUNK_SIZE, ChunkSplitter


class _TrickleStream(io.RawIOBase):
    """Returns at most *step* bytes per read, like a pipe."""

    def __init__(self, data: bytes, step: int) -> None:
        self._buf = io.BytesIO(data)
        self._step = step

    def readable(self) -> bool:
        return True

    def read(self, size=-1):
        return self._buf.read(min(size, self._step) if size and size > 0 else self._step)


class _BrokenStream(io.RawIOBase):
    """Yields *good* bytes, then raises on the next read."""

    def __init__(self, good: int) -> None:
        self._left = good

    def readable(self) -> bool:
        return True

    def read(self, size=-1):
        if self._left <= 0:
            raise OSError("device went away")
        n = min(size, self._left)
        self._left -= n
        return b"x" * n


def test_default_chunk_size():
    assert DEFAULT_CHUNK_SIZE == 2_000_000


def test_rejects_zero_chunk_size():
    with pytest.raises(ValueError):
        ChunkSplitter(0)


def test_empty_stream_yields_nothing():
    assert list(ChunkSplitter(4).split(io.BytesIO(b""))) == []


def test_single_byte():
    assert list(ChunkSplitter(4).split(io.BytesIO(b"z"))) == [b"z"]


def test_exact_multiple_has_no_empty_tail():
    chunks = list(ChunkSplitter(4).split(io.BytesIO(b"abcdefgh")))
    assert chunks == [b"abcd", b"efgh"]


def test_short_last_chunk():
    chunks = list(ChunkSplitter(4).split(io.BytesIO(b"abcdefghij")))
    assert chunks == [b"abcd", b"efgh", b"ij"]


@pytest.mark.parametrize("size", [0, 1, 3, 4, 5, 99, 100, 101])
def test_chunk_count_and_concatenation(size):
    data = os.urandom(size)
    splitter = ChunkSplitter(10)
    chunks = list(splitter.split(io.BytesIO(data)))
    assert len(chunks) == splitter.count(size)
    assert b"".join(chunks) == data
    assert all(len(c) == 10 for c in chunks[:-1])


def test_short_reads_are_coalesced():
    data = bytes(range(256)) * 4
    chunks = list(ChunkSplitter(100).split(_TrickleStream(data, step=7)))
    assert [len(c) for c in chunks] == [100] * 10 + [24]
    assert b"".join(chunks) == data


def test_read_error_carries_chunk_index():
    stream = _BrokenStream(good=10)
    produced = []
    with pytest.raises(SourceReadError) as exc_info:
        for chunk in ChunkSplitter(4).split(stream):
            produced.append(chunk)
    assert exc_info.value.chunk_index == 2
    assert len(produced) == 2


def test_split_path(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"0123456789")
    assert list(ChunkSplitter(3).split_path(path)) == [b"012", b"345", b"678", b"9"]


def test_split_path_missing(tmp_path):
    with pytest.raises(SourceReadError):
        list(ChunkSplitter(3).split_path(tmp_path / "nope"))


def test_count_large_values():
    splitter = ChunkSplitter(7_000_000)
    assert splitter.count(15_000_000) == 3
    assert splitter.count(14_000_000) == 2
    assert splitter.count(0) == 0
