"""Tests for streaming the source asset into the staging area."""

from pathlib import Path

import pytest

from conftest import FakeResponse
from transcoder.core.errors import NotFound, TransferError
from transcoder.services.fetcher import AssetFetcher


class _SingleResponseStorage:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response

    def open_object(self, object_name: str) -> FakeResponse:
        return self.response


def test_fetch_streams_object_to_disk(storage, tmp_path: Path) -> None:
    payload = b"frame" * 1000
    storage.objects["raw/abc123.mov"] = payload
    dest = tmp_path / "input_video"

    AssetFetcher(storage, chunk_size=256).fetch("raw/abc123.mov", dest)

    assert dest.read_bytes() == payload
    response = storage.responses[0]
    assert response.closed and response.released


def test_fetch_missing_object_raises_not_found(storage, tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        AssetFetcher(storage).fetch("raw/missing.mov", tmp_path / "input_video")
    assert not (tmp_path / "input_video").exists()


def test_fetch_stream_error_raises_transfer_error(tmp_path: Path) -> None:
    response = FakeResponse(b"x" * 1024, fail_after=512)
    with pytest.raises(TransferError):
        AssetFetcher(_SingleResponseStorage(response), chunk_size=256).fetch("k", tmp_path / "in")
    assert response.closed and response.released


def test_fetch_truncated_body_raises_transfer_error(tmp_path: Path) -> None:
    response = FakeResponse(b"x" * 100, content_length=4096)
    with pytest.raises(TransferError, match="truncated"):
        AssetFetcher(_SingleResponseStorage(response)).fetch("k", tmp_path / "in")


def test_fetch_unwritable_destination_raises_transfer_error(tmp_path: Path) -> None:
    response = FakeResponse(b"data")
    with pytest.raises(TransferError):
        AssetFetcher(_SingleResponseStorage(response)).fetch("k", tmp_path / "no-such-dir" / "in")
    assert response.released
