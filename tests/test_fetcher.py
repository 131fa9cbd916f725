"""Tests for the HTTP media fetcher."""

import logging
from pathlib import Path

import httpx
import pytest

from mediasync.config import FetchConfig
from mediasync.errors import FetchError
from mediasync.fetcher import MediaFetcher
from mediasync.storage import extension_for


class BrokenStream(httpx.SyncByteStream):
    def __iter__(self):
        yield b"partial"
        raise httpx.ReadError("connection reset")


def _fetcher(handler) -> MediaFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return MediaFetcher(FetchConfig(request_delay=0), client=client)


def test_fetch_writes_body(tmp_path: Path):
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://cdn/a.jpg?sig=1"
        return httpx.Response(200, content=b"jpegdata", headers={"content-type": "image/jpeg"})

    with _fetcher(handler) as f:
        path = f.fetch("https://cdn/a.jpg?sig=1", lambda ct: tmp_path / "a.jpg")

    assert path.read_bytes() == b"jpegdata"


def test_destination_sees_content_type(tmp_path: Path):
    def handler(request):
        return httpx.Response(200, content=b"v", headers={"content-type": "video/mp4"})

    with _fetcher(handler) as f:
        path = f.fetch("https://cdn/stream", lambda ct: tmp_path / f"clip.{extension_for(ct)}")

    assert path.name == "clip.mp4"


def test_http_error_raises_fetch_error(tmp_path: Path):
    def handler(request):
        return httpx.Response(403)

    with _fetcher(handler) as f, pytest.raises(FetchError) as err:
        f.fetch("https://cdn/a.jpg", lambda ct: tmp_path / "a.jpg")

    assert err.value.url == "https://cdn/a.jpg"
    assert not (tmp_path / "a.jpg").exists()


def test_broken_stream_removes_partial_file(tmp_path: Path):
    def handler(request):
        return httpx.Response(200, headers={"content-type": "image/jpeg"}, stream=BrokenStream())

    with _fetcher(handler) as f, pytest.raises(FetchError):
        f.fetch("https://cdn/a.jpg", lambda ct: tmp_path / "a.jpg")

    assert not (tmp_path / "a.jpg").exists()


def test_unwritable_destination_raises_fetch_error(tmp_path: Path):
    def handler(request):
        return httpx.Response(200, content=b"x")

    with _fetcher(handler) as f, pytest.raises(FetchError):
        f.fetch("https://cdn/a.jpg", lambda ct: tmp_path / "missing-dir" / "a.jpg")


def test_invalid_url_raises_fetch_error(tmp_path: Path):
    def handler(request):
        raise AssertionError("no request expected")

    with _fetcher(handler) as f, pytest.raises(FetchError) as err:
        f.fetch("https://[bad/img.jpg", lambda ct: tmp_path / "img.jpg")

    assert err.value.url == "https://[bad/img.jpg"


def test_overwriting_existing_file_logs_warning(tmp_path: Path, caplog):
    (tmp_path / "a.jpg").write_bytes(b"old")

    def handler(request):
        return httpx.Response(200, content=b"new")

    with caplog.at_level(logging.WARNING, logger="mediasync.fetcher"), _fetcher(handler) as f:
        path = f.fetch("https://cdn/a.jpg", lambda ct: tmp_path / "a.jpg")

    assert path.read_bytes() == b"new"
    assert "Overwriting existing file" in caplog.text
