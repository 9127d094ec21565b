"""Tests for the raw data downloader (network calls are faked)."""

import pytest
import requests

from stormharm import download


class _FakeResponse:
    def __init__(self, chunks, status_error=None):
        self._chunks = chunks
        self._status_error = status_error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def iter_content(self, chunk_size):
        return iter(self._chunks)


@pytest.fixture()
def calls(monkeypatch):
    """Record requests.get calls and serve two chunks."""
    seen = []

    def fake_get(url, stream, timeout):
        seen.append(url)
        return _FakeResponse([b"BZh9", b"", b"data"])

    monkeypatch.setattr(download.requests, "get", fake_get)
    return seen


class TestDownloadStormData:
    def test_streams_chunks_to_destination(self, calls, tmp_path):
        dest = tmp_path / "raw" / "StormData.csv.bz2"

        result = download.download_storm_data(dest=dest)

        assert result == dest
        assert dest.read_bytes() == b"BZh9data"
        assert calls == [download.STORM_DATA_URL]

    def test_existing_file_is_not_downloaded_again(self, calls, tmp_path):
        dest = tmp_path / "StormData.csv.bz2"
        dest.write_bytes(b"old")

        download.download_storm_data(dest=dest)

        assert calls == []
        assert dest.read_bytes() == b"old"

    def test_overwrite_replaces_existing_file(self, calls, tmp_path):
        dest = tmp_path / "StormData.csv.bz2"
        dest.write_bytes(b"old")

        download.download_storm_data(dest=dest, overwrite=True)

        assert dest.read_bytes() == b"BZh9data"

    def test_http_error_propagates(self, monkeypatch, tmp_path):
        error = requests.HTTPError("404 Not Found")
        monkeypatch.setattr(
            download.requests,
            "get",
            lambda url, stream, timeout: _FakeResponse([], status_error=error),
        )

        with pytest.raises(requests.HTTPError):
            download.download_storm_data(dest=tmp_path / "x.bz2")
