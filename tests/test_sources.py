"""
Tests for fetching and decoding source images.
"""

from __future__ import annotations

from unittest import mock

import pytest
import requests

from imagetools import sources
from imagetools.exceptions import (FetchError, FetchImageFailed, InvalidImage,
                                   MissingImage)


def _response(status: int = 200, content: bytes = b"",
              content_type: str | None = "image/png") -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.content = content
    resp.headers = {"Content-Type": content_type} if content_type else {}
    return resp


class TestHttpFetch:
    def test_ok(self, png_bytes):
        with mock.patch.object(sources.requests, "get",
                               return_value=_response(content=png_bytes,
                                                      content_type="image/png; q=1")) as get:
            data, mime = sources.http_fetch("https://example.com/a.png", timeout=5)
        assert data == png_bytes
        assert mime == "image/png"
        get.assert_called_once_with("https://example.com/a.png", timeout=5)

    def test_missing_content_type(self):
        with mock.patch.object(sources.requests, "get",
                               return_value=_response(content=b"x", content_type=None)):
            assert sources.http_fetch("https://example.com/a")[1] is None

    def test_bad_status(self):
        with mock.patch.object(sources.requests, "get", return_value=_response(404)):
            with pytest.raises(FetchError) as exc_info:
                sources.http_fetch("https://example.com/missing.png")
        assert exc_info.value.status == 404

    def test_network_error(self):
        with mock.patch.object(sources.requests, "get",
                               side_effect=requests.ConnectionError("refused")):
            with pytest.raises(FetchError):
                sources.http_fetch("https://example.com/a.png")


class TestFileFetch:
    def test_reads_and_guesses_mime(self, tmp_dir, png_bytes):
        path = tmp_dir / "red.png"
        path.write_bytes(png_bytes)
        assert sources.file_fetch(str(path)) == (png_bytes, "image/png")

    def test_sniffs_without_extension(self, tmp_dir, gif_bytes):
        path = tmp_dir / "anim"
        path.write_bytes(gif_bytes)
        assert sources.file_fetch(str(path))[1] == "image/gif"

    def test_missing_file(self, tmp_dir):
        with pytest.raises(FetchError):
            sources.file_fetch(str(tmp_dir / "nope.png"))


class TestDefaultFetch:
    def test_urls_go_over_http(self):
        with mock.patch.object(sources, "http_fetch", return_value=(b"", None)) as http:
            sources.default_fetch("http://example.com/x.gif", timeout=2)
        http.assert_called_once_with("http://example.com/x.gif", 2)

    def test_paths_read_from_disk(self, tmp_dir, png_bytes):
        path = tmp_dir / "a.png"
        path.write_bytes(png_bytes)
        assert sources.default_fetch(str(path))[0] == png_bytes


class TestReadImage:
    def test_decodes(self, png_bytes):
        model = sources.read_image(lambda src: (png_bytes, "image/png"), "x")
        assert model.size == (8, 6)

    def test_fetch_failure(self):
        def fetch(src):
            raise FetchError("down", status=503)
        with pytest.raises(FetchImageFailed):
            sources.read_image(fetch, "https://example.com/a.png")

    def test_decode_failure(self):
        with pytest.raises(InvalidImage):
            sources.read_image(lambda src: (b"garbage", "image/png"), "x")


class TestFetchSources:
    def test_order_kept(self, png_bytes, gif_bytes):
        blobs = {"a": (gif_bytes, "image/gif"), "b": (png_bytes, "image/png")}
        models = sources.fetch_sources(blobs.__getitem__, ["b", "a", "b"], workers=3)
        assert [len(m) for m in models] == [1, 3, 1]

    def test_empty(self):
        with pytest.raises(MissingImage):
            sources.fetch_sources(lambda src: (b"", None), [])
