"""
Image Fetcher Tests
===================

Tests for image download, validation and filename derivation.
"""

from unittest.mock import patch

import pytest
import requests

from feedhook.delivery.image_fetcher import ImageFetcher, filename_from_url
from tests.fakes import FakeResponse


class TestFilenameFromUrl:
    """Test filename derivation from the image URL."""

    def test_last_path_segment(self):
        assert filename_from_url("https://i.imgur.com/a/b/cat.png?size=large") == "cat.png"

    def test_percent_decoded(self):
        assert filename_from_url("https://x.test/img/my%20cat.jpg") == "my cat.jpg"

    def test_trailing_slash_uses_mime_extension(self):
        assert filename_from_url("https://x.test/img/", "image/png") == "image.png"

    def test_no_path_without_mime(self):
        assert filename_from_url("https://x.test") == "image"


class TestImageFetcher:
    """Test image download through a fake session."""

    def test_fetches_png(self, session_factory, png_bytes):
        session_factory.queue(FakeResponse(200, png_bytes))
        fetcher = ImageFetcher(session_factory=session_factory)

        image = fetcher.fetch("https://i.imgur.com/cat.png")

        assert image is not None
        assert image.data == png_bytes
        assert image.mime_type == "image/png"
        assert image.filename == "cat.png"
        assert image.source_url == "https://i.imgur.com/cat.png"
        assert image.size == len(png_bytes)

    def test_mime_comes_from_content_not_extension(self, session_factory, jpeg_bytes):
        session_factory.queue(FakeResponse(200, jpeg_bytes))
        image = ImageFetcher(session_factory=session_factory).fetch("https://x.test/photo.png")
        assert image.mime_type == "image/jpeg"
        assert image.filename == "photo.png"

    def test_request_settings(self, session_factory, png_bytes):
        session_factory.queue(FakeResponse(200, png_bytes))
        ImageFetcher(timeout=7, max_redirects=3, user_agent="UA/1", session_factory=session_factory).fetch(
            "https://x.test/a.png"
        )

        request = session_factory.requests[0]
        session = request["session"]
        assert request["method"] == "GET"
        assert 0 < request["timeout"] <= 7
        assert request["stream"] is True
        assert request["allow_redirects"] is False
        assert session.headers["User-Agent"] == "UA/1"
        assert session_factory.all_closed

    @pytest.mark.parametrize("status", [301, 404, 500])
    def test_non_success_status_returns_none(self, session_factory, png_bytes, status, caplog):
        session_factory.queue(FakeResponse(status, png_bytes))
        assert ImageFetcher(session_factory=session_factory).fetch("https://x.test/a.png") is None
        assert "Image download failed" in caplog.text
        assert session_factory.all_closed

    @pytest.mark.parametrize("error", [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        requests.TooManyRedirects("loop"),
    ])
    def test_transport_errors_return_none(self, session_factory, error, caplog):
        session_factory.queue(error)
        assert ImageFetcher(session_factory=session_factory).fetch("https://x.test/a.png") is None
        assert "Image download failed" in caplog.text
        assert session_factory.all_closed

    def test_invalid_image_returns_none(self, session_factory, caplog):
        session_factory.queue(FakeResponse(200, b"<html>not an image</html>"))
        assert ImageFetcher(session_factory=session_factory).fetch("https://x.test/a.png") is None
        assert "Invalid image format" in caplog.text

    def test_empty_body_returns_none(self, session_factory, caplog):
        session_factory.queue(FakeResponse(200, b""))
        assert ImageFetcher(session_factory=session_factory).fetch("https://x.test/a.png") is None
        assert "Invalid image format" in caplog.text

    def test_deadline_covers_body_read(self, session_factory, png_bytes, caplog):
        session_factory.queue(FakeResponse(200, png_bytes, chunk_size=8))
        fetcher = ImageFetcher(timeout=10, session_factory=session_factory)

        with patch("feedhook.delivery.image_fetcher.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 0.0] + [11.0] * 100
            assert fetcher.fetch("https://x.test/a.png") is None

        assert "deadline" in caplog.text
        assert session_factory.all_closed


class TestRedirects:
    """Test redirect handling under the total download deadline."""

    def test_follows_relative_redirect(self, session_factory, png_bytes):
        session_factory.queue(
            FakeResponse(302, headers={"Location": "/media/cat.png"}),
            FakeResponse(200, png_bytes),
        )

        image = ImageFetcher(session_factory=session_factory).fetch("https://x.test/short/abc")

        first, second = session_factory.requests
        assert first["url"] == "https://x.test/short/abc"
        assert second["url"] == "https://x.test/media/cat.png"
        assert second["allow_redirects"] is False
        assert image.mime_type == "image/png"
        assert image.source_url == "https://x.test/short/abc"
        assert session_factory.all_closed

    def test_too_many_redirects_returns_none(self, session_factory, png_bytes, caplog):
        session_factory.queue(
            FakeResponse(301, headers={"Location": "https://x.test/1"}),
            FakeResponse(301, headers={"Location": "https://x.test/2"}),
            FakeResponse(301, headers={"Location": "https://x.test/3"}),
            FakeResponse(200, png_bytes),
        )

        fetcher = ImageFetcher(max_redirects=2, session_factory=session_factory)

        assert fetcher.fetch("https://x.test/0") is None
        assert len(session_factory.requests) == 3
        assert "More than 2 redirects" in caplog.text
        assert caplog.records[-1].image_url == "https://x.test/0"

    def test_each_hop_gets_remaining_time(self, session_factory, png_bytes):
        session_factory.queue(
            FakeResponse(302, headers={"Location": "https://cdn.x.test/a.png"}),
            FakeResponse(200, png_bytes),
        )
        fetcher = ImageFetcher(timeout=10, session_factory=session_factory)

        with patch("feedhook.delivery.image_fetcher.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 1.0, 4.5] + [5.0] * 100
            assert fetcher.fetch("https://x.test/a.png") is not None

        assert [r["timeout"] for r in session_factory.requests] == [9.0, 5.5]

    def test_deadline_spent_between_hops(self, session_factory, png_bytes, caplog):
        session_factory.queue(
            FakeResponse(302, headers={"Location": "https://cdn.x.test/a.png"}),
            FakeResponse(200, png_bytes),
        )
        fetcher = ImageFetcher(timeout=10, session_factory=session_factory)

        with patch("feedhook.delivery.image_fetcher.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 1.0, 10.0]
            assert fetcher.fetch("https://x.test/a.png") is None

        assert len(session_factory.requests) == 1
        assert "deadline" in caplog.text
        assert session_factory.all_closed
