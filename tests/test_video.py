"""Tests for YouTube URL parsing and the oEmbed metadata lookup."""

from __future__ import annotations

import pytest
import requests

from lesson_arcade.errors import MetadataLookupError
from lesson_arcade.media import embed_url, extract_video_id, fetch_video_metadata


class FakeResponse:
    def __init__(self, payload=None, status_error=None):
        self.payload = payload
        self.status_error = status_error

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.error:
            raise self.error
        return self.response


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtube.com/watch?v=abc&t=42", "abc"),
        ("https://youtu.be/xyz789", "xyz789"),
        ("https://vimeo.com/12345", None),
        ("https://www.youtube.com/channel/foo", None),
        ("not a url", None),
    ],
)
def test_extract_video_id(url, expected):
    assert extract_video_id(url) == expected


def test_embed_url():
    assert embed_url("https://youtu.be/xyz789") == "https://www.youtube.com/embed/xyz789?rel=0"
    assert embed_url("https://example.com") is None


def test_fetch_metadata_success():
    session = FakeSession(FakeResponse({"title": " Orbits 101 ", "author_name": "Space Channel"}))
    metadata = fetch_video_metadata("https://youtu.be/xyz", session=session, timeout=3)
    assert metadata.title == "Orbits 101"
    assert metadata.author_name == "Space Channel"
    url, params, timeout = session.calls[0]
    assert url == "https://www.youtube.com/oembed"
    assert params == {"url": "https://youtu.be/xyz", "format": "json"}
    assert timeout == 3


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(FakeResponse(status_error=requests.HTTPError("404"))),
        FakeSession(FakeResponse(ValueError("not json"))),
        FakeSession(FakeResponse({"author_name": "No title"})),
    ],
)
def test_fetch_metadata_failures(session):
    with pytest.raises(MetadataLookupError):
        fetch_video_metadata("https://youtu.be/xyz", session=session)


def test_fetch_metadata_without_session_uses_module_get(monkeypatch):
    fake = FakeSession(FakeResponse({"title": "Orbits 101"}))
    monkeypatch.setattr(requests, "get", fake.get)
    monkeypatch.setattr(requests, "Session", lambda: pytest.fail("no session should be opened"))

    metadata = fetch_video_metadata("https://youtu.be/xyz", endpoint="https://oembed.test", timeout=5)

    assert metadata.title == "Orbits 101"
    assert fake.calls == [("https://oembed.test", {"url": "https://youtu.be/xyz", "format": "json"}, 5)]
