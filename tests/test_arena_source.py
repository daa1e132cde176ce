from __future__ import annotations

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from arena_watch.errors import FeedFetchError
from arena_watch.sources import ArenaChannelSource, fetch_all

CHANNEL_URL = "https://api.are.na/v2/channels/protocol-awo5urlnkjm/contents"


class _DummyResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.text = content.decode("utf-8")
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> object:
        return json.loads(self.text)


def _payload(*contents: dict) -> bytes:
    return json.dumps({"length": len(contents), "contents": list(contents)}).encode("utf-8")


def test_fetch_maps_contents_in_feed_order(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def _fake_get(url: str, *args, **kwargs) -> _DummyResponse:
        calls.append({"url": url, **kwargs})
        return _DummyResponse(
            _payload(
                {
                    "id": 1,
                    "title": "A",
                    "connected_by_username": "alice",
                    "connected_at": "2026-01-05T12:30:00.000Z",
                    "class": "Image",
                },
                {"id": 2, "title": None, "connected_by_username": "bob"},
            )
        )

    monkeypatch.setattr("requests.get", _fake_get)

    items = ArenaChannelSource(CHANNEL_URL).fetch()

    assert [item.id for item in items] == ["1", "2"]
    assert items[0].title == "A"
    assert items[0].contributor == "alice"
    assert items[0].item_class == "Image"
    assert items[0].connected_at == datetime(2026, 1, 5, 12, 30, tzinfo=timezone.utc)
    assert items[0].source_url == CHANNEL_URL
    assert items[1].title is None
    assert items[1].display_title == "an untitled item"
    assert items[1].link == "https://www.are.na/block/2"

    request = calls[0]
    assert parse_qs(urlsplit(request["url"]).query) == {"per": ["-1"]}
    assert request["headers"]["Cache-Control"] == "no-cache"
    assert request["headers"]["Pragma"] == "no-cache"


def test_existing_per_parameter_is_replaced() -> None:
    source = ArenaChannelSource(f"{CHANNEL_URL}?per=20&sort=position")

    query = parse_qs(urlsplit(source.request_url).query)

    assert query == {"per": ["-1"], "sort": ["position"]}


def test_entries_without_id_are_skipped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "requests.get",
        lambda *args, **kwargs: _DummyResponse(
            _payload({"title": "orphan"}, {"id": "abc", "connected_by_username": "carol"})
        ),
    )

    items = ArenaChannelSource(CHANNEL_URL).fetch()

    assert [item.id for item in items] == ["abc"]


@pytest.mark.parametrize(
    "response",
    [
        _DummyResponse(b"<html>gateway timeout</html>"),
        _DummyResponse(b'{"channel": "no contents here"}'),
        _DummyResponse(_payload(), status_code=502),
    ],
)
def test_bad_responses_raise_feed_fetch_error(
    monkeypatch: pytest.MonkeyPatch,
    response: _DummyResponse,
) -> None:
    monkeypatch.setattr("requests.get", lambda *args, **kwargs: response)

    with pytest.raises(FeedFetchError):
        ArenaChannelSource(CHANNEL_URL).fetch()


def test_network_error_raises_feed_fetch_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(*args, **kwargs):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr("requests.get", _raise)

    with pytest.raises(FeedFetchError, match="no route to host"):
        ArenaChannelSource(CHANNEL_URL).fetch()


def test_fetch_all_concatenates_in_configuration_order(monkeypatch: pytest.MonkeyPatch) -> None:
    responses = {
        "first": _payload({"id": 3, "connected_by_username": "a"}, {"id": 1, "connected_by_username": "a"}),
        "second": _payload({"id": 2, "connected_by_username": "b"}),
    }

    def _fake_get(url: str, *args, **kwargs) -> _DummyResponse:
        for key, body in responses.items():
            if f"/{key}/" in url:
                return _DummyResponse(body)
        raise AssertionError(url)

    monkeypatch.setattr("requests.get", _fake_get)

    items = fetch_all(
        [
            ArenaChannelSource("https://api.are.na/v2/channels/first/contents"),
            ArenaChannelSource("https://api.are.na/v2/channels/second/contents"),
        ]
    )

    assert [item.id for item in items] == ["3", "1", "2"]


def test_fetch_all_logs_each_source_by_id(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setattr(
        "requests.get",
        lambda *args, **kwargs: _DummyResponse(_payload({"id": 1, "connected_by_username": "a"})),
    )
    source = ArenaChannelSource(CHANNEL_URL)

    with caplog.at_level("DEBUG", logger="arena_watch.sources.base"):
        fetch_all([source])

    assert source.source_id == CHANNEL_URL
    assert f"Source {CHANNEL_URL} yielded 1 item(s)" in caplog.text


def test_fetch_all_fails_fast_on_any_broken_feed(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_get(url: str, *args, **kwargs) -> _DummyResponse:
        if "/broken/" in url:
            return _DummyResponse(b"oops", status_code=500)
        return _DummyResponse(_payload({"id": 1, "connected_by_username": "a"}))

    monkeypatch.setattr("requests.get", _fake_get)

    with pytest.raises(FeedFetchError, match="channels/broken/contents"):
        fetch_all(
            [
                ArenaChannelSource("https://api.are.na/v2/channels/ok/contents"),
                ArenaChannelSource("https://api.are.na/v2/channels/broken/contents"),
            ]
        )
