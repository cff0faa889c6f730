from datetime import datetime, timedelta, timezone

import pytest
import requests

from focus_fade import capture
from focus_fade.capture import Activity, CaptureClient, CaptureError, latest_app, parse_timestamp

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 300

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@pytest.fixture
def gets(monkeypatch):
    calls = []
    replies = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(capture.requests, "get", fake_get)
    return calls, replies


def test_items_accept_both_key_styles():
    snake = Activity.from_item({"content": {"timestamp": "2025-03-01T09:00:00Z", "app_name": "Cursor", "window_name": "main.py"}})
    camel = Activity.from_item({"content": {"timestamp": "2025-03-01T09:00:00Z", "appName": "Cursor", "windowName": "main.py"}})
    assert snake == camel
    assert snake.timestamp == T0


def test_parse_timestamp_variants():
    assert parse_timestamp(T0.timestamp() * 1000) == T0
    assert parse_timestamp("2025-03-01T09:00:00") == T0
    assert parse_timestamp("2025-03-01T09:00:00.123456789Z") == T0.replace(microsecond=123456)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_out_of_range_timestamps_are_unknown():
    assert parse_timestamp(1e300) is None
    assert parse_timestamp(float("nan")) is None
    assert Activity.from_item({"content": {"timestamp": 1e300, "appName": "A"}}) == Activity(None, "A")


def test_latest_app_picks_newest_event():
    activities = [
        Activity(T0, "Cursor"),
        Activity(T0 + timedelta(seconds=30), "Slack"),
        Activity(T0 + timedelta(seconds=10), "Arc"),
        Activity(None, "Undated"),
    ]
    assert latest_app(activities) == "Slack"
    assert latest_app([]) is None


def test_query_sends_window_and_normalizes(gets):
    calls, replies = gets
    replies.append(FakeResponse({"data": [
        {"type": "OCR", "content": {"timestamp": "2025-03-01T09:00:05Z", "app_name": "Cursor", "text": "def main"}},
    ]}))

    result = CaptureClient("http://localhost:3030/").query("ocr", T0, T0 + timedelta(minutes=1), 50)

    url, params = calls[0]
    assert url == "http://localhost:3030/search"
    assert params == {
        "content_type": "ocr",
        "start_time": "2025-03-01T09:00:00Z",
        "end_time": "2025-03-01T09:01:00Z",
        "limit": 50,
    }
    assert result[0].app_name == "Cursor"
    assert result[0].text == "def main"


def test_missing_data_is_empty(gets):
    _, replies = gets
    replies.append(FakeResponse({"pagination": {}}))
    assert CaptureClient().query("ui", T0, T0) == []


@pytest.mark.parametrize("reply", [
    requests.ConnectionError("refused"),
    FakeResponse({}, status_code=500),
    FakeResponse(ValueError("not json")),
])
def test_failures_raise_capture_error(gets, reply):
    _, replies = gets
    replies.append(reply)
    with pytest.raises(CaptureError):
        CaptureClient().query("ocr", T0, T0)


def test_current_app_looks_at_ui_events(gets):
    calls, replies = gets
    replies.append(FakeResponse({"data": [
        {"content": {"timestamp": "2025-03-01T09:00:00Z", "appName": "Arc"}},
        {"content": {"timestamp": "2025-03-01T09:05:00Z", "appName": "Cursor"}},
    ]}))
    assert CaptureClient().current_app() == "Cursor"
    assert calls[0][1]["content_type"] == "ui"
