"""
Shared fixtures for Focus Fade tests.

Nothing here reaches the network or the desktop: the capture service and
the model are fakes, notifications are recorded instead of sent, and
background work runs inline.
"""

from concurrent.futures import Future
from datetime import datetime, timedelta, timezone

import pytest

from focus_fade.capture import Activity
from focus_fade.config import DEFAULT_CONFIG, deep_merge
from focus_fade.log_store import LogStore
from focus_fade.monitor import FocusMonitor
from focus_fade.notifier import Notifier

BASE_TIME = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class FakeClock:
    def __init__(self, start=BASE_TIME.timestamp()):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeCapture:
    """Capture service stand-in that replays queued batches."""

    def __init__(self):
        self.batches = []
        self.queries = []
        self.error = None

    def push(self, *apps, at=BASE_TIME):
        batch = [
            Activity(timestamp=at - timedelta(seconds=i), app_name=app, window_name=f"{app} window")
            for i, app in enumerate(apps)
        ]
        self.batches.append(batch)
        return batch

    def query(self, content_type, start_time, end_time, limit=50):
        self.queries.append((content_type, start_time, end_time, limit))
        if self.error is not None:
            raise self.error
        if self.batches:
            return self.batches.pop(0)
        return []

    def current_app(self):
        batch = self.query("ui", None, None)
        return batch[0].app_name if batch else None


class FakeModel:
    """Model client stand-in returning canned answers in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingNotifier(Notifier):
    def __init__(self, config=None):
        super().__init__(config or {})
        self.sent = []

    def send_notification(self, message):
        self.sent.append(message)

    def play_voice_alert(self, message):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def model():
    return FakeModel('[{"app": "Cursor", "isRelevant": true, "reason": "IDE"}]')


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config(tmp_path):
    return deep_merge(DEFAULT_CONFIG, {"log_file": str(tmp_path / "logs.json")})


@pytest.fixture
def monitor(config, capture, model, notifier, clock):
    return FocusMonitor(
        config,
        capture=capture,
        log_store=LogStore(config["log_file"]),
        notifier=notifier,
        model_factory=lambda: model,
        executor=InlineExecutor(),
        clock=clock,
    )
