"""Session controller.

``FocusMonitor`` owns the single live ``SessionState`` and is the only
thing that mutates it. While a session is active two daemon threads run:
the poller, which asks the capture service what is in focus, and the
distraction checker, which raises periodic alerts. Model calls run on a
small worker pool and their results are applied only if the session they
were started for is still the live one.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from focus_fade.ai import ModelClient, ModelError
from focus_fade.capture import Activity, CaptureClient, CaptureError, latest_app
from focus_fade.classifier import ClassificationResult, RelevanceClassifier
from focus_fade.config import AISettings, load_settings
from focus_fade.log_store import LogStore
from focus_fade.notifier import DistractionChecker, Notifier
from focus_fade.session import FocusEvent, SessionState
from focus_fade.summarizer import ActivitySummarizer

logger = logging.getLogger("FocusFade")

POLL_ERROR = "Error polling capture events"
CLASSIFY_ERROR = "Failed to analyze task relevance"
SUMMARY_ERROR = "Failed to analyze activities"
LOG_ERROR = "Failed to save focus log"


class FocusMonitor:
    """Main application class that coordinates all modules."""

    def __init__(self, config: Dict[str, Any] = None,
                 capture: Optional[CaptureClient] = None,
                 log_store: Optional[LogStore] = None,
                 notifier: Optional[Notifier] = None,
                 model_factory: Optional[Callable[[], ModelClient]] = None,
                 executor=None,
                 clock: Callable[[], float] = time.time):
        self.config = config or load_settings()
        self.capture = capture or CaptureClient(self.config["capture_url"])
        self.log_store = log_store or LogStore(self.config["log_file"])
        self.notifier = notifier or Notifier(self.config)
        self.checker = DistractionChecker(int(self.config["distraction_threshold"] * 1000))
        self.model_factory = model_factory or self._default_model_client
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="focus-fade")
        self.clock = clock

        self.state = SessionState()
        self.focus_task = self.config.get("focus_task", "")
        self.poll_count = 0

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def _default_model_client(self) -> ModelClient:
        return ModelClient(AISettings.from_config(self.config), timeout=self.config.get("api_timeout", 60))

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    # ===== SESSION LIFECYCLE =====

    def start_session(self, run_timers: bool = True) -> int:
        """Start a fresh session and, unless told otherwise, its timers."""
        with self._lock:
            if self.state.active:
                logger.warning("Monitoring already running")
                return self.state.session_id
            session_id = self.state.start(self.now_ms())
            self.poll_count = 0

        if run_timers:
            self._start_timers()
        logger.info("Focus monitoring started")
        return session_id

    def stop_session(self) -> None:
        """Stop the live session and its timers. The session stays inspectable."""
        with self._lock:
            session_id = self.state.session_id
            event = self.state.stop(self.now_ms())

        self._stop_timers()
        if event is not None:
            self._persist(event, session_id)
        logger.info("Focus monitoring stopped")

    def shutdown(self) -> None:
        if self.state.active:
            self.stop_session()
        self.executor.shutdown(wait=False)

    def _start_timers(self) -> None:
        self._stop_event = threading.Event()
        poll_interval = float(self.config.get("poll_interval", 5))
        check_interval = float(self.config.get("notification_frequency", 2)) * 60
        self._threads = [
            threading.Thread(target=self._timer_loop, name="focus-fade-poller",
                             args=(self._stop_event, poll_interval, self.poll_once), daemon=True),
            threading.Thread(target=self._timer_loop, name="focus-fade-checker",
                             args=(self._stop_event, check_interval, self.check_distractions), daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def _stop_timers(self) -> None:
        self._stop_event.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=2)
        self._threads = []

    @staticmethod
    def _timer_loop(stop_event: threading.Event, interval: float, tick: Callable[[], Any]) -> None:
        while not stop_event.wait(interval):
            try:
                tick()
            except Exception as e:
                logger.error(f"Monitoring error: {e}")

    # ===== POLLING =====

    def poll_once(self) -> Optional[FocusEvent]:
        """Run one poll: query recent events, feed the newest app to the session.

        Every ``summary_every`` polls that return data also hand the batch to
        the summarizer.
        """
        with self._lock:
            if not self.state.active:
                return None
            session_id = self.state.session_id
            start = datetime.fromtimestamp(self.state.start_time / 1000, tz=timezone.utc)

        end = datetime.fromtimestamp(self.now_ms() / 1000, tz=timezone.utc)
        try:
            activities = self.capture.query(
                self.config.get("content_type", "ocr"), start, end, self.config.get("query_limit", 50))
        except CaptureError as e:
            logger.error(f"Error polling capture events: {e}")
            self._report_error(session_id, POLL_ERROR)
            return None

        with self._lock:
            if not self.state.is_live(session_id):
                return None
            if self.state.error_message == POLL_ERROR:
                self.state.error_message = None
            if not activities:
                return None

            self.poll_count += 1
            summary_every = int(self.config.get("summary_every", 10))
            wants_summary = summary_every > 0 and self.poll_count % summary_every == 0

            app = latest_app(activities)
            event = None
            new_app = False
            if app and app != self.state.current_app:
                new_app = app not in self.state.observed_apps
                event = self.state.observe(app, self.now_ms())

        if event is not None:
            self._persist(event, session_id)
        if new_app:
            self.request_classification()
        if wants_summary:
            self.request_summary(activities)

        with self._lock:
            alert = self.checker.check_threshold(self.state)
        self._alert(alert)
        return event

    def _persist(self, event: FocusEvent, session_id: int) -> None:
        try:
            self.log_store.append(event.to_dict())
        except (OSError, ValueError) as e:
            logger.error(f"Failed to send log: {e}")
            self._report_error(session_id, LOG_ERROR)
            return

        with self._lock:
            if self.state.session_id == session_id:
                self.state.logs_count += 1

    def _report_error(self, session_id: int, message: str) -> None:
        with self._lock:
            if self.state.is_live(session_id):
                self.state.error_message = message

    # ===== MODEL WORK =====

    def request_classification(self) -> Optional[Future]:
        """Classify the observed apps against the focus task in the background."""
        with self._lock:
            if not self.state.active or not self.focus_task:
                return None
            apps = self.state.observed_apps
            if not apps:
                return None
            session_id = self.state.session_id
            task = self.focus_task
        return self.executor.submit(self._classify, session_id, task, apps)

    def _classify(self, session_id: int, task: str, apps: List[str]) -> Optional[ClassificationResult]:
        try:
            result = RelevanceClassifier(self.model_factory()).classify(task, apps)
        except ModelError as e:
            logger.error(f"Error analyzing task: {e}")
            self._report_error(session_id, CLASSIFY_ERROR)
            return None

        with self._lock:
            if not self.state.is_live(session_id) or task != self.focus_task:
                logger.warning(f"Dropping stale classification for session {session_id}")
                return None
            self.state.set_verdicts(result.verdicts)
            alert = self.checker.check_threshold(self.state)
        self._alert(alert)
        return result

    def request_summary(self, activities: List[Activity]) -> Optional[Future]:
        with self._lock:
            if not self.state.active:
                return None
            session_id = self.state.session_id
            task = self.focus_task
        return self.executor.submit(self._summarize, session_id, list(activities), task)

    def _summarize(self, session_id: int, activities: List[Activity], task: str) -> Optional[str]:
        try:
            report = ActivitySummarizer(self.model_factory()).summarize(activities, task)
        except ModelError as e:
            logger.error(f"Error analyzing activities: {e}")
            self._report_error(session_id, SUMMARY_ERROR)
            return None

        with self._lock:
            if not self.state.is_live(session_id):
                logger.warning(f"Dropping stale report for session {session_id}")
                return None
            self.state.analysis = report
        self._alert(self.checker.check_report(report))
        return report

    # ===== ALERTS =====

    def check_distractions(self) -> Optional[str]:
        with self._lock:
            alert = self.checker.check_current(self.state, self.focus_task)
        self._alert(alert)
        return alert

    def _alert(self, message: Optional[str]) -> None:
        # must run without self._lock held
        if message:
            self.notifier.notify(message)

    # ===== SETTINGS AND VIEWS =====

    def set_focus_task(self, task: str) -> Optional[Future]:
        """Change the focus task and reclassify what has been seen so far."""
        with self._lock:
            self.focus_task = task.strip()
            self.config["focus_task"] = self.focus_task
        logger.info(f"Focus task set to '{self.focus_task}'")
        return self.request_classification()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            data = self.state.snapshot()
            data["focusTask"] = self.focus_task
            data["pollCount"] = self.poll_count
        data["alerts"] = self.notifier.recent()
        return data
