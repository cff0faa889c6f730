"""Focus session bookkeeping.

A ``SessionState`` tracks which application is in focus, how long each
application has held focus, and the ordered log of focus changes. Time is
measured in integer milliseconds supplied by the caller, so the state
machine itself never reads a clock.
"""

import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger("FocusFade.session")

NOT_ANALYZED_REASON = "Not analyzed by AI"

_session_ids = itertools.count(1)


@dataclass(frozen=True)
class FocusEvent:
    """Time spent in ``app_name`` up to the focus change at ``timestamp``."""

    timestamp: int
    app_name: str
    duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "appName": self.app_name, "duration": self.duration_ms}


@dataclass(frozen=True)
class RelevanceVerdict:
    app_name: str
    is_relevant: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"appName": self.app_name, "isRelevant": self.is_relevant, "reason": self.reason}


class SessionState:
    """One monitoring run: current app, per-app time, focus log and verdicts."""

    def __init__(self):
        self.session_id = 0
        self.active = False
        self.start_time: Optional[int] = None
        self.current_app: Optional[str] = None
        self.last_transition: Optional[int] = None
        self.last_stats_flush: Optional[int] = None
        self.app_stats: Dict[str, int] = {}
        self.events: List[FocusEvent] = []
        self.verdicts: Dict[str, RelevanceVerdict] = {}
        self.logs_count = 0
        self.analysis: Optional[str] = None
        self.error_message: Optional[str] = None

    # ----- lifecycle -----

    def start(self, now: int) -> int:
        """Begin a fresh session, discarding everything from the previous one."""
        self.session_id = next(_session_ids)
        self.active = True
        self.start_time = now
        self.current_app = None
        self.last_transition = now
        self.last_stats_flush = now
        self.app_stats = {}
        self.events = []
        self.verdicts = {}
        self.logs_count = 0
        self.analysis = None
        self.error_message = None
        logger.info(f"Session {self.session_id} started")
        return self.session_id

    def stop(self, now: int) -> Optional[FocusEvent]:
        """Freeze the session, crediting the open interval to the current app."""
        if not self.active:
            logger.warning("Session already stopped")
            return None

        event = None
        if self.current_app is not None:
            event = self._flush(self.current_app, now)

        self.active = False
        self.start_time = None
        logger.info(f"Session {self.session_id} stopped after {len(self.events)} focus changes")
        return event

    def is_live(self, session_id: int) -> bool:
        return self.active and self.session_id == session_id

    # ----- transitions -----

    def observe(self, app_name: str, now: int) -> Optional[FocusEvent]:
        """Record that ``app_name`` is focused at ``now``.

        Returns the ``FocusEvent`` closing out the previous application, or
        ``None`` when nothing was logged (same app again, first app of the
        session, or inactive session).
        """
        if not self.active:
            logger.warning(f"Ignoring focus on {app_name}: no active session")
            return None

        if app_name == self.current_app:
            return None

        previous = self.current_app
        event = None
        if previous is not None:
            event = self._flush(previous, now)

        logger.info(f"Focus changed: {previous} -> {app_name}")
        self.current_app = app_name
        self.last_transition = now
        return event

    def _flush(self, app_name: str, now: int) -> FocusEvent:
        elapsed = now - self.last_transition
        # stale or out-of-order timestamps must never credit more than real time
        elapsed = max(0, min(elapsed, now - self.last_stats_flush))

        event = FocusEvent(timestamp=now, app_name=app_name, duration_ms=elapsed)
        self.events.append(event)
        self.app_stats[app_name] = self.app_stats.get(app_name, 0) + elapsed
        self.last_stats_flush = max(self.last_stats_flush, now)
        self.last_transition = now
        return event

    # ----- verdicts and scoring -----

    @property
    def observed_apps(self) -> List[str]:
        apps = set(self.app_stats)
        if self.current_app is not None:
            apps.add(self.current_app)
        return sorted(apps)

    def set_verdicts(self, verdicts: Iterable[RelevanceVerdict]) -> None:
        """Replace all verdicts with the latest classification pass."""
        self.verdicts = {v.app_name: v for v in verdicts}

    def verdict_for(self, app_name: str) -> RelevanceVerdict:
        verdict = self.verdicts.get(app_name)
        if verdict is None:
            return RelevanceVerdict(app_name, False, NOT_ANALYZED_REASON)
        return verdict

    def is_distracting(self, app_name: str) -> bool:
        return not self.verdict_for(app_name).is_relevant

    @property
    def distraction_score(self) -> int:
        """Milliseconds spent in apps whose latest verdict is not relevant."""
        return sum(ms for app, ms in self.app_stats.items() if self.is_distracting(app))

    @property
    def total_tracked(self) -> int:
        return sum(self.app_stats.values())

    # ----- presentation -----

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view of the session for the dashboard and API."""
        start = None
        if self.start_time is not None:
            start = datetime.fromtimestamp(self.start_time / 1000, tz=timezone.utc).isoformat()

        total = self.total_tracked
        apps = []
        for app, ms in sorted(self.app_stats.items(), key=lambda item: item[1], reverse=True):
            verdict = self.verdicts.get(app)
            apps.append({
                "appName": app,
                "timeMs": ms,
                "time": format_duration(ms),
                "percentage": round(ms / total * 100, 1) if total else 0.0,
                "isRelevant": verdict.is_relevant if verdict else None,
                "reason": verdict.reason if verdict else None,
            })

        return {
            "sessionId": self.session_id,
            "active": self.active,
            "startTime": start,
            "currentApp": self.current_app,
            "logsCount": self.logs_count,
            "appStats": apps,
            "distractionScore": self.distraction_score,
            "distractionTime": format_duration(self.distraction_score),
            "events": [e.to_dict() for e in self.events],
            "analysis": self.analysis,
            "error": self.error_message,
        }


def format_duration(ms: int) -> str:
    minutes = ms // 60000
    seconds = (ms % 60000) // 1000
    return f"{minutes}m {seconds}s"
