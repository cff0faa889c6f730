"""User-facing distraction alerts.

Desktop notifications go through the platform's own mechanism, spoken
alerts through gTTS. Every alert is also kept in memory so the dashboard
can list the recent ones.
"""

import logging
import os
import platform
import subprocess
import tempfile
import threading
import time
from collections import deque
from typing import Any, Dict, List, Optional

from gtts import gTTS
from plyer import notification
from pydub import AudioSegment
from pydub.playback import play

from focus_fade.session import SessionState, format_duration

logger = logging.getLogger("FocusFade.notifier")

ALERT_TITLE = "Focus Alert"
HISTORY_SIZE = 20


class Notifier:
    """Delivers alerts to the desktop and remembers the recent ones."""

    def __init__(self, config: Dict[str, Any]):
        self.enable_voice_alerts = config.get("enable_voice_alerts", False)
        self.history = deque(maxlen=HISTORY_SIZE)

    def notify(self, message: str) -> None:
        self.history.append({"timestamp": time.time(), "message": message})
        logger.info(f"Alert: {message}")
        self.send_notification(message)
        if self.enable_voice_alerts:
            self.play_voice_alert(message)

    def recent(self) -> List[Dict[str, Any]]:
        return list(reversed(self.history))

    def send_notification(self, message: str) -> None:
        """Send a system notification."""
        try:
            if platform.system() == "Windows":
                notification.notify(title=ALERT_TITLE, message=message[:256], timeout=5)
            elif platform.system() == "Darwin":
                script = f'display notification {_applescript_quote(message)} with title "{ALERT_TITLE}"'
                subprocess.run(["osascript", "-e", script], check=False)
            else:  # Linux
                subprocess.run(["notify-send", ALERT_TITLE, message], check=False)
        except Exception as e:
            logger.error(f"Error sending notification: {e}")

    def play_voice_alert(self, message: str) -> None:
        """Speak the alert in a background thread."""
        try:
            with tempfile.NamedTemporaryFile(suffix=".mp3", delete=False) as temp_mp3:
                mp3_path = temp_mp3.name
            gTTS(text=message, lang="en", slow=False).save(mp3_path)
        except Exception as e:
            logger.error(f"Voice alert system failed: {e}")
            return

        def _play_audio():
            try:
                play(AudioSegment.from_mp3(mp3_path))
            except Exception as e:
                logger.error(f"Audio playback failed: {e}")
            finally:
                try:
                    os.remove(mp3_path)
                except OSError:
                    pass

        threading.Thread(target=_play_audio, daemon=True).start()


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DistractionChecker:
    """Decides which alerts the session state calls for.

    A current app is a distraction when its latest verdict says it is not
    relevant to the focus task, or when it has not been classified yet.
    The checker only builds messages; delivering them is up to the caller.
    """

    def __init__(self, threshold_ms: int):
        self.threshold_ms = threshold_ms
        self._alerted_session = None

    def check_current(self, state: SessionState, task: str) -> Optional[str]:
        """Periodic check of the app in focus."""
        app = state.current_app
        if not state.active or not app or not state.is_distracting(app):
            return None
        return f"You are distracted by {app}. Focus on {task}!"

    def check_threshold(self, state: SessionState) -> Optional[str]:
        """Alert once per session when the distraction score crosses the threshold."""
        if not state.active or self.threshold_ms <= 0:
            return None
        if state.session_id == self._alerted_session or state.distraction_score < self.threshold_ms:
            return None
        self._alerted_session = state.session_id
        return f"You have spent {format_duration(state.distraction_score)} on distracting apps this session."

    def check_report(self, report: str) -> Optional[str]:
        lowered = report.lower()
        if "high" in lowered and "distraction" in lowered:
            return f"AI Analysis: {report[:100]}..."
        return None
