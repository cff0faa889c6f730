"""Append-only JSON log of focus changes kept on local disk."""

import json
import logging
import os
import threading
from typing import Any, Dict, List

logger = logging.getLogger("FocusFade.logs")


class LogValidationError(ValueError):
    """A log record is missing its timestamp or application name."""


def validate_log(record: Any) -> Dict[str, Any]:
    """Check a ``{timestamp: number, appName: string}`` record.

    The older ``app`` key is accepted in place of ``appName``.
    """
    if not isinstance(record, dict):
        raise LogValidationError("Invalid log data. Expecting { timestamp: number, appName: string }.")

    timestamp = record.get("timestamp")
    app_name = record.get("appName", record.get("app"))
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)) or not isinstance(app_name, str):
        raise LogValidationError("Invalid log data. Expecting { timestamp: number, appName: string }.")

    log = {"timestamp": timestamp, "appName": app_name}
    duration = record.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        log["duration"] = duration
    return log


class LogStore:
    """Reads and rewrites the whole log file on every append."""

    def __init__(self, path: str = "logs.json"):
        self.path = path
        self._lock = threading.Lock()

    def get_logs(self) -> List[Dict[str, Any]]:
        """Return every stored record; a missing file means no records yet."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading logs file: {e}")
            raise

        if not isinstance(data, list):
            raise ValueError(f"{self.path} does not contain a JSON array")
        return data

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        log = validate_log(record)
        with self._lock:
            logs = self.get_logs()
            logs.append(log)
            self._save(logs)
        logger.debug(f"New log saved: {log}")
        return log

    def _save(self, logs: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(self.path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(logs, f, indent=2)
        except OSError as e:
            logger.error(f"Error writing logs file: {e}")
            raise
