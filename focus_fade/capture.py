"""Client for the local screen-capture service.

The capture service records UI and OCR events from the desktop and exposes
them through a search endpoint. Only the fields Focus Fade needs are kept:
timestamp, application, window title and on-screen text.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger("FocusFade.capture")

# the capture service reports nanoseconds; datetime keeps microseconds
_FRACTION = re.compile(r"(\.\d{6})\d+")


class CaptureError(Exception):
    """The capture service could not be queried."""


@dataclass(frozen=True)
class Activity:
    timestamp: Optional[datetime]
    app_name: Optional[str]
    window_name: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Activity":
        """Build from a search result item, accepting snake_case or camelCase."""
        content = item.get("content", item) if isinstance(item, dict) else {}
        if not isinstance(content, dict):
            content = {}
        return cls(
            timestamp=parse_timestamp(content.get("timestamp")),
            app_name=content.get("app_name") or content.get("appName"),
            window_name=content.get("window_name") or content.get("windowName"),
            text=content.get("text"),
        )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(_FRACTION.sub(r"\1", value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def latest_app(activities: List[Activity]) -> Optional[str]:
    """Application of the most recent event, or None if there is none."""
    dated = [a for a in activities if a.timestamp is not None]
    if not dated:
        return None
    latest = sorted(dated, key=lambda a: a.timestamp, reverse=True)[0]
    return latest.app_name


def iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class CaptureClient:
    """Queries the capture service's search API."""

    def __init__(self, base_url: str = "http://localhost:3030", timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def query(self, content_type: str, start_time: datetime, end_time: datetime, limit: int = 50) -> List[Activity]:
        params = {
            "content_type": content_type,
            "start_time": iso(start_time),
            "end_time": iso(end_time),
            "limit": limit,
        }
        try:
            response = requests.get(f"{self.base_url}/search", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Capture service unreachable: {e}")
            raise CaptureError(f"Capture service unreachable: {e}") from e

        if not response.ok:
            raise CaptureError(f"Capture service responded with status {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise CaptureError("Capture service returned a non-JSON body") from e

        data = body.get("data") if isinstance(body, dict) else None
        return [Activity.from_item(item) for item in data or []]

    def current_app(self, lookback: timedelta = timedelta(hours=1), limit: int = 50) -> Optional[str]:
        """Most recently focused app from UI events, independent of any session."""
        end = datetime.now(timezone.utc)
        return latest_app(self.query("ui", end - lookback, end, limit))
