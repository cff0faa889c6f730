"""Settings loading for Focus Fade.

User preferences live in a JSON file that is merged over ``DEFAULT_CONFIG``.
Settings exported from the screen-capture app store use camelCase keys
(`focusSettings`, `aiSettings`), so those are accepted and translated too.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger("FocusFade.config")

SETTINGS_ENV_VAR = "FOCUS_FADE_SETTINGS"
DEFAULT_SETTINGS_FILE = "focus_fade_settings.json"

NATIVE_OLLAMA_URL = "http://localhost:11434/api/generate"

# Configuration
DEFAULT_CONFIG = {
    "focus_task": "coding",
    "poll_interval": 5,  # seconds
    "query_limit": 50,
    "content_type": "ocr",
    "summary_every": 10,  # polls between activity reports
    "notification_frequency": 2,  # minutes
    "distraction_threshold": 120,  # seconds of distraction before an alert
    "api_timeout": 60,  # seconds
    "enable_voice_alerts": False,
    "log_file": "logs.json",
    "capture_url": "http://localhost:3030",
    "ai": {
        "provider_type": "ollama",
        "model": "llama3",
        "url": "http://localhost:11434",
        "api_key": "",
    },
}

# camelCase key -> (snake_case key, scale factor)
_FOCUS_KEYS = {
    "defaultFocusTask": ("focus_task", None),
    "pollInterval": ("poll_interval", 1000),
    "distractionThreshold": ("distraction_threshold", 1000),
}
_AI_KEYS = {
    "aiProviderType": "provider_type",
    "aiModel": "model",
    "aiUrl": "url",
    "apiKey": "api_key",
}


@dataclass(frozen=True)
class AISettings:
    """Model backend selection for one settings snapshot."""

    provider_type: str = "ollama"
    model: str = "llama3"
    url: str = "http://localhost:11434"
    api_key: str = ""

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AISettings":
        ai = config.get("ai", {})
        return cls(
            provider_type=(ai.get("provider_type") or "ollama").strip().lower(),
            model=ai.get("model") or "llama3",
            url=ai.get("url") or "",
            api_key=ai.get("api_key") or "",
        )

    @property
    def endpoint(self) -> str:
        """URL actually contacted for this provider."""
        if self.provider_type == "native-ollama":
            return NATIVE_OLLAMA_URL
        return self.url


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``overrides`` merged in, dicts key-by-key."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def normalize_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate camelCase settings from the capture app store into our keys."""
    skip = {"focusSettings", "aiSettings"} | set(_FOCUS_KEYS) | set(_AI_KEYS)
    result = {k: v for k, v in raw.items() if k not in skip}

    focus = dict(raw.get("focusSettings") or {})
    focus.update({k: raw[k] for k in _FOCUS_KEYS if k in raw})
    for camel, (snake, scale) in _FOCUS_KEYS.items():
        if camel in focus:
            value = focus[camel]
            if scale and isinstance(value, (int, float)):
                value = value / scale
            result[snake] = value

    ai_raw = dict(raw.get("aiSettings") or {})
    ai_raw.update({k: raw[k] for k in _AI_KEYS if k in raw})
    ai = dict(result.get("ai") or {})
    for camel, snake in _AI_KEYS.items():
        if camel in ai_raw:
            ai[snake] = ai_raw[camel]
    if ai:
        result["ai"] = ai

    return result


def settings_path(path: Optional[str] = None) -> str:
    return path or os.getenv(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_FILE


def load_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """Load user settings merged over the defaults.

    A missing file yields the defaults. An unreadable or malformed file is
    logged and ignored.
    """
    path = settings_path(path)
    overrides: Dict[str, Any] = {}

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                overrides = normalize_keys(data)
            else:
                logger.warning(f"Ignoring settings file {path}: expected a JSON object")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings file {path}: {e}")

    config = deep_merge(DEFAULT_CONFIG, overrides)

    if not config["ai"].get("api_key"):
        config["ai"]["api_key"] = os.getenv("FOCUS_FADE_API_KEY") or os.getenv("OPENAI_API_KEY") or ""

    return config

