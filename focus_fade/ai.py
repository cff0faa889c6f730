"""Language model backends.

Three provider types are supported:

- ``native-ollama``: the local Ollama generate endpoint, called directly.
- ``ollama``: a local Ollama server through its OpenAI-compatible API.
- anything else: a bearer-authenticated chat-completion endpoint at the
  configured URL.
"""

import logging
from typing import Any, Dict, Optional

import openai
import requests

from focus_fade.config import AISettings

logger = logging.getLogger("FocusFade.ai")

MAX_RETRIES = 3


class ModelError(Exception):
    """The model backend could not produce a response."""


class ModelClient:
    """Sends a fully formed prompt to the configured model and returns its text."""

    def __init__(self, settings: AISettings, timeout: float = 60):
        self.settings = settings
        self.timeout = timeout

    def complete(self, prompt: str) -> str:
        provider = self.settings.provider_type
        logger.info(f"Sending prompt to {provider} model {self.settings.model}")

        if provider == "native-ollama":
            text = self._generate_native(prompt)
        elif provider == "ollama":
            text = self._chat_ollama(prompt)
        else:
            text = self._chat_compatible(prompt)

        if not text or not text.strip():
            logger.warning(f"Empty response from {provider} model {self.settings.model}")
            return ""
        return text

    def _generate_native(self, prompt: str) -> str:
        payload = {
            "model": self.settings.model,
            "prompt": prompt,
            "stream": False,
        }
        data = self._post(self.settings.endpoint, payload)
        return data.get("response") or ""

    def _chat_ollama(self, prompt: str) -> str:
        base_url = self.settings.url.rstrip("/")
        if not base_url.endswith("/v1"):
            base_url += "/v1"

        try:
            client = openai.OpenAI(
                api_key=self.settings.api_key or "ollama",
                base_url=base_url,
                max_retries=MAX_RETRIES,
                timeout=self.timeout,
            )
            response = client.chat.completions.create(
                model=self.settings.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as e:
            logger.error(f"Ollama request failed: {e}")
            raise ModelError(str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _chat_compatible(self, prompt: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }
        payload = {
            "model": self.settings.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = self._post(self.settings.endpoint, payload, headers=headers)
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        if not url:
            raise ModelError("No model URL configured")

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Model request to {url} failed: {e}")
            raise ModelError(str(e)) from e

        if not response.ok:
            raise ModelError(f"API error: {response.status_code} {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise ModelError("Model returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ModelError("Model returned an unexpected body")
        return data
