import json

import pytest

from focus_fade.config import DEFAULT_CONFIG, AISettings, deep_merge, load_settings, normalize_keys


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("FOCUS_FADE_SETTINGS", "FOCUS_FADE_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)


def write(path, data):
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return str(path)


def test_missing_file_gives_defaults(tmp_path):
    config = load_settings(str(tmp_path / "nope.json"))
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_file_is_merged_over_defaults(tmp_path):
    path = write(tmp_path / "s.json", {"focus_task": "writing", "ai": {"model": "mistral"}})
    config = load_settings(path)

    assert config["focus_task"] == "writing"
    assert config["ai"]["model"] == "mistral"
    assert config["ai"]["provider_type"] == "ollama"
    assert config["poll_interval"] == 5


def test_camel_case_settings_are_translated(tmp_path):
    path = write(tmp_path / "s.json", {
        "focusSettings": {"defaultFocusTask": "design", "pollInterval": 3000, "distractionThreshold": 60000},
        "aiSettings": {"aiProviderType": "openai", "aiModel": "gpt-4o", "aiUrl": "https://x/v1", "apiKey": "k"},
    })
    config = load_settings(path)

    assert config["focus_task"] == "design"
    assert config["poll_interval"] == 3
    assert config["distraction_threshold"] == 60
    assert config["ai"] == {"provider_type": "openai", "model": "gpt-4o", "url": "https://x/v1", "api_key": "k"}


def test_malformed_file_is_ignored(tmp_path):
    path = write(tmp_path / "s.json", "{not json")
    assert load_settings(path) == DEFAULT_CONFIG


def test_settings_path_from_environment(tmp_path, monkeypatch):
    path = write(tmp_path / "env.json", {"focus_task": "reading"})
    monkeypatch.setenv("FOCUS_FADE_SETTINGS", path)
    assert load_settings()["focus_task"] == "reading"


def test_api_key_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("FOCUS_FADE_API_KEY", "from-env")
    config = load_settings(str(tmp_path / "nope.json"))
    assert config["ai"]["api_key"] == "from-env"


def test_deep_merge_does_not_touch_inputs():
    base = {"ai": {"model": "a", "url": "u"}}
    merged = deep_merge(base, {"ai": {"model": "b"}})
    assert merged == {"ai": {"model": "b", "url": "u"}}
    assert base == {"ai": {"model": "a", "url": "u"}}


def test_normalize_keeps_unknown_keys():
    assert normalize_keys({"capture_url": "http://x"}) == {"capture_url": "http://x"}


def test_ai_settings_endpoint():
    native = AISettings.from_config({"ai": {"provider_type": "Native-Ollama", "url": "http://other"}})
    assert native.provider_type == "native-ollama"
    assert native.endpoint == "http://localhost:11434/api/generate"

    other = AISettings.from_config({"ai": {"provider_type": "openai", "url": "https://x/v1"}})
    assert other.endpoint == "https://x/v1"
