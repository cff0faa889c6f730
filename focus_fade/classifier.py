"""Decides which observed applications are relevant to the focus task."""

import json
import logging
import textwrap
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from focus_fade.ai import ModelClient
from focus_fade.session import NOT_ANALYZED_REASON, RelevanceVerdict

logger = logging.getLogger("FocusFade.classifier")

FALLBACK_REASON = "Parsing error - using fallback analysis"
NO_REASON = "No reason provided"

PROMPT_TEMPLATE = textwrap.dedent("""
    Given the task "{task}", analyze the following applications and determine if they are relevant or potentially distracting.
    Consider that:
    - Some applications may serve multiple purposes
    - Browser apps can be both relevant (for research/documentation) or distracting (social media)
    - Development tasks need IDEs, documentation browsers, and terminal apps
    - Writing tasks need text editors and research tools
    - Design tasks need design software and asset management tools

    Applications to analyze: {apps}

    Provide your analysis in a JSON array format like this:
    [
      {{
        "app": "AppName",
        "isRelevant": true/false,
        "reason": "Brief explanation why"
      }}
    ]

    Be sure to include all applications in the response and maintain valid JSON format.
""").strip()


@dataclass(frozen=True)
class ClassificationResult:
    verdicts: List[RelevanceVerdict]
    fallback_used: bool = False

    def to_dict(self):
        return {
            "analysis": [v.to_dict() for v in self.verdicts],
            "fallbackUsed": self.fallback_used,
        }


def build_prompt(task: str, apps: List[str]) -> str:
    return PROMPT_TEMPLATE.format(task=task, apps=", ".join(apps))


def _has_verdict(value: list) -> bool:
    return any(isinstance(entry, dict) and isinstance(entry.get("app"), str) for entry in value)


def extract_json_array(text: str) -> Optional[list]:
    """Return the first JSON array in ``text`` holding at least one ``{app: ...}`` object.

    Arrays that do not look like verdicts, such as a "[1]" citation in the
    model's commentary, are skipped.
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, list) and _has_verdict(value):
            return value
        start = text.find("[", start + 1)
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "relevant")
    return bool(value)


def parse_verdicts(response: str, apps: List[str]) -> ClassificationResult:
    """Turn a model answer into exactly one verdict per requested app.

    The strict path expects a JSON array of ``{app, isRelevant, reason}``
    objects somewhere in the text. When no array can be found the fallback
    path marks an app relevant only if the answer says "<app> relevant".
    """
    entries = extract_json_array(response)

    if entries is None:
        logger.warning("No JSON array in model response, using fallback analysis")
        lowered = response.lower()
        verdicts = [
            RelevanceVerdict(app, f"{app.lower()} relevant" in lowered, FALLBACK_REASON)
            for app in apps
        ]
        return ClassificationResult(verdicts, fallback_used=True)

    by_name = {}
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("app"), str):
            continue
        by_name.setdefault(entry["app"].strip().lower(), entry)

    verdicts = []
    for app in apps:
        entry = by_name.get(app.lower())
        if entry is None:
            verdicts.append(RelevanceVerdict(app, False, NOT_ANALYZED_REASON))
            continue
        reason = entry.get("reason")
        verdicts.append(RelevanceVerdict(
            app,
            _as_bool(entry.get("isRelevant")),
            reason if isinstance(reason, str) and reason else NO_REASON,
        ))
    return ClassificationResult(verdicts)


class RelevanceClassifier:
    """Asks the model which apps belong to the focus task."""

    def __init__(self, client: ModelClient):
        self.client = client

    def classify(self, task: str, apps: Iterable[str]) -> ClassificationResult:
        apps = list(dict.fromkeys(apps))
        if not apps:
            return ClassificationResult([])

        # ModelError propagates: verdicts are never invented for a failed call
        response = self.client.complete(build_prompt(task, apps))
        result = parse_verdicts(response, apps)
        relevant = sum(1 for v in result.verdicts if v.is_relevant)
        logger.info(f"Classified {len(apps)} apps for '{task}': {relevant} relevant")
        return result
