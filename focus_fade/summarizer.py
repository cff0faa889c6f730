"""Free-text focus reports built from recent capture events."""

import logging
import textwrap
from typing import List

from focus_fade.ai import ModelClient
from focus_fade.capture import Activity

logger = logging.getLogger("FocusFade.summarizer")

NO_RESPONSE = "No response from model"

PROMPT_TEMPLATE = textwrap.dedent("""
    # Focus Analysis Task

    ## User Context
    - User's focus task is: "{task}"
    - Applications like Cursor, VSCode are IDEs used for coding/programming
    - Arc, Chrome, Firefox, Edge are browsers (look at the window tab and decide if the user is focused on said task)
    - Slack, Discord, Teams are communication tools (can be both productive or distracting)

    ## Activity Log to Analyze
    {activity_log}

    ## Analysis Instructions
    Please analyze the user's activity and provide a clear but BRIEF, structured report covering:

    1. **Focus Assessment**:
       - Is the user staying on task with their focus goal of "{task}"?
       - What percentage of time appears to be spent on-task vs. off-task?
       - Identify specific periods of good focus versus distraction.

    2. **Distraction Analysis**:
       - Identify the top 2 distracting applications or activities.
       - For each distraction, note its significance and impact on productivity.

    3. **Distraction Severity**:
       - Rate the overall distraction level as LOW, MEDIUM, or HIGH.
       - Provide a very brief justification for this rating.

    4. **Actionable Recommendations**:
       - Suggest a specific, practical strategy to improve focus.
       - If certain apps are particularly problematic, recommend specific approaches to manage them.

    Format your response in clear sections with headings for each of these four areas.
    Make sure everything below the headings is in bullet points. Everything must be crisp and to the point.
    Include time durations and relevant emojis but don't make the report too long.
    Make sure to do time duration calculations properly.
""").strip()


def format_activity(activity: Activity) -> str:
    time = activity.timestamp.astimezone().strftime("%H:%M:%S") if activity.timestamp else "unknown"
    return f"- Time: {time} | App: {activity.app_name or 'unknown'} | Window: {activity.window_name or 'N/A'}"


def build_prompt(activities: List[Activity], task: str) -> str:
    activity_log = "\n".join(format_activity(a) for a in activities) or "- No activity recorded"
    return PROMPT_TEMPLATE.format(task=task, activity_log=activity_log)


class ActivitySummarizer:
    """Requests a four-section focus report for a batch of activity."""

    def __init__(self, client: ModelClient):
        self.client = client

    def summarize(self, activities: List[Activity], task: str) -> str:
        logger.info(f"Summarizing {len(activities)} activities for '{task}'")
        report = self.client.complete(build_prompt(activities, task))
        if not report or not report.strip():
            return NO_RESPONSE
        # returned verbatim; the report is rendered as-is
        return report
