"""AI goal and achievement helpers.

Each helper sends one request through :class:`~perftrack.ai.client.AIClient`
and never raises on generator failure: it returns a fixed fallback instead.

- :func:`generate_smart_goal`: rewrite a goal in SMART form
- :func:`generate_milestones`: 3-5 dated milestones for a goal (JSON output)
- :func:`classify_and_summarize_achievement`: category plus one-line summary
- :func:`generate_reflection`: short monthly reflection from habits and goals
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

from perftrack.ai.client import AIClient, Failure
from perftrack.ai.prompts import get_prompt
from perftrack.core.models import AchievementType, Goal
from perftrack.core.periods import PeriodError, parse_date

logger = logging.getLogger(__name__)

REFLECTION_EMPTY_FALLBACK = "Keep pushing forward!"
REFLECTION_ERROR_FALLBACK = "Great job staying consistent! Keep tracking to see AI insights."


async def generate_smart_goal(client: AIClient, raw_text: str) -> str:
    """Rewrite ``raw_text`` as a SMART goal. Returns ``raw_text`` on any failure."""
    template = get_prompt("smart_goal_v1")
    result = await client.try_generate(template.render(raw_text=raw_text))
    if isinstance(result, Failure):
        return raw_text
    return result.value.strip() or raw_text


async def generate_milestones(client: AIClient, goal_text: str, timeframe: str) -> list[dict[str, Any]]:
    """Ask for 3-5 milestones for a goal due by ``timeframe``.

    Returns:
        Milestone dicts with ``description``, ``status`` ("pending") and
        ``due_date`` (``YYYY-MM-DD`` or None). Empty on failure, empty
        response or unparseable JSON.
    """
    template = get_prompt("milestones_v1")
    result = await client.try_generate(
        template.render(goal_text=goal_text, timeframe=timeframe),
        config=template.generation_config(),
    )
    if isinstance(result, Failure) or not result.value:
        return []

    try:
        raw = json.loads(result.value)
    except json.JSONDecodeError:
        logger.warning("Milestone response was not valid JSON")
        return []
    if not isinstance(raw, list):
        return []

    milestones = []
    for item in raw:
        if not isinstance(item, dict) or not str(item.get("description") or "").strip():
            continue
        milestones.append(
            {
                "description": str(item["description"]).strip(),
                "status": "pending",
                "due_date": _normalize_due(item.get("dueDate") or item.get("due_date")),
            }
        )
    return milestones


def _normalize_due(value: Any) -> str | None:
    if not value:
        return None
    try:
        return parse_date(value).isoformat()
    except PeriodError:
        return None


async def classify_and_summarize_achievement(
    client: AIClient, title: str, description: str
) -> tuple[AchievementType, str]:
    """Classify an achievement and write a one-sentence summary.

    Falls back to ``(AchievementType.OTHER, description)`` when the request
    fails or the response is empty or not the expected JSON object.
    """
    fallback = (AchievementType.OTHER, description)
    template = get_prompt("achievement_classification_v1")
    result = await client.try_generate(
        template.render(title=title, description=description),
        config=template.generation_config(),
    )
    if isinstance(result, Failure) or not result.value:
        return fallback

    try:
        data = json.loads(result.value)
    except json.JSONDecodeError:
        logger.warning("Classification response was not valid JSON")
        return fallback
    if not isinstance(data, dict):
        return fallback

    summary = str(data.get("summary") or "").strip() or description
    return AchievementType.parse(data.get("classification")), summary


async def generate_reflection(
    client: AIClient,
    habits: Iterable[Mapping[str, Any]],
    goals: Iterable[Goal],
) -> str:
    """Short encouraging reflection on habit streaks and goal progress.

    Args:
        habits: Mappings with ``name`` and ``streak_count`` keys.
        goals: Goals to mention with their progress.
    """
    habit_summary = ", ".join(
        f"{h.get('name', '')}: Streak {h.get('streak_count', h.get('streakCount', 0))}"
        for h in habits
    )
    goal_summary = ", ".join(f"{g.title} is {g.progress}% done" for g in goals)

    template = get_prompt("reflection_v1")
    result = await client.try_generate(template.render(habits=habit_summary, goals=goal_summary))
    if isinstance(result, Failure):
        return REFLECTION_ERROR_FALLBACK
    return result.value or REFLECTION_EMPTY_FALLBACK
