"""Tests for perftrack.ai.assistant - goal and achievement helpers."""

from __future__ import annotations

import asyncio
import json

from perftrack.ai.assistant import (
    REFLECTION_EMPTY_FALLBACK,
    REFLECTION_ERROR_FALLBACK,
    classify_and_summarize_achievement,
    generate_milestones,
    generate_reflection,
    generate_smart_goal,
)
from perftrack.ai.client import ServerConfigError, UpstreamError
from perftrack.ai.prompts import get_prompt, list_prompts
from perftrack.core.models import AchievementType, Goal


class TestSmartGoal:
    def test_returns_trimmed_rewrite(self, ai_client, fake_transport):
        fake_transport.queue("  Give 3 talks by June 30.  \n")
        assert asyncio.run(generate_smart_goal(ai_client, "speak more")) == "Give 3 talks by June 30."
        assert '"speak more"' in fake_transport.last_contents

    def test_failure_returns_original(self, ai_client, fake_transport):
        fake_transport.queue(UpstreamError("Server error: Bad Gateway"))
        assert asyncio.run(generate_smart_goal(ai_client, "speak more")) == "speak more"

    def test_empty_returns_original(self, ai_client, fake_transport):
        fake_transport.queue("")
        assert asyncio.run(generate_smart_goal(ai_client, "speak more")) == "speak more"


class TestMilestones:
    def test_parses_structured_response(self, ai_client, fake_transport):
        fake_transport.queue(
            json.dumps(
                [
                    {"description": "Draft outline", "status": "pending", "dueDate": "2024-04-01"},
                    {"description": "Dry run", "status": "pending", "dueDate": "2024-05-01"},
                    {"description": "", "status": "pending", "dueDate": "2024-05-15"},
                ]
            )
        )
        milestones = asyncio.run(generate_milestones(ai_client, "Give a talk", "2024-06-30"))

        assert milestones == [
            {"description": "Draft outline", "status": "pending", "due_date": "2024-04-01"},
            {"description": "Dry run", "status": "pending", "due_date": "2024-05-01"},
        ]

    def test_requests_json_schema(self, ai_client, fake_transport):
        fake_transport.queue("[]")
        asyncio.run(generate_milestones(ai_client, "Give a talk", "June"))

        config = fake_transport.requests[0].config
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"]["type"] == "ARRAY"

    def test_bad_due_date_dropped(self, ai_client, fake_transport):
        fake_transport.queue(json.dumps([{"description": "x", "dueDate": "someday"}]))
        assert asyncio.run(generate_milestones(ai_client, "g", "t"))[0]["due_date"] is None

    def test_failure_empty_or_garbage_gives_empty_list(self, ai_client, fake_transport):
        fake_transport.queue(ServerConfigError(), "", "not json", json.dumps({"a": 1}))
        for _ in range(4):
            assert asyncio.run(generate_milestones(ai_client, "g", "t")) == []


class TestClassifyAchievement:
    def test_parses_classification(self, ai_client, fake_transport):
        fake_transport.queue(json.dumps({"classification": "Leadership", "summary": "Led the review."}))
        result = asyncio.run(classify_and_summarize_achievement(ai_client, "Review", "Ran it"))
        assert result == (AchievementType.LEADERSHIP, "Led the review.")

    def test_unknown_category_becomes_other(self, ai_client, fake_transport):
        fake_transport.queue(json.dumps({"classification": "Heroics", "summary": "s"}))
        kind, _ = asyncio.run(classify_and_summarize_achievement(ai_client, "t", "d"))
        assert kind == AchievementType.OTHER

    def test_failure_falls_back_to_description(self, ai_client, fake_transport):
        fake_transport.queue(UpstreamError("down"))
        result = asyncio.run(classify_and_summarize_achievement(ai_client, "t", "the description"))
        assert result == (AchievementType.OTHER, "the description")

    def test_empty_response_falls_back(self, ai_client, fake_transport):
        fake_transport.queue("")
        result = asyncio.run(classify_and_summarize_achievement(ai_client, "t", "d"))
        assert result == (AchievementType.OTHER, "d")


class TestReflection:
    def test_prompt_summarizes_habits_and_goals(self, ai_client, fake_transport):
        fake_transport.queue("- Great streaks")
        text = asyncio.run(
            generate_reflection(
                ai_client,
                [{"name": "Run", "streak_count": 12}],
                [Goal(title="Ship v2", progress=40)],
            )
        )
        assert text == "- Great streaks"
        assert "Run: Streak 12" in fake_transport.last_contents
        assert "Ship v2 is 40% done" in fake_transport.last_contents

    def test_empty_and_failure_fallbacks(self, ai_client, fake_transport):
        fake_transport.queue("", UpstreamError("down"))
        assert asyncio.run(generate_reflection(ai_client, [], [])) == REFLECTION_EMPTY_FALLBACK
        assert asyncio.run(generate_reflection(ai_client, [], [])) == REFLECTION_ERROR_FALLBACK


class TestPromptRegistry:
    def test_builtin_prompts_registered(self):
        ids = {p.id for p in list_prompts()}
        assert {
            "performance_report_v1",
            "smart_goal_v1",
            "milestones_v1",
            "achievement_classification_v1",
            "reflection_v1",
        } <= ids

    def test_missing_variables_rejected(self):
        template = get_prompt("smart_goal_v1")
        assert template.validate_variables({}) == ["raw_text"]

    def test_free_text_prompts_have_no_config(self):
        assert get_prompt("reflection_v1").generation_config() is None
