"""Centralized prompt templates for perftrack.

Every prompt sent to the generator is defined here. Templates use
``string.Template`` placeholders (``$name``) and are looked up by id through
a small registry.

Example:
    >>> from perftrack.ai.prompts import get_prompt
    >>>
    >>> template = get_prompt("smart_goal_v1")
    >>> contents = template.render(raw_text="Get better at public speaking")
    >>> config = template.generation_config()  # None for free-text prompts
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from enum import Enum
from string import Template
from typing import Any


class PromptCategory(str, Enum):
    """Kinds of generation task."""

    REPORT = "report"
    GOAL_COACHING = "goal_coaching"
    ACHIEVEMENT = "achievement"
    REFLECTION = "reflection"


@dataclass
class PromptTemplate:
    """Metadata and content for one prompt.

    Attributes:
        id: Unique identifier (e.g. "performance_report_v1").
        category: Type of task.
        version: Version string for tracking changes.
        user_prompt_template: Prompt text with ``$placeholder`` variables.
        output_schema: Response schema for structured output, or None.
        required_variables: Variables that MUST be provided to render.
        description: Human-readable purpose.
    """

    id: str
    category: PromptCategory
    version: str
    user_prompt_template: str
    output_schema: dict[str, Any] | None = None
    required_variables: set[str] = field(default_factory=set)
    description: str = ""

    def render(self, **variables: Any) -> str:
        """Render the prompt text.

        Raises:
            ValueError: If required variables are missing.
        """
        missing = self.validate_variables(variables)
        if missing:
            raise ValueError(f"Missing required variables for prompt '{self.id}': {missing}")
        return Template(self.user_prompt_template).safe_substitute(variables)

    def validate_variables(self, variables: dict[str, Any]) -> list[str]:
        """Return the sorted names of required variables not provided."""
        return sorted(self.required_variables - set(variables))

    def generation_config(self) -> dict[str, Any] | None:
        """Generation config requesting JSON output, or None for free text."""
        if self.output_schema is None:
            return None
        return {"responseMimeType": "application/json", "responseSchema": self.output_schema}


# =============================================================================
# Output Schemas
# =============================================================================

MILESTONES_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "description": {"type": "STRING"},
            "status": {"type": "STRING", "enum": ["pending"]},
            "dueDate": {"type": "STRING", "description": "YYYY-MM-DD format"},
        },
        "required": ["description", "status", "dueDate"],
    },
}

ACHIEVEMENT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "classification": {
            "type": "STRING",
            "enum": ["Leadership", "Delivery", "Communication", "Impact", "Other"],
        },
        "summary": {"type": "STRING"},
    },
    "required": ["classification", "summary"],
}


# =============================================================================
# Prompt Templates
# =============================================================================

PERFORMANCE_REPORT_PROMPT = PromptTemplate(
    id="performance_report_v1",
    category=PromptCategory.REPORT,
    version="1.0.0",
    description="Write a periodic professional performance report.",
    user_prompt_template=textwrap.dedent(
        """
        Write a $report_type Professional Performance Report.
        Date Range: $start_date to $end_date
        Tone: $tone

        Key Goals Context:
        $goals

        Achievements Logged:
        $achievements

        Completed Tasks (Ad-hoc items):
        $tasks

        Structure the report with these Markdown headers:
        ## Executive Summary
        ## Key Achievements
        ## Operational Execution (Tasks & Milestones)
        ## Progress on Goals
        ## Focus for Next Period

        Keep it professional and actionable.
        """
    ).strip(),
    required_variables={
        "report_type",
        "start_date",
        "end_date",
        "tone",
        "goals",
        "achievements",
        "tasks",
    },
)

SMART_GOAL_PROMPT = PromptTemplate(
    id="smart_goal_v1",
    category=PromptCategory.GOAL_COACHING,
    version="1.0.0",
    description="Rewrite a goal in SMART form.",
    user_prompt_template=textwrap.dedent(
        """
        Rewrite the following goal to be SMART (Specific, Measurable, Achievable, Relevant, Time-bound).
        Return only the rewritten goal description text, no explanations.

        Original Goal: "$raw_text"
        """
    ).strip(),
    required_variables={"raw_text"},
)

MILESTONES_PROMPT = PromptTemplate(
    id="milestones_v1",
    category=PromptCategory.GOAL_COACHING,
    version="1.0.0",
    description="Break a goal into 3-5 dated milestones.",
    user_prompt_template=textwrap.dedent(
        """
        Generate 3 to 5 key milestones for the goal: "$goal_text" which needs to be completed by $timeframe.
        Ensure deadlines are spaced out logically.
        """
    ).strip(),
    output_schema=MILESTONES_SCHEMA,
    required_variables={"goal_text", "timeframe"},
)

ACHIEVEMENT_CLASSIFICATION_PROMPT = PromptTemplate(
    id="achievement_classification_v1",
    category=PromptCategory.ACHIEVEMENT,
    version="1.0.0",
    description="Classify an achievement and write a one-sentence summary.",
    user_prompt_template=textwrap.dedent(
        """
        Analyze this professional achievement.
        1. Classify it into one of: Leadership, Delivery, Communication, Impact, Other.
        2. Write a 1-sentence executive summary suitable for a performance review (manager-ready tone).

        Title: $title
        Description: $description
        """
    ).strip(),
    output_schema=ACHIEVEMENT_SCHEMA,
    required_variables={"title", "description"},
)

REFLECTION_PROMPT = PromptTemplate(
    id="reflection_v1",
    category=PromptCategory.REFLECTION,
    version="1.0.0",
    description="Short encouraging monthly reflection from habits and goals.",
    user_prompt_template=textwrap.dedent(
        """
        Write a short, encouraging monthly reflection for a user based on this data:
        Habits: $habits
        Goals: $goals

        Give 3 bullet points on what went well and 1 suggestion for improvement.
        """
    ).strip(),
    required_variables={"habits", "goals"},
)


# =============================================================================
# Prompt Registry
# =============================================================================

PROMPT_REGISTRY: dict[str, PromptTemplate] = {}


def register_prompt(template: PromptTemplate) -> None:
    """Register a prompt template.

    Raises:
        ValueError: If a prompt with the same id is already registered.
    """
    if template.id in PROMPT_REGISTRY:
        raise ValueError(f"Prompt '{template.id}' is already registered")
    PROMPT_REGISTRY[template.id] = template


def get_prompt(prompt_id: str) -> PromptTemplate:
    """Retrieve a prompt template by id.

    Raises:
        KeyError: If no prompt with the given id exists.
    """
    if prompt_id not in PROMPT_REGISTRY:
        available = ", ".join(sorted(PROMPT_REGISTRY.keys()))
        raise KeyError(f"Prompt '{prompt_id}' not found. Available prompts: {available}")
    return PROMPT_REGISTRY[prompt_id]


def list_prompts(category: PromptCategory | None = None) -> list[PromptTemplate]:
    """List registered prompts sorted by id, optionally filtered by category."""
    templates = list(PROMPT_REGISTRY.values())
    if category is not None:
        templates = [t for t in templates if t.category == category]
    return sorted(templates, key=lambda t: t.id)


def _register_builtin_prompts() -> None:
    for template in [
        PERFORMANCE_REPORT_PROMPT,
        SMART_GOAL_PROMPT,
        MILESTONES_PROMPT,
        ACHIEVEMENT_CLASSIFICATION_PROMPT,
        REFLECTION_PROMPT,
    ]:
        register_prompt(template)


_register_builtin_prompts()
