"""Core data models for perftrack.

All persisted entities are owned by a single user id. Models follow a
simple flow:
1. USER CONTEXT (Session)
2. TRACKED RECORDS (Goal, Milestone, Achievement, TaskList, Task)
3. EPHEMERAL OUTPUT (GeneratedReport, never persisted)
"""

from __future__ import annotations

import uuid as uuid_module
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid_module.uuid4())


# =============================================================================
# Enums
# =============================================================================


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    COMPLETED = "completed"


class AchievementType(str, Enum):
    """Classification tag attached to an achievement."""

    LEADERSHIP = "Leadership"
    DELIVERY = "Delivery"
    COMMUNICATION = "Communication"
    IMPACT = "Impact"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "AchievementType":
        """Map free text to a classification, defaulting to OTHER."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.OTHER


class UserRole(str, Enum):
    EMPLOYEE = "employee"
    DEPARTMENT_HEAD = "department_head"


# =============================================================================
# User Context
# =============================================================================


class Session(BaseModel):
    """Explicit user context passed to every operation that touches owned data.

    Attributes:
        user_id: Owner id stamped on created records.
        email: Optional account email.
        role: Account role.
        department: Optional department name.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str | None = None
    role: UserRole = UserRole.EMPLOYEE
    department: str | None = None

    @field_validator("user_id")
    @classmethod
    def require_user_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("user_id must not be empty")
        return v.strip()


# =============================================================================
# Tracked Records
# =============================================================================


class Goal(BaseModel):
    """A tracked goal with a completion percentage."""

    id: str = Field(default_factory=_new_id)
    user_id: str = ""
    title: str
    description: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    target_date: date | None = None

    def summary_line(self) -> str:
        """Prompt form: ``title (progress% complete)``."""
        return f"{self.title} ({self.progress}% complete)"


class Milestone(BaseModel):
    """A dated checkpoint towards a goal."""

    id: str = Field(default_factory=_new_id)
    goal_id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    due_date: date | None = None


class Achievement(BaseModel):
    """A logged professional achievement.

    ``date`` is the day the achievement happened, in ``YYYY-MM-DD`` form.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str = ""
    title: str
    description: str = ""
    classification: AchievementType = AchievementType.OTHER
    summary: str = ""
    date: str

    @field_validator("classification", mode="before")
    @classmethod
    def parse_classification(cls, v: Any) -> AchievementType:
        return AchievementType.parse(v)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date().isoformat()
        if isinstance(v, date):
            return v.isoformat()
        return v

    def summary_line(self) -> str:
        """Prompt form: ``- title (classification): summary``."""
        return f"- {self.title} ({self.classification.value}): {self.summary}"


class TaskList(BaseModel):
    """A named container of tasks."""

    id: str = Field(default_factory=_new_id)
    user_id: str = ""
    title: str
    is_default: bool = False


class Task(BaseModel):
    """A to-do item.

    Invariant: ``completed_at`` is set if and only if ``status`` is COMPLETED.
    Completed tasks constructed without a timestamp are stamped with now;
    pending tasks never carry one.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str = ""
    list_id: str
    title: str
    details: str = ""
    due_date: str | None = None
    linked_goal_id: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    created_at: str = Field(default_factory=utc_now_iso)
    completed_at: str | None = None

    @model_validator(mode="after")
    def sync_completed_at(self) -> Self:
        if self.status == TaskStatus.COMPLETED and not self.completed_at:
            self.completed_at = utc_now_iso()
        elif self.status == TaskStatus.PENDING and self.completed_at is not None:
            self.completed_at = None
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def complete(self, now: str | None = None) -> "Task":
        """Return a completed copy stamped with ``now``."""
        return self.model_copy(
            update={"status": TaskStatus.COMPLETED, "completed_at": now or utc_now_iso()}
        )

    def reopen(self) -> "Task":
        """Return a pending copy with the completion timestamp cleared."""
        return self.model_copy(update={"status": TaskStatus.PENDING, "completed_at": None})

    def toggled(self, now: str | None = None) -> "Task":
        """Flip pending/completed, keeping the completion invariant."""
        return self.reopen() if self.is_completed else self.complete(now)


# =============================================================================
# Ephemeral Output
# =============================================================================


class GeneratedReport(BaseModel):
    """A report produced for one invocation. Never persisted.

    Attributes:
        report_type: Weekly, Monthly or Quarterly.
        tone: Requested tone.
        start_date: Inclusive period start (YYYY-MM-DD).
        end_date: Inclusive period end (YYYY-MM-DD).
        text: Generated Markdown, or a fallback string.
        is_fallback: True if ``text`` is a fallback rather than model output.
        generated_at: When the report was produced.
    """

    report_type: str
    tone: str
    start_date: str
    end_date: str
    text: str
    is_fallback: bool = False
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def period_label(self) -> str:
        return f"{self.start_date} to {self.end_date}"
