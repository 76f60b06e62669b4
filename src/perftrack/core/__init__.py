"""Core data models, period calculation and storage for perftrack.

- **models**: Session, Goal, Milestone, Achievement, TaskList, Task
- **periods**: Weekly/Monthly/Quarterly report period derivation
- **store**: DataStore protocol with in-memory and JSON-file backends
- **tasks**: task list and task operations

Example:
    >>> from perftrack.core import Session, Task, ReportType, compute_period
    >>> session = Session(user_id="u1")
    >>> period = compute_period(ReportType.MONTHLY, "2024-02")
    >>> str(period)
    '2024-02-01 to 2024-02-29'
"""

from perftrack.core.models import (
    Achievement,
    AchievementType,
    Goal,
    GeneratedReport,
    Milestone,
    Session,
    Task,
    TaskList,
    TaskStatus,
    UserRole,
    utc_now_iso,
)
from perftrack.core.periods import (
    PeriodError,
    ReportPeriod,
    ReportType,
    compute_period,
    default_anchor,
    monthly_range,
    parse_date,
    quarter_of,
    quarterly_range,
    weekly_range,
)
from perftrack.core.store import DataStore, InMemoryStore, JsonFileStore, StoreError
from perftrack.core.tasks import TaskNotFoundError, TaskService, sort_newest_first

__all__ = [
    # Models
    "Achievement",
    "AchievementType",
    "Goal",
    "GeneratedReport",
    "Milestone",
    "Session",
    "Task",
    "TaskList",
    "TaskStatus",
    "UserRole",
    "utc_now_iso",
    # Periods
    "PeriodError",
    "ReportPeriod",
    "ReportType",
    "compute_period",
    "default_anchor",
    "monthly_range",
    "parse_date",
    "quarter_of",
    "quarterly_range",
    "weekly_range",
    # Storage
    "DataStore",
    "InMemoryStore",
    "JsonFileStore",
    "StoreError",
    # Tasks
    "TaskNotFoundError",
    "TaskService",
    "sort_newest_first",
]
