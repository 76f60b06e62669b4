"""Task list and task operations.

Thin layer over :class:`~perftrack.core.store.DataStore` that keeps the task
invariants in one place: new tasks start pending, toggling sets or clears
``completed_at``, and a list's tasks are shown newest first.

Example:
    >>> service = TaskService(store, session)
    >>> work = await service.create_list("Work")
    >>> task = await service.add_task(work.id, "Draft Q3 plan")
    >>> task = await service.toggle(task.id)
    >>> task.is_completed
    True
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from perftrack.core.models import Session, Task, TaskList, utc_now_iso
from perftrack.core.store import DataStore
from perftrack.exceptions import PerftrackError

logger = logging.getLogger(__name__)


class TaskNotFoundError(PerftrackError):
    """Raised when a task or list id (or id prefix) matches nothing, or more than one record."""


def _created_key(task: Task) -> datetime:
    try:
        created = datetime.fromisoformat(task.created_at.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    # Naive and aware timestamps cannot be compared; normalize to naive UTC
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc).replace(tzinfo=None)
    return created


def sort_newest_first(tasks: list[Task]) -> list[Task]:
    """Order tasks by ``created_at`` descending. Unparseable timestamps sort last."""
    return sorted(tasks, key=_created_key, reverse=True)


class TaskService:
    """Task operations for one user."""

    def __init__(self, store: DataStore, session: Session) -> None:
        self.store = store
        self.session = session

    # -- lists ---------------------------------------------------------------

    async def lists(self) -> list[TaskList]:
        return await self.store.get_task_lists(self.session)

    async def create_list(self, title: str, is_default: bool = False) -> TaskList:
        title = title.strip()
        if not title:
            raise ValueError("List title must not be empty")
        task_list = TaskList(user_id=self.session.user_id, title=title, is_default=is_default)
        return await self.store.save_task_list(self.session, task_list)

    async def delete_list(self, list_id: str) -> None:
        """Delete a list and all of its tasks. Default lists cannot be deleted."""
        task_list = await self.find_list(list_id)
        if task_list.is_default:
            raise PerftrackError(f"'{task_list.title}' is the default list and cannot be deleted")
        await self.store.delete_task_list(self.session, task_list.id)
        logger.info(f"Deleted task list {task_list.id}")

    async def find_list(self, ref: str) -> TaskList:
        """Look up a list by id, id prefix or exact title."""
        lists = await self.lists()
        matches = [l for l in lists if l.id == ref or l.title == ref]
        if not matches:
            matches = [l for l in lists if l.id.startswith(ref)]
        return _single(matches, ref, "task list")

    # -- tasks ---------------------------------------------------------------

    async def tasks(self, list_id: str | None = None) -> list[Task]:
        """Tasks, newest first, optionally limited to one list."""
        tasks = await self.store.get_tasks(self.session)
        if list_id is not None:
            tasks = [t for t in tasks if t.list_id == list_id]
        return sort_newest_first(tasks)

    async def add_task(self, list_id: str, title: str, **fields: Any) -> Task:
        title = title.strip()
        if not title:
            raise ValueError("Task title must not be empty")
        task = Task(user_id=self.session.user_id, list_id=list_id, title=title, **fields)
        return await self.store.save_task(self.session, task)

    async def toggle(self, task_id: str, now: str | None = None) -> Task:
        """Flip a task between pending and completed."""
        task = await self.find_task(task_id)
        return await self.store.save_task(self.session, task.toggled(now or utc_now_iso()))

    async def update(self, task_id: str, **changes: Any) -> Task:
        """Apply field changes and re-validate so the completion invariant holds."""
        task = await self.find_task(task_id)
        updated = Task.model_validate({**task.model_dump(), **changes})
        return await self.store.save_task(self.session, updated)

    async def delete(self, task_id: str) -> None:
        task = await self.find_task(task_id)
        await self.store.delete_task(self.session, task.id)

    async def find_task(self, ref: str) -> Task:
        """Look up a task by full id or unique id prefix."""
        tasks = await self.store.get_tasks(self.session)
        exact = [t for t in tasks if t.id == ref]
        return _single(exact or [t for t in tasks if t.id.startswith(ref)], ref, "task")


def _single(matches: list[Any], ref: str, kind: str) -> Any:
    if not matches:
        raise TaskNotFoundError(f"No {kind} matches '{ref}'")
    if len(matches) > 1:
        raise TaskNotFoundError(f"'{ref}' matches {len(matches)} records; use a longer id")
    return matches[0]
