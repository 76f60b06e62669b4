"""Persistence collaborator for perftrack records.

The application talks to storage only through the :class:`DataStore`
protocol: ``get_*``, ``save_*`` and ``delete_*`` per entity type, every call
scoped to a :class:`~perftrack.core.models.Session`. All operations are
coroutines so a hosted backend can be dropped in without changing callers.

Two implementations ship with the package:

- :class:`InMemoryStore`: process-local dictionaries (tests, embedding).
- :class:`JsonFileStore`: one JSON document per user under a data
  directory, written atomically through a temp file.

``save_*`` is an upsert keyed by record id. Deleting a task list also
deletes its tasks.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from perftrack.core.models import Achievement, Goal, Milestone, Session, Task, TaskList
from perftrack.exceptions import PerftrackError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class StoreError(PerftrackError):
    """Raised when the backing store cannot be read or written."""


@runtime_checkable
class DataStore(Protocol):
    """Data-access collaborator used by reports, imports and the CLI."""

    async def get_goals(self, session: Session) -> list[Goal]: ...

    async def save_goal(self, session: Session, goal: Goal) -> Goal: ...

    async def delete_goal(self, session: Session, goal_id: str) -> None: ...

    async def get_milestones(self, session: Session, goal_id: str) -> list[Milestone]: ...

    async def save_milestone(self, session: Session, milestone: Milestone) -> Milestone: ...

    async def get_achievements(self, session: Session) -> list[Achievement]: ...

    async def save_achievement(self, session: Session, achievement: Achievement) -> Achievement: ...

    async def delete_achievement(self, session: Session, achievement_id: str) -> None: ...

    async def get_task_lists(self, session: Session) -> list[TaskList]: ...

    async def save_task_list(self, session: Session, task_list: TaskList) -> TaskList: ...

    async def delete_task_list(self, session: Session, list_id: str) -> None: ...

    async def get_tasks(self, session: Session) -> list[Task]: ...

    async def save_task(self, session: Session, task: Task) -> Task: ...

    async def delete_task(self, session: Session, task_id: str) -> None: ...


# Collection name -> record model
_COLLECTIONS: dict[str, type[BaseModel]] = {
    "goals": Goal,
    "milestones": Milestone,
    "achievements": Achievement,
    "task_lists": TaskList,
    "tasks": Task,
}


class _CollectionStore:
    """Shared upsert/delete logic over ``{collection: {id: record}}`` maps.

    Subclasses provide ``_load`` and ``_persist`` for a user's collections.
    """

    def _load(self, user_id: str) -> dict[str, dict[str, BaseModel]]:
        raise NotImplementedError

    def _persist(self, user_id: str, data: dict[str, dict[str, BaseModel]]) -> None:
        raise NotImplementedError

    def _all(self, session: Session, collection: str) -> list[Any]:
        return list(self._load(session.user_id)[collection].values())

    def _upsert(self, session: Session, collection: str, record: RecordT) -> RecordT:
        if hasattr(record, "user_id") and not record.user_id:
            record = record.model_copy(update={"user_id": session.user_id})
        data = self._load(session.user_id)
        data[collection][record.id] = record
        self._persist(session.user_id, data)
        return record

    def _remove(self, session: Session, collection: str, record_id: str) -> None:
        data = self._load(session.user_id)
        if data[collection].pop(record_id, None) is None:
            logger.debug(f"Delete of missing {collection} record {record_id} ignored")
            return
        self._persist(session.user_id, data)

    # -- goals ---------------------------------------------------------------

    async def get_goals(self, session: Session) -> list[Goal]:
        return self._all(session, "goals")

    async def save_goal(self, session: Session, goal: Goal) -> Goal:
        return self._upsert(session, "goals", goal)

    async def delete_goal(self, session: Session, goal_id: str) -> None:
        self._remove(session, "goals", goal_id)

    # -- milestones ----------------------------------------------------------

    async def get_milestones(self, session: Session, goal_id: str) -> list[Milestone]:
        return [m for m in self._all(session, "milestones") if m.goal_id == goal_id]

    async def save_milestone(self, session: Session, milestone: Milestone) -> Milestone:
        return self._upsert(session, "milestones", milestone)

    # -- achievements --------------------------------------------------------

    async def get_achievements(self, session: Session) -> list[Achievement]:
        return self._all(session, "achievements")

    async def save_achievement(self, session: Session, achievement: Achievement) -> Achievement:
        return self._upsert(session, "achievements", achievement)

    async def delete_achievement(self, session: Session, achievement_id: str) -> None:
        self._remove(session, "achievements", achievement_id)

    # -- task lists ----------------------------------------------------------

    async def get_task_lists(self, session: Session) -> list[TaskList]:
        return self._all(session, "task_lists")

    async def save_task_list(self, session: Session, task_list: TaskList) -> TaskList:
        return self._upsert(session, "task_lists", task_list)

    async def delete_task_list(self, session: Session, list_id: str) -> None:
        data = self._load(session.user_id)
        data["task_lists"].pop(list_id, None)
        data["tasks"] = {
            task_id: task for task_id, task in data["tasks"].items() if task.list_id != list_id
        }
        self._persist(session.user_id, data)

    # -- tasks ---------------------------------------------------------------

    async def get_tasks(self, session: Session) -> list[Task]:
        return self._all(session, "tasks")

    async def save_task(self, session: Session, task: Task) -> Task:
        return self._upsert(session, "tasks", task)

    async def delete_task(self, session: Session, task_id: str) -> None:
        self._remove(session, "tasks", task_id)


class InMemoryStore(_CollectionStore):
    """Process-local store. Records live as long as the instance."""

    def __init__(self) -> None:
        self._users: dict[str, dict[str, dict[str, BaseModel]]] = {}

    def _load(self, user_id: str) -> dict[str, dict[str, BaseModel]]:
        return self._users.setdefault(user_id, {name: {} for name in _COLLECTIONS})

    def _persist(self, user_id: str, data: dict[str, dict[str, BaseModel]]) -> None:
        self._users[user_id] = data

    def count(self, session: Session, collection: str) -> int:
        """Number of records in one of the user's collections."""
        return len(self._load(session.user_id)[collection])


class JsonFileStore(_CollectionStore):
    """One JSON document per user under ``data_dir``.

    Document shape::

        {"goals": [...], "milestones": [...], "achievements": [...],
         "task_lists": [...], "tasks": [...]}

    Writes go to a temp file in the same directory and are renamed into
    place, so a crash never leaves a half-written document.
    """

    _SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, user_id: str) -> Path:
        return self._data_dir / f"{self._SAFE_NAME.sub('_', user_id)}.json"

    def _load(self, user_id: str) -> dict[str, dict[str, BaseModel]]:
        data: dict[str, dict[str, BaseModel]] = {name: {} for name in _COLLECTIONS}
        path = self.path_for(user_id)
        if not path.exists():
            return data

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read data file {path}: {e}") from e

        if not isinstance(raw, dict):
            raise StoreError(f"Data file {path} has unexpected format")

        for name, model in _COLLECTIONS.items():
            for item in raw.get(name, []):
                try:
                    record = model.model_validate(item)
                except ValidationError as e:
                    raise StoreError(
                        f"Data file {path} has an invalid {name} record: {e.error_count()} error(s)"
                    ) from e
                data[name][record.id] = record
        return data

    def _persist(self, user_id: str, data: dict[str, dict[str, BaseModel]]) -> None:
        path = self.path_for(user_id)
        payload = {
            name: [record.model_dump(mode="json") for record in records.values()]
            for name, records in data.items()
        }

        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self._data_dir, suffix=".tmp", prefix=".store_")
        except OSError as e:
            raise StoreError(f"Could not write data file {path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            Path(temp_path).replace(path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise StoreError(f"Could not write data file {path}: {e}") from e
