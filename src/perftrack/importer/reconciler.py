"""Task-export import.

Reads a task-list export (Google Tasks API responses, Takeout files, or a
bare array of tasks), works out which of the accepted shapes it has, and
writes the lists and tasks it contains to the store one record at a time.

Accepted shapes:

1. Object with an ``items`` array (API-style response)
2. Array of task lists, each with its own ``items`` array
3. Array of tasks (a single-list export); the file name becomes the list title
4. A single list or task object

Bad individual task rows (no title, not an object) are skipped without
error. Invalid JSON and payloads with nothing to import abort before any
write. Anything that fails mid-import stops the import; records already
written stay written.

Example:
    >>> importer = TaskImporter(store, session, progress_callback=print)
    >>> summary = await importer.import_content(raw_text, "Work.json")
    >>> summary.tasks_imported
    12
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from perftrack.core.models import Session, Task, TaskList, TaskStatus, utc_now_iso
from perftrack.core.store import DataStore
from perftrack.exceptions import PerftrackError

logger = logging.getLogger(__name__)

DEFAULT_LIST_TITLE = "Imported Tasks"
TASK_LIST_KIND = "tasks#taskList"

_JSON_SUFFIX = re.compile(r"\.json$", re.IGNORECASE)


# =============================================================================
# Exceptions
# =============================================================================


class ImportAbortedError(PerftrackError):
    """Base for failures that stop an import before anything is written."""


class ImportParseError(ImportAbortedError):
    """The file is not valid JSON."""

    def __init__(self, message: str = "Invalid JSON file") -> None:
        super().__init__(message)


class NoDataError(ImportAbortedError):
    """The payload contains no lists and no tasks."""

    def __init__(self, message: str = "No valid lists or tasks found to import") -> None:
        super().__init__(message)


# =============================================================================
# Classification
# =============================================================================


class RootShape(str, Enum):
    """How the parsed JSON root holds its candidate records."""

    ARRAY = "array"
    ITEMS_OBJECT = "items_object"
    SINGLE_OBJECT = "single_object"


class PayloadKind(str, Enum):
    """Whether the candidates are task lists or bare tasks."""

    LISTS = "lists"
    FLAT_TASKS = "flat_tasks"


def classify_root(parsed: Any) -> tuple[RootShape, list[Any]]:
    """Return the root shape and its candidate records."""
    if isinstance(parsed, list):
        return RootShape.ARRAY, parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("items"), list):
        return RootShape.ITEMS_OBJECT, parsed["items"]
    return RootShape.SINGLE_OBJECT, [parsed]


def _is_list_like(item: Any) -> bool:
    return isinstance(item, dict) and (
        isinstance(item.get("items"), list) or item.get("kind") == TASK_LIST_KIND
    )


def classify_payload(candidates: list[Any]) -> PayloadKind:
    """LISTS if any candidate looks like a task list, else FLAT_TASKS."""
    if any(_is_list_like(item) for item in candidates):
        return PayloadKind.LISTS
    return PayloadKind.FLAT_TASKS


def list_title_from_file_name(file_name: str, fallback: str = DEFAULT_LIST_TITLE) -> str:
    """File name without a trailing ``.json``, or ``fallback`` if nothing is left."""
    return _JSON_SUFFIX.sub("", Path(file_name).name) or fallback


# =============================================================================
# Progress / Result
# =============================================================================


@dataclass
class ImportProgress:
    """Progress information for callbacks.

    Attributes:
        stage: "reading", "parsing", "found", "importing" or "complete".
        message: Status line to show the user.
        processed: Raw task entries handled so far (written or skipped).
        total: Raw task entries in the payload.
    """

    stage: str
    message: str
    processed: int = 0
    total: int = 0

    def percentage(self) -> int:
        """Whole percent complete, rounding halves up; 100 when there is nothing to do."""
        if self.total == 0:
            return 100 if self.stage in ("importing", "complete") else 0
        return math.floor(self.processed / self.total * 100 + 0.5)

    def to_status_line(self) -> str:
        return f"[{self.percentage():3d}%] {self.message}"


ProgressCallback = Callable[[ImportProgress], None]


@dataclass
class ImportSummary:
    """Result of a finished import.

    Attributes:
        lists_imported: Task lists written.
        tasks_imported: Tasks written.
        tasks_skipped: Raw task entries skipped (no title or not an object).
    """

    lists_imported: int = 0
    tasks_imported: int = 0
    tasks_skipped: int = 0


# =============================================================================
# Field mapping
# =============================================================================


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_iso(value: Any, now: str) -> str:
    parsed = _parse_timestamp(value)
    if parsed is None:
        return now
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _to_due_date(value: Any) -> str | None:
    parsed = _parse_timestamp(value)
    return parsed.date().isoformat() if parsed else None


def map_external_task(raw: Any, list_id: str, user_id: str, now: str) -> Task | None:
    """Map one external task record to a Task, or None if it should be skipped."""
    if not isinstance(raw, dict):
        return None
    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    completed = raw.get("status") == "completed"
    return Task(
        user_id=user_id,
        list_id=list_id,
        title=title,
        details=str(raw.get("notes") or ""),
        due_date=_to_due_date(raw.get("due")),
        status=TaskStatus.COMPLETED if completed else TaskStatus.PENDING,
        completed_at=_to_iso(raw.get("completed"), now) if completed else None,
        created_at=_to_iso(raw.get("updated"), now),
    )


# =============================================================================
# Importer
# =============================================================================


class TaskImporter:
    """Writes lists and tasks from a task export into a store.

    Attributes:
        store: Destination store.
        session: Owner of the imported records.
        fallback_title: Title for a flat export whose file name is empty.
        progress_callback: Optional callable receiving ImportProgress updates.
    """

    def __init__(
        self,
        store: DataStore,
        session: Session,
        fallback_title: str = DEFAULT_LIST_TITLE,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.fallback_title = fallback_title
        self.progress_callback = progress_callback

    def _report(self, stage: str, message: str, processed: int = 0, total: int = 0) -> None:
        if self.progress_callback is not None:
            self.progress_callback(ImportProgress(stage, message, processed, total))

    async def import_file(self, path: Path, now: str | None = None) -> ImportSummary:
        """Read ``path`` and import its contents."""
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise ImportAbortedError(f"Could not read {path}: {e.strerror or e}") from e
        return await self.import_content(content, Path(path).name, now=now)

    async def import_content(
        self,
        content: str | bytes,
        file_name: str,
        now: str | None = None,
    ) -> ImportSummary:
        """Import raw export text.

        Args:
            content: File contents.
            file_name: Original file name, used to title flat-task exports.
            now: Timestamp for records with no completion/update time.

        Raises:
            ImportParseError: If ``content`` is not valid JSON.
            NoDataError: If the payload has no lists and no tasks.
        """
        self._report("reading", "Reading file...")
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ImportParseError() from e

        self._report("parsing", "Parsing JSON...")
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug(f"Import of {file_name} rejected: {e}")
            raise ImportParseError() from e

        shape, candidates = classify_root(parsed)
        kind = classify_payload(candidates)

        if kind == PayloadKind.LISTS:
            lists = [c for c in candidates if isinstance(c, dict)]
        elif candidates:
            lists = [
                {
                    "title": list_title_from_file_name(file_name, self.fallback_title),
                    "items": candidates,
                }
            ]
        else:
            lists = []

        total = sum(len(l["items"]) for l in lists if isinstance(l.get("items"), list))
        logger.debug(f"Import payload: shape={shape.value}, kind={kind.value}, total={total}")

        if not lists and total == 0:
            raise NoDataError()

        self._report("found", f"Found {len(lists)} lists and {total} tasks...", 0, total)

        now = now or utc_now_iso()
        summary = ImportSummary()
        processed = 0

        for raw_list in lists:
            title = raw_list.get("title") or f"Imported List {summary.lists_imported + 1}"
            task_list = await self.store.save_task_list(
                self.session, TaskList(user_id=self.session.user_id, title=str(title))
            )
            summary.lists_imported += 1

            items = raw_list.get("items")
            for raw_task in items if isinstance(items, list) else []:
                task = map_external_task(raw_task, task_list.id, self.session.user_id, now)
                if task is None:
                    summary.tasks_skipped += 1
                else:
                    await self.store.save_task(self.session, task)
                    summary.tasks_imported += 1
                processed += 1
                self._report("importing", f"Importing {title} ({processed}/{total})...", processed, total)

        self._report("complete", "Import Complete!", processed, total)
        logger.info(
            f"Imported {summary.lists_imported} lists and {summary.tasks_imported} tasks "
            f"({summary.tasks_skipped} skipped) from {file_name}"
        )
        return summary


async def import_tasks(
    content: str | bytes,
    file_name: str,
    store: DataStore,
    session: Session,
    progress: ProgressCallback | None = None,
    now: str | None = None,
    fallback_title: str = DEFAULT_LIST_TITLE,
) -> ImportSummary:
    """Functional wrapper around :meth:`TaskImporter.import_content`."""
    importer = TaskImporter(store, session, fallback_title=fallback_title, progress_callback=progress)
    return await importer.import_content(content, file_name, now=now)
