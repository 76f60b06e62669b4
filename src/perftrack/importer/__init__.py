"""Task-export import.

Exports:
    - TaskImporter / import_tasks: Parse an export and write its lists and tasks
    - ImportProgress / ImportSummary: Progress updates and final counts
    - RootShape / PayloadKind: Classification of the export's JSON root
    - ImportAbortedError, ImportParseError, NoDataError: Hard aborts
"""

from perftrack.importer.reconciler import (
    ImportAbortedError,
    ImportParseError,
    ImportProgress,
    ImportSummary,
    NoDataError,
    PayloadKind,
    RootShape,
    TaskImporter,
    classify_payload,
    classify_root,
    import_tasks,
    list_title_from_file_name,
    map_external_task,
)

__all__ = [
    "ImportAbortedError",
    "ImportParseError",
    "ImportProgress",
    "ImportSummary",
    "NoDataError",
    "PayloadKind",
    "RootShape",
    "TaskImporter",
    "classify_payload",
    "classify_root",
    "import_tasks",
    "list_title_from_file_name",
    "map_external_task",
]
