"""Root exception for perftrack.

Each subsystem defines its own exceptions next to the code that raises them
(configuration errors in ``perftrack.config``, AI errors in
``perftrack.ai.client``, import aborts in ``perftrack.importer``). They all
derive from :class:`PerftrackError` so the CLI can turn any of them into a
short user-facing message.
"""

from __future__ import annotations


class PerftrackError(Exception):
    """Base exception for all perftrack errors.

    Attributes:
        message: Human-readable error description (safe to show to users).
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message
