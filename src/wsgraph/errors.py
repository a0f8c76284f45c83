"""Exceptions raised by the workspace graph and its task layer.

Every error carries a human-readable message plus JSON-serializable context,
so the request layer can forward it as-is.
"""

from __future__ import annotations

from typing import Any


class WorkspaceError(Exception):
    """Base class for all workspace errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class NotFoundError(WorkspaceError):
    """A required node (model, facet, datasource, relation target) is absent."""


class AlreadyExistsError(WorkspaceError):
    """A node with the derived id is already registered."""


class FileIgnoredError(WorkspaceError):
    """No facet can be derived from a file path; the file is skipped."""


class PersistenceError(WorkspaceError):
    """Reading or writing a JSON artifact failed."""


class InvalidOperationError(WorkspaceError):
    """The request would break graph identity (renames, unqualified child ids)."""
