"""
Workflow errors.

Only the persistence boundary raises. Lookups of absent workflows or
nodes inside the document store return ``None`` instead, and malformed
node edits are recorded on the record's metadata rather than raised.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for workflow subsystem errors."""


class PersistenceError(WorkflowError):
    """A load or save through a persistence gateway failed."""

    def __init__(self, workflow_id: str, message: str) -> None:
        super().__init__(f"{message} (workflow: {workflow_id})")
        self.workflow_id = workflow_id


class WorkflowAlreadyExistsError(PersistenceError):
    """Insert-mode save of an id that is already stored durably."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            workflow_id,
            "Workflow already exists. Use edit mode to update existing workflows.",
        )


class WorkflowNotFoundError(PersistenceError):
    """Edit-mode save of an id that is not stored durably."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            workflow_id,
            "Workflow does not exist. Use insert mode to create new workflows.",
        )
