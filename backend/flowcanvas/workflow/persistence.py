"""
Workflow Persistence — durable storage for workflow documents.

``PersistenceGateway`` is the boundary the editor saves through and loads
from. ``JsonFileGateway`` stores each document as one camelCase JSON file
under a configurable directory.

The two coordinator functions connect a gateway to the in-memory store:

* ``load_workflow_into_store``: a failed load means "no document"; it
  is logged and the store is left untouched.
* ``save_workflow_from_store``: a failed save raises ``PersistenceError``
  and the session keeps its unsaved-changes flag.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from flowcanvas.config import get_editor_config
from flowcanvas.workflow.document_store import DocumentStore
from flowcanvas.workflow.errors import (
    PersistenceError,
    WorkflowAlreadyExistsError,
    WorkflowNotFoundError,
)
from flowcanvas.workflow.workflow_model import WorkflowDocument

if TYPE_CHECKING:
    from flowcanvas.workflow.editor_session import EditorSession

logger = getLogger(__name__)


class SaveMode(str, Enum):
    INSERT = "insert"
    EDIT = "edit"


class SaveResult(BaseModel):
    """What a gateway reports back after a successful save."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    workflow_id: str
    name: str
    created_at: datetime
    updated_at: datetime


class PersistenceGateway(ABC):
    """Durable storage boundary for workflow documents."""

    @abstractmethod
    def load(self, workflow_id: str) -> Optional[WorkflowDocument]:
        """Return the stored document, ``None`` if there is none.

        Raises ``PersistenceError`` when the stored data cannot be read.
        """

    @abstractmethod
    def save(self, document: WorkflowDocument, mode: SaveMode) -> SaveResult:
        """Store ``document``.

        Insert mode rejects an id that already exists; edit mode rejects
        one that does not.
        """


# ============================================================================
# JSON files
# ============================================================================


class JsonFileGateway(PersistenceGateway):
    """Persist workflow documents as JSON files, one per workflow id."""

    def __init__(self, storage_dir: Optional[Union[str, Path]] = None) -> None:
        self._dir = Path(storage_dir or get_editor_config().storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JsonFileGateway initialized at {self._dir}")

    @property
    def storage_dir(self) -> Path:
        return self._dir

    # ── CRUD ──

    def save(self, document: WorkflowDocument, mode: SaveMode = SaveMode.EDIT) -> SaveResult:
        mode = SaveMode(mode)
        path = self._path_for(document.workflow_id)
        if mode == SaveMode.INSERT and path.exists():
            raise WorkflowAlreadyExistsError(document.workflow_id)
        if mode == SaveMode.EDIT and not path.exists():
            raise WorkflowNotFoundError(document.workflow_id)

        try:
            path.write_text(json.dumps(document.to_wire(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save workflow {document.workflow_id}: {e}")
            raise PersistenceError(document.workflow_id, f"Failed to write {path.name}: {e}") from e

        logger.info(f"Workflow saved ({mode.value}): {document.name} ({document.workflow_id})")
        return SaveResult(
            id=path.stem,
            workflow_id=document.workflow_id,
            name=document.name,
            created_at=document.metadata.created_at,
            updated_at=document.metadata.updated_at,
        )

    def load(self, workflow_id: str) -> Optional[WorkflowDocument]:
        path = self._path_for(workflow_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return WorkflowDocument.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load workflow {workflow_id}: {e}")
            raise PersistenceError(workflow_id, f"Failed to read {path.name}: {e}") from e

    def delete(self, workflow_id: str) -> bool:
        path = self._path_for(workflow_id)
        if path.exists():
            path.unlink()
            logger.info(f"Workflow deleted: {workflow_id}")
            return True
        return False

    def list_all(self) -> List[WorkflowDocument]:
        """All readable stored documents; malformed files are skipped."""
        workflows: List[WorkflowDocument] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                workflows.append(WorkflowDocument.model_validate(data))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        return workflows

    def exists(self, workflow_id: str) -> bool:
        return self._path_for(workflow_id).exists()

    # ── Internals ──

    def _path_for(self, workflow_id: str) -> Path:
        safe_id = "".join(c for c in workflow_id if c.isalnum() or c in "-_")
        if not safe_id:
            raise PersistenceError(workflow_id, "Workflow id has no usable characters")
        return self._dir / f"{safe_id}.json"


# ============================================================================
# Store coordination
# ============================================================================


def load_workflow_into_store(
    gateway: PersistenceGateway,
    store: DocumentStore,
    workflow_id: str,
    session: Optional["EditorSession"] = None,
) -> Optional[WorkflowDocument]:
    """Load a durable document into the store (through ``session`` if given)."""
    try:
        document = gateway.load(workflow_id)
    except PersistenceError as e:
        logger.error(f"Load failed, store left untouched: {e}")
        return None
    if document is None:
        logger.warning(f"No stored workflow: {workflow_id}")
        return None

    if session is not None:
        return session.load_workflow(document)
    return store.set(workflow_id, document)


def save_workflow_from_store(
    gateway: PersistenceGateway,
    store: DocumentStore,
    workflow_id: str,
    mode: Optional[SaveMode] = None,
    session: Optional["EditorSession"] = None,
) -> SaveResult:
    """Persist the store's current document for ``workflow_id``.

    Without an explicit ``mode``, a new session inserts and anything else
    edits. The session is marked saved only when the gateway succeeds.
    """
    if session is not None:
        session.flush_pending()

    document = store.get(workflow_id)
    if document is None:
        raise PersistenceError(workflow_id, "Workflow is not open in the document store")

    if mode is None:
        mode = SaveMode.INSERT if session is not None and session.is_new else SaveMode.EDIT

    result = gateway.save(document, mode)
    if session is not None:
        session.mark_saved()
    return result


# ── Singleton ──

_gateway_instance: Optional[JsonFileGateway] = None


def get_workflow_gateway() -> JsonFileGateway:
    """Return the global JsonFileGateway singleton."""
    global _gateway_instance
    if _gateway_instance is None:
        _gateway_instance = JsonFileGateway()
    return _gateway_instance
