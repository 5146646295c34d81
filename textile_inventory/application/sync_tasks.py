"""
Inventory sync tasks (outbox).

When an update completes a source event, the service enqueues a task in the
same unit of work as the update and processes it right after the commit.
A failed attempt never undoes the update: the task keeps the error and its
attempt count, the source is marked ERROR, and the task can be retried.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from textile_inventory.application.minting import InventoryMinter, MintOptions, MintResult
from textile_inventory.core import get_logger
from textile_inventory.core_settings import Settings
from textile_inventory.domain.errors import NotFoundError, TextileInventoryError
from textile_inventory.domain.models import (
    InventoryStatus,
    InventorySyncTask,
    SourceKind,
    SyncTaskStatus,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository

logger = get_logger(__name__)


class InventorySyncService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.repo = InventoryRepository(db)

    def list(self, status: Optional[str] = None, source_kind: Optional[str] = None) -> List[InventorySyncTask]:
        stmt = select(InventorySyncTask).order_by(InventorySyncTask.id.desc())
        if status:
            stmt = stmt.where(InventorySyncTask.status == SyncTaskStatus(status).value)
        if source_kind:
            stmt = stmt.where(InventorySyncTask.source_kind == SourceKind(source_kind).value)
        return list(self.db.execute(stmt).scalars())

    def enqueue(self, kind: SourceKind, source_id: int, options: Optional[MintOptions] = None) -> InventorySyncTask:
        """Add a PENDING task to the caller's unit of work."""
        task = self.repo.add(InventorySyncTask(
            source_kind=SourceKind(kind).value,
            source_id=source_id,
            status=SyncTaskStatus.PENDING.value,
            attempts=0,
            payload=(options or MintOptions()).to_payload(),
        ))
        logger.info(f"Queued inventory sync for {task.source_kind} #{source_id}")
        return task

    def process(self, task_id: int) -> Tuple[InventorySyncTask, Optional[MintResult]]:
        """Run one task in its own unit of work and record the outcome on it."""
        try:
            with unit_of_work(self.db):
                task = self._get(task_id)
                result = InventoryMinter(self.repo, self.settings).mint(
                    task.source_kind, task.source_id, MintOptions.from_payload(task.payload)
                )
                self._mark_done(task, result)
            return task, result
        except (TextileInventoryError, SQLAlchemyError) as e:
            logger.error(
                f"Inventory sync task #{task_id} failed: {e}",
                exc_info=True,
                extra={'extra_fields': {'task_id': task_id}}
            )
            with unit_of_work(self.db):
                task = self._get(task_id)
                task.attempts += 1
                task.status = SyncTaskStatus.FAILED.value
                task.last_error = str(e)
                source = self.repo.get_source(task.source_kind, task.source_id)
                if source is not None:
                    source.inventory_status = InventoryStatus.ERROR.value
            return task, None

    def retry(self, task_ids: Optional[List[int]] = None) -> List[InventorySyncTask]:
        """Re-run open tasks that are still below the attempt limit."""
        stmt = select(InventorySyncTask.id).where(
            InventorySyncTask.status != SyncTaskStatus.DONE.value,
            InventorySyncTask.attempts < self.settings.SYNC_TASK_MAX_ATTEMPTS,
        ).order_by(InventorySyncTask.id)
        if task_ids:
            stmt = stmt.where(InventorySyncTask.id.in_(task_ids))
        ids = list(self.db.execute(stmt).scalars())
        return [self.process(task_id)[0] for task_id in ids]

    def resolve_open(self, kind: SourceKind, source_id: int, result: MintResult):
        """Close an open task once its source was minted through another path."""
        task = self.repo.open_sync_task(kind, source_id)
        if task is not None:
            self._mark_done(task, result)

    def _mark_done(self, task: InventorySyncTask, result: MintResult):
        task.attempts += 1
        task.status = SyncTaskStatus.DONE.value
        task.last_error = None
        task.inventory_id = result.item.id
        task.completed_at = datetime.utcnow()
        logger.info(f"Inventory sync task #{task.id} done: {task.source_kind} #{task.source_id} -> {result.item.item_code}")

    def _get(self, task_id: int) -> InventorySyncTask:
        task = self.db.get(InventorySyncTask, task_id)
        if task is None:
            raise NotFoundError("Inventory sync task", task_id)
        return task
