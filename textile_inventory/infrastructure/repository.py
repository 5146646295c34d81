"""
Storage access for the reconciliation flow.

Services receive an ``InventoryRepository`` built around the request's
session instead of querying through a module-level client, so the ledger,
resolver and detector only depend on the handful of lookups below.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from textile_inventory.domain.models import (
    DyeingProcess,
    FabricProduction,
    FabricType,
    INBOUND_TRANSACTION_TYPES,
    InventoryItem,
    InventorySyncTask,
    InventoryTransaction,
    SourceKind,
    SyncTaskStatus,
    ThreadPurchase,
    ThreadType,
    TransactionType,
)

SOURCE_MODELS = {
    SourceKind.THREAD_PURCHASE: ThreadPurchase,
    SourceKind.DYEING_PROCESS: DyeingProcess,
    SourceKind.FABRIC_PRODUCTION: FabricProduction,
}

SOURCE_COLUMNS = {
    SourceKind.THREAD_PURCHASE: InventoryTransaction.thread_purchase_id,
    SourceKind.DYEING_PROCESS: InventoryTransaction.dyeing_process_id,
    SourceKind.FABRIC_PRODUCTION: InventoryTransaction.fabric_production_id,
}


class InventoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    # Inventory items

    def get_item(self, inventory_id: int) -> Optional[InventoryItem]:
        return self.db.get(InventoryItem, inventory_id)

    def lock_item(self, inventory_id: int) -> Optional[InventoryItem]:
        """Load the item row FOR UPDATE, refreshing any copy already in the session."""
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.id == inventory_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_item(self, product_type: str, description: str,
                  thread_type_id: Optional[int] = None,
                  fabric_type_id: Optional[int] = None) -> Optional[InventoryItem]:
        stmt = select(InventoryItem).where(
            InventoryItem.product_type == product_type,
            func.lower(InventoryItem.description) == description.lower(),
        )
        if thread_type_id is not None:
            stmt = stmt.where(InventoryItem.thread_type_id == thread_type_id)
        if fabric_type_id is not None:
            stmt = stmt.where(InventoryItem.fabric_type_id == fabric_type_id)
        return self.db.execute(stmt.order_by(InventoryItem.id).limit(1)).scalar_one_or_none()

    def item_code_exists(self, item_code: str) -> bool:
        stmt = select(InventoryItem.id).where(InventoryItem.item_code == item_code)
        return self.db.execute(stmt).first() is not None

    def count_transactions(self, inventory_id: int) -> int:
        stmt = select(func.count(InventoryTransaction.id)).where(
            InventoryTransaction.inventory_id == inventory_id
        )
        return self.db.execute(stmt).scalar_one()

    # Classifications

    def thread_type_by_name(self, name: str) -> Optional[ThreadType]:
        stmt = select(ThreadType).where(func.lower(ThreadType.name) == name.strip().lower())
        return self.db.execute(stmt).scalars().first()

    def fabric_type_by_name(self, name: str) -> Optional[FabricType]:
        stmt = select(FabricType).where(func.lower(FabricType.name) == name.strip().lower())
        return self.db.execute(stmt).scalars().first()

    # Source events

    def get_source(self, kind: SourceKind, source_id: int):
        return self.db.get(SOURCE_MODELS[SourceKind(kind)], source_id)

    def lock_source(self, kind: SourceKind, source_id: int):
        """Load a source event FOR UPDATE so concurrent mints of it queue up."""
        model = SOURCE_MODELS[SourceKind(kind)]
        stmt = (
            select(model)
            .where(model.id == source_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def inbound_transaction_for_source(self, kind: SourceKind, source_id: int) -> Optional[InventoryTransaction]:
        """The PURCHASE/PRODUCTION row that minted stock for a source event, if any."""
        column = SOURCE_COLUMNS[SourceKind(kind)]
        stmt = (
            select(InventoryTransaction)
            .where(
                column == source_id,
                InventoryTransaction.transaction_type.in_([t.value for t in INBOUND_TRANSACTION_TYPES]),
            )
            .order_by(InventoryTransaction.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def inventory_for_source(self, kind: SourceKind, source_id: int) -> Optional[InventoryItem]:
        transaction = self.inbound_transaction_for_source(kind, source_id)
        return transaction.inventory if transaction else None

    def consumption_for(self, reference_type: str, reference_id: int) -> Optional[InventoryTransaction]:
        """The negative ADJUSTMENT that drew thread for a dyeing run or fabric batch."""
        stmt = (
            select(InventoryTransaction)
            .where(
                InventoryTransaction.reference_type == reference_type,
                InventoryTransaction.reference_id == reference_id,
                InventoryTransaction.transaction_type == TransactionType.ADJUSTMENT.value,
                InventoryTransaction.quantity < 0,
            )
            .order_by(InventoryTransaction.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def latest_purchase_id_for_item(self, inventory_id: int) -> Optional[int]:
        stmt = (
            select(InventoryTransaction.thread_purchase_id)
            .where(
                InventoryTransaction.inventory_id == inventory_id,
                InventoryTransaction.thread_purchase_id.is_not(None),
            )
            .order_by(InventoryTransaction.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    # Sync tasks

    def open_sync_task(self, kind: SourceKind, source_id: int) -> Optional[InventorySyncTask]:
        stmt = (
            select(InventorySyncTask)
            .where(
                InventorySyncTask.source_kind == SourceKind(kind).value,
                InventorySyncTask.source_id == source_id,
                InventorySyncTask.status != SyncTaskStatus.DONE.value,
            )
            .order_by(InventorySyncTask.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def discard_open_sync_tasks(self, kind: SourceKind, source_id: int) -> int:
        tasks = self.db.execute(
            select(InventorySyncTask).where(
                InventorySyncTask.source_kind == SourceKind(kind).value,
                InventorySyncTask.source_id == source_id,
                InventorySyncTask.status != SyncTaskStatus.DONE.value,
            )
        ).scalars().all()
        for task in tasks:
            self.db.delete(task)
        return len(tasks)
