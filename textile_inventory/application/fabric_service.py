from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from textile_inventory.application.costing import to_money
from textile_inventory.application.detection import SourceEventDetector
from textile_inventory.application.ledger import LedgerEntry
from textile_inventory.application.minting import InventoryMinter, MintOptions
from textile_inventory.application.sync_tasks import InventorySyncService
from textile_inventory.core import get_logger
from textile_inventory.core_settings import Settings
from textile_inventory.domain.errors import DependentRecordsError, NotFoundError, ValidationError
from textile_inventory.domain.models import (
    DyeingProcess,
    FabricProduction,
    InventoryItem,
    InventoryStatus,
    InventorySyncTask,
    ProductionStatus,
    ProductType,
    SourceKind,
    ThreadPurchase,
    TransactionType,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository
from .schemas import FabricProductionCreate, FabricProductionUpdate

logger = get_logger(__name__)

REFERENCE_TYPE = "FabricProduction"


class FabricProductionService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.repo = InventoryRepository(db)
        self.minter = InventoryMinter(self.repo, settings)
        self.sync = InventorySyncService(db, settings)

    def list(self, source_thread_id: Optional[int] = None, status: Optional[str] = None):
        stmt = select(FabricProduction).order_by(
            FabricProduction.production_date.desc(), FabricProduction.id.desc()
        )
        if source_thread_id is not None:
            stmt = stmt.where(FabricProduction.source_thread_id == source_thread_id)
        if status:
            stmt = stmt.where(FabricProduction.status == ProductionStatus(status).value)
        return list(self.db.execute(stmt).scalars())

    def get(self, production_id: int) -> FabricProduction:
        production = self.db.get(FabricProduction, production_id)
        if production is None:
            raise NotFoundError("Fabric production", production_id)
        return production

    def _thread_source(self, data: FabricProductionCreate) -> Tuple[InventoryItem, Optional[int]]:
        """Inventory line to draw thread from, and the purchase it traces back to."""
        if data.use_inventory_directly and data.inventory_id is not None:
            item = self.repo.get_item(data.inventory_id)
            if item is None:
                raise NotFoundError("Inventory item", data.inventory_id)
            return item, data.source_thread_id or self.repo.latest_purchase_id_for_item(item.id)

        if data.dyeing_process_id is not None:
            dyeing = self.db.get(DyeingProcess, data.dyeing_process_id)
            if dyeing is None:
                raise NotFoundError("Dyeing process", data.dyeing_process_id)
            if data.source_thread_id is not None and dyeing.thread_purchase_id != data.source_thread_id:
                raise ValidationError("Dyeing process does not belong to the specified thread purchase")
            item = self.repo.inventory_for_source(SourceKind.DYEING_PROCESS, dyeing.id)
            if item is None:
                raise NotFoundError("Dyed thread inventory", dyeing.id)
            return item, dyeing.thread_purchase_id

        if data.source_thread_id is not None:
            if self.db.get(ThreadPurchase, data.source_thread_id) is None:
                raise NotFoundError("Thread purchase", data.source_thread_id)
            item = self.repo.inventory_for_source(SourceKind.THREAD_PURCHASE, data.source_thread_id)
            if item is None:
                raise NotFoundError("Thread inventory", data.source_thread_id)
            return item, data.source_thread_id

        raise ValidationError("Either sourceThreadId or inventoryId with useInventoryDirectly is required")

    def create(self, data: FabricProductionCreate) -> FabricProduction:
        """
        Weave a fabric batch: ``threadUsed`` leaves the source thread line as
        a negative ADJUSTMENT, and a batch created as COMPLETED mints its
        fabric in the same unit of work.
        """
        thread_item, source_thread_id = self._thread_source(data)
        if thread_item.product_type != ProductType.THREAD.value:
            raise ValidationError("Fabric can only be produced from thread inventory")

        production_cost = to_money(data.production_cost)
        total_cost = (to_money(data.total_cost) if data.total_cost is not None
                      else production_cost + to_money(data.labor_cost))
        completed = data.status == ProductionStatus.COMPLETED

        with unit_of_work(self.db):
            production = self.repo.add(FabricProduction(
                source_thread_id=source_thread_id,
                dyeing_process_id=data.dyeing_process_id,
                thread_inventory_id=thread_item.id,
                fabric_type=data.fabric_type.strip(),
                dimensions=data.dimensions,
                batch_number=data.batch_number,
                quantity_produced=data.quantity_produced,
                thread_used=data.thread_used,
                thread_wastage=data.thread_wastage,
                unit_of_measure=data.unit_of_measure,
                production_cost=production_cost,
                labor_cost=to_money(data.labor_cost) if data.labor_cost is not None else None,
                total_cost=total_cost,
                production_date=data.production_date or datetime.utcnow(),
                completion_date=data.completion_date or (datetime.utcnow() if completed else None),
                remarks=data.remarks,
                status=data.status.value,
            ))
            self.minter.ledger.post(thread_item.id, LedgerEntry(
                transaction_type=TransactionType.ADJUSTMENT,
                quantity=-data.thread_used,
                reference_type=REFERENCE_TYPE,
                reference_id=production.id,
                notes=f"Thread used in fabric production batch {production.batch_number}",
            ))
            if completed and data.add_to_inventory:
                self.minter.mint_fabric(production, MintOptions(location=data.location))
            else:
                production.inventory_status = InventoryStatus.PENDING.value

        logger.info(f"Created fabric production #{production.id} (batch {production.batch_number})")
        self.db.refresh(production)
        return production

    def update(self, production_id: int, data: FabricProductionUpdate) -> Tuple[FabricProduction, Optional[InventorySyncTask]]:
        production = self.get(production_id)
        was_complete = production.status == ProductionStatus.COMPLETED.value
        changes = data.model_dump(exclude_unset=True, exclude={"add_to_inventory", "location"})

        minted = self.repo.inbound_transaction_for_source(SourceKind.FABRIC_PRODUCTION, production.id) is not None
        if minted and changes.get("quantity_produced") not in (None, production.quantity_produced):
            raise ValidationError("Quantity produced cannot change once the fabric is in inventory")

        task_id = None
        with unit_of_work(self.db):
            for field, value in changes.items():
                if value is None and field not in ("thread_wastage", "labor_cost", "completion_date", "remarks"):
                    continue
                if field in ("production_cost", "labor_cost", "total_cost") and value is not None:
                    value = to_money(value)
                if field == "status":
                    value = value.value
                setattr(production, field, value)
            if ("production_cost" in changes or "labor_cost" in changes) and "total_cost" not in changes:
                production.total_cost = to_money(production.production_cost) + to_money(production.labor_cost)
            if production.status == ProductionStatus.COMPLETED.value and production.completion_date is None:
                production.completion_date = datetime.utcnow()
            self.db.flush()

            try:
                with self.db.begin_nested():
                    detection = SourceEventDetector(self.repo).evaluate(
                        SourceKind.FABRIC_PRODUCTION, production,
                        was_complete=was_complete, add_to_inventory=data.add_to_inventory,
                    )
            except SQLAlchemyError:
                logger.error(f"Inventory check for fabric production #{production.id} failed", exc_info=True)
                detection = None
            if detection is not None and detection.fire:
                task_id = self.sync.enqueue(
                    SourceKind.FABRIC_PRODUCTION, production.id, MintOptions(location=data.location)
                ).id

        task = None
        if task_id is not None:
            task, _ = self.sync.process(task_id)
        self.db.refresh(production)
        return production, task

    def delete(self, production_id: int):
        """Delete a batch whose fabric never reached inventory and return its thread."""
        production = self.get(production_id)
        if self.repo.inbound_transaction_for_source(SourceKind.FABRIC_PRODUCTION, production.id) is not None:
            raise DependentRecordsError("fabric production", "inventoryTransactions", 1)

        with unit_of_work(self.db):
            consumption = self.repo.consumption_for(REFERENCE_TYPE, production.id)
            if consumption is not None:
                self.minter.ledger.post(consumption.inventory_id, LedgerEntry(
                    transaction_type=TransactionType.ADJUSTMENT,
                    quantity=-consumption.quantity,
                    reference_type=REFERENCE_TYPE,
                    reference_id=production.id,
                    notes=f"Thread returned from deleted fabric batch {production.batch_number}",
                ))
            self.repo.discard_open_sync_tasks(SourceKind.FABRIC_PRODUCTION, production.id)
            self.db.delete(production)
        logger.info(f"Deleted fabric production #{production_id}")
