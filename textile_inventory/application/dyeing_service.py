from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select
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
    ColorStatus,
    DyeingProcess,
    DyeingResultStatus,
    FabricProduction,
    InventoryStatus,
    InventorySyncTask,
    SourceKind,
    ThreadPurchase,
    TransactionType,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository
from .schemas import DyeingProcessCreate, DyeingProcessUpdate

logger = get_logger(__name__)

REFERENCE_TYPE = "DyeingProcess"


def _sum_costs(*costs) -> Optional[Decimal]:
    present = [to_money(cost) for cost in costs if cost is not None]
    return sum(present) if present else None


class DyeingService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.repo = InventoryRepository(db)
        self.minter = InventoryMinter(self.repo, settings)
        self.sync = InventorySyncService(db, settings)

    def list(self, thread_purchase_id: Optional[int] = None, result_status: Optional[str] = None):
        stmt = select(DyeingProcess).order_by(DyeingProcess.dye_date.desc(), DyeingProcess.id.desc())
        if thread_purchase_id is not None:
            stmt = stmt.where(DyeingProcess.thread_purchase_id == thread_purchase_id)
        if result_status:
            stmt = stmt.where(DyeingProcess.result_status == DyeingResultStatus(result_status).value)
        return list(self.db.execute(stmt).scalars())

    def get(self, dyeing_id: int) -> DyeingProcess:
        dyeing = self.db.get(DyeingProcess, dyeing_id)
        if dyeing is None:
            raise NotFoundError("Dyeing process", dyeing_id)
        return dyeing

    def create(self, data: DyeingProcessCreate) -> DyeingProcess:
        """
        Dye part of a received raw-thread purchase: the dyed quantity leaves
        the raw thread line as a negative ADJUSTMENT, and a run created as
        COMPLETED with ``addToInventory`` mints the dyed thread right away.
        """
        purchase = self.db.get(ThreadPurchase, data.thread_purchase_id)
        if purchase is None:
            raise NotFoundError("Thread purchase", data.thread_purchase_id)
        if not purchase.received:
            raise ValidationError("Thread purchase must be received before dyeing")
        if purchase.color_status != ColorStatus.RAW.value:
            raise ValidationError("Only raw thread can be dyed")
        if data.output_quantity > data.dye_quantity:
            raise ValidationError("Output quantity cannot exceed the dyed quantity")
        if data.dye_date and data.dye_date > datetime.utcnow():
            raise ValidationError("Dye date cannot be in the future")

        thread_item = self.repo.inventory_for_source(SourceKind.THREAD_PURCHASE, purchase.id)
        if thread_item is None:
            raise NotFoundError("Thread inventory", purchase.id)

        completed = data.result_status == DyeingResultStatus.COMPLETED
        with unit_of_work(self.db):
            dyeing = self.repo.add(DyeingProcess(
                thread_purchase_id=purchase.id,
                dye_date=data.dye_date or datetime.utcnow(),
                dye_parameters=data.dye_parameters,
                color_code=data.color_code,
                color_name=data.color_name,
                dye_quantity=data.dye_quantity,
                output_quantity=data.output_quantity,
                labor_cost=to_money(data.labor_cost) if data.labor_cost is not None else None,
                dye_material_cost=to_money(data.dye_material_cost) if data.dye_material_cost is not None else None,
                total_cost=(to_money(data.total_cost) if data.total_cost is not None
                            else _sum_costs(data.labor_cost, data.dye_material_cost)),
                result_status=data.result_status.value,
                completion_date=data.completion_date or (datetime.utcnow() if completed else None),
                remarks=data.remarks,
            ))
            self.minter.ledger.post(thread_item.id, LedgerEntry(
                transaction_type=TransactionType.ADJUSTMENT,
                quantity=-data.dye_quantity,
                reference_type=REFERENCE_TYPE,
                reference_id=dyeing.id,
                thread_purchase_id=purchase.id,
                notes=f"Thread sent to dyeing process #{dyeing.id}",
            ))
            if completed and data.add_to_inventory:
                self.minter.mint_dyed_thread(dyeing, MintOptions(location=data.location))
            else:
                dyeing.inventory_status = InventoryStatus.PENDING.value

        logger.info(f"Created dyeing process #{dyeing.id} for thread purchase #{purchase.id}")
        self.db.refresh(dyeing)
        return dyeing

    def update(self, dyeing_id: int, data: DyeingProcessUpdate) -> Tuple[DyeingProcess, Optional[InventorySyncTask]]:
        dyeing = self.get(dyeing_id)
        was_complete = dyeing.result_status == DyeingResultStatus.COMPLETED.value
        changes = data.model_dump(exclude_unset=True, exclude={"add_to_inventory", "location"})

        minted = self.repo.inbound_transaction_for_source(SourceKind.DYEING_PROCESS, dyeing.id) is not None
        if minted and "output_quantity" in changes and changes["output_quantity"] != dyeing.output_quantity:
            raise ValidationError("Output quantity cannot change once the dyed thread is in inventory")
        if changes.get("output_quantity") is not None and changes["output_quantity"] > dyeing.dye_quantity:
            raise ValidationError("Output quantity cannot exceed the dyed quantity")
        if changes.get("dye_date") and changes["dye_date"] > datetime.utcnow():
            raise ValidationError("Dye date cannot be in the future")

        task_id = None
        with unit_of_work(self.db):
            for field, value in changes.items():
                if field in ("labor_cost", "dye_material_cost", "total_cost") and value is not None:
                    value = to_money(value)
                if field in ("result_status", "dye_date", "output_quantity") and value is None:
                    continue
                if field == "result_status":
                    value = value.value
                setattr(dyeing, field, value)
            if ("labor_cost" in changes or "dye_material_cost" in changes) and "total_cost" not in changes:
                dyeing.total_cost = _sum_costs(dyeing.labor_cost, dyeing.dye_material_cost)
            if dyeing.result_status == DyeingResultStatus.COMPLETED.value and dyeing.completion_date is None:
                dyeing.completion_date = datetime.utcnow()
            self.db.flush()

            try:
                with self.db.begin_nested():
                    detection = SourceEventDetector(self.repo).evaluate(
                        SourceKind.DYEING_PROCESS, dyeing,
                        was_complete=was_complete, add_to_inventory=data.add_to_inventory,
                    )
            except SQLAlchemyError:
                logger.error(f"Inventory check for dyeing process #{dyeing.id} failed", exc_info=True)
                detection = None
            if detection is not None and detection.fire:
                task_id = self.sync.enqueue(
                    SourceKind.DYEING_PROCESS, dyeing.id, MintOptions(location=data.location)
                ).id

        task = None
        if task_id is not None:
            task, _ = self.sync.process(task_id)
        self.db.refresh(dyeing)
        return dyeing, task

    def delete(self, dyeing_id: int):
        """Delete a run that never reached inventory and return its thread."""
        dyeing = self.get(dyeing_id)
        if self.repo.inbound_transaction_for_source(SourceKind.DYEING_PROCESS, dyeing.id) is not None:
            raise DependentRecordsError("dyeing process", "inventoryTransactions", 1)
        productions = self.db.execute(
            select(func.count(FabricProduction.id)).where(FabricProduction.dyeing_process_id == dyeing.id)
        ).scalar_one()
        if productions:
            raise DependentRecordsError("dyeing process", "fabricProductions", productions)

        with unit_of_work(self.db):
            consumption = self.repo.consumption_for(REFERENCE_TYPE, dyeing.id)
            if consumption is not None:
                self.minter.ledger.post(consumption.inventory_id, LedgerEntry(
                    transaction_type=TransactionType.ADJUSTMENT,
                    quantity=-consumption.quantity,
                    reference_type=REFERENCE_TYPE,
                    reference_id=dyeing.id,
                    thread_purchase_id=dyeing.thread_purchase_id,
                    notes=f"Thread returned from deleted dyeing process #{dyeing.id}",
                ))
            self.repo.discard_open_sync_tasks(SourceKind.DYEING_PROCESS, dyeing.id)
            self.db.delete(dyeing)
        logger.info(f"Deleted dyeing process #{dyeing_id}")
