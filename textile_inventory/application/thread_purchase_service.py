from datetime import datetime
from typing import Optional

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
    DyeingProcess,
    FabricProduction,
    InventoryStatus,
    InventoryTransaction,
    Payment,
    PaymentMode,
    SourceKind,
    ThreadPurchase,
    TransactionType,
    Vendor,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository
from .schemas import ThreadPurchaseCreate, ThreadPurchaseUpdate

logger = get_logger(__name__)


class ThreadPurchaseService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.repo = InventoryRepository(db)
        self.minter = InventoryMinter(self.repo, settings)
        self.sync = InventorySyncService(db, settings)

    def list(self, vendor_id: Optional[int] = None, received: Optional[bool] = None,
             color_status: Optional[str] = None):
        stmt = select(ThreadPurchase).order_by(ThreadPurchase.order_date.desc(), ThreadPurchase.id.desc())
        if vendor_id is not None:
            stmt = stmt.where(ThreadPurchase.vendor_id == vendor_id)
        if received is not None:
            stmt = stmt.where(ThreadPurchase.received == received)
        if color_status:
            stmt = stmt.where(ThreadPurchase.color_status == color_status)
        return list(self.db.execute(stmt).scalars())

    def get(self, purchase_id: int) -> ThreadPurchase:
        purchase = self.db.get(ThreadPurchase, purchase_id)
        if purchase is None:
            raise NotFoundError("Thread purchase", purchase_id)
        return purchase

    def create(self, data: ThreadPurchaseCreate) -> ThreadPurchase:
        """
        Record a purchase, its optional payment and, when it arrives already
        received, its stock. All three commit or fail together.
        """
        if self.db.get(Vendor, data.vendor_id) is None:
            raise NotFoundError("Vendor", data.vendor_id)
        if data.payment_amount is not None and data.payment_mode is None:
            raise ValidationError("paymentMode is required when paymentAmount is given")

        total_cost = data.total_cost if data.total_cost is not None else data.unit_price * data.quantity
        with unit_of_work(self.db):
            purchase = ThreadPurchase(
                vendor_id=data.vendor_id,
                order_date=data.order_date or datetime.utcnow(),
                thread_type=data.thread_type.strip(),
                color=data.color,
                color_status=data.color_status.value,
                quantity=data.quantity,
                unit_price=to_money(data.unit_price),
                total_cost=to_money(total_cost),
                unit_of_measure=data.unit_of_measure,
                delivery_date=data.delivery_date,
                remarks=data.remarks,
                reference=data.reference,
                received=data.received,
                received_at=(data.received_at or datetime.utcnow()) if data.received else None,
            )
            self.repo.add(purchase)

            if data.payment_amount is not None:
                self.db.add(Payment(
                    amount=to_money(data.payment_amount),
                    mode=PaymentMode(data.payment_mode).value,
                    thread_purchase_id=purchase.id,
                    reference_number=data.reference,
                    description=f"Payment for thread purchase #{purchase.id}",
                ))

            if purchase.received and data.add_to_inventory:
                self.minter.mint_thread_purchase(purchase)
            elif data.add_to_inventory:
                purchase.inventory_status = InventoryStatus.PENDING.value

        logger.info(f"Created thread purchase #{purchase.id} ({purchase.quantity} {purchase.unit_of_measure})")
        self.db.refresh(purchase)
        return purchase

    def update(self, data: ThreadPurchaseUpdate) -> ThreadPurchase:
        """
        Apply a partial update. Receiving the purchase queues an inventory
        sync; changing the quantity of a purchase already in stock posts an
        ADJUSTMENT for the difference.
        """
        purchase = self.get(data.id)
        was_received = purchase.received
        old_quantity = purchase.quantity
        changes = data.model_dump(exclude_unset=True, exclude={"id", "update_inventory", "location"})
        if "vendor_id" in changes and self.db.get(Vendor, changes["vendor_id"]) is None:
            raise NotFoundError("Vendor", changes["vendor_id"])

        task_id = None
        with unit_of_work(self.db):
            for field, value in changes.items():
                if value is None and field not in ("color", "delivery_date", "remarks", "reference", "received_at"):
                    continue
                if field in ("unit_price", "total_cost"):
                    value = to_money(value)
                if field == "color_status":
                    value = value.value
                setattr(purchase, field, value)
            if ("quantity" in changes or "unit_price" in changes) and "total_cost" not in changes:
                purchase.total_cost = to_money(purchase.unit_price * purchase.quantity)
            if purchase.received and not was_received and purchase.received_at is None:
                purchase.received_at = datetime.utcnow()
            self.db.flush()

            if data.update_inventory:
                if was_received and purchase.quantity != old_quantity:
                    self._adjust_received_quantity(purchase, purchase.quantity - old_quantity)
                else:
                    task_id = self._queue_sync(purchase, was_received, data.location)

        if task_id is not None:
            self.sync.process(task_id)
        self.db.refresh(purchase)
        return purchase

    def delete(self, purchase_id: int):
        purchase = self.get(purchase_id)
        dependents = (
            ("inventoryTransactions", InventoryTransaction.thread_purchase_id),
            ("dyeingProcesses", DyeingProcess.thread_purchase_id),
            ("fabricProductions", FabricProduction.source_thread_id),
            ("payments", Payment.thread_purchase_id),
        )
        for name, column in dependents:
            count = self.db.execute(select(func.count()).where(column == purchase_id)).scalar_one()
            if count:
                raise DependentRecordsError("thread purchase", name, count)
        with unit_of_work(self.db):
            self.db.delete(purchase)
        logger.info(f"Deleted thread purchase #{purchase_id}")

    def _adjust_received_quantity(self, purchase: ThreadPurchase, difference: int):
        item = self.repo.inventory_for_source(SourceKind.THREAD_PURCHASE, purchase.id)
        if item is None:
            return
        self.minter.ledger.post(item.id, LedgerEntry(
            transaction_type=TransactionType.ADJUSTMENT,
            quantity=difference,
            unit_cost=to_money(purchase.unit_price),
            reference_type="ThreadPurchase",
            reference_id=purchase.id,
            thread_purchase_id=purchase.id,
            notes=f"Quantity of thread purchase #{purchase.id} changed by {difference:+d}",
        ))
        purchase.inventory_status = InventoryStatus.UPDATED.value

    def _queue_sync(self, purchase: ThreadPurchase, was_received: bool, location: Optional[str]) -> Optional[int]:
        try:
            with self.db.begin_nested():
                detection = SourceEventDetector(self.repo).evaluate(
                    SourceKind.THREAD_PURCHASE, purchase, was_complete=was_received, add_to_inventory=True
                )
        except SQLAlchemyError:
            logger.error(f"Inventory check for thread purchase #{purchase.id} failed", exc_info=True)
            return None
        if not detection.fire:
            return None
        return self.sync.enqueue(SourceKind.THREAD_PURCHASE, purchase.id, MintOptions(location=location)).id
