from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from textile_inventory.application.costing import sale_price_for, to_money
from textile_inventory.application.ledger import LedgerEntry, LedgerWriter
from textile_inventory.application.minting import InventoryMinter, MintOptions, MintResult
from textile_inventory.application.sync_tasks import InventorySyncService
from textile_inventory.core import get_logger
from textile_inventory.core_settings import Settings
from textile_inventory.domain.errors import DependentRecordsError, NotFoundError, ValidationError
from textile_inventory.domain.models import (
    FabricType,
    InventoryItem,
    InventoryTransaction,
    ProductType,
    SourceKind,
    ThreadType,
    TransactionType,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository
from .schemas import (
    InventoryItemCreate,
    InventoryItemUpdate,
    LedgerTransactionCreate,
    MintRequest,
    TransactionCreate,
)

logger = get_logger(__name__)


class InventoryService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.repo = InventoryRepository(db)
        self.ledger = LedgerWriter(self.repo, settings.MANUAL_TRANSACTION_MARKUP)

    # Items

    def list(self, search: Optional[str] = None, product_type: Optional[str] = None,
             in_stock: Optional[bool] = None, low_stock: Optional[bool] = None,
             limit: int = 100, offset: int = 0):
        stmt = select(InventoryItem).order_by(InventoryItem.updated_at.desc(), InventoryItem.id.desc())
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(InventoryItem.item_code).like(pattern),
                func.lower(InventoryItem.description).like(pattern),
                func.lower(InventoryItem.location).like(pattern),
            ))
        if product_type:
            stmt = stmt.where(InventoryItem.product_type == self._product_type(product_type))
        if in_stock is True:
            stmt = stmt.where(InventoryItem.current_quantity > 0)
        elif in_stock is False:
            stmt = stmt.where(InventoryItem.current_quantity <= 0)
        if low_stock:
            stmt = stmt.where(InventoryItem.current_quantity <= InventoryItem.min_stock_level)
        return list(self.db.execute(stmt.limit(limit).offset(offset)).scalars())

    def get(self, inventory_id: int) -> InventoryItem:
        item = self.repo.get_item(inventory_id)
        if item is None:
            raise NotFoundError("Inventory item", inventory_id)
        return item

    def create(self, data: InventoryItemCreate) -> InventoryItem:
        """
        Open a line by hand. Opening stock is posted as an ADJUSTMENT so the
        ledger still explains the balance.
        """
        item = self._open_item(
            item_code=data.item_code,
            product_type=data.product_type,
            description=data.description,
            thread_type_id=data.thread_type_id,
            fabric_type_id=data.fabric_type_id,
            unit_of_measure=data.unit_of_measure,
            min_stock_level=data.min_stock_level,
            location=data.location,
            notes=data.notes,
            cost_per_unit=data.cost_per_unit,
            sale_price=data.sale_price,
            opening_quantity=data.current_quantity,
        )
        self.db.refresh(item)
        return item

    def update(self, inventory_id: int, data: InventoryItemUpdate) -> InventoryItem:
        """Edit descriptive fields; a new ``currentQuantity`` becomes an ADJUSTMENT."""
        item = self.get(inventory_id)
        changes = data.model_dump(exclude_unset=True)
        new_quantity = changes.pop("current_quantity", None)

        if changes.get("item_code") and changes["item_code"] != item.item_code:
            if self.repo.item_code_exists(changes["item_code"]):
                raise ValidationError(f"Item code {changes['item_code']} already exists")

        with unit_of_work(self.db):
            for field, value in changes.items():
                if value is None and field not in ("location", "notes"):
                    continue
                if field == "sale_price":
                    value = to_money(value)
                setattr(item, field, value)
            self.db.flush()
            if new_quantity is not None and new_quantity != item.current_quantity:
                self.ledger.post(item.id, LedgerEntry(
                    transaction_type=TransactionType.ADJUSTMENT,
                    quantity=new_quantity - item.current_quantity,
                    reference_type="ManualAdjustment",
                    notes=f"Quantity set to {new_quantity}",
                ))
        self.db.refresh(item)
        return item

    def delete(self, inventory_id: int):
        item = self.get(inventory_id)
        count = self.repo.count_transactions(item.id)
        if count:
            raise DependentRecordsError("inventory item", "transactions", count)
        with unit_of_work(self.db):
            self.db.delete(item)
        logger.info(f"Deleted inventory item {item.item_code}")

    # Transactions

    def item_transactions(self, inventory_id: int):
        self.get(inventory_id)
        stmt = (
            select(InventoryTransaction)
            .where(InventoryTransaction.inventory_id == inventory_id)
            .order_by(InventoryTransaction.transaction_date.desc(), InventoryTransaction.id.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def query_transactions(self, inventory_id: Optional[int] = None, transaction_type: Optional[str] = None,
                           from_date: Optional[datetime] = None, to_date: Optional[datetime] = None,
                           page: int = 1, limit: int = 50):
        conditions = []
        if inventory_id is not None:
            conditions.append(InventoryTransaction.inventory_id == inventory_id)
        if transaction_type:
            try:
                conditions.append(InventoryTransaction.transaction_type == TransactionType(transaction_type).value)
            except ValueError:
                raise ValidationError(f"Invalid transaction type: {transaction_type}")
        if from_date is not None:
            conditions.append(InventoryTransaction.transaction_date >= from_date)
        if to_date is not None:
            conditions.append(InventoryTransaction.transaction_date <= to_date)

        total = self.db.execute(select(func.count(InventoryTransaction.id)).where(*conditions)).scalar_one()
        stmt = (
            select(InventoryTransaction)
            .where(*conditions)
            .order_by(InventoryTransaction.transaction_date.desc(), InventoryTransaction.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(self.db.execute(stmt).scalars()), total

    def add_transaction(self, inventory_id: int, data: TransactionCreate) -> InventoryTransaction:
        self.get(inventory_id)
        with unit_of_work(self.db):
            transaction = self.ledger.post(inventory_id, self._entry(data))
        return transaction

    def record_transaction(self, data: LedgerTransactionCreate):
        """
        Post to ``inventoryId``, or open a new item from ``itemCode``,
        ``description`` and ``productType`` and post its first transaction.
        """
        with unit_of_work(self.db):
            if data.inventory_id is not None:
                if self.repo.get_item(data.inventory_id) is None:
                    raise NotFoundError("Inventory item", data.inventory_id)
                inventory_id = data.inventory_id
            else:
                if not (data.item_code and data.description and data.product_type):
                    raise ValidationError(
                        "inventoryId, or itemCode with description and productType, is required"
                    )
                inventory_id = self._new_item(
                    item_code=data.item_code,
                    product_type=data.product_type,
                    description=data.description,
                    thread_type_id=data.thread_type_id,
                    fabric_type_id=data.fabric_type_id,
                    unit_of_measure=data.unit_of_measure,
                    min_stock_level=data.min_stock_level,
                    location=data.location,
                ).id
            transaction = self.ledger.post(inventory_id, self._entry(data))
        item = self.repo.get_item(inventory_id)
        self.db.refresh(item)
        return item, transaction

    # Source events

    def add_source(self, kind: SourceKind, source_id: int, request: MintRequest) -> MintResult:
        """Mint a completed source into inventory; repeat calls return the first result."""
        options = MintOptions(
            location=request.location,
            markup=request.markup,
            min_stock_level=request.min_stock_level,
            notes=request.notes,
        )
        with unit_of_work(self.db):
            result = InventoryMinter(self.repo, self.settings).mint(kind, source_id, options)
            InventorySyncService(self.db, self.settings).resolve_open(kind, source_id, result)
        self.db.refresh(result.item)
        return result

    def stats(self) -> dict:
        value = InventoryItem.current_quantity * InventoryItem.cost_per_unit
        rows = self.db.execute(
            select(
                InventoryItem.product_type,
                func.count(InventoryItem.id),
                func.coalesce(func.sum(InventoryItem.current_quantity), 0),
                func.coalesce(func.sum(value), 0),
            ).group_by(InventoryItem.product_type).order_by(InventoryItem.product_type)
        ).all()
        low_stock = self.db.execute(
            select(func.count(InventoryItem.id)).where(
                InventoryItem.current_quantity > 0,
                InventoryItem.current_quantity <= InventoryItem.min_stock_level,
            )
        ).scalar_one()
        out_of_stock = self.db.execute(
            select(func.count(InventoryItem.id)).where(InventoryItem.current_quantity <= 0)
        ).scalar_one()

        by_type = [
            {"product_type": product_type, "items": items, "quantity": int(quantity), "value": float(to_money(total))}
            for product_type, items, quantity, total in rows
        ]
        return {
            "total_items": sum(row["items"] for row in by_type),
            "total_quantity": sum(row["quantity"] for row in by_type),
            "total_value": float(to_money(sum(to_money(row["value"]) for row in by_type))),
            "low_stock_items": low_stock,
            "out_of_stock_items": out_of_stock,
            "by_product_type": by_type,
        }

    # Helpers

    @staticmethod
    def _product_type(value) -> str:
        try:
            return ProductType(value).value
        except ValueError:
            raise ValidationError(f"Invalid product type: {value}")

    def _entry(self, data: TransactionCreate) -> LedgerEntry:
        return LedgerEntry(
            transaction_type=data.transaction_type,
            quantity=data.quantity,
            unit_cost=data.unit_cost,
            total_cost=data.total_cost,
            markup=data.markup,
            reference_type=data.reference_type,
            reference_id=data.reference_id,
            thread_purchase_id=data.thread_purchase_id,
            dyeing_process_id=data.dyeing_process_id,
            fabric_production_id=data.fabric_production_id,
            sales_order_id=data.sales_order_id,
            transaction_date=data.transaction_date,
            notes=data.notes,
        )

    def _new_item(self, *, item_code: str, product_type, description: str,
                  thread_type_id: Optional[int], fabric_type_id: Optional[int],
                  unit_of_measure: str, min_stock_level: int, location: Optional[str],
                  notes: Optional[str] = None, cost_per_unit=None, sale_price=None) -> InventoryItem:
        product_type = self._product_type(product_type)
        if self.repo.item_code_exists(item_code):
            raise ValidationError(f"Item code {item_code} already exists")
        if thread_type_id is not None and self.db.get(ThreadType, thread_type_id) is None:
            raise NotFoundError("Thread type", thread_type_id)
        if fabric_type_id is not None and self.db.get(FabricType, fabric_type_id) is None:
            raise NotFoundError("Fabric type", fabric_type_id)

        cost = to_money(cost_per_unit)
        return self.repo.add(InventoryItem(
            item_code=item_code,
            product_type=product_type,
            description=description,
            thread_type_id=thread_type_id,
            fabric_type_id=fabric_type_id,
            current_quantity=0,
            unit_of_measure=unit_of_measure,
            cost_per_unit=cost,
            sale_price=(to_money(sale_price) if sale_price is not None
                        else sale_price_for(cost, self.settings.MANUAL_TRANSACTION_MARKUP)),
            min_stock_level=min_stock_level,
            location=location,
            notes=notes,
        ))

    def _open_item(self, *, opening_quantity: int, **fields) -> InventoryItem:
        with unit_of_work(self.db):
            item = self._new_item(**fields)
            if opening_quantity:
                self.ledger.post(item.id, LedgerEntry(
                    transaction_type=TransactionType.ADJUSTMENT,
                    quantity=opening_quantity,
                    reference_type="OpeningBalance",
                    notes="Opening stock",
                ))
        logger.info(f"Created inventory item {item.item_code}")
        return item
