"""
Ledger writer: the only code path that changes an item's running balance.

Each posting locks the item row, applies the signed quantity, refreshes the
weighted-average cost for inbound lots and appends one immutable
``InventoryTransaction`` whose ``remaining_quantity`` is the new balance.
Item update and transaction insert are flushed together in the caller's
unit of work, so they commit or roll back as one.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from textile_inventory.application.costing import sale_price_for, to_money, weighted_average_cost
from textile_inventory.core import get_logger
from textile_inventory.domain.errors import InsufficientQuantityError, NotFoundError, ValidationError
from textile_inventory.domain.models import (
    INBOUND_TRANSACTION_TYPES,
    InventoryItem,
    InventoryStatus,
    InventoryTransaction,
    SourceKind,
    TransactionType,
)
from textile_inventory.infrastructure.repository import InventoryRepository

logger = get_logger(__name__)


@dataclass
class LedgerEntry:
    """
    One requested stock movement.

    ``quantity`` is a positive magnitude for PURCHASE, PRODUCTION, SALES and
    TRANSFER (the kind decides the direction) and a signed delta for
    ADJUSTMENT.
    """

    transaction_type: TransactionType
    quantity: int
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    markup: Optional[Decimal] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    thread_purchase_id: Optional[int] = None
    dyeing_process_id: Optional[int] = None
    fabric_production_id: Optional[int] = None
    sales_order_id: Optional[int] = None
    transaction_date: Optional[datetime] = None
    notes: Optional[str] = None


def signed_quantity(transaction_type: TransactionType, quantity: int) -> int:
    """Effect of a movement on the running balance."""
    transaction_type = TransactionType(transaction_type)
    if quantity == 0:
        raise ValidationError("Transaction quantity must not be zero")
    if transaction_type == TransactionType.ADJUSTMENT:
        return quantity
    if quantity < 0:
        raise ValidationError(f"{transaction_type.value} quantity must be positive")
    if transaction_type in INBOUND_TRANSACTION_TYPES:
        return quantity
    return -quantity


class LedgerWriter:
    def __init__(self, repo: InventoryRepository, default_markup: Decimal):
        self.repo = repo
        self.default_markup = default_markup

    def post(self, inventory_id: int, entry: LedgerEntry) -> InventoryTransaction:
        item = self.repo.lock_item(inventory_id)
        if item is None:
            raise NotFoundError("Inventory item", inventory_id)

        transaction_type = TransactionType(entry.transaction_type)
        delta = signed_quantity(transaction_type, entry.quantity)
        if transaction_type in INBOUND_TRANSACTION_TYPES:
            self._reject_duplicate_inbound(entry)
        balance = item.current_quantity or 0
        new_balance = balance + delta
        if new_balance < 0:
            logger.warning(
                f"Rejected {transaction_type.value} on {item.item_code}: insufficient quantity",
                extra={'extra_fields': {'inventory_id': item.id, 'available': balance, 'requested': -delta}}
            )
            raise InsufficientQuantityError(item.id, balance, -delta)

        unit_cost = to_money(entry.unit_cost) if entry.unit_cost is not None else to_money(item.cost_per_unit)
        if transaction_type in INBOUND_TRANSACTION_TYPES and entry.unit_cost is not None and unit_cost > 0:
            item.cost_per_unit = weighted_average_cost(balance, item.cost_per_unit, delta, unit_cost)
            item.sale_price = sale_price_for(item.cost_per_unit, entry.markup or self.default_markup)

        now = datetime.utcnow()
        item.current_quantity = new_balance
        if delta > 0:
            item.last_restocked = now
        item.updated_at = now

        transaction = InventoryTransaction(
            inventory_id=item.id,
            transaction_type=transaction_type.value,
            quantity=delta,
            remaining_quantity=new_balance,
            unit_cost=unit_cost,
            total_cost=to_money(entry.total_cost) if entry.total_cost is not None else to_money(unit_cost * abs(delta)),
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            thread_purchase_id=entry.thread_purchase_id,
            dyeing_process_id=entry.dyeing_process_id,
            fabric_production_id=entry.fabric_production_id,
            sales_order_id=entry.sales_order_id,
            transaction_date=entry.transaction_date or now,
            notes=entry.notes,
        )
        self.repo.add(transaction)

        if transaction_type in INBOUND_TRANSACTION_TYPES:
            self._mark_sources_added(entry)

        logger.info(
            f"Posted {transaction_type.value} {delta:+d} to {item.item_code}",
            extra={'extra_fields': {
                'inventory_id': item.id,
                'transaction_id': transaction.id,
                'remaining_quantity': new_balance,
                'cost_per_unit': item.cost_per_unit,
            }}
        )
        return transaction

    @staticmethod
    def _sources(entry: LedgerEntry):
        sources = (
            (SourceKind.THREAD_PURCHASE, entry.thread_purchase_id),
            (SourceKind.DYEING_PROCESS, entry.dyeing_process_id),
            (SourceKind.FABRIC_PRODUCTION, entry.fabric_production_id),
        )
        return [(kind, source_id) for kind, source_id in sources if source_id is not None]

    def _reject_duplicate_inbound(self, entry: LedgerEntry):
        """A source event mints stock at most once."""
        for kind, source_id in self._sources(entry):
            existing = self.repo.inbound_transaction_for_source(kind, source_id)
            if existing is not None:
                raise ValidationError(
                    f"{kind.value.replace('_', ' ').title()} #{source_id} is already in inventory",
                    details={"inventoryId": existing.inventory_id, "transactionId": existing.id},
                )

    def _mark_sources_added(self, entry: LedgerEntry):
        for kind, source_id in self._sources(entry):
            source = self.repo.get_source(kind, source_id)
            if source is None:
                raise NotFoundError(kind.value.replace("_", " ").title(), source_id)
            source.inventory_status = InventoryStatus.ADDED.value
