"""
Turning completed source events into stock.

Received thread purchases, completed dyeing runs and completed fabric
batches each mint (or top up) one inventory line through the resolver and
the ledger writer. Minting is idempotent: if a PURCHASE/PRODUCTION row
already references the source, that row is returned instead.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from textile_inventory.application.costing import to_money, unit_cost_of
from textile_inventory.application.ledger import LedgerEntry, LedgerWriter
from textile_inventory.application.resolver import (
    InventoryResolver,
    describe_dyed_thread,
    describe_fabric,
    describe_purchased_thread,
)
from textile_inventory.core import get_logger, set_source_event
from textile_inventory.core_settings import Settings
from textile_inventory.domain.errors import NotFoundError, ValidationError
from textile_inventory.domain.models import (
    ColorStatus,
    DyeingProcess,
    DyeingResultStatus,
    FabricProduction,
    InventoryItem,
    InventoryTransaction,
    ProductionStatus,
    ProductType,
    SourceKind,
    ThreadPurchase,
    TransactionType,
)
from textile_inventory.infrastructure.repository import InventoryRepository

logger = get_logger(__name__)


@dataclass
class MintResult:
    item: InventoryItem
    transaction: InventoryTransaction
    existing: bool = False
    created_item: bool = False


@dataclass
class MintOptions:
    location: Optional[str] = None
    markup: Optional[Decimal] = None
    min_stock_level: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> "MintOptions":
        payload = payload or {}
        markup = payload.get("markup")
        return cls(
            location=payload.get("location"),
            markup=Decimal(str(markup)) if markup is not None else None,
            min_stock_level=payload.get("min_stock_level"),
            notes=payload.get("notes"),
        )

    def to_payload(self) -> dict:
        return {
            "location": self.location,
            "markup": str(self.markup) if self.markup is not None else None,
            "min_stock_level": self.min_stock_level,
            "notes": self.notes,
        }


class InventoryMinter:
    def __init__(self, repo: InventoryRepository, settings: Settings):
        self.repo = repo
        self.settings = settings
        self.resolver = InventoryResolver(repo)
        self.ledger = LedgerWriter(repo, settings.MANUAL_TRANSACTION_MARKUP)

    def mint(self, kind: SourceKind, source_id: int, options: Optional[MintOptions] = None) -> MintResult:
        kind = SourceKind(kind)
        source = self.repo.lock_source(kind, source_id)
        if source is None:
            raise NotFoundError(kind.value.replace("_", " ").title(), source_id)
        if kind == SourceKind.THREAD_PURCHASE:
            return self.mint_thread_purchase(source, options)
        if kind == SourceKind.DYEING_PROCESS:
            return self.mint_dyed_thread(source, options)
        return self.mint_fabric(source, options)

    def _existing(self, kind: SourceKind, source_id: int) -> Optional[MintResult]:
        transaction = self.repo.inbound_transaction_for_source(kind, source_id)
        if transaction is None:
            return None
        logger.info(f"{kind.value} #{source_id} already in inventory as {transaction.inventory.item_code}")
        return MintResult(item=transaction.inventory, transaction=transaction, existing=True)

    def mint_thread_purchase(self, purchase: ThreadPurchase, options: Optional[MintOptions] = None) -> MintResult:
        options = options or MintOptions()
        set_source_event(SourceKind.THREAD_PURCHASE.value, purchase.id)
        existing = self._existing(SourceKind.THREAD_PURCHASE, purchase.id)
        if existing:
            return existing
        if not purchase.received:
            raise ValidationError("Thread purchase has not been received", details={"threadPurchaseId": purchase.id})

        origin = f"thread purchase #{purchase.id}"
        thread_type = self.resolver.thread_type_for(purchase.thread_type, origin)
        item, created = self.resolver.resolve(
            ProductType.THREAD.value,
            describe_purchased_thread(purchase),
            code_prefix="THR",
            source_id=purchase.id,
            thread_type=thread_type,
            unit_of_measure=purchase.unit_of_measure,
            location=options.location or self.settings.THREAD_LOCATION,
            min_stock_level=self._min_stock(options, self.settings.THREAD_MIN_STOCK_LEVEL),
            notes=options.notes or f"Received from {origin}",
        )
        transaction = self.ledger.post(item.id, LedgerEntry(
            transaction_type=TransactionType.PURCHASE,
            quantity=purchase.quantity,
            unit_cost=to_money(purchase.unit_price),
            total_cost=to_money(purchase.total_cost),
            markup=options.markup or self.settings.THREAD_PURCHASE_MARKUP,
            reference_type="ThreadPurchase",
            reference_id=purchase.id,
            thread_purchase_id=purchase.id,
            notes=f"Thread received from {origin}",
        ))
        return MintResult(item=item, transaction=transaction, created_item=created)

    def mint_dyed_thread(self, dyeing: DyeingProcess, options: Optional[MintOptions] = None) -> MintResult:
        options = options or MintOptions()
        set_source_event(SourceKind.DYEING_PROCESS.value, dyeing.id)
        existing = self._existing(SourceKind.DYEING_PROCESS, dyeing.id)
        if existing:
            return existing
        if dyeing.result_status != DyeingResultStatus.COMPLETED.value:
            raise ValidationError(
                "Only completed dyeing processes can be added to inventory",
                details={"dyeingProcessId": dyeing.id, "resultStatus": dyeing.result_status},
            )
        if not dyeing.output_quantity or dyeing.output_quantity <= 0:
            raise ValidationError("Dyeing process has no output quantity", details={"dyeingProcessId": dyeing.id})

        purchase = dyeing.thread_purchase
        origin = f"dyeing process #{dyeing.id}"
        thread_type = self.resolver.thread_type_for(purchase.thread_type, origin)
        item, created = self.resolver.resolve(
            ProductType.THREAD.value,
            describe_dyed_thread(purchase, dyeing),
            code_prefix="DT",
            source_id=dyeing.id,
            thread_type=thread_type,
            unit_of_measure=purchase.unit_of_measure,
            location=options.location or self.settings.DYED_THREAD_LOCATION,
            min_stock_level=self._min_stock(options, self.settings.DYED_THREAD_MIN_STOCK_LEVEL),
            notes=options.notes or f"Dyed from thread purchase #{purchase.id}, color {dyeing.color_code or 'n/a'}",
        )
        unit_cost = unit_cost_of(dyeing.total_cost, dyeing.output_quantity, fallback=purchase.unit_price)
        transaction = self.ledger.post(item.id, LedgerEntry(
            transaction_type=TransactionType.PRODUCTION,
            quantity=dyeing.output_quantity,
            unit_cost=unit_cost,
            total_cost=to_money(dyeing.total_cost) if dyeing.total_cost else None,
            markup=options.markup or self.settings.DYED_THREAD_MARKUP,
            reference_type="DyeingProcess",
            reference_id=dyeing.id,
            dyeing_process_id=dyeing.id,
            notes=f"Dyed thread from {origin}",
        ))
        purchase.color_status = ColorStatus.COLORED.value
        return MintResult(item=item, transaction=transaction, created_item=created)

    def mint_fabric(self, production: FabricProduction, options: Optional[MintOptions] = None) -> MintResult:
        options = options or MintOptions()
        set_source_event(SourceKind.FABRIC_PRODUCTION.value, production.id)
        existing = self._existing(SourceKind.FABRIC_PRODUCTION, production.id)
        if existing:
            return existing
        if production.status != ProductionStatus.COMPLETED.value:
            raise ValidationError(
                "Only completed fabric production can be added to inventory",
                details={"fabricProductionId": production.id, "status": production.status},
            )

        origin = f"fabric production #{production.id}"
        fabric_type = self.resolver.fabric_type_for(production.fabric_type, origin)
        item, created = self.resolver.resolve(
            ProductType.FABRIC.value,
            describe_fabric(production),
            code_prefix="FAB",
            source_id=production.id,
            fabric_type=fabric_type,
            unit_of_measure=production.unit_of_measure,
            location=options.location or self.settings.FABRIC_LOCATION,
            min_stock_level=self._min_stock(options, self.settings.FABRIC_MIN_STOCK_LEVEL),
            notes=options.notes or f"Produced from batch {production.batch_number}",
        )
        transaction = self.ledger.post(item.id, LedgerEntry(
            transaction_type=TransactionType.PRODUCTION,
            quantity=production.quantity_produced,
            unit_cost=unit_cost_of(production.total_cost, production.quantity_produced),
            total_cost=to_money(production.total_cost),
            markup=options.markup or self.settings.FABRIC_MARKUP,
            reference_type="FabricProduction",
            reference_id=production.id,
            fabric_production_id=production.id,
            notes=f"Fabric production from batch {production.batch_number}",
        ))
        return MintResult(item=item, transaction=transaction, created_item=created)

    @staticmethod
    def _min_stock(options: MintOptions, default: int) -> int:
        return options.min_stock_level if options.min_stock_level is not None else default
