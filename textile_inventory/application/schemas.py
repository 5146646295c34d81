from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from textile_inventory.domain.models import (
    ColorStatus,
    DyeingResultStatus,
    PaymentMode,
    PaymentStatus,
    ProductionStatus,
    ProductType,
    SourceKind,
    SyncTaskStatus,
    TransactionType,
)


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store timestamps as naive UTC, like ``datetime.utcnow()``."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return naive_utc(value)
        return value


# Vendors and customers

class PartyCreate(CamelModel):
    name: str = Field(min_length=1)
    contact: str = Field(min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class PartyUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class PartyRead(CamelModel):
    id: int
    name: str
    contact: str
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class VendorCreate(PartyCreate):
    pass


class VendorUpdate(PartyUpdate):
    pass


class VendorRead(PartyRead):
    pass


class CustomerCreate(PartyCreate):
    pass


class CustomerUpdate(PartyUpdate):
    pass


class CustomerRead(PartyRead):
    pass


# Classifications

class ClassificationCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    units: str = "meters"


class ClassificationRead(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    units: str
    created_at: datetime


# Thread purchases

class ThreadPurchaseCreate(CamelModel):
    vendor_id: int
    order_date: Optional[datetime] = None
    thread_type: str = Field(min_length=1)
    color: Optional[str] = None
    color_status: ColorStatus = ColorStatus.RAW
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    unit_of_measure: str = "meters"
    delivery_date: Optional[datetime] = None
    remarks: Optional[str] = None
    reference: Optional[str] = None
    received: bool = False
    received_at: Optional[datetime] = None
    add_to_inventory: bool = True
    # Optional payment recorded together with the purchase
    payment_amount: Optional[Decimal] = Field(default=None, gt=0)
    payment_mode: Optional[PaymentMode] = None


class ThreadPurchaseUpdate(CamelModel):
    id: int
    vendor_id: Optional[int] = None
    order_date: Optional[datetime] = None
    thread_type: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = None
    color_status: Optional[ColorStatus] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    unit_of_measure: Optional[str] = None
    delivery_date: Optional[datetime] = None
    remarks: Optional[str] = None
    reference: Optional[str] = None
    received: Optional[bool] = None
    received_at: Optional[datetime] = None
    update_inventory: bool = True
    location: Optional[str] = None


class ThreadPurchaseRead(CamelModel):
    id: int
    vendor_id: int
    order_date: datetime
    thread_type: str
    color: Optional[str] = None
    color_status: str
    quantity: int
    unit_price: float
    total_cost: float
    unit_of_measure: str
    delivery_date: Optional[datetime] = None
    remarks: Optional[str] = None
    reference: Optional[str] = None
    received: bool
    received_at: Optional[datetime] = None
    inventory_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# Dyeing

class DyeingProcessCreate(CamelModel):
    thread_purchase_id: int
    dye_date: Optional[datetime] = None
    dye_parameters: Optional[dict] = None
    color_code: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    color_name: Optional[str] = None
    dye_quantity: int = Field(gt=0)
    output_quantity: int = Field(ge=0)
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    dye_material_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    result_status: DyeingResultStatus = DyeingResultStatus.PENDING
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    add_to_inventory: bool = True
    location: Optional[str] = None


class DyeingProcessUpdate(CamelModel):
    dye_date: Optional[datetime] = None
    dye_parameters: Optional[dict] = None
    color_code: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    color_name: Optional[str] = None
    output_quantity: Optional[int] = Field(default=None, ge=0)
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    dye_material_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    result_status: Optional[DyeingResultStatus] = None
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    add_to_inventory: bool = False
    location: Optional[str] = None


class DyeingProcessRead(CamelModel):
    id: int
    thread_purchase_id: int
    dye_date: datetime
    dye_parameters: Optional[dict] = None
    color_code: Optional[str] = None
    color_name: Optional[str] = None
    dye_quantity: int
    output_quantity: int
    labor_cost: Optional[float] = None
    dye_material_cost: Optional[float] = None
    total_cost: Optional[float] = None
    result_status: str
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    inventory_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DyeingProcessUpdateRead(DyeingProcessRead):
    # Outcome of the inventory sync triggered by this update, if any
    inventory_success: Optional[bool] = None
    inventory_item_id: Optional[int] = None
    inventory_error: Optional[str] = None


# Fabric production

class FabricProductionCreate(CamelModel):
    source_thread_id: Optional[int] = None
    dyeing_process_id: Optional[int] = None
    inventory_id: Optional[int] = None
    use_inventory_directly: bool = False
    fabric_type: str = Field(min_length=1)
    dimensions: str = Field(min_length=1)
    batch_number: str = Field(min_length=1)
    quantity_produced: int = Field(gt=0)
    thread_used: int = Field(gt=0)
    thread_wastage: Optional[int] = Field(default=None, ge=0)
    unit_of_measure: str = "meters"
    production_cost: Decimal = Field(default=Decimal("0"), ge=0)
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    production_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    status: ProductionStatus = ProductionStatus.PENDING
    add_to_inventory: bool = True
    location: Optional[str] = None


class FabricProductionUpdate(CamelModel):
    fabric_type: Optional[str] = Field(default=None, min_length=1)
    dimensions: Optional[str] = Field(default=None, min_length=1)
    batch_number: Optional[str] = Field(default=None, min_length=1)
    quantity_produced: Optional[int] = Field(default=None, gt=0)
    thread_wastage: Optional[int] = Field(default=None, ge=0)
    production_cost: Optional[Decimal] = Field(default=None, ge=0)
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    status: Optional[ProductionStatus] = None
    add_to_inventory: bool = True
    location: Optional[str] = None


class FabricProductionRead(CamelModel):
    id: int
    source_thread_id: Optional[int] = None
    dyeing_process_id: Optional[int] = None
    thread_inventory_id: Optional[int] = None
    fabric_type: str
    dimensions: str
    batch_number: str
    quantity_produced: int
    thread_used: int
    thread_wastage: Optional[int] = None
    unit_of_measure: str
    production_cost: float
    labor_cost: Optional[float] = None
    total_cost: float
    production_date: datetime
    completion_date: Optional[datetime] = None
    remarks: Optional[str] = None
    status: str
    inventory_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FabricProductionUpdateRead(FabricProductionRead):
    # Outcome of the inventory sync triggered by this update, if any
    inventory_success: Optional[bool] = None
    inventory_item_id: Optional[int] = None
    inventory_error: Optional[str] = None


# Inventory

class InventoryItemCreate(CamelModel):
    item_code: str = Field(min_length=1)
    product_type: ProductType
    description: str = Field(min_length=1)
    thread_type_id: Optional[int] = None
    fabric_type_id: Optional[int] = None
    current_quantity: int = Field(default=0, ge=0)
    unit_of_measure: str = "meters"
    cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    min_stock_level: int = Field(default=0, ge=0)
    location: Optional[str] = None
    notes: Optional[str] = None


class InventoryItemUpdate(CamelModel):
    item_code: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    current_quantity: Optional[int] = Field(default=None, ge=0)
    unit_of_measure: Optional[str] = None
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None
    notes: Optional[str] = None


class InventoryItemRead(CamelModel):
    id: int
    item_code: str
    product_type: str
    description: str
    thread_type_id: Optional[int] = None
    fabric_type_id: Optional[int] = None
    current_quantity: int
    unit_of_measure: str
    cost_per_unit: float
    sale_price: float
    min_stock_level: int
    location: Optional[str] = None
    last_restocked: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TransactionCreate(CamelModel):
    transaction_type: TransactionType
    quantity: int
    unit_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    markup: Optional[Decimal] = Field(default=None, gt=0)
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    thread_purchase_id: Optional[int] = None
    dyeing_process_id: Optional[int] = None
    fabric_production_id: Optional[int] = None
    sales_order_id: Optional[int] = None
    transaction_date: Optional[datetime] = None
    notes: Optional[str] = None


class LedgerTransactionCreate(TransactionCreate):
    """Transaction against an existing item, or a new item plus its first transaction."""

    inventory_id: Optional[int] = None
    item_code: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[ProductType] = None
    thread_type_id: Optional[int] = None
    fabric_type_id: Optional[int] = None
    unit_of_measure: str = "meters"
    min_stock_level: int = Field(default=0, ge=0)
    location: Optional[str] = None


class TransactionRead(CamelModel):
    id: int
    inventory_id: int
    transaction_type: str
    quantity: int
    remaining_quantity: int
    unit_cost: Optional[float] = None
    total_cost: Optional[float] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    thread_purchase_id: Optional[int] = None
    dyeing_process_id: Optional[int] = None
    fabric_production_id: Optional[int] = None
    sales_order_id: Optional[int] = None
    transaction_date: datetime
    notes: Optional[str] = None
    created_at: datetime


class TransactionPage(CamelModel):
    items: list[TransactionRead]
    total: int
    page: int
    limit: int


class TransactionResult(CamelModel):
    inventory_item: InventoryItemRead
    transaction: TransactionRead


class MintRequest(CamelModel):
    location: Optional[str] = None
    markup: Optional[Decimal] = Field(default=None, gt=0)
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class AddThreadPurchaseRequest(MintRequest):
    thread_purchase_id: int


class AddDyedThreadRequest(MintRequest):
    dyeing_process_id: int


class AddFabricProductionRequest(MintRequest):
    fabric_production_id: int


class MintResponse(CamelModel):
    inventory_item: InventoryItemRead
    transaction: TransactionRead
    existing: bool
    created_item: bool


class ProductTypeStats(CamelModel):
    product_type: str
    items: int
    quantity: int
    value: float


class InventoryStats(CamelModel):
    total_items: int
    total_quantity: int
    total_value: float
    low_stock_items: int
    out_of_stock_items: int
    by_product_type: list[ProductTypeStats]


class SyncTaskRead(CamelModel):
    id: int
    source_kind: SourceKind
    source_id: int
    status: SyncTaskStatus
    attempts: int
    last_error: Optional[str] = None
    inventory_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class SyncRetryRequest(CamelModel):
    task_ids: Optional[list[int]] = None


# Sales and payments

class SalesOrderItemCreate(CamelModel):
    inventory_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)


class SalesOrderCreate(CamelModel):
    customer_id: int
    order_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    remarks: Optional[str] = None
    items: list[SalesOrderItemCreate] = Field(min_length=1)
    payment_amount: Optional[Decimal] = Field(default=None, gt=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    payment_reference: Optional[str] = None


class SalesOrderUpdate(CamelModel):
    """Header changes only; lines stay as booked. Cancel with DELETE."""

    delivery_date: Optional[datetime] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    tax: Optional[Decimal] = Field(default=None, ge=0)
    remarks: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    payment_amount: Optional[Decimal] = Field(default=None, gt=0)
    payment_mode: Optional[PaymentMode] = None
    payment_reference: Optional[str] = None


class SalesOrderItemRead(CamelModel):
    id: int
    inventory_id: int
    product_type: str
    quantity: int
    unit_price: float
    discount: float
    subtotal: float


class PaymentRead(CamelModel):
    id: int
    amount: float
    mode: str
    transaction_date: datetime
    sales_order_id: Optional[int] = None
    thread_purchase_id: Optional[int] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime


class SalesOrderRead(CamelModel):
    id: int
    order_number: str
    customer_id: int
    order_date: datetime
    delivery_date: Optional[datetime] = None
    discount: float
    tax: float
    total_amount: float
    payment_status: str
    remarks: Optional[str] = None
    created_at: datetime
    items: list[SalesOrderItemRead]
    payments: list[PaymentRead]


class PaymentCreate(CamelModel):
    amount: Decimal = Field(gt=0)
    mode: PaymentMode
    transaction_date: Optional[datetime] = None
    sales_order_id: Optional[int] = None
    thread_purchase_id: Optional[int] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    remarks: Optional[str] = None


# Dashboard

class InventorySummary(CamelModel):
    total_value: float
    item_count: int
    low_stock_count: int


class PeriodSales(CamelModel):
    total_sales: float
    order_count: int


class SalesSummary(CamelModel):
    last_30_days: PeriodSales = Field(alias="last30Days")
    pending_payments: int


class TopSellingProduct(CamelModel):
    product_type: str
    total_quantity: int
    total_value: float


class DashboardSummary(CamelModel):
    inventory: InventorySummary
    sales: SalesSummary
    top_selling_products: list[TopSellingProduct]
    production_stats: dict[str, int]
