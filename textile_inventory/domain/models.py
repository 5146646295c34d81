from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, ForeignKey, Numeric, DateTime, Boolean, Text, JSON, CheckConstraint
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ProductType(str, Enum):
    THREAD = "THREAD"
    FABRIC = "FABRIC"


class TransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    PRODUCTION = "PRODUCTION"
    SALES = "SALES"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


# Transaction kinds that bring new stock in and take part in weighted-average costing
INBOUND_TRANSACTION_TYPES = (TransactionType.PURCHASE, TransactionType.PRODUCTION)


class ColorStatus(str, Enum):
    RAW = "RAW"
    COLORED = "COLORED"


class DyeingResultStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProductionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InventoryStatus(str, Enum):
    PENDING = "PENDING"
    ADDED = "ADDED"
    UPDATED = "UPDATED"
    ERROR = "ERROR"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentMode(str, Enum):
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    ONLINE = "ONLINE"


class SourceKind(str, Enum):
    THREAD_PURCHASE = "THREAD_PURCHASE"
    DYEING_PROCESS = "DYEING_PROCESS"
    FABRIC_PRODUCTION = "FABRIC_PRODUCTION"


class SyncTaskStatus(str, Enum):
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class Base(DeclarativeBase):
    pass


class Vendor(Base):
    __tablename__ = "vendors"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    contact: Mapped[str] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    thread_purchases: Mapped[list["ThreadPurchase"]] = relationship(back_populates="vendor")


class Customer(Base):
    __tablename__ = "customers"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    contact: Mapped[str] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    sales_orders: Mapped[list["SalesOrder"]] = relationship(back_populates="customer")


class ThreadType(Base):
    __tablename__ = "thread_types"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    units: Mapped[str] = mapped_column(String(20), default="meters")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class FabricType(Base):
    __tablename__ = "fabric_types"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    units: Mapped[str] = mapped_column(String(20), default="meters")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ThreadPurchase(Base):
    __tablename__ = "thread_purchases"
    id: Mapped[int] = mapped_column(primary_key=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), index=True)
    order_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    thread_type: Mapped[str] = mapped_column(String(100))
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color_status: Mapped[str] = mapped_column(String(20), default=ColorStatus.RAW.value)
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    unit_of_measure: Mapped[str] = mapped_column(String(20), default="meters")
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    received: Mapped[bool] = mapped_column(Boolean, default=False)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    inventory_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    vendor: Mapped[Vendor] = relationship(back_populates="thread_purchases")
    dyeing_processes: Mapped[list["DyeingProcess"]] = relationship(back_populates="thread_purchase")
    payments: Mapped[list["Payment"]] = relationship(back_populates="thread_purchase")


class DyeingProcess(Base):
    __tablename__ = "dyeing_processes"
    id: Mapped[int] = mapped_column(primary_key=True)
    thread_purchase_id: Mapped[int] = mapped_column(ForeignKey("thread_purchases.id"), index=True)
    dye_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    dye_parameters: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    color_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    color_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    dye_quantity: Mapped[int] = mapped_column(Integer)
    output_quantity: Mapped[int] = mapped_column(Integer)
    labor_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    dye_material_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    result_status: Mapped[str] = mapped_column(String(20), default=DyeingResultStatus.PENDING.value)
    completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    inventory_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    thread_purchase: Mapped[ThreadPurchase] = relationship(back_populates="dyeing_processes")


class FabricProduction(Base):
    __tablename__ = "fabric_productions"
    id: Mapped[int] = mapped_column(primary_key=True)
    # Purchase the consumed thread came from, when it can be traced
    source_thread_id: Mapped[Optional[int]] = mapped_column(ForeignKey("thread_purchases.id"), nullable=True, index=True)
    dyeing_process_id: Mapped[Optional[int]] = mapped_column(ForeignKey("dyeing_processes.id"), nullable=True, index=True)
    # Inventory line the thread was drawn from
    thread_inventory_id: Mapped[Optional[int]] = mapped_column(ForeignKey("inventory.id"), nullable=True)
    fabric_type: Mapped[str] = mapped_column(String(100))
    dimensions: Mapped[str] = mapped_column(String(100))
    batch_number: Mapped[str] = mapped_column(String(50))
    quantity_produced: Mapped[int] = mapped_column(Integer)
    thread_used: Mapped[int] = mapped_column(Integer)
    thread_wastage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit_of_measure: Mapped[str] = mapped_column(String(20), default="meters")
    production_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    labor_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    production_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=ProductionStatus.PENDING.value)
    inventory_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    thread_purchase: Mapped[Optional[ThreadPurchase]] = relationship()
    dyeing_process: Mapped[Optional[DyeingProcess]] = relationship()


class InventoryItem(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_inventory_current_quantity_non_negative"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    item_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    product_type: Mapped[str] = mapped_column(String(20), index=True)
    description: Mapped[str] = mapped_column(String(255))
    thread_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("thread_types.id"), nullable=True)
    fabric_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("fabric_types.id"), nullable=True)
    current_quantity: Mapped[int] = mapped_column(Integer, default=0)
    unit_of_measure: Mapped[str] = mapped_column(String(20), default="meters")
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    sale_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    min_stock_level: Mapped[int] = mapped_column(Integer, default=0)
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    thread_type: Mapped[Optional[ThreadType]] = relationship()
    fabric_type: Mapped[Optional[FabricType]] = relationship()
    transactions: Mapped[list["InventoryTransaction"]] = relationship(
        back_populates="inventory", order_by="InventoryTransaction.id"
    )


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"
    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventory.id"), index=True)
    transaction_type: Mapped[str] = mapped_column(String(20))
    # Signed effect on the item: positive adds stock, negative removes it
    quantity: Mapped[int] = mapped_column(Integer)
    remaining_quantity: Mapped[int] = mapped_column(Integer)
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    thread_purchase_id: Mapped[Optional[int]] = mapped_column(ForeignKey("thread_purchases.id"), nullable=True, index=True)
    dyeing_process_id: Mapped[Optional[int]] = mapped_column(ForeignKey("dyeing_processes.id"), nullable=True, index=True)
    fabric_production_id: Mapped[Optional[int]] = mapped_column(ForeignKey("fabric_productions.id"), nullable=True, index=True)
    sales_order_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales_orders.id"), nullable=True, index=True)
    transaction_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    inventory: Mapped[InventoryItem] = relationship(back_populates="transactions")


class SalesOrder(Base):
    __tablename__ = "sales_orders"
    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), index=True)
    order_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    customer: Mapped[Customer] = relationship(back_populates="sales_orders")
    items: Mapped[list["SalesOrderItem"]] = relationship(back_populates="sales_order", cascade="all, delete-orphan")
    payments: Mapped[list["Payment"]] = relationship(back_populates="sales_order")


class SalesOrderItem(Base):
    __tablename__ = "sales_order_items"
    id: Mapped[int] = mapped_column(primary_key=True)
    sales_order_id: Mapped[int] = mapped_column(ForeignKey("sales_orders.id"), index=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventory.id"))
    product_type: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    sales_order: Mapped[SalesOrder] = relationship(back_populates="items")
    inventory: Mapped[InventoryItem] = relationship()


class Payment(Base):
    __tablename__ = "payments"
    id: Mapped[int] = mapped_column(primary_key=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    mode: Mapped[str] = mapped_column(String(20))
    transaction_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    sales_order_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales_orders.id"), nullable=True, index=True)
    thread_purchase_id: Mapped[Optional[int]] = mapped_column(ForeignKey("thread_purchases.id"), nullable=True, index=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    sales_order: Mapped[Optional[SalesOrder]] = relationship(back_populates="payments")
    thread_purchase: Mapped[Optional[ThreadPurchase]] = relationship(back_populates="payments")


class InventorySyncTask(Base):
    """Pending or failed "add to inventory" work for a completed source event"""
    __tablename__ = "inventory_sync_tasks"
    id: Mapped[int] = mapped_column(primary_key=True)
    source_kind: Mapped[str] = mapped_column(String(30))
    source_id: Mapped[int] = mapped_column(Integer, index=True)
    status: Mapped[str] = mapped_column(String(20), default=SyncTaskStatus.PENDING.value, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    inventory_id: Mapped[Optional[int]] = mapped_column(ForeignKey("inventory.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
