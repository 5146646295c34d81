from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from textile_inventory.application.costing import to_money
from textile_inventory.application.ledger import LedgerEntry, LedgerWriter
from textile_inventory.core import get_logger
from textile_inventory.core_settings import Settings
from textile_inventory.domain.errors import NotFoundError, ValidationError
from textile_inventory.domain.models import (
    Customer,
    InventoryTransaction,
    Payment,
    PaymentMode,
    PaymentStatus,
    SalesOrder,
    SalesOrderItem,
    ThreadPurchase,
    TransactionType,
)
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository
from .schemas import PaymentCreate, SalesOrderCreate, SalesOrderUpdate

logger = get_logger(__name__)


def payment_status_for(total_amount: Decimal, total_paid: Decimal, current: Optional[str] = None) -> str:
    """PAID once payments cover the total, PARTIAL below it; CANCELLED sticks."""
    if current == PaymentStatus.CANCELLED.value:
        return current
    if total_paid >= total_amount:
        return PaymentStatus.PAID.value
    if total_paid > 0:
        return PaymentStatus.PARTIAL.value
    return PaymentStatus.PENDING.value


def total_paid_for(db: Session, order_id: int) -> Decimal:
    paid = db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.sales_order_id == order_id)
    ).scalar_one()
    return to_money(paid)


class SalesService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.repo = InventoryRepository(db)
        self.ledger = LedgerWriter(self.repo, settings.MANUAL_TRANSACTION_MARKUP)

    def _generate_order_number(self) -> str:
        """Sequential order number in format SO-YYYY-NNNNN"""
        year = datetime.now().year
        count = self.db.execute(
            select(func.count(SalesOrder.id)).where(SalesOrder.order_number.like(f"SO-{year}-%"))
        ).scalar_one()
        return f"SO-{year}-{(count + 1):05d}"

    def list(self, customer_id: Optional[int] = None, payment_status: Optional[str] = None):
        stmt = select(SalesOrder).order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc())
        if customer_id is not None:
            stmt = stmt.where(SalesOrder.customer_id == customer_id)
        if payment_status:
            stmt = stmt.where(SalesOrder.payment_status == payment_status)
        return list(self.db.execute(stmt).scalars())

    def get(self, order_id: int) -> SalesOrder:
        order = self.db.get(SalesOrder, order_id)
        if order is None:
            raise NotFoundError("Sales order", order_id)
        return order

    def create(self, data: SalesOrderCreate) -> SalesOrder:
        """
        Book a sale. Every line posts a SALES transaction against its
        inventory item; if any line is short on stock nothing is saved.
        """
        if self.db.get(Customer, data.customer_id) is None:
            raise NotFoundError("Customer", data.customer_id)

        subtotals = []
        for line in data.items:
            subtotal = to_money(line.unit_price * line.quantity) - to_money(line.discount)
            if subtotal < 0:
                raise ValidationError("Line discount cannot exceed the line amount")
            subtotals.append(subtotal)
        total_amount = to_money(sum(subtotals) - to_money(data.discount) + to_money(data.tax))
        if total_amount <= 0:
            raise ValidationError("Sales total must be greater than zero")
        if data.payment_amount is not None and to_money(data.payment_amount) > total_amount:
            raise ValidationError("Payment amount cannot exceed the sales total")

        with unit_of_work(self.db):
            order = SalesOrder(
                order_number=self._generate_order_number(),
                customer_id=data.customer_id,
                order_date=data.order_date or datetime.utcnow(),
                delivery_date=data.delivery_date,
                discount=to_money(data.discount),
                tax=to_money(data.tax),
                total_amount=total_amount,
                payment_status=PaymentStatus.PENDING.value,
                remarks=data.remarks,
            )
            self.repo.add(order)

            for line, subtotal in zip(data.items, subtotals):
                item = self.repo.get_item(line.inventory_id)
                if item is None:
                    raise NotFoundError("Inventory item", line.inventory_id)
                self.ledger.post(item.id, LedgerEntry(
                    transaction_type=TransactionType.SALES,
                    quantity=line.quantity,
                    unit_cost=to_money(line.unit_price),
                    total_cost=subtotal,
                    reference_type="SalesOrder",
                    reference_id=order.id,
                    sales_order_id=order.id,
                    notes=f"Sale: Order #{order.order_number}",
                ))
                self.db.add(SalesOrderItem(
                    sales_order_id=order.id,
                    inventory_id=item.id,
                    product_type=item.product_type,
                    quantity=line.quantity,
                    unit_price=to_money(line.unit_price),
                    discount=to_money(line.discount),
                    subtotal=subtotal,
                ))

            if data.payment_amount is not None:
                amount = to_money(data.payment_amount)
                self.db.add(Payment(
                    amount=amount,
                    mode=data.payment_mode.value,
                    sales_order_id=order.id,
                    reference_number=data.payment_reference or order.order_number,
                    description=f"Payment for Order #{order.order_number}",
                ))
                order.payment_status = payment_status_for(total_amount, amount)

        logger.info(f"Created sales order {order.order_number} for customer #{order.customer_id}")
        self.db.refresh(order)
        return order

    def update(self, order_id: int, data: SalesOrderUpdate) -> SalesOrder:
        """
        Change the order header. Discount and tax changes recompute the total;
        ``paymentAmount`` replaces the first payment on the order (or records
        one) and the payment status follows unless it is given explicitly.
        """
        order = self.get(order_id)
        if order.payment_status == PaymentStatus.CANCELLED.value:
            raise ValidationError("Cancelled sales orders cannot be changed")
        if data.payment_status == PaymentStatus.CANCELLED:
            raise ValidationError("Cancel a sales order with DELETE so its stock is returned")

        changes = data.model_dump(exclude_unset=True)
        discount = to_money(changes["discount"]) if changes.get("discount") is not None else to_money(order.discount)
        tax = to_money(changes["tax"]) if changes.get("tax") is not None else to_money(order.tax)
        total_amount = to_money(sum(to_money(line.subtotal) for line in order.items) - discount + tax)
        if total_amount <= 0:
            raise ValidationError("Sales total must be greater than zero")

        with unit_of_work(self.db):
            if "delivery_date" in changes:
                order.delivery_date = changes["delivery_date"]
            if "remarks" in changes:
                order.remarks = changes["remarks"]
            order.discount = discount
            order.tax = tax
            order.total_amount = total_amount

            if data.payment_amount is not None:
                self._set_payment(order, data)
            total_paid = total_paid_for(self.db, order.id)
            if total_paid > total_amount:
                raise ValidationError(
                    "Payments cannot exceed the sales total",
                    details={"totalAmount": float(total_amount), "totalPaid": float(total_paid)},
                )
            if data.payment_status is not None:
                order.payment_status = data.payment_status.value
            else:
                order.payment_status = payment_status_for(total_amount, total_paid)

        logger.info(f"Updated sales order {order.order_number}")
        self.db.refresh(order)
        return order

    def cancel(self, order_id: int) -> SalesOrder:
        """
        Cancel an order. Each SALES row gets a compensating ADJUSTMENT that
        puts its quantity back, payments on the order are removed, and the
        order stays on file as CANCELLED because ledger rows reference it.
        """
        order = self.get(order_id)
        if order.payment_status == PaymentStatus.CANCELLED.value:
            raise ValidationError("Sales order is already cancelled")
        sales = self.db.execute(
            select(InventoryTransaction)
            .where(
                InventoryTransaction.sales_order_id == order.id,
                InventoryTransaction.transaction_type == TransactionType.SALES.value,
            )
            .order_by(InventoryTransaction.id)
        ).scalars().all()

        with unit_of_work(self.db):
            for sale in sales:
                self.ledger.post(sale.inventory_id, LedgerEntry(
                    transaction_type=TransactionType.ADJUSTMENT,
                    quantity=-sale.quantity,
                    unit_cost=to_money(sale.unit_cost),
                    reference_type="SalesOrder",
                    reference_id=order.id,
                    sales_order_id=order.id,
                    notes=f"Stock returned: Order #{order.order_number} cancelled",
                ))
            for payment in list(order.payments):
                self.db.delete(payment)
            order.payment_status = PaymentStatus.CANCELLED.value

        logger.info(f"Cancelled sales order {order.order_number}, {len(sales)} line(s) returned to stock")
        self.db.refresh(order)
        return order

    def _set_payment(self, order: SalesOrder, data: SalesOrderUpdate):
        amount = to_money(data.payment_amount)
        payment = min(order.payments, key=lambda p: p.id) if order.payments else None
        if payment is None:
            self.db.add(Payment(
                amount=amount,
                mode=(data.payment_mode or PaymentMode.CASH).value,
                sales_order_id=order.id,
                reference_number=data.payment_reference or order.order_number,
                description=f"Payment for Order #{order.order_number}",
            ))
        else:
            payment.amount = amount
            if data.payment_mode is not None:
                payment.mode = data.payment_mode.value
            if data.payment_reference:
                payment.reference_number = data.payment_reference
        self.db.flush()


class PaymentService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, sales_order_id: Optional[int] = None, thread_purchase_id: Optional[int] = None):
        stmt = select(Payment).order_by(Payment.transaction_date.desc(), Payment.id.desc())
        if sales_order_id is not None:
            stmt = stmt.where(Payment.sales_order_id == sales_order_id)
        if thread_purchase_id is not None:
            stmt = stmt.where(Payment.thread_purchase_id == thread_purchase_id)
        return list(self.db.execute(stmt).scalars())

    def create(self, data: PaymentCreate) -> Payment:
        order = None
        if data.sales_order_id is not None:
            order = self.db.get(SalesOrder, data.sales_order_id)
            if order is None:
                raise NotFoundError("Sales order", data.sales_order_id)
            if order.payment_status == PaymentStatus.CANCELLED.value:
                raise ValidationError("Cannot record a payment for a cancelled order")
        if data.thread_purchase_id is not None and self.db.get(ThreadPurchase, data.thread_purchase_id) is None:
            raise NotFoundError("Thread purchase", data.thread_purchase_id)

        with unit_of_work(self.db):
            payment = Payment(
                amount=to_money(data.amount),
                mode=data.mode.value,
                transaction_date=data.transaction_date or datetime.utcnow(),
                sales_order_id=data.sales_order_id,
                thread_purchase_id=data.thread_purchase_id,
                reference_number=data.reference_number,
                description=data.description,
                remarks=data.remarks,
            )
            self.db.add(payment)
            self.db.flush()
            if order is not None:
                order.payment_status = payment_status_for(
                    to_money(order.total_amount), total_paid_for(self.db, order.id), order.payment_status
                )
        self.db.refresh(payment)
        return payment
