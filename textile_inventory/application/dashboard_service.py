from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from textile_inventory.application.costing import to_money
from textile_inventory.domain.models import (
    FabricProduction,
    InventoryItem,
    PaymentStatus,
    SalesOrder,
    SalesOrderItem,
)

RECENT_SALES_DAYS = 30
TOP_SELLING_LIMIT = 5


class DashboardService:
    """Headline numbers for the landing page. Cancelled orders are left out of sales figures."""

    def __init__(self, db: Session):
        self.db = db

    def summary(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        return {
            "inventory": self._inventory(),
            "sales": {
                "last_30_days": self._recent_sales(now - timedelta(days=RECENT_SALES_DAYS)),
                "pending_payments": self.db.execute(
                    select(func.count(SalesOrder.id)).where(SalesOrder.payment_status == PaymentStatus.PENDING.value)
                ).scalar_one(),
            },
            "top_selling_products": self._top_selling(),
            "production_stats": self._production_stats(),
        }

    def _inventory(self) -> dict:
        total_value, item_count = self.db.execute(
            select(
                func.coalesce(func.sum(InventoryItem.current_quantity * InventoryItem.cost_per_unit), 0),
                func.count(InventoryItem.id),
            )
        ).one()
        low_stock = self.db.execute(
            select(func.count(InventoryItem.id)).where(
                InventoryItem.current_quantity <= InventoryItem.min_stock_level
            )
        ).scalar_one()
        return {"total_value": float(to_money(total_value)), "item_count": item_count, "low_stock_count": low_stock}

    def _recent_sales(self, since: datetime) -> dict:
        total_sales, order_count = self.db.execute(
            select(func.coalesce(func.sum(SalesOrder.total_amount), 0), func.count(SalesOrder.id)).where(
                SalesOrder.order_date >= since,
                SalesOrder.payment_status != PaymentStatus.CANCELLED.value,
            )
        ).one()
        return {"total_sales": float(to_money(total_sales)), "order_count": order_count}

    def _top_selling(self) -> list:
        total_quantity = func.sum(SalesOrderItem.quantity)
        rows = self.db.execute(
            select(SalesOrderItem.product_type, total_quantity, func.sum(SalesOrderItem.subtotal))
            .join(SalesOrder, SalesOrder.id == SalesOrderItem.sales_order_id)
            .where(SalesOrder.payment_status != PaymentStatus.CANCELLED.value)
            .group_by(SalesOrderItem.product_type)
            .order_by(total_quantity.desc())
            .limit(TOP_SELLING_LIMIT)
        ).all()
        return [
            {"product_type": product_type, "total_quantity": int(quantity), "total_value": float(to_money(value))}
            for product_type, quantity, value in rows
        ]

    def _production_stats(self) -> dict:
        rows = self.db.execute(
            select(FabricProduction.status, func.count(FabricProduction.id)).group_by(FabricProduction.status)
        ).all()
        return {status: count for status, count in rows}
