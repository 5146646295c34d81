from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from textile_inventory.application.sales_service import PaymentService, SalesService
from textile_inventory.application.schemas import (
    PaymentCreate,
    PaymentRead,
    SalesOrderCreate,
    SalesOrderRead,
    SalesOrderUpdate,
)
from textile_inventory.core_settings import Settings, get_settings
from textile_inventory.domain.models import PaymentStatus
from textile_inventory.infrastructure.db import get_db

router = APIRouter(prefix="/api", tags=["sales"])


@router.get("/sales", response_model=list[SalesOrderRead])
def list_sales(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return SalesService(db, settings).list(customer_id, payment_status)


@router.post("/sales", response_model=SalesOrderRead, status_code=201)
def create_sale(payload: SalesOrderCreate, db: Session = Depends(get_db),
                settings: Settings = Depends(get_settings)):
    """Every line is posted to the ledger as a SALES transaction."""
    return SalesService(db, settings).create(payload)


@router.get("/sales/{order_id}", response_model=SalesOrderRead)
def get_sale(order_id: int, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return SalesService(db, settings).get(order_id)


@router.patch("/sales/{order_id}", response_model=SalesOrderRead)
def update_sale(order_id: int, payload: SalesOrderUpdate, db: Session = Depends(get_db),
                settings: Settings = Depends(get_settings)):
    return SalesService(db, settings).update(order_id, payload)


@router.delete("/sales/{order_id}", status_code=204)
def cancel_sale(order_id: int, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Returns the sold quantities to stock; the order is kept as CANCELLED."""
    SalesService(db, settings).cancel(order_id)


@router.get("/payments", response_model=list[PaymentRead])
def list_payments(
    sales_order_id: Optional[int] = Query(None, alias="salesOrderId"),
    thread_purchase_id: Optional[int] = Query(None, alias="threadPurchaseId"),
    db: Session = Depends(get_db),
):
    return PaymentService(db).list(sales_order_id, thread_purchase_id)


@router.post("/payments", response_model=PaymentRead, status_code=201)
def create_payment(payload: PaymentCreate, db: Session = Depends(get_db)):
    return PaymentService(db).create(payload)
