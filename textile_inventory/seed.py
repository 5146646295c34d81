"""
Load demo reference data and push one received thread purchase through the
reconciliation flow.

    python -m textile_inventory.seed
"""

from decimal import Decimal

from sqlalchemy import func, select

from textile_inventory.application.party_service import ClassificationService, CustomerService, VendorService
from textile_inventory.application.schemas import (
    ClassificationCreate,
    CustomerCreate,
    ThreadPurchaseCreate,
    VendorCreate,
)
from textile_inventory.application.thread_purchase_service import ThreadPurchaseService
from textile_inventory.core import get_logger, setup_logging
from textile_inventory.core_settings import get_settings
from textile_inventory.domain.models import Vendor
from textile_inventory.infrastructure.db import SessionLocal, init_models

logger = get_logger(__name__)

VENDORS = [
    {"name": "Faisal Spinning Mills", "contact": "+92-41-555-0101", "city": "Faisalabad"},
    {"name": "Gul Ahmed Yarn", "contact": "+92-21-555-0140", "city": "Karachi"},
]

CUSTOMERS = [
    {"name": "Lahore Garments", "contact": "+92-42-555-0177", "city": "Lahore"},
    {"name": "Sialkot Home Textiles", "contact": "+92-52-555-0123", "city": "Sialkot"},
]

THREAD_TYPES = [
    {"name": "Cotton", "description": "Combed cotton yarn"},
    {"name": "Polyester", "description": "Filament polyester yarn"},
]

FABRIC_TYPES = [
    {"name": "Lawn", "description": "Light plain-weave cotton"},
    {"name": "Khaddar", "description": "Coarse handloom-style cotton"},
]


def seed(db) -> bool:
    """Returns False when the database already holds data."""
    if db.execute(select(func.count(Vendor.id))).scalar_one():
        logger.info("Seed skipped: vendors already exist")
        return False

    settings = get_settings()
    vendors = [VendorService(db).create(VendorCreate(**row)) for row in VENDORS]
    for row in CUSTOMERS:
        CustomerService(db).create(CustomerCreate(**row))
    for row in THREAD_TYPES:
        ClassificationService.thread_types(db).create(ClassificationCreate(**row))
    for row in FABRIC_TYPES:
        ClassificationService.fabric_types(db).create(ClassificationCreate(**row))

    purchase = ThreadPurchaseService(db, settings).create(ThreadPurchaseCreate(
        vendor_id=vendors[0].id,
        thread_type="Cotton",
        color="White",
        quantity=1000,
        unit_price=Decimal("12.50"),
        received=True,
        reference="SEED-001",
    ))
    logger.info(f"Seeded thread purchase #{purchase.id} (inventory {purchase.inventory_status})")
    return True


def main():
    settings = get_settings()
    setup_logging(service_name=f"{settings.SERVICE_NAME}-seed", level=settings.LOG_LEVEL)
    init_models()
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
