from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from textile_inventory.application.party_service import ClassificationService, CustomerService, VendorService
from textile_inventory.application.schemas import (
    ClassificationCreate,
    ClassificationRead,
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    VendorCreate,
    VendorRead,
    VendorUpdate,
)
from textile_inventory.infrastructure.db import get_db

router = APIRouter(prefix="/api", tags=["parties"])


@router.get("/vendors", response_model=list[VendorRead])
def list_vendors(search: Optional[str] = None, db: Session = Depends(get_db)):
    return VendorService(db).list(search)


@router.post("/vendors", response_model=VendorRead, status_code=201)
def create_vendor(payload: VendorCreate, db: Session = Depends(get_db)):
    return VendorService(db).create(payload)


@router.get("/vendors/{vendor_id}", response_model=VendorRead)
def get_vendor(vendor_id: int, db: Session = Depends(get_db)):
    return VendorService(db).get(vendor_id)


@router.patch("/vendors/{vendor_id}", response_model=VendorRead)
def update_vendor(vendor_id: int, payload: VendorUpdate, db: Session = Depends(get_db)):
    return VendorService(db).update(vendor_id, payload)


@router.delete("/vendors/{vendor_id}", status_code=204)
def delete_vendor(vendor_id: int, db: Session = Depends(get_db)):
    """Blocked while the vendor still has thread purchases."""
    VendorService(db).delete(vendor_id)


@router.get("/customers", response_model=list[CustomerRead])
def list_customers(search: Optional[str] = None, db: Session = Depends(get_db)):
    return CustomerService(db).list(search)


@router.post("/customers", response_model=CustomerRead, status_code=201)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    return CustomerService(db).create(payload)


@router.get("/customers/{customer_id}", response_model=CustomerRead)
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    return CustomerService(db).get(customer_id)


@router.patch("/customers/{customer_id}", response_model=CustomerRead)
def update_customer(customer_id: int, payload: CustomerUpdate, db: Session = Depends(get_db)):
    return CustomerService(db).update(customer_id, payload)


@router.delete("/customers/{customer_id}", status_code=204)
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    """Blocked while the customer still has sales orders."""
    CustomerService(db).delete(customer_id)


@router.get("/thread-types", response_model=list[ClassificationRead])
def list_thread_types(db: Session = Depends(get_db)):
    return ClassificationService.thread_types(db).list()


@router.post("/thread-types", response_model=ClassificationRead, status_code=201)
def create_thread_type(payload: ClassificationCreate, db: Session = Depends(get_db)):
    return ClassificationService.thread_types(db).create(payload)


@router.get("/fabric-types", response_model=list[ClassificationRead])
def list_fabric_types(db: Session = Depends(get_db)):
    return ClassificationService.fabric_types(db).list()


@router.post("/fabric-types", response_model=ClassificationRead, status_code=201)
def create_fabric_type(payload: ClassificationCreate, db: Session = Depends(get_db)):
    return ClassificationService.fabric_types(db).create(payload)
