from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from typing import Optional

from textile_inventory.core import get_logger
from textile_inventory.domain.errors import DependentRecordsError, NotFoundError, ValidationError
from textile_inventory.domain.models import Customer, FabricType, SalesOrder, ThreadPurchase, ThreadType, Vendor
from textile_inventory.infrastructure.db import unit_of_work
from .schemas import ClassificationCreate, PartyCreate, PartyUpdate

logger = get_logger(__name__)


class _PartyService:
    """CRUD shared by vendors and customers."""

    model = None
    label = None

    def __init__(self, db: Session):
        self.db = db

    def list(self, search: Optional[str] = None):
        stmt = select(self.model).order_by(self.model.name)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(self.model.name).like(pattern),
                func.lower(self.model.contact).like(pattern),
                func.lower(self.model.city).like(pattern),
            ))
        return list(self.db.execute(stmt).scalars())

    def get(self, party_id: int):
        party = self.db.get(self.model, party_id)
        if party is None:
            raise NotFoundError(self.label, party_id)
        return party

    def create(self, data: PartyCreate):
        with unit_of_work(self.db):
            party = self.model(**data.model_dump())
            self.db.add(party)
        self.db.refresh(party)
        logger.info(f"Created {self.label.lower()} #{party.id}")
        return party

    def update(self, party_id: int, data: PartyUpdate):
        party = self.get(party_id)
        with unit_of_work(self.db):
            for field, value in data.model_dump(exclude_unset=True).items():
                if field in ("name", "contact") and value is None:
                    raise ValidationError(f"{field} cannot be empty")
                setattr(party, field, value)
        self.db.refresh(party)
        return party

    def delete(self, party_id: int):
        party = self.get(party_id)
        self._check_dependents(party)
        with unit_of_work(self.db):
            self.db.delete(party)
        logger.info(f"Deleted {self.label.lower()} #{party_id}")

    def _check_dependents(self, party):
        raise NotImplementedError


class VendorService(_PartyService):
    model = Vendor
    label = "Vendor"

    def _check_dependents(self, vendor: Vendor):
        count = self.db.execute(
            select(func.count(ThreadPurchase.id)).where(ThreadPurchase.vendor_id == vendor.id)
        ).scalar_one()
        if count:
            raise DependentRecordsError("vendor", "threadPurchases", count)


class CustomerService(_PartyService):
    model = Customer
    label = "Customer"

    def _check_dependents(self, customer: Customer):
        count = self.db.execute(
            select(func.count(SalesOrder.id)).where(SalesOrder.customer_id == customer.id)
        ).scalar_one()
        if count:
            raise DependentRecordsError("customer", "salesOrders", count)


class ClassificationService:
    """Thread and fabric type catalogues."""

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    @classmethod
    def thread_types(cls, db: Session) -> "ClassificationService":
        return cls(db, ThreadType)

    @classmethod
    def fabric_types(cls, db: Session) -> "ClassificationService":
        return cls(db, FabricType)

    def list(self):
        return list(self.db.execute(select(self.model).order_by(self.model.name)).scalars())

    def create(self, data: ClassificationCreate):
        name = data.name.strip()
        duplicate = self.db.execute(
            select(self.model.id).where(func.lower(self.model.name) == name.lower())
        ).first()
        if duplicate:
            raise ValidationError(f"A type named '{name}' already exists")
        with unit_of_work(self.db):
            record = self.model(name=name, description=data.description, units=data.units)
            self.db.add(record)
        self.db.refresh(record)
        return record
