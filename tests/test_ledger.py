from decimal import Decimal

import pytest
from sqlalchemy import select

from textile_inventory.application.ledger import LedgerEntry, LedgerWriter, signed_quantity
from textile_inventory.domain.errors import InsufficientQuantityError, NotFoundError, ValidationError
from textile_inventory.domain.models import InventoryTransaction, TransactionType
from textile_inventory.infrastructure.db import unit_of_work


@pytest.fixture
def ledger(repo):
    return LedgerWriter(repo, Decimal("1.2"))


def post(db, ledger, item_id, transaction_type, quantity, unit_cost=None, **kwargs):
    with unit_of_work(db):
        return ledger.post(item_id, LedgerEntry(
            transaction_type=transaction_type,
            quantity=quantity,
            unit_cost=Decimal(str(unit_cost)) if unit_cost is not None else None,
            **kwargs,
        ))


@pytest.mark.parametrize("transaction_type,quantity,expected", [
    (TransactionType.PURCHASE, 10, 10),
    (TransactionType.PRODUCTION, 10, 10),
    (TransactionType.SALES, 10, -10),
    (TransactionType.TRANSFER, 10, -10),
    (TransactionType.ADJUSTMENT, 10, 10),
    (TransactionType.ADJUSTMENT, -10, -10),
])
def test_signed_quantity(transaction_type, quantity, expected):
    assert signed_quantity(transaction_type, quantity) == expected


def test_signed_quantity_rejects_zero_and_negative_magnitudes():
    with pytest.raises(ValidationError):
        signed_quantity(TransactionType.PURCHASE, 0)
    with pytest.raises(ValidationError):
        signed_quantity(TransactionType.SALES, -5)


def test_purchase_sequence_and_rejected_sale(db, ledger, make_item):
    item = make_item()

    post(db, ledger, item.id, TransactionType.PURCHASE, 100, 10)
    db.refresh(item)
    assert item.current_quantity == 100
    assert item.cost_per_unit == Decimal("10.00")
    assert item.sale_price == Decimal("12.00")

    post(db, ledger, item.id, TransactionType.PURCHASE, 50, 16)
    db.refresh(item)
    assert item.current_quantity == 150
    assert item.cost_per_unit == Decimal("12.00")

    with pytest.raises(InsufficientQuantityError) as excinfo:
        post(db, ledger, item.id, TransactionType.SALES, 200)
    assert excinfo.value.available == 150
    assert excinfo.value.requested == 200

    db.refresh(item)
    assert item.current_quantity == 150
    assert ledger.repo.count_transactions(item.id) == 2


def test_remaining_quantity_snapshots_balance(db, ledger, make_item):
    item = make_item()
    post(db, ledger, item.id, TransactionType.PURCHASE, 100, 10)
    post(db, ledger, item.id, TransactionType.SALES, 30)
    post(db, ledger, item.id, TransactionType.ADJUSTMENT, -5)
    post(db, ledger, item.id, TransactionType.TRANSFER, 15)

    rows = db.execute(
        select(InventoryTransaction).where(InventoryTransaction.inventory_id == item.id).order_by(InventoryTransaction.id)
    ).scalars().all()
    assert [row.quantity for row in rows] == [100, -30, -5, -15]
    assert [row.remaining_quantity for row in rows] == [100, 70, 65, 50]
    db.refresh(item)
    assert item.current_quantity == rows[-1].remaining_quantity


def test_outbound_and_adjustment_do_not_change_cost(db, ledger, make_item):
    item = make_item()
    post(db, ledger, item.id, TransactionType.PURCHASE, 100, 10)
    post(db, ledger, item.id, TransactionType.ADJUSTMENT, 20, 50)
    post(db, ledger, item.id, TransactionType.SALES, 10, 99)
    db.refresh(item)
    assert item.cost_per_unit == Decimal("10.00")
    assert item.current_quantity == 110


def test_markup_override(db, ledger, make_item):
    item = make_item()
    post(db, ledger, item.id, TransactionType.PRODUCTION, 10, 10, markup=Decimal("1.3"))
    db.refresh(item)
    assert item.sale_price == Decimal("13.00")


def test_inbound_sets_last_restocked(db, ledger, make_item):
    item = make_item()
    assert item.last_restocked is None
    post(db, ledger, item.id, TransactionType.PURCHASE, 5, 2)
    db.refresh(item)
    assert item.last_restocked is not None


def test_total_cost_defaults_to_unit_cost_times_quantity(db, ledger, make_item):
    item = make_item()
    transaction = post(db, ledger, item.id, TransactionType.PURCHASE, 40, "2.5")
    assert transaction.total_cost == Decimal("100.00")


def test_unknown_item(db, ledger):
    with pytest.raises(NotFoundError):
        post(db, ledger, 999, TransactionType.PURCHASE, 1, 1)


def test_failed_posting_leaves_no_transaction(db, ledger, make_item):
    item = make_item(current_quantity=3)
    with pytest.raises(InsufficientQuantityError):
        post(db, ledger, item.id, TransactionType.ADJUSTMENT, -4)
    assert ledger.repo.count_transactions(item.id) == 0
    db.refresh(item)
    assert item.current_quantity == 3


def test_inbound_posting_marks_source_added(db, ledger, make_item, make_purchase):
    purchase = make_purchase(received=True)
    item = make_item()
    post(db, ledger, item.id, TransactionType.PURCHASE, 100, 10, thread_purchase_id=purchase.id)
    db.refresh(purchase)
    assert purchase.inventory_status == "ADDED"
