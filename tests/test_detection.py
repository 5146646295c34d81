from decimal import Decimal

from textile_inventory.application.detection import SourceEventDetector, is_complete
from textile_inventory.application.ledger import LedgerEntry, LedgerWriter
from textile_inventory.application.sync_tasks import InventorySyncService
from textile_inventory.domain.models import SourceKind, TransactionType
from textile_inventory.infrastructure.db import unit_of_work


def test_completion_states(make_purchase, make_dyeing):
    purchase = make_purchase(received=True)
    assert is_complete(SourceKind.THREAD_PURCHASE, purchase)
    dyeing = make_dyeing(purchase, result_status="PARTIAL")
    assert not is_complete(SourceKind.DYEING_PROCESS, dyeing)
    dyeing.result_status = "COMPLETED"
    assert is_complete(SourceKind.DYEING_PROCESS, dyeing)


def test_fires_on_transition_into_completion(repo, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="COMPLETED")
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.DYEING_PROCESS, dyeing, was_complete=False, add_to_inventory=True
    )
    assert detection.fire


def test_requires_opt_in(repo, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="COMPLETED")
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.DYEING_PROCESS, dyeing, was_complete=False, add_to_inventory=False
    )
    assert not detection.fire


def test_ignores_updates_that_were_already_complete(repo, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="COMPLETED")
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.DYEING_PROCESS, dyeing, was_complete=True, add_to_inventory=True
    )
    assert not detection.fire


def test_ignores_incomplete_state(repo, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="FAILED")
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.DYEING_PROCESS, dyeing, was_complete=False, add_to_inventory=True
    )
    assert not detection.fire


def test_ignores_source_already_in_inventory(db, repo, make_purchase, make_item):
    purchase = make_purchase(received=True)
    item = make_item()
    with unit_of_work(db):
        LedgerWriter(repo, Decimal("1.2")).post(item.id, LedgerEntry(
            transaction_type=TransactionType.PURCHASE,
            quantity=100,
            unit_cost=Decimal("10"),
            thread_purchase_id=purchase.id,
        ))
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.THREAD_PURCHASE, purchase, was_complete=False, add_to_inventory=True
    )
    assert not detection.fire
    assert detection.reason == "already in inventory"


def test_ignores_source_with_open_sync_task(db, repo, settings, make_purchase):
    purchase = make_purchase(received=True)
    with unit_of_work(db):
        InventorySyncService(db, settings).enqueue(SourceKind.THREAD_PURCHASE, purchase.id)
    detection = SourceEventDetector(repo).evaluate(
        SourceKind.THREAD_PURCHASE, purchase, was_complete=False, add_to_inventory=True
    )
    assert not detection.fire
    assert detection.reason == "sync task already open"
