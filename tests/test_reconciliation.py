from decimal import Decimal

from sqlalchemy import func, select, text

from textile_inventory.application.dyeing_service import DyeingService
from textile_inventory.application.minting import InventoryMinter, MintOptions
from textile_inventory.application.schemas import DyeingProcessUpdate
from textile_inventory.application.sync_tasks import InventorySyncService
from textile_inventory.domain.models import DyeingProcess, InventorySyncTask, InventoryTransaction, SourceKind
from textile_inventory.infrastructure.db import unit_of_work
from textile_inventory.infrastructure.repository import InventoryRepository


def inbound_rows(db, column, source_id):
    return db.execute(
        select(func.count(InventoryTransaction.id)).where(
            column == source_id,
            InventoryTransaction.transaction_type.in_(["PURCHASE", "PRODUCTION"]),
        )
    ).scalar_one()


def test_minting_twice_is_idempotent(db, repo, settings, make_purchase):
    purchase = make_purchase(received=True)
    minter = InventoryMinter(repo, settings)

    with unit_of_work(db):
        first = minter.mint(SourceKind.THREAD_PURCHASE, purchase.id)
    with unit_of_work(db):
        second = minter.mint(SourceKind.THREAD_PURCHASE, purchase.id)

    assert first.created_item and not first.existing
    assert second.existing
    assert second.transaction.id == first.transaction.id
    assert inbound_rows(db, InventoryTransaction.thread_purchase_id, purchase.id) == 1
    db.refresh(first.item)
    assert first.item.current_quantity == 100
    assert first.transaction.remaining_quantity == 100


def test_mint_options_override_defaults(db, repo, settings, make_purchase):
    purchase = make_purchase(received=True)
    options = MintOptions(location="Godown C", markup=Decimal("1.5"), min_stock_level=7, notes="Imported lot")
    with unit_of_work(db):
        result = InventoryMinter(repo, settings).mint(SourceKind.THREAD_PURCHASE, purchase.id, options)
    assert result.item.location == "Godown C"
    assert result.item.min_stock_level == 7
    assert result.item.notes == "Imported lot"
    assert result.item.sale_price == Decimal("15.00")


def test_mint_options_payload_round_trip():
    options = MintOptions(location="Dye House", markup=Decimal("1.25"))
    assert MintOptions.from_payload(options.to_payload()) == options
    assert MintOptions.from_payload(None) == MintOptions()


def test_failed_task_keeps_error_and_retries(db, settings, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="COMPLETED", output_quantity=0)
    sync = InventorySyncService(db, settings)
    with unit_of_work(db):
        task_id = sync.enqueue(SourceKind.DYEING_PROCESS, dyeing.id).id

    task, result = sync.process(task_id)
    assert result is None
    assert task.status == "FAILED"
    assert task.attempts == 1
    assert task.last_error
    db.refresh(dyeing)
    assert dyeing.inventory_status == "ERROR"

    with unit_of_work(db):
        dyeing.output_quantity = 40
    [task] = sync.retry()
    assert task.status == "DONE"
    assert task.completed_at is not None
    assert inbound_rows(db, InventoryTransaction.dyeing_process_id, dyeing.id) == 1


def test_retry_respects_attempt_limit(db, settings, make_purchase, make_dyeing):
    dyeing = make_dyeing(make_purchase(received=True), result_status="COMPLETED", output_quantity=0)
    sync = InventorySyncService(db, settings)
    with unit_of_work(db):
        task = sync.enqueue(SourceKind.DYEING_PROCESS, dyeing.id)
        task.attempts = settings.SYNC_TASK_MAX_ATTEMPTS
    assert sync.retry() == []


def test_explicit_mint_closes_open_task(client, db, settings, make_purchase):
    purchase = make_purchase(received=True)
    with unit_of_work(db):
        InventorySyncService(db, settings).enqueue(SourceKind.THREAD_PURCHASE, purchase.id)
    db.close()

    resp = client.post("/api/inventory/add-thread-purchase", json={"threadPurchaseId": purchase.id})
    assert resp.status_code == 200
    tasks = client.get("/api/inventory/sync-tasks").json()
    assert [task["status"] for task in tasks] == ["DONE"]


def test_guard_failure_does_not_roll_back_update(db, settings, make_purchase, make_dyeing, monkeypatch):
    dyeing = make_dyeing(make_purchase(received=True), result_status="PENDING")
    savepoints = []

    def broken_lookup(repo, kind, source_id):
        savepoints.append(repo.db.in_nested_transaction())
        return repo.db.execute(text("SELECT no_such_column FROM inventory_sync_tasks")).first()

    monkeypatch.setattr(InventoryRepository, "open_sync_task", broken_lookup)
    updated, task = DyeingService(db, settings).update(
        dyeing.id, DyeingProcessUpdate(result_status="COMPLETED", add_to_inventory=True)
    )
    assert savepoints == [True]
    assert task is None
    assert updated.result_status == "COMPLETED"

    db.expire_all()
    stored = db.execute(select(DyeingProcess.result_status).where(DyeingProcess.id == dyeing.id)).scalar_one()
    assert stored == "COMPLETED"
    assert db.execute(select(func.count(InventorySyncTask.id))).scalar_one() == 0
    assert inbound_rows(db, InventoryTransaction.dyeing_process_id, dyeing.id) == 0


def test_mint_locks_source_before_checking_for_stock(db, repo, settings, make_purchase, monkeypatch):
    purchase = make_purchase(received=True)
    calls = []
    lock_source = InventoryRepository.lock_source
    inbound_lookup = InventoryRepository.inbound_transaction_for_source

    def locking(self, kind, source_id):
        calls.append("lock")
        return lock_source(self, kind, source_id)

    def looking_up(self, kind, source_id):
        calls.append("lookup")
        return inbound_lookup(self, kind, source_id)

    monkeypatch.setattr(InventoryRepository, "lock_source", locking)
    monkeypatch.setattr(InventoryRepository, "inbound_transaction_for_source", looking_up)
    with unit_of_work(db):
        InventoryMinter(repo, settings).mint(SourceKind.THREAD_PURCHASE, purchase.id)

    assert calls[:2] == ["lock", "lookup"]
    assert inbound_rows(db, InventoryTransaction.thread_purchase_id, purchase.id) == 1
