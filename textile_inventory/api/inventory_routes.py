from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from textile_inventory.application.inventory_service import InventoryService
from textile_inventory.application.minting import MintResult
from textile_inventory.application.schemas import (
    AddDyedThreadRequest,
    AddFabricProductionRequest,
    AddThreadPurchaseRequest,
    InventoryItemCreate,
    InventoryItemRead,
    InventoryItemUpdate,
    InventoryStats,
    LedgerTransactionCreate,
    MintResponse,
    SyncRetryRequest,
    SyncTaskRead,
    TransactionCreate,
    TransactionPage,
    TransactionRead,
    TransactionResult,
    naive_utc,
)
from textile_inventory.application.sync_tasks import InventorySyncService
from textile_inventory.core_settings import Settings, get_settings
from textile_inventory.domain.models import SourceKind, SyncTaskStatus
from textile_inventory.infrastructure.db import get_db

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def _mint_response(result: MintResult) -> MintResponse:
    return MintResponse(
        inventory_item=InventoryItemRead.model_validate(result.item),
        transaction=TransactionRead.model_validate(result.transaction),
        existing=result.existing,
        created_item=result.created_item,
    )


@router.get("", response_model=list[InventoryItemRead])
def list_inventory(
    search: Optional[str] = None,
    product_type: Optional[str] = Query(None, alias="type"),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    low_stock: Optional[bool] = Query(None, alias="lowStock"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return InventoryService(db, settings).list(search, product_type, in_stock, low_stock, limit, offset)


@router.post("", response_model=InventoryItemRead, status_code=201)
def create_inventory(payload: InventoryItemCreate, db: Session = Depends(get_db),
                     settings: Settings = Depends(get_settings)):
    return InventoryService(db, settings).create(payload)


@router.get("/stats", response_model=InventoryStats)
def inventory_stats(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return InventoryService(db, settings).stats()


# Ledger

@router.get("/transactions", response_model=TransactionPage)
def query_transactions(
    inventory_id: Optional[int] = Query(None, alias="inventoryId"),
    transaction_type: Optional[str] = Query(None, alias="type"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    items, total = InventoryService(db, settings).query_transactions(
        inventory_id, transaction_type, naive_utc(from_date), naive_utc(to_date), page, limit
    )
    return TransactionPage(
        items=[TransactionRead.model_validate(item) for item in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/transactions", response_model=TransactionResult, status_code=201)
def record_transaction(payload: LedgerTransactionCreate, db: Session = Depends(get_db),
                       settings: Settings = Depends(get_settings)):
    item, transaction = InventoryService(db, settings).record_transaction(payload)
    return TransactionResult(
        inventory_item=InventoryItemRead.model_validate(item),
        transaction=TransactionRead.model_validate(transaction),
    )


# Source events

@router.post("/add-thread-purchase", response_model=MintResponse)
def add_thread_purchase(payload: AddThreadPurchaseRequest, db: Session = Depends(get_db),
                        settings: Settings = Depends(get_settings)):
    result = InventoryService(db, settings).add_source(
        SourceKind.THREAD_PURCHASE, payload.thread_purchase_id, payload
    )
    return _mint_response(result)


@router.post("/add-dyeing-thread", response_model=MintResponse)
def add_dyeing_thread(payload: AddDyedThreadRequest, db: Session = Depends(get_db),
                      settings: Settings = Depends(get_settings)):
    result = InventoryService(db, settings).add_source(
        SourceKind.DYEING_PROCESS, payload.dyeing_process_id, payload
    )
    return _mint_response(result)


@router.post("/fabric-production", response_model=MintResponse)
def add_fabric_production(payload: AddFabricProductionRequest, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings)):
    result = InventoryService(db, settings).add_source(
        SourceKind.FABRIC_PRODUCTION, payload.fabric_production_id, payload
    )
    return _mint_response(result)


@router.get("/sync-tasks", response_model=list[SyncTaskRead])
def list_sync_tasks(
    status: Optional[SyncTaskStatus] = None,
    source_kind: Optional[SourceKind] = Query(None, alias="sourceKind"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return InventorySyncService(db, settings).list(status, source_kind)


@router.post("/sync-tasks/retry", response_model=list[SyncTaskRead])
def retry_sync_tasks(payload: Optional[SyncRetryRequest] = None, db: Session = Depends(get_db),
                     settings: Settings = Depends(get_settings)):
    """Re-run PENDING and FAILED tasks still below the attempt limit."""
    task_ids = payload.task_ids if payload else None
    return InventorySyncService(db, settings).retry(task_ids)


# Items

@router.get("/{inventory_id}", response_model=InventoryItemRead)
def get_inventory(inventory_id: int, db: Session = Depends(get_db),
                  settings: Settings = Depends(get_settings)):
    return InventoryService(db, settings).get(inventory_id)


@router.put("/{inventory_id}", response_model=InventoryItemRead)
def update_inventory(inventory_id: int, payload: InventoryItemUpdate, db: Session = Depends(get_db),
                     settings: Settings = Depends(get_settings)):
    return InventoryService(db, settings).update(inventory_id, payload)


@router.delete("/{inventory_id}", status_code=204)
def delete_inventory(inventory_id: int, db: Session = Depends(get_db),
                     settings: Settings = Depends(get_settings)):
    """Only items without ledger history can be deleted."""
    InventoryService(db, settings).delete(inventory_id)


@router.get("/{inventory_id}/transactions", response_model=list[TransactionRead])
def list_item_transactions(inventory_id: int, db: Session = Depends(get_db),
                           settings: Settings = Depends(get_settings)):
    return InventoryService(db, settings).item_transactions(inventory_id)


@router.post("/{inventory_id}/transactions", response_model=TransactionResult, status_code=201)
def add_item_transaction(inventory_id: int, payload: TransactionCreate, db: Session = Depends(get_db),
                         settings: Settings = Depends(get_settings)):
    service = InventoryService(db, settings)
    transaction = service.add_transaction(inventory_id, payload)
    item = service.get(inventory_id)
    db.refresh(item)
    return TransactionResult(
        inventory_item=InventoryItemRead.model_validate(item),
        transaction=TransactionRead.model_validate(transaction),
    )
