from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from textile_inventory.application.dyeing_service import DyeingService
from textile_inventory.application.fabric_service import FabricProductionService
from textile_inventory.application.schemas import (
    DyeingProcessCreate,
    DyeingProcessRead,
    DyeingProcessUpdate,
    DyeingProcessUpdateRead,
    FabricProductionCreate,
    FabricProductionRead,
    FabricProductionUpdate,
    FabricProductionUpdateRead,
    ThreadPurchaseCreate,
    ThreadPurchaseRead,
    ThreadPurchaseUpdate,
)
from textile_inventory.application.thread_purchase_service import ThreadPurchaseService
from textile_inventory.core_settings import Settings, get_settings
from textile_inventory.domain.models import (
    ColorStatus,
    DyeingResultStatus,
    InventorySyncTask,
    ProductionStatus,
    SyncTaskStatus,
)
from textile_inventory.infrastructure.db import get_db

router = APIRouter(prefix="/api", tags=["production"])


def _sync_outcome(task: Optional[InventorySyncTask]) -> dict:
    if task is None:
        return {}
    return {
        "inventory_success": task.status == SyncTaskStatus.DONE.value,
        "inventory_item_id": task.inventory_id,
        "inventory_error": task.last_error,
    }


# Thread purchases

@router.get("/thread-purchases", response_model=list[ThreadPurchaseRead])
def list_thread_purchases(
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    received: Optional[bool] = None,
    color_status: Optional[ColorStatus] = Query(None, alias="colorStatus"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return ThreadPurchaseService(db, settings).list(vendor_id, received, color_status)


@router.post("/thread-purchases", response_model=ThreadPurchaseRead, status_code=201)
def create_thread_purchase(payload: ThreadPurchaseCreate, db: Session = Depends(get_db),
                           settings: Settings = Depends(get_settings)):
    return ThreadPurchaseService(db, settings).create(payload)


@router.patch("/thread-purchases", response_model=ThreadPurchaseRead)
def update_thread_purchase(payload: ThreadPurchaseUpdate, db: Session = Depends(get_db),
                           settings: Settings = Depends(get_settings)):
    return ThreadPurchaseService(db, settings).update(payload)


@router.get("/thread-purchases/{purchase_id}", response_model=ThreadPurchaseRead)
def get_thread_purchase(purchase_id: int, db: Session = Depends(get_db),
                        settings: Settings = Depends(get_settings)):
    return ThreadPurchaseService(db, settings).get(purchase_id)


@router.delete("/thread-purchases/{purchase_id}", status_code=204)
def delete_thread_purchase(purchase_id: int, db: Session = Depends(get_db),
                           settings: Settings = Depends(get_settings)):
    ThreadPurchaseService(db, settings).delete(purchase_id)


# Dyeing

@router.get("/dyeing/process", response_model=list[DyeingProcessRead])
def list_dyeing_processes(
    thread_purchase_id: Optional[int] = Query(None, alias="threadPurchaseId"),
    result_status: Optional[DyeingResultStatus] = Query(None, alias="resultStatus"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return DyeingService(db, settings).list(thread_purchase_id, result_status)


@router.post("/dyeing/process", response_model=DyeingProcessRead, status_code=201)
def create_dyeing_process(payload: DyeingProcessCreate, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings)):
    return DyeingService(db, settings).create(payload)


@router.get("/dyeing/process/{dyeing_id}", response_model=DyeingProcessRead)
def get_dyeing_process(dyeing_id: int, db: Session = Depends(get_db),
                       settings: Settings = Depends(get_settings)):
    return DyeingService(db, settings).get(dyeing_id)


@router.patch("/dyeing/process/{dyeing_id}", response_model=DyeingProcessUpdateRead)
def update_dyeing_process(dyeing_id: int, payload: DyeingProcessUpdate, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings)):
    """Completing a run with ``addToInventory`` queues and runs its inventory sync."""
    dyeing, task = DyeingService(db, settings).update(dyeing_id, payload)
    response = DyeingProcessUpdateRead.model_validate(dyeing)
    return response.model_copy(update=_sync_outcome(task))


@router.delete("/dyeing/process/{dyeing_id}", status_code=204)
def delete_dyeing_process(dyeing_id: int, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings)):
    DyeingService(db, settings).delete(dyeing_id)


# Fabric production

@router.get("/fabric/production", response_model=list[FabricProductionRead])
def list_fabric_production(
    source_thread_id: Optional[int] = Query(None, alias="sourceThreadId"),
    status: Optional[ProductionStatus] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return FabricProductionService(db, settings).list(source_thread_id, status)


@router.post("/fabric/production", response_model=FabricProductionRead, status_code=201)
def create_fabric_production(payload: FabricProductionCreate, db: Session = Depends(get_db),
                             settings: Settings = Depends(get_settings)):
    return FabricProductionService(db, settings).create(payload)


@router.get("/fabric/production/{production_id}", response_model=FabricProductionRead)
def get_fabric_production(production_id: int, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings)):
    return FabricProductionService(db, settings).get(production_id)


@router.put("/fabric/production/{production_id}", response_model=FabricProductionUpdateRead)
def update_fabric_production(production_id: int, payload: FabricProductionUpdate,
                             db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    production, task = FabricProductionService(db, settings).update(production_id, payload)
    response = FabricProductionUpdateRead.model_validate(production)
    return response.model_copy(update=_sync_outcome(task))


@router.delete("/fabric/production/{production_id}", status_code=204)
def delete_fabric_production(production_id: int, db: Session = Depends(get_db),
                             settings: Settings = Depends(get_settings)):
    FabricProductionService(db, settings).delete(production_id)
