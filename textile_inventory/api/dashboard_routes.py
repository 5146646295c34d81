from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from textile_inventory.application.dashboard_service import DashboardService
from textile_inventory.application.schemas import DashboardSummary
from textile_inventory.infrastructure.db import get_db

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary)
def dashboard_summary(db: Session = Depends(get_db)):
    return DashboardService(db).summary()
