from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from splitsmart.api.v1.dependencies import get_current_user_id
from splitsmart.db.database import get_db
from splitsmart.schemas.activity_schema import ActivityItem, Dashboard, MonthlyAnalytics
from splitsmart.schemas.group_schema import GroupOut
from splitsmart.schemas.settlement_schema import GroupSettlement
from splitsmart.services.activity_service import (
    get_activity, get_dashboard, get_monthly_summary, simplify_user_debts
)
from splitsmart.services.group_service import get_user_groups

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/groups", response_model=List[GroupOut])
def get_my_groups(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all groups of the caller"""
    return get_user_groups(db, user_id)


@router.get("/dashboard", response_model=Dashboard)
def get_my_dashboard(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return get_dashboard(db, user_id)


@router.get("/activity", response_model=List[ActivityItem])
def get_my_activity(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return get_activity(db, user_id, limit)


@router.get("/analytics/monthly", response_model=MonthlyAnalytics)
def get_my_monthly_analytics(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return get_monthly_summary(db, user_id)


@router.get("/simplify-debts", response_model=List[GroupSettlement])
def get_my_simplified_debts(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Settlement suggestions involving the caller across all groups"""
    return simplify_user_debts(db, user_id)
