from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, List
from splitsmart.api.v1.dependencies import get_current_user_id, get_member_group_id
from splitsmart.db.database import get_db
from splitsmart.schemas.ledger_schema import Expense, ExpenseCreate, LedgerEntry, Settlement, SettlementCreate
from splitsmart.schemas.settlement_schema import NetOweSummary, SettleSuggestions
from splitsmart.services.balance_service import compute_balances, get_net_owe
from splitsmart.services.ledger_service import (
    append_expense, append_settlement, get_group_expenses, read_all
)
from splitsmart.services.settlement_service import suggest_settlements

router = APIRouter(prefix="/groups/{group_id}", tags=["ledger"])


@router.post("/expenses", response_model=Expense, status_code=status.HTTP_201_CREATED)
def record_expense(
    expense_data: ExpenseCreate,
    group_id: str = Depends(get_member_group_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Record an expense, paid by the caller unless paid_by is given"""
    return append_expense(
        db,
        group_id,
        expense_data.paid_by or user_id,
        expense_data.amount,
        expense_data.description,
        expense_data.split_between,
    )


@router.post("/settlements", response_model=Settlement, status_code=status.HTTP_201_CREATED)
def record_settlement(
    settlement_data: SettlementCreate,
    group_id: str = Depends(get_member_group_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Record a real payment, made by the caller unless from_user_id is given"""
    return append_settlement(
        db,
        group_id,
        settlement_data.from_user_id or user_id,
        settlement_data.to_user_id,
        settlement_data.amount,
    )


@router.get("/ledger", response_model=List[LedgerEntry])
def get_group_ledger(
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Get every expense and settlement of the group in ledger order"""
    return list(read_all(db, group_id))


@router.get("/expenses", response_model=List[Expense])
def get_group_expenses_list(
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Get all expenses for a group"""
    return get_group_expenses(db, group_id)


@router.get("/balances", response_model=Dict[str, int])
def get_group_balances(
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Get the net balance of every member"""
    return compute_balances(db, group_id)


@router.get("/net-owe", response_model=NetOweSummary)
def get_group_net_owe(
    group_id: str = Depends(get_member_group_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get what the caller owes or is owed by each other member"""
    return get_net_owe(db, group_id, user_id)


@router.get("/settle-suggestions", response_model=SettleSuggestions)
def get_settle_suggestions(
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Get optimized settlement suggestions"""
    return suggest_settlements(db, group_id)
