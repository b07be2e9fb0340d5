import logging
from collections import defaultdict
from sqlalchemy.orm import Session
from typing import Dict, List

from splitsmart.models.groups import Group, GroupMember
from splitsmart.models.ledger import EntryKind, LedgerEntry
from splitsmart.schemas.activity_schema import ActivityItem, Dashboard, MonthlyAnalytics, MonthlySummary
from splitsmart.schemas.settlement_schema import GroupSettlement
from splitsmart.services.balance_service import compute_balances
from splitsmart.services.group_service import get_user_groups, get_users
from splitsmart.services.ledger_service import read_all
from splitsmart.services.settlement_service import suggest_settlements
from splitsmart.utils.min_cash_flow import split_equally

logger = logging.getLogger(__name__)


def get_dashboard(db: Session, user_id: str) -> Dashboard:
    """Totals of what the user owes and is owed over all of their groups"""
    groups = get_user_groups(db, user_id)
    you_owe = 0
    you_get = 0

    for group in groups:
        balance = compute_balances(db, group.id).get(user_id, 0)
        if balance < 0:
            you_owe += -balance
        else:
            you_get += balance

    return Dashboard(groups=len(groups), you_owe=you_owe, you_get=you_get)


def get_activity(db: Session, user_id: str, limit: int = 50) -> List[ActivityItem]:
    """Most recent ledger entries of the user's groups, newest first"""
    rows = db.query(LedgerEntry, Group.name)\
        .join(Group, Group.id == LedgerEntry.group_id)\
        .join(GroupMember, GroupMember.group_id == Group.id)\
        .filter(GroupMember.user_id == user_id)\
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.sequence.desc(), LedgerEntry.id)\
        .limit(limit).all()

    user_ids = {entry.payer_id for entry, _ in rows} | {entry.payee_id for entry, _ in rows if entry.payee_id}
    names = {user.id: user.name for user in get_users(db, list(user_ids))}

    activity = []
    for entry, group_name in rows:
        payer = names.get(entry.payer_id, entry.payer_id)
        if entry.kind == EntryKind.expense:
            description = entry.description or ""
        else:
            description = f"{payer} paid {names.get(entry.payee_id, entry.payee_id)}"

        activity.append(ActivityItem(
            entry_id=entry.id,
            kind=entry.kind.value,
            group_id=entry.group_id,
            group=group_name,
            description=description,
            paid_by=payer,
            amount=entry.amount,
            created_at=entry.created_at,
        ))

    return activity


def get_monthly_summary(db: Session, user_id: str) -> MonthlyAnalytics:
    """Per calendar month: what the user paid for expenses and their own share"""
    paid: Dict[str, int] = defaultdict(int)
    share: Dict[str, int] = defaultdict(int)

    for group in get_user_groups(db, user_id):
        for entry in read_all(db, group.id):
            if entry.kind != EntryKind.expense.value:
                continue
            month = entry.created_at.strftime("%Y-%m")
            if entry.payer_id == user_id:
                paid[month] += entry.amount
            if user_id in entry.participants:
                share[month] += split_equally(entry.amount, entry.participants)[user_id]

    months = sorted(set(paid) | set(share))
    return MonthlyAnalytics(months=[
        MonthlySummary(month=month, total_paid=paid[month], total_share=share[month])
        for month in months
    ])


def simplify_user_debts(db: Session, user_id: str) -> List[GroupSettlement]:
    """Settlement suggestions involving the user, from each of their groups"""
    suggestions = []
    for group in get_user_groups(db, user_id):
        for transaction in suggest_settlements(db, group.id).transactions:
            if user_id in (transaction.from_user_id, transaction.to_user_id):
                suggestions.append(GroupSettlement(group_id=group.id, **transaction.model_dump()))
    return suggestions
