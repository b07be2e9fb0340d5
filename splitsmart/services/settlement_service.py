import logging
from sqlalchemy.orm import Session
from typing import Dict, List, Optional

from splitsmart.schemas.settlement_schema import OptimizedSettlement, SettleSuggestions
from splitsmart.services.balance_service import compute_balances
from splitsmart.services.group_service import get_users
from splitsmart.utils.min_cash_flow import min_cash_flow

logger = logging.getLogger(__name__)


def optimize_settlements(balances: Dict[str, int], names: Optional[Dict[str, str]] = None) -> List[OptimizedSettlement]:
    """
    Optimize settlements using Min-Cash-Flow algorithm.

    Applies the greedy matching to a balance map and converts the result to
    OptimizedSettlement models. Nothing is recorded: a suggestion only
    becomes a settlement when a user records it.

    Args:
        balances: Dictionary mapping user_id -> net balance
        names: Optional user_id -> display name lookup

    Returns:
        List of OptimizedSettlement objects representing minimal transactions
    """
    names = names or {}
    return [
        OptimizedSettlement(
            from_user_id=settlement["from"],
            to_user_id=settlement["to"],
            amount=settlement["amount"],
            from_name=names.get(settlement["from"]),
            to_name=names.get(settlement["to"]),
        )
        for settlement in min_cash_flow(balances)
    ]


def suggest_settlements(db: Session, group_id: str) -> SettleSuggestions:
    """Get settlement suggestions that would zero every balance of a group"""
    balances = compute_balances(db, group_id)
    names = {user.id: user.name for user in get_users(db, list(balances))}

    transactions = optimize_settlements(balances, names)
    logger.debug(f"Suggested {len(transactions)} settlements for group {group_id}")
    return SettleSuggestions(group_id=group_id, transactions=transactions)
