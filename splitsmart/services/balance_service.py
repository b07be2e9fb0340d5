import logging
from sqlalchemy.orm import Session
from typing import Dict

from splitsmart.core.config import settings
from splitsmart.core.exceptions import InvariantViolation
from splitsmart.schemas.settlement_schema import NetOwe, NetOweStatus, NetOweSummary
from splitsmart.services.balance_cache import get_balance_cache
from splitsmart.services.group_locks import group_lock
from splitsmart.services.group_service import get_group_member_ids, get_group_members, require_group
from splitsmart.services.ledger_service import read_all
from splitsmart.utils.min_cash_flow import calculate_balances, calculate_pairwise_balances

logger = logging.getLogger(__name__)


def ensure_zero_sum(group_id: str, balances: Dict[str, int]) -> None:
    """Raise InvariantViolation if a group's balances do not sum to zero"""
    total = sum(balances.values())
    if total != 0:
        logger.critical(
            f"Balances of group {group_id} sum to {total} instead of 0: {balances}"
        )
        raise InvariantViolation(
            f"Balances of group {group_id} are not zero-sum (total={total})"
        )


def compute_balances(db: Session, group_id: str) -> Dict[str, int]:
    """
    Calculate the net balance of every member of a group.

    Replays the group's ledger from the start. When BALANCE_CACHE_ENABLED is
    set, the result is reused while the group's last sequence number and
    member count are unchanged; both are read from the database on every
    call, so appends made by other processes are always seen. Cache access
    happens inside the group lock, so a result never reflects half of an
    append.

    Returns:
        Dictionary mapping user_id -> signed balance in minor units.
        Every member is present, including those at zero.

    Raises:
        NotFoundError: If the group does not exist
        InvariantViolation: If the balances do not sum to zero
    """
    require_group(db, group_id)
    cache = get_balance_cache()

    with group_lock(group_id):
        ledger = read_all(db, group_id)
        member_ids = get_group_member_ids(db, group_id)
        version = (ledger.upto_sequence, len(member_ids))

        if settings.BALANCE_CACHE_ENABLED:
            cached = cache.get(group_id, version)
            if cached is not None:
                return cached

        balances = calculate_balances(ledger, member_ids)
        ensure_zero_sum(group_id, balances)

        if settings.BALANCE_CACHE_ENABLED:
            cache.put(group_id, version, balances)

    return dict(balances)


def get_net_owe(db: Session, group_id: str, user_id: str) -> NetOweSummary:
    """
    Show where one member stands with every other member of a group.

    Uses direct obligations (who paid for whom, minus recorded settlements),
    not the simplified suggestions.
    """
    require_group(db, group_id)
    pairs = calculate_pairwise_balances(read_all(db, group_id))

    net_owe = []
    for member in get_group_members(db, group_id):
        if member.id == user_id:
            continue

        owes = pairs.get((user_id, member.id), 0)
        gets = pairs.get((member.id, user_id), 0)
        if owes:
            status, amount = NetOweStatus.you_owe, owes
        elif gets:
            status, amount = NetOweStatus.you_get, gets
        else:
            status, amount = NetOweStatus.settled, 0

        net_owe.append(NetOwe(user_id=member.id, name=member.name, net_amount=amount, status=status))

    return NetOweSummary(group_id=group_id, net_owe=net_owe)
