"""
Min-Cash-Flow Algorithm Module

This module turns a group's ledger into net balances and reduces those
balances to a short list of settlement transactions.

All amounts are integers in minor currency units (cents), so every
computation here is exact and the balances of a group always sum to zero.

The algorithm works by:
1. Replaying the ledger: an expense credits its payer and debits each
   participant's share, a settlement credits the payer and debits the payee
2. Separating users into creditors (positive balance) and debtors (negative balance)
3. Repeatedly matching the largest creditor with the largest debtor
4. Re-ordering the remaining parties after every transfer

Finding the true minimum number of transactions is NP-hard; the greedy
matching here is bounded by (number of non-zero balances - 1) transactions.

Time Complexity: O(n log n) per transfer with a heap, O(n log n) overall
Space Complexity: O(n)

Example Usage:
    from splitsmart.utils.min_cash_flow import calculate_balances, min_cash_flow

    balances = calculate_balances(entries, members=["alice", "bob", "carol"])
    settlements = min_cash_flow(balances)

    # Result: [{"from": "carol", "to": "alice", "amount": 300}, ...]
"""

import heapq
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from splitsmart.core.exceptions import ValidationError
from splitsmart.models.ledger import EntryKind

logger = logging.getLogger(__name__)


def split_equally(amount: int, participants: Iterable[str]) -> Dict[str, int]:
    """
    Split an amount between participants without losing a single unit.

    Every participant gets ``amount // count``. The remainder
    (``amount % count``) is handed out one unit at a time to participants in
    ascending user-id order, so the shares always add up to ``amount``.

    Args:
        amount: Amount in minor units
        participants: User ids sharing the amount (duplicates are ignored)

    Returns:
        Dictionary mapping user_id -> share

    Raises:
        ValidationError: If there are no participants

    Example:
        >>> split_equally(1000, ["carol", "alice", "bob"])
        {'alice': 334, 'bob': 333, 'carol': 333}
    """
    ordered = sorted(set(participants))
    if not ordered:
        raise ValidationError("Cannot split an amount between zero participants")

    base, remainder = divmod(amount, len(ordered))
    return {
        user_id: base + (1 if index < remainder else 0)
        for index, user_id in enumerate(ordered)
    }


def validate_balance_sum(balances: Dict[str, int]) -> None:
    """
    Validate that balances are integers summing to exactly zero.

    Money is neither created nor destroyed by the ledger, so a balance map
    that does not sum to zero is a caller contract violation.

    Raises:
        ValidationError: If a value is not an int or the sum is not zero
    """
    for user_id, balance in balances.items():
        if isinstance(balance, bool) or not isinstance(balance, int):
            raise ValidationError(
                f"Balance for {user_id} must be an integer amount, got {balance!r}"
            )

    total = sum(balances.values())
    if total != 0:
        raise ValidationError(
            f"Balances not zero-sum: total={total}. "
            f"This indicates unbalanced ledger data."
        )


def calculate_balances(entries: Iterable, members: Iterable[str] = ()) -> Dict[str, int]:
    """
    Calculate the net balance of every member from a ledger.

    Net balance = what the user paid out - what the user consumed
    - Positive balance: User is owed money (creditor)
    - Negative balance: User owes money (debtor)

    Entries are processed in the order given. Each entry is an ``Expense``
    or ``Settlement`` model (see ``splitsmart.schemas.ledger_schema``):

    - Expense: payer += amount, each participant -= their share
    - Settlement: payer += amount, payee -= amount

    Args:
        entries: Ledger entries in ledger order
        members: Group members; each starts at 0 even without any activity

    Returns:
        Dictionary mapping user_id -> net_balance (int)

    Example:
        >>> balances = calculate_balances(entries, members=["alice", "bob", "carol"])
        >>> balances
        {'alice': 600, 'bob': -300, 'carol': -300}
    """
    balances: Dict[str, int] = {user_id: 0 for user_id in members}

    for entry in entries:
        balances[entry.payer_id] = balances.get(entry.payer_id, 0) + entry.amount

        if entry.kind == EntryKind.expense.value:
            for user_id, share in split_equally(entry.amount, entry.participants).items():
                balances[user_id] = balances.get(user_id, 0) - share
        else:
            balances[entry.payee_id] = balances.get(entry.payee_id, 0) - entry.amount

    return balances


def calculate_pairwise_balances(entries: Iterable) -> Dict[Tuple[str, str], int]:
    """
    Calculate who owes whom directly, without any simplification.

    Each participant of an expense owes the payer their share; a settlement
    reduces what the payer owes the payee. Opposite directions are netted,
    so each unordered pair appears at most once, keyed as
    ``(debtor, creditor)`` with a positive amount.
    """
    owed: Dict[Tuple[str, str], int] = {}

    def _move(debtor: str, creditor: str, amount: int) -> None:
        if debtor == creditor or amount == 0:
            return
        reverse = owed.pop((creditor, debtor), 0)
        net = owed.pop((debtor, creditor), 0) + amount - reverse
        if net > 0:
            owed[(debtor, creditor)] = net
        elif net < 0:
            owed[(creditor, debtor)] = -net

    for entry in entries:
        if entry.kind == EntryKind.expense.value:
            for user_id, share in split_equally(entry.amount, entry.participants).items():
                _move(user_id, entry.payer_id, share)
        else:
            # Paying someone is the same as them now owing you that amount
            _move(entry.payee_id, entry.payer_id, entry.amount)

    return owed


def _ordered_heaps(balances: Dict[str, int]) -> Tuple[List[Tuple[int, str]], List[Tuple[int, str]]]:
    # Heap keys: (-magnitude, user_id) gives largest first, ties by ascending id
    creditors = [(-balance, user_id) for user_id, balance in balances.items() if balance > 0]
    debtors = [(balance, user_id) for user_id, balance in balances.items() if balance < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)
    return creditors, debtors


def min_cash_flow(balances: Dict[str, int]) -> List[Dict]:
    """
    Minimize the number of transactions needed to settle all debts.

    Uses a greedy algorithm that:
    1. Separates users into creditors (positive balance) and debtors (negative balance)
    2. Orders both by magnitude (largest first), ties broken by ascending user id
    3. Matches the largest creditor with the largest debtor
    4. Transfers the minimum of their amounts
    5. Puts any party with a remaining balance back in order and repeats

    Edge Cases Handled:
    - Empty map or a single user: returns []
    - All balances are zero: returns []
    - Sum of balances != 0: raises ValidationError

    Args:
        balances: Dictionary mapping user_id -> net_balance (int)

    Returns:
        List of settlement transactions, each with format:
        [{"from": str, "to": str, "amount": int}, ...]

    Raises:
        ValidationError: If balances are not integers summing to zero

    Example:
        >>> min_cash_flow({"A": 80, "B": -10, "C": -70})
        [{'from': 'C', 'to': 'A', 'amount': 70}, {'from': 'B', 'to': 'A', 'amount': 10}]
    """
    settlements, _ = _match(balances, logs=None)
    return settlements


def min_cash_flow_detailed(balances: Dict[str, int]) -> Tuple[List[Dict], List[str]]:
    """
    Minimize transactions and describe each matching step.

    Same algorithm as min_cash_flow(), but also returns a log of the
    matching process. Useful for debugging and for explaining a suggestion
    to a user.

    Returns:
        Tuple of (settlements_list, detailed_logs_list)
    """
    logs: List[str] = ["Min-Cash-Flow Algorithm - Detailed Workflow",
                       f"Initial balances: {balances}"]
    settlements, logs = _match(balances, logs=logs)
    logs.append(f"Total settlements: {len(settlements)}")
    return settlements, logs


def _match(balances: Dict[str, int], logs: Optional[List[str]]) -> Tuple[List[Dict], List[str]]:
    logs = logs if logs is not None else []
    validate_balance_sum(balances)

    creditors, debtors = _ordered_heaps(balances)
    if not creditors or not debtors:
        logs.append("All balances are zero. No settlements needed.")
        return [], logs

    max_transactions = len(creditors) + len(debtors) - 1
    settlements: List[Dict] = []

    while creditors and debtors:
        neg_credit, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_id = heapq.heappop(debtors)
        credit_amount, debt_amount = -neg_credit, -neg_debt

        amount = min(credit_amount, debt_amount)
        settlements.append({"from": debtor_id, "to": creditor_id, "amount": amount})
        logs.append(
            f"Step {len(settlements)}: {debtor_id} (debt: {debt_amount}) pays "
            f"{creditor_id} (credit: {credit_amount}) {amount}"
        )

        if credit_amount > amount:
            heapq.heappush(creditors, (-(credit_amount - amount), creditor_id))
        if debt_amount > amount:
            heapq.heappush(debtors, (-(debt_amount - amount), debtor_id))

    if len(settlements) > max_transactions:
        # Each step settles at least one party, so this cannot happen
        raise RuntimeError(
            f"Settlement produced {len(settlements)} transactions for "
            f"{max_transactions + 1} non-zero balances"
        )

    logger.debug(f"Matched {len(settlements)} settlements for {max_transactions + 1} parties")
    return settlements, logs
