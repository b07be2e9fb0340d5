"""
Ledger service.

The ledger is the append-only, per-group record of expenses and
settlements and the only source of truth for balances. Entries are never
updated or deleted. Appends are the only mutation point of the whole
service: each one runs inside the group's exclusive section and a single
database transaction, so it is either fully visible or not at all.
"""
import logging
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Iterator, List, Optional, Union

from splitsmart.core.config import settings
from splitsmart.core.exceptions import ConcurrencyError, ValidationError
from splitsmart.models.ledger import EntryKind, ExpenseParticipant, LedgerEntry
from splitsmart.schemas.ledger_schema import Expense, Settlement
from splitsmart.services.balance_cache import get_balance_cache
from splitsmart.services.group_locks import group_lock
from splitsmart.services.group_service import get_group_member_ids, require_group

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 255

SEQUENCE_CONSTRAINT = "uq_ledger_group_sequence"
SEQUENCE_COLUMNS = "ledger_entries.group_id, ledger_entries.sequence"


class LedgerSnapshot:
    """
    Lazy, restartable view of a group's ledger.

    The snapshot is bounded by the last sequence number that existed when it
    was taken, so it is finite even while new entries are appended. Every
    iteration starts again from the first entry and fetches rows in pages.
    The session it was created with must stay open while iterating.
    """

    def __init__(self, db: Session, group_id: str, upto_sequence: int, page_size: Optional[int] = None):
        self.db = db
        self.group_id = group_id
        self.upto_sequence = upto_sequence
        self.page_size = page_size or settings.LEDGER_PAGE_SIZE

    def __iter__(self) -> Iterator[Union[Expense, Settlement]]:
        last_sequence = 0
        while last_sequence < self.upto_sequence:
            rows = self.db.query(LedgerEntry).filter(
                LedgerEntry.group_id == self.group_id,
                LedgerEntry.sequence > last_sequence,
                LedgerEntry.sequence <= self.upto_sequence,
            ).order_by(LedgerEntry.sequence).limit(self.page_size).all()

            if not rows:
                return
            for row in rows:
                yield to_domain(row)
            last_sequence = rows[-1].sequence

    def __len__(self) -> int:
        return self.db.query(func.count(LedgerEntry.id)).filter(
            LedgerEntry.group_id == self.group_id,
            LedgerEntry.sequence <= self.upto_sequence,
        ).scalar() or 0


def to_domain(row: LedgerEntry) -> Union[Expense, Settlement]:
    """Convert a ledger row to its Expense or Settlement model"""
    if row.kind == EntryKind.expense:
        return Expense(
            id=row.id,
            group_id=row.group_id,
            sequence=row.sequence,
            payer_id=row.payer_id,
            amount=row.amount,
            description=row.description or "",
            participants=[p.user_id for p in row.participants],
            created_at=row.created_at,
        )
    return Settlement(
        id=row.id,
        group_id=row.group_id,
        sequence=row.sequence,
        payer_id=row.payer_id,
        payee_id=row.payee_id,
        amount=row.amount,
        created_at=row.created_at,
    )


def _validate_amount(amount) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer number of minor units, got {amount!r}")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")


def _last_sequence(db: Session, group_id: str) -> int:
    return db.query(func.max(LedgerEntry.sequence))\
        .filter(LedgerEntry.group_id == group_id).scalar() or 0


def _is_sequence_conflict(error: IntegrityError) -> bool:
    # PostgreSQL names the constraint, SQLite lists its columns
    message = str(error.orig)
    return SEQUENCE_CONSTRAINT in message or SEQUENCE_COLUMNS in message


def _commit_append(db: Session, group_id: str, entry: LedgerEntry) -> LedgerEntry:
    """
    Append a prepared entry at the end of the group's ledger.

    Runs inside the group lock. If another process takes the same sequence
    number first, the transaction is rolled back and the append retried
    with the next free number, up to LEDGER_APPEND_MAX_RETRIES times.
    """
    attempts = max(1, settings.LEDGER_APPEND_MAX_RETRIES)

    with group_lock(group_id):
        for attempt in range(1, attempts + 1):
            entry.sequence = _last_sequence(db, group_id) + 1
            db.add(entry)
            try:
                db.commit()
                break
            except IntegrityError as e:
                db.rollback()
                if not _is_sequence_conflict(e):
                    raise
                logger.warning(
                    f"Sequence {entry.sequence} of group {group_id} already taken, "
                    f"append attempt {attempt}/{attempts}"
                )
            except Exception:
                db.rollback()
                raise
        else:
            raise ConcurrencyError(f"Concurrent appends to group {group_id}, retry the request")

        get_balance_cache().invalidate(group_id)

    db.refresh(entry)
    return entry


def append_expense(
    db: Session,
    group_id: str,
    payer_id: str,
    amount: int,
    description: str,
    participants: List[str],
) -> Expense:
    """Record an expense paid by ``payer_id`` and shared by ``participants``"""
    require_group(db, group_id)
    _validate_amount(amount)

    participants = list(participants or [])
    if not participants:
        raise ValidationError("An expense must be split between at least one participant")
    if len(participants) != len(set(participants)):
        raise ValidationError("Duplicate users found in split")

    description = (description or "").strip()
    if not description:
        raise ValidationError("Description is required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")

    # Membership only grows, so these checks stay valid once passed
    members = set(get_group_member_ids(db, group_id))
    if payer_id not in members:
        raise ValidationError(f"Payer {payer_id} is not a member of this group")
    outsiders = sorted(p for p in participants if p not in members)
    if outsiders:
        raise ValidationError(f"Users {', '.join(outsiders)} are not members of this group")

    entry = LedgerEntry(
        group_id=group_id,
        kind=EntryKind.expense,
        payer_id=payer_id,
        amount=amount,
        description=description,
    )
    entry.participants = [ExpenseParticipant(user_id=user_id) for user_id in sorted(participants)]

    entry = _commit_append(db, group_id, entry)

    logger.info(
        f"Recorded expense {entry.id} #{entry.sequence} in group {group_id}: "
        f"{payer_id} paid {amount} for {len(participants)} participants"
    )
    return to_domain(entry)


def append_settlement(db: Session, group_id: str, payer_id: str, payee_id: str, amount: int) -> Settlement:
    """Record a real payment from ``payer_id`` to ``payee_id``"""
    require_group(db, group_id)
    _validate_amount(amount)

    if payer_id == payee_id:
        raise ValidationError("A user cannot settle with themselves")

    members = set(get_group_member_ids(db, group_id))
    if payer_id not in members:
        raise ValidationError(f"Payer {payer_id} is not a member of this group")
    if payee_id not in members:
        raise ValidationError(f"Payee {payee_id} is not a member of this group")

    entry = LedgerEntry(
        group_id=group_id,
        kind=EntryKind.settlement,
        payer_id=payer_id,
        payee_id=payee_id,
        amount=amount,
    )

    entry = _commit_append(db, group_id, entry)

    logger.info(
        f"Recorded settlement {entry.id} #{entry.sequence} in group {group_id}: "
        f"{payer_id} paid {payee_id} {amount}"
    )
    return to_domain(entry)


def read_all(db: Session, group_id: str) -> LedgerSnapshot:
    """Get the group's ledger, in insertion order, as of now"""
    require_group(db, group_id)
    return LedgerSnapshot(db, group_id, _last_sequence(db, group_id))


def get_group_expenses(db: Session, group_id: str) -> List[Expense]:
    """Get all expenses for a group, in ledger order"""
    return [entry for entry in read_all(db, group_id) if entry.kind == EntryKind.expense.value]


def get_group_settlements(db: Session, group_id: str) -> List[Settlement]:
    """Get all recorded settlements for a group, in ledger order"""
    return [entry for entry in read_all(db, group_id) if entry.kind == EntryKind.settlement.value]
