import enum
import uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, BigInteger, Integer, UniqueConstraint
from splitsmart.db.database import Base


class EntryKind(str, enum.Enum):
    expense = "expense"
    settlement = "settlement"


class LedgerEntry(Base):
    """One immutable financial fact in a group's ledger.

    Expenses use payer_id, amount, description and participants.
    Settlements use payer_id, payee_id and amount.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (UniqueConstraint("group_id", "sequence", name="uq_ledger_group_sequence"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # 1-based position within the group
    kind = Column(Enum(EntryKind), nullable=False)
    payer_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    payee_id = Column(String, ForeignKey("users.id"), nullable=True)
    amount = Column(BigInteger, nullable=False)  # minor currency units
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    participants = relationship(
        "ExpenseParticipant",
        lazy="selectin",
        order_by="ExpenseParticipant.user_id",
        cascade="all, delete-orphan",
    )


class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"
    __table_args__ = (UniqueConstraint("entry_id", "user_id", name="uq_expense_participant"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    entry_id = Column(String, ForeignKey("ledger_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
