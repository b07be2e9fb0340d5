"""
Pytest configuration and fixtures for ledger service tests.
"""
import pytest
import jwt
from datetime import datetime, timezone
from typing import Dict, List

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from splitsmart.core.config import settings
from splitsmart.db.database import Base, get_db
from splitsmart.main import app
from splitsmart.schemas.ledger_schema import Expense, Settlement
from splitsmart.services.balance_cache import get_balance_cache
from splitsmart.services.group_service import add_member_to_group, create_group, register_user

# Ids sort alphabetically in the same order as the names
ALICE = "u1-alice"
BOB = "u2-bob"
CAROL = "u3-carol"
DAVE = "u4-dave"

FIXED_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_expense(payer: str, amount: int, participants: List[str], sequence: int = 1) -> Expense:
    """Build an Expense model without touching the database."""
    return Expense(
        id=f"e{sequence}",
        group_id="g1",
        sequence=sequence,
        payer_id=payer,
        amount=amount,
        description="test expense",
        participants=participants,
        created_at=FIXED_TIME,
    )


def make_settlement(payer: str, payee: str, amount: int, sequence: int = 1) -> Settlement:
    """Build a Settlement model without touching the database."""
    return Settlement(
        id=f"s{sequence}",
        group_id="g1",
        sequence=sequence,
        payer_id=payer,
        payee_id=payee,
        amount=amount,
        created_at=FIXED_TIME,
    )


def apply_settlements(balances: Dict[str, int], settlements: List[Dict]) -> Dict[str, int]:
    """
    Replay settlement suggestions the way the ledger records settlements:
    the payer is credited and the payee debited.
    """
    final = dict(balances)
    for settlement in settlements:
        final[settlement["from"]] = final.get(settlement["from"], 0) + settlement["amount"]
        final[settlement["to"]] = final.get(settlement["to"], 0) - settlement["amount"]
    return final


def make_token(user_id: str) -> str:
    return jwt.encode({"user_id": user_id}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"access-token": make_token(user_id)}


@pytest.fixture(autouse=True)
def clear_balance_cache():
    get_balance_cache().clear()
    yield
    get_balance_cache().clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def users(db_session):
    """Alice, Bob, Carol and Dave mirrored from the identity service."""
    register_user(db_session, ALICE, "Alice", "alice@example.com")
    register_user(db_session, BOB, "Bob", "bob@example.com")
    register_user(db_session, CAROL, "Carol", "carol@example.com")
    register_user(db_session, DAVE, "Dave", "dave@example.com")
    return [ALICE, BOB, CAROL, DAVE]


@pytest.fixture
def group(db_session, users):
    """Group G created by Alice with Bob and Carol as members (Dave is not)."""
    group = create_group(db_session, "Trip", ALICE)
    add_member_to_group(db_session, group.id, BOB)
    add_member_to_group(db_session, group.id, CAROL)
    return group.id


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
