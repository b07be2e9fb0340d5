from pydantic import BaseModel, Field
from typing import Optional, List, Union, Literal, Annotated
from datetime import datetime


class ExpenseCreate(BaseModel):
    amount: int = Field(..., gt=0, strict=True, description="Amount in minor currency units")
    description: str = Field(..., min_length=1, max_length=255)
    split_between: List[str] = Field(..., min_length=1)
    # Defaults to the caller when omitted
    paid_by: Optional[str] = None


class SettlementCreate(BaseModel):
    to_user_id: str
    amount: int = Field(..., gt=0, strict=True, description="Amount in minor currency units")
    # Defaults to the caller when omitted
    from_user_id: Optional[str] = None


class Expense(BaseModel):
    kind: Literal["expense"] = "expense"
    id: str
    group_id: str
    sequence: int
    payer_id: str
    amount: int
    description: str
    participants: List[str]
    created_at: datetime


class Settlement(BaseModel):
    kind: Literal["settlement"] = "settlement"
    id: str
    group_id: str
    sequence: int
    payer_id: str
    payee_id: str
    amount: int
    created_at: datetime


LedgerEntry = Annotated[Union[Expense, Settlement], Field(discriminator="kind")]
