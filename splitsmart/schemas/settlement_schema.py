from pydantic import BaseModel
from typing import Optional, List
from enum import Enum


class OptimizedSettlement(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: int
    from_name: Optional[str] = None
    to_name: Optional[str] = None


class SettleSuggestions(BaseModel):
    group_id: str
    transactions: List[OptimizedSettlement] = []


class NetOweStatus(str, Enum):
    you_owe = "you_owe"
    you_get = "you_get"
    settled = "settled"


class NetOwe(BaseModel):
    user_id: str
    name: str
    net_amount: int  # always non-negative, direction is in status
    status: NetOweStatus


class NetOweSummary(BaseModel):
    group_id: str
    net_owe: List[NetOwe] = []


class GroupSettlement(OptimizedSettlement):
    group_id: str
