from pydantic import BaseModel
from typing import List
from datetime import datetime


class Dashboard(BaseModel):
    groups: int
    you_owe: int
    you_get: int


class ActivityItem(BaseModel):
    entry_id: str
    kind: str
    group_id: str
    group: str
    description: str
    paid_by: str
    amount: int
    created_at: datetime


class MonthlySummary(BaseModel):
    month: str  # YYYY-MM
    total_paid: int
    total_share: int


class MonthlyAnalytics(BaseModel):
    months: List[MonthlySummary] = []
