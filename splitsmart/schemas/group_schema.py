from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class GroupMemberCreate(BaseModel):
    user_id: str


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_by: str
    created_at: datetime


class GroupWithMembers(GroupOut):
    members: List[UserOut] = []
