from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from splitsmart.api.v1.dependencies import get_current_user_id, get_member_group_id
from splitsmart.db.database import get_db
from splitsmart.schemas.group_schema import GroupCreate, GroupMemberCreate, GroupOut, GroupWithMembers, UserOut
from splitsmart.services.group_service import (
    add_member_to_group, create_group, get_group, get_group_members
)

router = APIRouter(prefix="/groups", tags=["groups"])


def _with_members(db: Session, group_id: str) -> GroupWithMembers:
    group = get_group(db, group_id)
    return GroupWithMembers(
        id=group.id,
        name=group.name,
        created_by=group.created_by,
        created_at=group.created_at,
        members=[UserOut.model_validate(user) for user in get_group_members(db, group_id)],
    )


@router.post("", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_new_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new group with the caller as its only member"""
    return create_group(db, group_data.name, user_id)


@router.get("/{group_id}", response_model=GroupWithMembers)
def get_group_details(
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Get group details with members"""
    return _with_members(db, group_id)


@router.post("/{group_id}/members", response_model=GroupWithMembers, status_code=status.HTTP_201_CREATED)
def add_group_member(
    member_data: GroupMemberCreate,
    group_id: str = Depends(get_member_group_id),
    db: Session = Depends(get_db)
):
    """Add a member to a group (any member may invite)"""
    add_member_to_group(db, group_id, member_data.user_id)
    return _with_members(db, group_id)
