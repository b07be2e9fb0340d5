from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from splitsmart.db.database import get_db
from splitsmart.services.auth.jwt_handler import get_current_user
from splitsmart.services.group_service import is_group_member, require_group


def get_current_user_id(access_token: str = Header(..., description="Access token (without Bearer)")) -> str:
    """Extract current user ID from JWT token"""
    if access_token.startswith("Bearer "):
        access_token = access_token.replace("Bearer ", "", 1)
    user_id = get_current_user(access_token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


def get_member_group_id(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> str:
    """Resolve a group the caller belongs to (404 if missing, 403 if not a member)"""
    require_group(db, group_id)
    if not is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")
    return group_id
