import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from splitsmart.core.exceptions import NotFoundError, ValidationError
from splitsmart.models.groups import Group, GroupMember, User
from splitsmart.services.balance_cache import get_balance_cache
from splitsmart.services.group_locks import group_lock

logger = logging.getLogger(__name__)


def register_user(db: Session, user_id: str, name: str, email: str) -> User:
    """Mirror a user from the identity service.

    Re-registering the same id updates name and email. An email already
    used by another user id is rejected.
    """
    if not user_id or not name or not email:
        raise ValidationError("User id, name and email are required")
    email = email.strip().lower()

    owner = db.query(User).filter(User.email == email).first()
    if owner and owner.id != user_id:
        raise ValidationError(f"Email {email} is already registered to another user")

    user = get_user(db, user_id)
    if user:
        user.name = name
        user.email = email
    else:
        user = User(id=user_id, name=name, email=email)
        db.add(user)

    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user_id}")
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get a user by ID"""
    return db.query(User).filter(User.id == user_id).first()


def get_users(db: Session, user_ids: List[str]) -> List[User]:
    """Get users by ID, ordered by ID"""
    if not user_ids:
        return []
    return db.query(User).filter(User.id.in_(user_ids)).order_by(User.id).all()


def create_group(db: Session, name: str, created_by: str) -> Group:
    """Create a group whose only member is its creator"""
    if not get_user(db, created_by):
        raise NotFoundError(f"User {created_by} not found")

    name = (name or "").strip()
    if not name:
        raise ValidationError("Group name is required")

    group = Group(name=name, created_by=created_by)
    db.add(group)
    db.flush()
    db.add(GroupMember(group_id=group.id, user_id=created_by))
    db.commit()
    db.refresh(group)

    logger.info(f"Created group {group.id} for user {created_by}")
    return group


def get_group(db: Session, group_id: str) -> Optional[Group]:
    """Get a group by ID"""
    return db.query(Group).filter(Group.id == group_id).first()


def require_group(db: Session, group_id: str) -> Group:
    """Get a group by ID or raise NotFoundError"""
    group = get_group(db, group_id)
    if not group:
        raise NotFoundError(f"Group {group_id} not found")
    return group


def get_group_member_ids(db: Session, group_id: str) -> List[str]:
    """Get the user ids of all group members, ordered by ID"""
    rows = db.query(GroupMember.user_id)\
        .filter(GroupMember.group_id == group_id)\
        .order_by(GroupMember.user_id).all()
    return [row[0] for row in rows]


def get_group_members(db: Session, group_id: str) -> List[User]:
    """Get all members of a group"""
    return get_users(db, get_group_member_ids(db, group_id))


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    """Check if a user is a member of a group"""
    return db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    ).first() is not None


def get_user_groups(db: Session, user_id: str) -> List[Group]:
    """Get all groups for a user"""
    return db.query(Group).join(GroupMember, GroupMember.group_id == Group.id)\
        .filter(GroupMember.user_id == user_id)\
        .order_by(Group.created_at, Group.id).all()


def add_member_to_group(db: Session, group_id: str, user_id: str) -> GroupMember:
    """Add a member to a group"""
    require_group(db, group_id)
    if not get_user(db, user_id):
        raise NotFoundError(f"User {user_id} not found")

    if is_group_member(db, group_id, user_id):
        raise ValidationError(f"User {user_id} is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    # New members start at zero, so cached balances of the group are stale
    with group_lock(group_id):
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent add of the same member
            db.rollback()
            raise ValidationError(f"User {user_id} is already a member of this group")
        get_balance_cache().invalidate(group_id)
    db.refresh(member)

    logger.info(f"Added user {user_id} to group {group_id}")
    return member
