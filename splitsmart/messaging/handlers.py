import logging
from typing import Any, Dict
from sqlalchemy.orm import Session
from splitsmart.core.exceptions import NotFoundError, ValidationError
from splitsmart.services.group_service import (
    add_member_to_group, get_user, is_group_member, register_user, require_group
)

logger = logging.getLogger(__name__)

USER_REGISTERED = "user.registered"
GROUP_MEMBER_ADDED = "group.member.added"


class MalformedMessageError(Exception):
    """Raised when an identity event cannot be applied as sent."""
    pass


class RetryLaterError(Exception):
    """Raised when an identity event refers to data that has not arrived yet."""
    pass


def handle_identity_event(db: Session, message_data: Dict[str, Any]) -> None:
    """
    Apply one event published by the identity service.

    Events are applied idempotently, so a redelivered message is harmless.
    Events may arrive out of order: a membership for a user whose
    registration has not been applied yet is kept for redelivery.

    Supported events:
        user.registered     {"user_id", "name", "email"}
        group.member.added  {"group_id", "user_id"}

    Raises:
        MalformedMessageError: If the event is unknown, incomplete or invalid
        RetryLaterError: If the member's user is not registered yet
    """
    event = message_data.get("event")
    data = message_data.get("data") or {}

    try:
        if event == USER_REGISTERED:
            register_user(db, data["user_id"], data["name"], data["email"])
        elif event == GROUP_MEMBER_ADDED:
            group_id, user_id = data["group_id"], data["user_id"]
            require_group(db, group_id)
            if get_user(db, user_id) is None:
                raise RetryLaterError(f"User {user_id} of group {group_id} is not registered yet")
            if is_group_member(db, group_id, user_id):
                logger.info(f"User {user_id} already in group {group_id}, skipping")
                return
            add_member_to_group(db, group_id, user_id)
        else:
            raise MalformedMessageError(f"Unknown identity event: {event!r}")
    except KeyError as e:
        raise MalformedMessageError(f"Event {event} is missing field {e}")
    except (ValidationError, NotFoundError) as e:
        raise MalformedMessageError(f"Event {event} rejected: {e.detail}")

    logger.info(f"Applied identity event {event}")
