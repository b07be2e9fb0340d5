import jwt
from typing import Optional
from splitsmart.core.config import settings


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_current_user(token: str) -> Optional[str]:
    """Extract user_id from a token issued by the identity service"""
    payload = decode_access_token(token)
    if not payload:
        return None
    user_id = payload.get("user_id")
    return str(user_id) if user_id is not None else None
