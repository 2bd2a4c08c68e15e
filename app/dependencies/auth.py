from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.errors import AuthError
from app.core.security import decode_access_token
from app.database.connection import get_db
from app.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> str:
    """
    Resolve the bearer token to a user id before any checkout data is read.
    Every failure is the same 401 so callers learn nothing about which check failed.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError()

    token_data = decode_access_token(credentials.credentials)
    if not token_data.user_id:
        raise AuthError()

    user = get_user_by_id(db, token_data.user_id)
    if not user or not user.is_active:
        raise AuthError()
    return user.id
