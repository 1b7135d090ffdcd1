from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from habitflow import crud
from habitflow.db import get_db
from habitflow.errors import HabitError, NotFound, VersionConflict
from habitflow.models.user import User
from habitflow.security import service_key_matches


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if not service_key_matches(x_api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", 1)[1].strip()
    return token or None


def get_current_user(
    db: Session = Depends(get_db),
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_user_key: str | None = Header(default=None, alias="X-User-Key"),
) -> User:
    token = _extract_bearer_token(authorization) or (x_user_key.strip() if x_user_key else None)
    if not token:
        raise HTTPException(status_code=401, detail="Missing user API key")
    try:
        user = crud.get_user_by_api_key(db, token)
    except RuntimeError:
        raise HTTPException(status_code=500, detail="Server auth is not configured")
    if not user:
        raise HTTPException(status_code=401, detail="Invalid user API key")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is inactive")
    return user


def raise_for_error(error: HabitError) -> None:
    if isinstance(error, NotFound):
        raise HTTPException(status_code=404, detail=error.detail)
    if isinstance(error, VersionConflict):
        raise HTTPException(
            status_code=409,
            detail={"message": error.detail, "current_version": error.current_version},
        )
    raise HTTPException(status_code=422, detail=error.detail)
