from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel
from app.core.config import settings

security = HTTPBearer()


class CurrentUser(BaseModel):
    """Acting identity resolved from the bearer token."""
    email: str
    name: str
    role: str
    staff_id: Optional[str] = None

    @property
    def user_id(self) -> str:
        return self.staff_id or self.email


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    email: str = payload.get("sub")
    role: str = payload.get("role")
    if email is None or role is None:
        raise credentials_exception

    return CurrentUser(
        email=email,
        name=payload.get("name") or email,
        role=role,
        staff_id=payload.get("staff_id"),
    )
