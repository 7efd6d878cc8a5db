from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from kasir.core.errors import AppError, ErrorKind
from kasir.core.security import decode_access_token
from kasir.db.queries import fetch_one
from kasir.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

ROLE_ADMIN = "Admin"


def get_current_user(token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    if not token:
        raise AppError(ErrorKind.UNAUTHORIZED, "Not authenticated")
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if not user_id:
            raise ValueError("Missing subject")
    except ValueError:
        raise AppError(ErrorKind.UNAUTHORIZED, "Invalid authentication token")

    user = fetch_one(
        db,
        """
        SELECT id, email, full_name, role, is_active
        FROM users
        WHERE id = :user_id
        """,
        {"user_id": user_id},
    )

    if not user or not user["is_active"]:
        raise AppError(ErrorKind.UNAUTHORIZED, "Inactive or missing user")

    return user


def require_admin(user: dict = Depends(get_current_user)):
    # role is read from the profile row, never from the token claims
    if user["role"] != ROLE_ADMIN:
        raise AppError(ErrorKind.FORBIDDEN, "Admin access required")
    return user
