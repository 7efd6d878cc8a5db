from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kasir.db.session import get_db
from kasir.schemas.auth import LoginRequest, TokenResponse
from kasir.schemas.users import UserResponse
from kasir.services import users
from kasir.services.deps import get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = users.authenticate(db, payload.email, payload.password)
    return TokenResponse(
        access_token=token,
        user_id=user["id"],
        email=user["email"],
        full_name=user["full_name"],
        role=user["role"],
    )


@router.get("/me", response_model=UserResponse)
def me(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return users.require_user(db, user["id"])
