from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kasir.db.session import get_db
from kasir.schemas.users import UserCreate, UserResponse, UserUpdate
from kasir.services import users
from kasir.services.deps import require_admin

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db), _: dict = Depends(require_admin)):
    return users.list_users(db)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db), _: dict = Depends(require_admin)):
    return users.create_user(db, payload)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    return users.update_user(db, user_id, payload, admin)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, db: Session = Depends(get_db), admin: dict = Depends(require_admin)):
    users.delete_user(db, user_id, admin)
