import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kasir.core.errors import AppError, ErrorKind, conflict, not_found, validation_error
from kasir.core.security import create_access_token, get_password_hash, verify_password
from kasir.db.queries import fetch_all, fetch_one, new_id, utcnow
from kasir.schemas.users import Role, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, full_name, role, is_active, created_at, last_login_at"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def authenticate(db: Session, email: str, password: str) -> tuple[dict[str, Any], str]:
    user = fetch_one(
        db,
        """
        SELECT id, email, password_hash, full_name, role, is_active
        FROM users
        WHERE email = :email
        LIMIT 1
        """,
        {"email": normalize_email(email)},
    )

    if not user or not user["is_active"] or not verify_password(password, user["password_hash"]):
        logger.warning("Failed login for %s", email)
        raise AppError(ErrorKind.UNAUTHORIZED, "Invalid credentials")

    db.execute(
        text("UPDATE users SET last_login_at = :now WHERE id = :id"),
        {"now": utcnow(), "id": user["id"]},
    )
    db.commit()

    token = create_access_token(subject=user["id"], role=user["role"])
    return user, token


def get_user(db: Session, user_id: str) -> dict[str, Any] | None:
    return fetch_one(db, f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})


def require_user(db: Session, user_id: str) -> dict[str, Any]:
    user = get_user(db, user_id)
    if not user:
        raise not_found("User not found", user_id=user_id)
    return user


def list_users(db: Session) -> list[dict[str, Any]]:
    return fetch_all(db, f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at ASC")


def create_user(db: Session, payload: UserCreate) -> dict[str, Any]:
    user_id = new_id()
    try:
        db.execute(
            text(
                """
                INSERT INTO users (id, email, password_hash, full_name, role, is_active, created_at)
                VALUES (:id, :email, :password_hash, :full_name, :role, :is_active, :created_at)
                """
            ),
            {
                "id": user_id,
                "email": normalize_email(payload.email),
                "password_hash": get_password_hash(payload.password),
                "full_name": payload.full_name,
                "role": payload.role.value,
                "is_active": True,
                "created_at": utcnow(),
            },
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("Email already registered", email=payload.email)

    logger.info("User %s created with role %s", payload.email, payload.role.value)
    return require_user(db, user_id)


def update_user(db: Session, user_id: str, payload: UserUpdate, acting_user: dict[str, Any]) -> dict[str, Any]:
    user = require_user(db, user_id)
    if user_id == acting_user["id"] and (payload.role != Role.ADMIN or payload.is_active is False):
        raise validation_error("Admins cannot demote or deactivate themselves")

    db.execute(
        text(
            """
            UPDATE users
            SET role = :role,
                full_name = :full_name,
                is_active = :is_active
            WHERE id = :id
            """
        ),
        {
            "role": payload.role.value,
            "full_name": payload.full_name or user["full_name"],
            "is_active": bool(user["is_active"]) if payload.is_active is None else payload.is_active,
            "id": user_id,
        },
    )
    db.commit()
    logger.info("User %s updated by %s", user["email"], acting_user["email"])
    return require_user(db, user_id)


def delete_user(db: Session, user_id: str, acting_user: dict[str, Any]) -> None:
    user = require_user(db, user_id)
    if user_id == acting_user["id"]:
        raise validation_error("Admins cannot delete their own account")
    db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
    db.commit()
    logger.info("User %s deleted by %s", user["email"], acting_user["email"])


def ensure_admin(db: Session, email: str | None, password: str | None, full_name: str) -> bool:
    """Create the first admin account when the users table is empty."""
    if not email or not password:
        return False
    existing = fetch_one(db, "SELECT COUNT(*) AS count FROM users")
    if existing and int(existing["count"]) > 0:
        return False
    create_user(db, UserCreate(email=email, password=password, full_name=full_name, role=Role.ADMIN))
    logger.info("Bootstrap admin %s created", email)
    return True
