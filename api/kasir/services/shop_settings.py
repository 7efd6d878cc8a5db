from sqlalchemy import text
from sqlalchemy.orm import Session

from kasir.db.queries import fetch_all
from kasir.schemas.settings import ShopSettings, ShopSettingsUpdate


def load_settings(db: Session) -> ShopSettings:
    stored = {row["key"]: row["value"] for row in fetch_all(db, "SELECT key, value FROM app_settings")}
    known = {key: value for key, value in stored.items() if key in ShopSettings.model_fields}
    return ShopSettings(**known)


def save_settings(db: Session, payload: ShopSettingsUpdate) -> ShopSettings:
    for key, value in payload.model_dump(exclude_none=True).items():
        updated = db.execute(
            text("UPDATE app_settings SET value = :value WHERE key = :key"),
            {"key": key, "value": value},
        )
        if updated.rowcount == 0:
            db.execute(
                text("INSERT INTO app_settings (key, value) VALUES (:key, :value)"),
                {"key": key, "value": value},
            )
    db.commit()
    return load_settings(db)
