import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kasir.db.session import get_db
from kasir.schemas.settings import ShopSettings, ShopSettingsUpdate
from kasir.services.deps import require_admin
from kasir.services.shop_settings import load_settings, save_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=ShopSettings)
def get_settings(db: Session = Depends(get_db)):
    return load_settings(db)


@router.put("", response_model=ShopSettings)
def update_settings(payload: ShopSettingsUpdate, db: Session = Depends(get_db), admin: dict = Depends(require_admin)):
    updated = save_settings(db, payload)
    logger.info("Shop settings updated by %s", admin["email"])
    return updated
