from pydantic import BaseModel, Field


class ShopSettings(BaseModel):
    shop_name: str = "Kasir"
    shop_address: str = ""
    shop_phone: str = ""
    receipt_footer: str = "Terima kasih telah berbelanja!"


class ShopSettingsUpdate(BaseModel):
    shop_name: str | None = Field(default=None, min_length=1, max_length=200)
    shop_address: str | None = None
    shop_phone: str | None = None
    receipt_footer: str | None = None
