from datetime import date, datetime

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=250)
    category: str | None = None
    description: str | None = None
    barcode: str | None = Field(default=None, max_length=200)
    buy_price: int = Field(default=0, ge=0)
    retail_price: int = Field(default=0, ge=0)
    reseller_price: int = Field(default=0, ge=0)
    stock: int = Field(default=0, ge=0)
    image_url: str | None = None
    supplier_id: str | None = None
    entry_date: date | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=250)
    category: str | None = None
    description: str | None = None
    barcode: str | None = Field(default=None, max_length=200)
    buy_price: int | None = Field(default=None, ge=0)
    retail_price: int | None = Field(default=None, ge=0)
    reseller_price: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    supplier_id: str | None = None
    entry_date: date | None = None


class ProductResponse(BaseModel):
    id: str
    name: str
    category: str | None
    description: str | None
    barcode: str | None
    buy_price: int
    retail_price: int
    reseller_price: int
    stock: int
    image_url: str | None
    supplier_id: str | None
    entry_date: date | None
    created_at: datetime
    updated_at: datetime


class StockIncreaseRequest(BaseModel):
    qty: int = Field(gt=0)
    reason: str | None = None


class LowStockItem(BaseModel):
    id: str
    name: str
    category: str | None
    barcode: str | None
    stock: int


class StorefrontProduct(BaseModel):
    id: str
    name: str
    category: str | None
    description: str | None
    retail_price: int
    image_url: str | None
    in_stock: bool


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = None
    notes: str | None = None


class SupplierResponse(BaseModel):
    id: str
    name: str
    phone: str | None
    address: str | None
    notes: str | None
    created_at: datetime
