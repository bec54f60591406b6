from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]


class OrderItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    name: str = ""
    quantity: int = Field(ge=1, le=1000)
    price: int = Field(ge=0, description="Цена за единицу в центах (как видит клиент)")
    tier_id: Optional[str] = None


class OrderCreate(BaseModel):
    """Заказ из корзины. Сумма пересчитывается на сервере."""

    model_config = ConfigDict(populate_by_name=True)

    items: List[OrderItemIn] = Field(min_length=1)
    total: int = Field(ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    notes: Optional[str] = Field(default=None, max_length=1000)
    delivery_address: str = Field(max_length=500)
    init_data: Optional[str] = Field(default=None, alias="initData")

    @field_validator("delivery_address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Delivery address is required")
        return v

    @field_validator("currency")
    @classmethod
    def currency_upper(cls, v: str) -> str:
        return v.upper()


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    driver_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    delivery_address: Optional[str] = Field(default=None, max_length=500)


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    price: int
    tier_id: Optional[str] = None
    quantity_grams: Optional[int] = None
    line_total: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    telegram_user_id: str
    username: Optional[str]
    items: List[OrderItemOut]
    total: int
    currency: str
    status: str
    notes: Optional[str]
    delivery_address: Optional[str]
    order_day: str
    daily_order_number: int
    driver_id: Optional[str]
    driver_name: Optional[str] = None
    demo_session_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
