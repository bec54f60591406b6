from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DriverCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    telegram_chat_id: Optional[str] = Field(default=None, max_length=64)
    is_active: bool = True


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    telegram_chat_id: Optional[str] = Field(default=None, max_length=64)
    is_active: Optional[bool] = None


class DriverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    phone: Optional[str]
    telegram_chat_id: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
