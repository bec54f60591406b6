from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.telegram import TelegramUser


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    init_data: str = Field(min_length=1, alias="initData")


class VerifyResponse(BaseModel):
    success: bool = True
    user: Optional[TelegramUser] = None
    query_id: Optional[str] = None
    auth_date: int
    is_admin: bool = False
    token: Optional[str] = Field(
        default=None, description="Админ-токен (только для администраторов)"
    )
