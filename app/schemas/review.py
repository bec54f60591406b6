from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ReviewStatus = Literal["pending", "published", "rejected"]


class ReviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    content: str = Field(min_length=10, max_length=1000)
    init_data: Optional[str] = Field(default=None, alias="initData")

    @field_validator("content")
    @classmethod
    def content_stripped(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Review must be at least 10 characters")
        return v


class ReviewUpdate(BaseModel):
    status: Optional[ReviewStatus] = None
    content: Optional[str] = Field(default=None, min_length=10, max_length=1000)


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: Optional[str]
    telegram_user_id: str
    username: Optional[str]
    rating: int
    content: str
    status: str
    created_at: datetime
