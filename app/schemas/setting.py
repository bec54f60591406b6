from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SettingIn(BaseModel):
    key: str = Field(min_length=1, max_length=100)
    value: Any = None


class SettingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Any = None
    updated_at: Optional[datetime] = None
