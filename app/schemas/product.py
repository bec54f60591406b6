from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PricingTierOut(BaseModel):
    """Схема для вывода ценового уровня."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    quantity_grams: int
    price: int
    is_custom_price: bool
    sort_order: int
    created_at: Optional[datetime] = None


class PricingTierCreate(BaseModel):
    product_id: str = Field(min_length=1)
    quantity_grams: int = Field(gt=0, description="Количество в граммах")
    price: int = Field(ge=0, description="Цена за весь объем в центах")
    is_custom_price: bool = True
    sort_order: int = 0


class PricingTierUpdate(BaseModel):
    quantity_grams: Optional[int] = Field(default=None, gt=0)
    price: Optional[int] = Field(default=None, ge=0)
    is_custom_price: Optional[bool] = None
    sort_order: Optional[int] = None


class PricingTierIn(BaseModel):
    quantity_grams: int = Field(gt=0)
    price: int = Field(ge=0)
    is_custom_price: bool = False


class PricingTierBatch(BaseModel):
    """Полная замена ценовых уровней товара."""

    product_id: str = Field(min_length=1)
    tiers: List[PricingTierIn]

    @field_validator("tiers")
    @classmethod
    def unique_quantities(cls, v: List[PricingTierIn]) -> List[PricingTierIn]:
        quantities = [tier.quantity_grams for tier in v]
        if len(quantities) != len(set(quantities)):
            raise ValueError("Duplicate quantity_grams in tiers")
        return v


class PricingTierGenerate(BaseModel):
    """Генерация уровней по себестоимости и наценке товара."""

    product_id: str = Field(min_length=1)
    quantities: Optional[List[int]] = Field(default=None, min_length=1)
    replace_custom: bool = Field(
        default=False, description="Перезаписать уровни с ручной ценой"
    )


class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    variety: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    price: int = Field(default=0, ge=0, description="Базовая цена в центах")
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)
    farm_label: Optional[str] = Field(default=None, max_length=255)
    origin_flag: Optional[str] = Field(default=None, max_length=8)
    is_active: bool = True
    cost_price_per_gram: int = Field(default=0, ge=0)
    margin_percentage: int = Field(default=50, ge=0, le=1000)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(
        default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    )
    variety: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None
    farm_label: Optional[str] = Field(default=None, max_length=255)
    origin_flag: Optional[str] = Field(default=None, max_length=8)
    is_active: Optional[bool] = None
    cost_price_per_gram: Optional[int] = Field(default=None, ge=0)
    margin_percentage: Optional[int] = Field(default=None, ge=0, le=1000)


class ProductOut(ProductBase):
    """Схема для вывода товара с ценовыми уровнями."""

    model_config = ConfigDict(from_attributes=True)

    # В БД могут быть slug, не проходящие проверку формата (импорт)
    slug: str
    id: str
    pricing_tiers: List[PricingTierOut] = Field(default_factory=list)
    min_price: Optional[int] = None
    min_price_quantity: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(
        default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    )
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryOut(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    id: str
    created_at: Optional[datetime] = None
