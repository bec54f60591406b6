"""
Модели базы данных.

Импортирует все модели для корректной работы SQLAlchemy.
"""

from .base import Base
from .category import Category
from .driver import Driver
from .order import ORDER_STATUSES, Order
from .pricing_tier import PricingTier
from .product import Product
from .review import REVIEW_STATUSES, Review
from .setting import Setting
from .telegram_contact import TelegramContact
from .user import AdminUser

__all__ = [
    "Base",
    "Category",
    "Product",
    "PricingTier",
    "Order",
    "ORDER_STATUSES",
    "Review",
    "REVIEW_STATUSES",
    "Driver",
    "Setting",
    "TelegramContact",
    "AdminUser",
]
