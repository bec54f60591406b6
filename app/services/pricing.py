"""
Расчет цен товаров.

Все суммы в центах (1 € = 100 центов).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

# Количества по умолчанию для генерации ценовых уровней, в граммах
DEFAULT_QUANTITY_TIERS = (10, 25, 50, 100)

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


def _round(value) -> int:
    """Округление до целого, половина вверх."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_selling_price(cost_per_gram: int, margin_percent: float) -> int:
    """Цена продажи за грамм по себестоимости и наценке."""
    return _round(Decimal(str(cost_per_gram)) * (1 + Decimal(str(margin_percent)) / 100))


def calculate_tier_price(selling_price_per_gram: int, quantity: int) -> int:
    """Цена уровня: цена за грамм, умноженная на количество."""
    return _round(Decimal(str(selling_price_per_gram)) * quantity)


def calculate_tier_price_from_cost(
    cost_per_gram: int, margin_percent: float, quantity: int
) -> int:
    selling = calculate_selling_price(cost_per_gram, margin_percent)
    return calculate_tier_price(selling, quantity)


def generate_default_tiers(
    cost_per_gram: int,
    margin_percent: float,
    quantities: Sequence[int] = DEFAULT_QUANTITY_TIERS,
) -> List[dict]:
    """
    Сгенерировать ценовые уровни по умолчанию.

    Args:
        cost_per_gram: Себестоимость за грамм в центах
        margin_percent: Наценка в процентах
        quantities: Количества в граммах

    Returns:
        List[dict]: Данные уровней (quantity_grams, price, is_custom_price, sort_order)
    """
    return [
        {
            "quantity_grams": quantity,
            "price": calculate_tier_price_from_cost(cost_per_gram, margin_percent, quantity),
            "is_custom_price": False,
            "sort_order": index,
        }
        for index, quantity in enumerate(quantities)
    ]


def calculate_discount_percentage(actual_price: int, calculated_price: int) -> int:
    """Скидка в процентах относительно расчетной цены (отрицательная = дороже)."""
    if calculated_price == 0:
        return 0
    return _round(Decimal(calculated_price - actual_price) / Decimal(calculated_price) * 100)


def has_volume_discount(
    tier_price: int, quantity: int, cost_per_gram: int, margin_percent: float
) -> bool:
    return tier_price < calculate_tier_price_from_cost(cost_per_gram, margin_percent, quantity)


def min_tier(tiers: Iterable) -> Optional[dict]:
    """Самый дешевый уровень: {"price", "quantity"} или None."""
    cheapest = min(tiers, key=lambda tier: tier.price, default=None)
    if cheapest is None:
        return None
    return {"price": cheapest.price, "quantity": cheapest.quantity_grams}


def format_price(price_cents: int, currency: str = "EUR") -> str:
    """
    Форматирование цены для отображения: 1250 -> "12,50 €", 1200 -> "12 €".
    """
    amount = Decimal(price_cents) / 100
    if amount == amount.to_integral_value():
        number = f"{int(amount):,}"
    else:
        number = f"{amount:,.2f}"
    number = number.replace(",", " ").replace(".", ",")
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{number} {symbol}"
