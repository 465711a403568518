"""
Расчёт заработка за один клик по стране посетителя и CPM владельца.
"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.core.country_tiers import COUNTRY_TIERS, DEFAULT_TIER_MULTIPLIER, DEFAULT_TIER_NAME

# must match the scale of the numeric earnings columns
EARNINGS_QUANTUM = Decimal("0.00000001")
CPM_BASIS = Decimal(1000)

Number = Union[Decimal, float, int, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Привести значение к Decimal; всё, что не число, даёт 0."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    try:
        # str() so that 2.5 (float) becomes Decimal("2.5"), not its binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)


def country_tier(country: Optional[str]) -> Tuple[str, Decimal]:
    """Вернуть (название тира, множитель) для ISO кода страны."""
    code = (country or "").upper()
    for tier in COUNTRY_TIERS:
        if code in tier.countries:
            return tier.name, tier.multiplier
    return DEFAULT_TIER_NAME, DEFAULT_TIER_MULTIPLIER


def quantize_earning(amount: Decimal) -> Decimal:
    return amount.quantize(EARNINGS_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_earnings(country: Optional[str], cpm_rate: Optional[Number]) -> Decimal:
    """
    Заработок за один клик.

    CPM задаётся за 1000 просмотров, поэтому один клик стоит
    cpm_rate * multiplier / 1000. Никогда не бросает исключений:
    отсутствующий или неположительный CPM даёт 0.

    Args:
        country: ISO код страны или "Unknown"
        cpm_rate: CPM владельца ссылки ($ за 1000 просмотров tier-1)

    Returns:
        Decimal: Сумма за клик (неотрицательная)
    """
    rate = to_decimal(cpm_rate)
    if not rate.is_finite() or rate <= 0:
        return Decimal(0)

    _, multiplier = country_tier(country)
    return quantize_earning(rate * multiplier / CPM_BASIS)


def calculate_referral_earning(earning: Decimal, commission_percent: Optional[Number]) -> Decimal:
    """Доля реферера: earning * commission / 100 (комиссия берётся из записи реферера)."""
    commission = to_decimal(commission_percent)
    if earning <= 0 or not commission.is_finite() or commission <= 0:
        return Decimal(0)
    return quantize_earning(earning * commission / Decimal(100))


def month_start(today: date, months_back: int) -> date:
    """Первое число месяца, отстоящего от today на months_back месяцев."""
    index = today.year * 12 + today.month - 1 - months_back
    return date(index // 12, index % 12 + 1, 1)


def monthly_totals(daily: Iterable[dict]) -> List[dict]:
    """
    Свернуть дневные суммы ({"day", "clicks", "earnings"}) в помесячные.

    Месяцы без кликов не попадают в результат; порядок по возрастанию.
    """
    months: Dict[str, dict] = {}
    for row in daily:
        key = row["day"].strftime("%Y-%m")
        bucket = months.setdefault(key, {"month": key, "clicks": 0, "earnings": Decimal(0)})
        bucket["clicks"] += row["clicks"]
        bucket["earnings"] += to_decimal(row["earnings"])
    return [months[key] for key in sorted(months)]
