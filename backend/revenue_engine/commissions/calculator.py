"""
Commission Calculator

Rate tables by product type and commission type, amount and payout date.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from revenue_engine.policies.models import CommissionType, ProductType


# Share of first-year premium
FIRST_YEAR_RATES: Dict[ProductType, float] = {
    ProductType.TERM_LIFE: 0.90,
    ProductType.WHOLE_LIFE: 0.55,
    ProductType.UNIVERSAL_LIFE: 0.55,
    ProductType.FINAL_EXPENSE: 0.60,
    ProductType.IUL: 0.50,
    ProductType.HEALTH_ACA: 0.04,
    ProductType.HEALTH_SHORT_TERM: 0.20,
    ProductType.MEDICARE_SUPPLEMENT: 0.25,
    ProductType.MEDICARE_ADVANTAGE: 0.30,
    ProductType.DENTAL: 0.20,
    ProductType.VISION: 0.15,
    ProductType.DISABILITY_INCOME: 0.40,
    ProductType.CRITICAL_ILLNESS: 0.35,
    ProductType.LONG_TERM_CARE: 0.35,
    ProductType.ANNUITY: 0.04,
    ProductType.OTHER: 0.25,
}

# Products absent here pay no renewal
RENEWAL_RATES: Dict[ProductType, float] = {
    ProductType.TERM_LIFE: 0.0,
    ProductType.WHOLE_LIFE: 0.035,
    ProductType.UNIVERSAL_LIFE: 0.035,
    ProductType.FINAL_EXPENSE: 0.03,
    ProductType.IUL: 0.025,
    ProductType.HEALTH_ACA: 0.04,
    ProductType.MEDICARE_SUPPLEMENT: 0.025,
    ProductType.MEDICARE_ADVANTAGE: 0.0,
    ProductType.ANNUITY: 0.01,
}

FIRST_YEAR_PAYOUT_DAYS = 21
DEFAULT_PAYOUT_DAYS = 30

_missing = [p.name for p in ProductType if p not in FIRST_YEAR_RATES]
if _missing:
    raise RuntimeError(f"ProductType members without a first-year rate: {_missing}")


@dataclass
class CommissionQuote:
    amount: float
    rate: float
    type: CommissionType


def default_rate(
    product_type: ProductType,
    commission_type: CommissionType = CommissionType.FIRST_YEAR,
) -> float:
    if commission_type == CommissionType.RENEWAL:
        return RENEWAL_RATES.get(product_type, 0.0)
    return FIRST_YEAR_RATES[product_type]


def round_money(value: float) -> float:
    return round(value, 2)


def calculate(
    premium: float,
    product_type: ProductType,
    rate: Optional[float] = None,
    commission_type: CommissionType = CommissionType.FIRST_YEAR,
) -> CommissionQuote:
    """
    Commission for a premium.

    An explicit ``rate`` wins over the tables. BONUS uses the first-year
    table.

    >>> calculate(1200, ProductType.TERM_LIFE).amount
    1080.0
    """
    resolved = default_rate(product_type, commission_type) if rate is None else rate
    return CommissionQuote(
        amount=round_money(premium * resolved),
        rate=resolved,
        type=commission_type,
    )


def _add_year(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return moment.replace(year=moment.year + 1, day=28)


def scheduled_date_for(
    commission_type: CommissionType,
    start: Optional[datetime] = None,
) -> datetime:
    """Expected payout: first year in 21 days, renewal in one year, bonus in 30 days."""
    start = start or datetime.utcnow()
    if commission_type == CommissionType.FIRST_YEAR:
        return start + timedelta(days=FIRST_YEAR_PAYOUT_DAYS)
    if commission_type == CommissionType.RENEWAL:
        return _add_year(start)
    return start + timedelta(days=DEFAULT_PAYOUT_DAYS)
