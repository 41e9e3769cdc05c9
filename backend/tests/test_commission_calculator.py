"""
Commission calculator tests
"""

from datetime import datetime, timedelta

import pytest

from revenue_engine.commissions.calculator import (
    FIRST_YEAR_RATES,
    calculate,
    default_rate,
    scheduled_date_for,
)
from revenue_engine.policies.models import CommissionType, ProductType


class TestCalculate:
    def test_term_life_first_year(self):
        quote = calculate(1200, ProductType.TERM_LIFE)
        assert quote.rate == 0.90
        assert quote.amount == 1080.0
        assert quote.type == CommissionType.FIRST_YEAR

    def test_term_life_renewal_pays_nothing(self):
        quote = calculate(1200, ProductType.TERM_LIFE, commission_type=CommissionType.RENEWAL)
        assert quote.rate == 0.0
        assert quote.amount == 0.0

    def test_product_without_renewal_rate(self):
        assert default_rate(ProductType.DENTAL, CommissionType.RENEWAL) == 0.0

    def test_whole_life_renewal(self):
        quote = calculate(1000, ProductType.WHOLE_LIFE, commission_type=CommissionType.RENEWAL)
        assert quote.amount == 35.0

    def test_explicit_rate_wins(self):
        quote = calculate(1000, ProductType.TERM_LIFE, rate=0.5)
        assert quote.rate == 0.5
        assert quote.amount == 500.0

    def test_bonus_uses_first_year_table(self):
        quote = calculate(100, ProductType.FINAL_EXPENSE, commission_type=CommissionType.BONUS)
        assert quote.rate == 0.60

    def test_amount_rounded_to_cents(self):
        assert calculate(333.33, ProductType.WHOLE_LIFE).amount == 183.33

    def test_zero_premium(self):
        assert calculate(0, ProductType.IUL).amount == 0.0

    def test_every_product_has_first_year_rate(self):
        assert set(FIRST_YEAR_RATES) == set(ProductType)


class TestScheduledDate:
    start = datetime(2024, 3, 1, 12, 0)

    def test_first_year_in_21_days(self):
        assert scheduled_date_for(CommissionType.FIRST_YEAR, self.start) == self.start + timedelta(days=21)

    def test_renewal_in_one_year(self):
        assert scheduled_date_for(CommissionType.RENEWAL, self.start) == datetime(2025, 3, 1, 12, 0)

    def test_bonus_in_30_days(self):
        assert scheduled_date_for(CommissionType.BONUS, self.start) == self.start + timedelta(days=30)

    def test_renewal_from_leap_day(self):
        assert scheduled_date_for(CommissionType.RENEWAL, datetime(2024, 2, 29)) == datetime(2025, 2, 28)

    @pytest.mark.parametrize("commission_type", list(CommissionType))
    def test_defaults_to_now(self, commission_type):
        assert scheduled_date_for(commission_type) > datetime.utcnow()
