"""
Тесты расчёта заработка за клик.
"""

from datetime import date
from decimal import Decimal

import pytest

from src.core.country_tiers import COUNTRY_TIERS, DEFAULT_TIER_MULTIPLIER
from src.services.earnings import (
    calculate_earnings,
    calculate_referral_earning,
    country_tier,
    month_start,
    monthly_totals,
    to_decimal,
)


class TestCountryTiers:

    def test_tiers_are_disjoint(self):
        seen = set()
        for tier in COUNTRY_TIERS:
            assert not seen & tier.countries, f"{tier.name} overlaps another tier"
            seen |= tier.countries

    def test_multipliers_decrease_with_tier(self):
        multipliers = [tier.multiplier for tier in COUNTRY_TIERS] + [DEFAULT_TIER_MULTIPLIER]
        assert multipliers == sorted(multipliers, reverse=True)
        assert multipliers == [Decimal("1.0"), Decimal("0.7"), Decimal("0.4"), Decimal("0.2")]

    @pytest.mark.parametrize("country, tier_name", [
        ("US", "tier1"), ("DE", "tier1"), ("NZ", "tier1"),
        ("JP", "tier2"), ("AE", "tier2"),
        ("BR", "tier3"), ("IN", "tier3"), ("ZA", "tier3"),
        ("NG", "tier4"), ("Unknown", "tier4"), ("", "tier4"), (None, "tier4"),
    ])
    def test_country_lookup(self, country, tier_name):
        assert country_tier(country)[0] == tier_name

    def test_lookup_ignores_case(self):
        assert country_tier("us") == country_tier("US")


class TestCalculateEarnings:

    def test_tier1_click_at_default_cpm(self):
        assert calculate_earnings("US", Decimal("2.5")) == Decimal("0.0025")

    def test_float_cpm_is_exact(self):
        assert calculate_earnings("US", 2.5) == Decimal("0.0025")

    @pytest.mark.parametrize("country, expected", [
        ("GB", Decimal("0.01")),
        ("IT", Decimal("0.007")),
        ("MX", Decimal("0.004")),
        ("Unknown", Decimal("0.002")),
    ])
    def test_tier_multiplier_applies(self, country, expected):
        assert calculate_earnings(country, Decimal("10")) == expected

    @pytest.mark.parametrize("rate", [None, 0, -1, "abc", Decimal("NaN"), float("inf")])
    def test_unusable_rate_earns_nothing(self, rate):
        assert calculate_earnings("US", rate) == Decimal(0)

    @pytest.mark.parametrize("country", ["US", "JP", "BR", "NG", "Unknown"])
    def test_linear_in_cpm(self, country):
        base = calculate_earnings(country, Decimal("1.5"))
        assert calculate_earnings(country, Decimal("3")) == base * 2
        assert calculate_earnings(country, Decimal("15")) == base * 10

    @pytest.mark.parametrize("rate", [Decimal("0.5"), Decimal("2.5"), Decimal("40")])
    def test_monotonic_in_tier(self, rate):
        tier_examples = ["US", "JP", "BR", "NG"]
        amounts = [calculate_earnings(country, rate) for country in tier_examples]
        assert amounts == sorted(amounts, reverse=True)
        assert all(amount > 0 for amount in amounts)

    def test_result_is_rounded_to_eight_places(self):
        # 0.0001 * 0.2 / 1000 = 2e-8
        assert calculate_earnings("NG", Decimal("0.0001")) == Decimal("0.00000002")
        assert calculate_earnings("NG", Decimal("0.00001")) == Decimal("0")


class TestReferralEarning:

    def test_twenty_percent(self):
        assert calculate_referral_earning(Decimal("0.0025"), Decimal("20")) == Decimal("0.0005")

    @pytest.mark.parametrize("commission", [None, 0, -5])
    def test_no_commission(self, commission):
        assert calculate_referral_earning(Decimal("0.0025"), commission) == Decimal(0)

    def test_nothing_earned_nothing_shared(self):
        assert calculate_referral_earning(Decimal("0"), Decimal("20")) == Decimal(0)


def test_to_decimal():
    assert to_decimal(None) == Decimal(0)
    assert to_decimal("1.25") == Decimal("1.25")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("not a number") == Decimal(0)


class TestMonthlyTotals:

    @pytest.mark.parametrize("today, months_back, expected", [
        (date(2024, 6, 15), 0, date(2024, 6, 1)),
        (date(2024, 6, 15), 5, date(2024, 1, 1)),
        (date(2024, 2, 29), 5, date(2023, 9, 1)),
        (date(2024, 1, 31), 13, date(2022, 12, 1)),
    ])
    def test_month_start(self, today, months_back, expected):
        assert month_start(today, months_back) == expected

    def test_days_fold_into_months(self):
        daily = [
            {"day": date(2024, 1, 31), "clicks": 2, "earnings": Decimal("0.005")},
            {"day": date(2024, 2, 1), "clicks": 1, "earnings": Decimal("0.0025")},
            {"day": date(2024, 1, 2), "clicks": 3, "earnings": Decimal("0.001")},
            {"day": date(2023, 12, 31), "clicks": 1, "earnings": 0},
        ]

        assert monthly_totals(daily) == [
            {"month": "2023-12", "clicks": 1, "earnings": Decimal("0")},
            {"month": "2024-01", "clicks": 5, "earnings": Decimal("0.006")},
            {"month": "2024-02", "clicks": 1, "earnings": Decimal("0.0025")},
        ]

    def test_no_days_no_months(self):
        assert monthly_totals([]) == []
