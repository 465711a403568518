"""
Versioned country-tier table used to scale the owner's CPM per click.

Membership is checked in table order; a country code belongs to at most
one tier. Anything not listed (including "Unknown") pays the default
multiplier.
"""

from decimal import Decimal
from typing import FrozenSet, NamedTuple, Tuple

COUNTRY_TIERS_VERSION = "2024.1"


class CountryTier(NamedTuple):
    name: str
    multiplier: Decimal
    countries: FrozenSet[str]


COUNTRY_TIERS: Tuple[CountryTier, ...] = (
    CountryTier(
        name="tier1",
        multiplier=Decimal("1.0"),
        countries=frozenset({
            "US", "GB", "CA", "AU", "DE", "FR", "NL", "SE",
            "NO", "DK", "CH", "AT", "BE", "IE", "NZ",
        }),
    ),
    CountryTier(
        name="tier2",
        multiplier=Decimal("0.7"),
        countries=frozenset({
            "IT", "ES", "PT", "PL", "CZ", "GR", "JP",
            "KR", "SG", "HK", "TW", "IL", "AE", "SA",
        }),
    ),
    CountryTier(
        name="tier3",
        multiplier=Decimal("0.4"),
        countries=frozenset({
            "BR", "MX", "AR", "CL", "CO", "IN", "PH", "TH",
            "MY", "ID", "VN", "TR", "RU", "UA", "ZA",
        }),
    ),
)

DEFAULT_TIER_NAME = "tier4"
DEFAULT_TIER_MULTIPLIER = Decimal("0.2")
