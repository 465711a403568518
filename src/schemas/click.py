from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

DeviceType = Literal["desktop", "mobile", "tablet", "unknown"]

UNKNOWN = "Unknown"


class SClientInfo(BaseModel):
    device: DeviceType = Field("unknown", description="Device category")
    browser: str = Field("unknown", description="Browser family")
    os: str = Field("unknown", description="Operating system family")


class SGeoLocation(BaseModel):
    country: str = Field(UNKNOWN, description="ISO country code or Unknown")
    city: str = Field(UNKNOWN)
    region: str = Field(UNKNOWN)


class SVisit(BaseModel):
    """Raw gate-page visit as supplied by the request handler."""
    client_ip: Optional[str] = Field(None, description="Resolved client IP (first X-Forwarded-For hop)")
    user_agent: Optional[str] = Field(None, description="Raw User-Agent header")
    referer: Optional[str] = Field(None, description="Referer header")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Visit time, UTC")


class SClickOutcome(BaseModel):
    short_id: str
    clicks: int = Field(..., description="Link clicks after this visit")
    total_earnings: Decimal = Field(..., description="Link earnings after this visit")
    earned: Decimal = Field(Decimal("0"), description="Owner earning for this click")
    referral_earned: Decimal = Field(Decimal("0"), description="Referrer commission for this click")
    client: SClientInfo
    geo: SGeoLocation


class SClickRead(BaseModel):
    clicked_at: datetime
    country: str
    city: str
    region: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    device: str
    browser: str
    os: str
    earned: Decimal

    class Config:
        from_attributes = True
