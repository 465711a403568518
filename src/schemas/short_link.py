from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import AnyHttpUrl, BaseModel, Field

from src.schemas.click import SClickRead


class SShortLinkCreate(BaseModel):
    original_url: AnyHttpUrl = Field(..., description="Absolute destination URL")
    title: str = Field("", max_length=255)
    user_id: Optional[int] = Field(None, description="Owner ID (anonymous link when empty)")

    class Config:
        json_schema_extra = {
            "example": {
                "original_url": "https://example.com/some/long/path",
                "title": "Example",
                "user_id": 1,
            }
        }


class SShortLinkUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = Field(None, description="Pause / resume the link")


class SShortLinkRead(BaseModel):
    id: int
    short_id: str
    short_url: Optional[str] = None
    original_url: str
    title: str = ""
    user_id: Optional[int] = None
    clicks: int = 0
    total_earnings: Decimal = Decimal("0")
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SDailyStat(BaseModel):
    day: date
    clicks: int = 0
    earnings: Decimal = Decimal("0")
    countries: Dict[str, int] = {}


class SLinkStats(BaseModel):
    link: SShortLinkRead
    days: int = Field(..., description="Lookback window")
    device_stats: Dict[str, int]
    country_stats: Dict[str, int]
    daily_stats: List[SDailyStat]
    recent_clicks: List[SClickRead]


class SGateVisit(BaseModel):
    short_id: str
    destination_url: str
    recorded: bool = Field(..., description="False when the visit could not be stored")
    earned: Decimal = Decimal("0")
