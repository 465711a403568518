from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class SUserCreate(BaseModel):
    email: EmailStr = Field(..., description="Email")
    name: str = Field(..., max_length=255, description="Display name")
    referral_code: Optional[str] = Field(None, description="Referral code of the inviting user")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "email": "johndoe@example.com",
                "name": "John Doe",
                "referral_code": "ab12cd34",
            }
        }


class SUserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    cpm_rate: Optional[Decimal] = Field(None, gt=0, description="$ per 1000 tier-1 views")
    referral_commission: Optional[Decimal] = Field(None, ge=0, le=100, description="Referral commission, %")


class SUserRead(BaseModel):
    id: int = Field(..., description="Unique user ID")
    email: str
    name: str
    referral_code: str
    referred_by: Optional[int] = None
    cpm_rate: Decimal
    referral_commission: Decimal
    total_earnings: Decimal = Decimal("0")
    pending_earnings: Decimal = Decimal("0")
    paid_earnings: Decimal = Decimal("0")
    referral_earnings: Decimal = Decimal("0")
    referral_count: int = 0
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SReferredUsers(BaseModel):
    id: int
    name: str
    total_earnings: Decimal = Decimal("0")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SEarningsDay(BaseModel):
    day: date
    clicks: int = 0
    earnings: Decimal = Decimal("0")


class SCountryCount(BaseModel):
    country: str
    clicks: int


class SEarningsMonth(BaseModel):
    month: str
    clicks: int = 0
    earnings: Decimal = Decimal("0")


class SEarningsSummary(BaseModel):
    user_id: int
    days: int
    total_links: int = 0
    total_clicks: int = 0
    total_earnings: Decimal
    pending_earnings: Decimal
    referral_earnings: Decimal
    daily: List[SEarningsDay]
    monthly: List[SEarningsMonth]
    top_countries: List[SCountryCount]
