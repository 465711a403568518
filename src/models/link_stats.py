"""
Агрегаты кликов по коротким ссылкам: разбивка по странам, дневные бакеты
и журнал последних кликов.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class LinkCountryStat(SQLModel, table=True):
    """Количество кликов по стране за всё время жизни ссылки."""

    __tablename__ = "link_country_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(foreign_key="short_links.id", index=True)
    country: str = Field(max_length=16)  # ISO код или "Unknown"
    clicks: int = Field(default=0)

    __table_args__ = (UniqueConstraint("link_id", "country", name="uq_link_country_stats_link_country"),)


class LinkDailyStat(SQLModel, table=True):
    """Дневной бакет: не больше одной записи на (ссылка, день UTC)."""

    __tablename__ = "link_daily_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(foreign_key="short_links.id", index=True)
    day: date = Field(index=True)
    clicks: int = Field(default=0)
    earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)

    __table_args__ = (UniqueConstraint("link_id", "day", name="uq_link_daily_stats_link_day"),)


class LinkDailyCountryStat(SQLModel, table=True):
    """Разбивка дневного бакета по странам."""

    __tablename__ = "link_daily_country_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(foreign_key="short_links.id", index=True)
    day: date = Field(index=True)
    country: str = Field(max_length=16)
    clicks: int = Field(default=0)

    __table_args__ = (
        UniqueConstraint("link_id", "day", "country", name="uq_link_daily_country_stats_link_day_country"),
    )


class LinkClick(SQLModel, table=True):
    """Журнал последних кликов (кольцевой буфер, обрезается до RECENT_CLICKS_LIMIT на ссылку)."""

    __tablename__ = "link_clicks"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(foreign_key="short_links.id", index=True)
    clicked_at: datetime = Field(sa_type=sa.DateTime(timezone=True))
    country: str = Field(default="Unknown", max_length=16)
    city: str = Field(default="Unknown", max_length=255)
    region: str = Field(default="Unknown", max_length=255)
    ip: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=1024)
    referer: Optional[str] = Field(default=None, max_length=2048)
    device: str = Field(default="unknown", max_length=16)
    browser: str = Field(default="unknown", max_length=32)
    os: str = Field(default="unknown", max_length=32)
    earned: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)
