from decimal import Decimal
from typing import Optional

from sqlmodel import Field

from src.models.base_model import BaseModel


class ShortLink(BaseModel, table=True):
    """
    Модель короткой ссылки для таблицы `short_links`.

    Таблица:
    - id              int [pk, increment] - Уникальный идентификатор
    - short_id        varchar(32) [unique] - Короткий идентификатор (неизменяемый)
    - original_url    varchar(2048) - Ссылка назначения
    - title           varchar(255) - Заголовок
    - user_id         int [ref: > users.id] - Владелец (NULL - анонимная ссылка, без начислений)
    - clicks          int - Всего кликов
    - total_earnings  numeric - Всего начислено
    - *_clicks        int - Разбивка по типу устройства (desktop/mobile/tablet/unknown)
    - is_active       boolean - Неактивные ссылки для gate-страницы не существуют
    """

    __tablename__ = "short_links"

    short_id: str = Field(unique=True, index=True, max_length=32, description="Short identifier")
    original_url: str = Field(max_length=2048, description="Destination URL")
    title: str = Field(default="", max_length=255)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True, description="Owner")

    clicks: int = Field(default=0)
    total_earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)

    desktop_clicks: int = Field(default=0)
    mobile_clicks: int = Field(default=0)
    tablet_clicks: int = Field(default=0)
    unknown_clicks: int = Field(default=0)

    is_active: bool = Field(default=True)

    @property
    def device_stats(self) -> dict:
        return {
            "desktop": self.desktop_clicks,
            "mobile": self.mobile_clicks,
            "tablet": self.tablet_clicks,
            "unknown": self.unknown_clicks,
        }

    def __repr__(self):
        return f"<ShortLink id={self.id} short_id={self.short_id} clicks={self.clicks}>"

    def __str__(self):
        return self.short_id
