from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import Index
from sqlmodel import Field

from src.core.config import settings
from src.models.base_model import BaseModel


class User(BaseModel, table=True):
    """
    Модель пользователя (владельца ссылок) для таблицы `users`.

    Таблица:
    - id                  int [pk, increment] - Уникальный идентификатор
    - email               varchar(255) [unique] - Email пользователя
    - name                varchar(255) - Имя пользователя
    - referral_code       varchar(50) [unique] - Уникальный реферальный код
    - referred_by         int [ref: > users.id] - ID пользователя, пригласившего текущего
    - cpm_rate            numeric - $ за 1000 просмотров tier-1
    - referral_commission numeric - % от заработка приглашённых, который получает этот пользователь
    - total_earnings      numeric - Всего заработано
    - pending_earnings    numeric - Доступно к выводу
    - paid_earnings       numeric - Выплачено
    - referral_earnings   numeric - Заработано с рефералов
    - referral_count      int - Количество приглашённых
    - status              varchar(20) - active / suspended / pending
    """

    __tablename__ = "users"

    email: str = Field(unique=True, max_length=255, description="Email")
    name: str = Field(max_length=255, description="Display name")
    referral_code: str = Field(default_factory=lambda: str(uuid4())[:8], unique=True, max_length=50,
                               description="Unique referral code")
    referred_by: Optional[int] = Field(default=None, foreign_key="users.id", description="Referrer user ID")

    cpm_rate: Decimal = Field(
        default_factory=lambda: Decimal(str(settings.DEFAULT_CPM_RATE)),
        max_digits=10, decimal_places=4, description="CPM rate, $ per 1000 tier-1 views",
    )
    referral_commission: Decimal = Field(
        default_factory=lambda: Decimal(str(settings.DEFAULT_REFERRAL_COMMISSION)),
        max_digits=5, decimal_places=2, description="Referrer's cut of referred users' earnings, %",
    )

    total_earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)
    pending_earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)
    paid_earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)
    referral_earnings: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=8)
    referral_count: int = Field(default=0)

    status: str = Field(default="pending", max_length=20, description="active / suspended / pending")

    __table_args__ = (Index("ix_users_referred_by", "referred_by"),)

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"

    def __str__(self):
        return f"{self.name or self.email}"
