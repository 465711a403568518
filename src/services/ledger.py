"""
Начисление заработка за клик владельцу ссылки и его рефереру.
"""

from decimal import Decimal
from typing import Optional

from src.repositories.user import UserRepository
from src.services.earnings import calculate_referral_earning
from src.utils.logger import get_logger

logger = get_logger(__name__)


class EarningsLedger:
    """
    Переносит заработок клика на балансы аккаунтов.

    Все изменения - атомарные инкременты в транзакции вызывающего кода,
    коммит делает он же. Цепочка рефералов не обходится глубже одного шага.
    """

    def __init__(self, users: UserRepository):
        self.users = users

    async def credit(self, owner_id: Optional[int], earning: Decimal) -> Decimal:
        """
        Начислить заработок владельцу и комиссию рефереру.

        Args:
            owner_id: ID владельца ссылки (None - анонимная ссылка)
            earning: Заработок за клик

        Returns:
            Decimal: Сумма, начисленная рефереру (0, если реферера нет)
        """
        if owner_id is None or earning is None or earning <= 0:
            return Decimal(0)

        if not await self.users.increment_earnings(owner_id, earning):
            logger.warning(f"Owner account {owner_id} not found, earning {earning} not credited")
            return Decimal(0)

        referrer = await self.users.get_referrer(owner_id)
        if referrer is None:
            return Decimal(0)

        referrer_id, commission = referrer
        referral_earning = calculate_referral_earning(earning, commission)
        if referral_earning <= 0:
            return Decimal(0)

        if not await self.users.increment_earnings(referrer_id, referral_earning, referral=True):
            logger.warning(f"Referrer account {referrer_id} not found, commission not credited")
            return Decimal(0)

        logger.debug(f"Referrer {referrer_id} credited {referral_earning} ({commission}%) from user {owner_id}")
        return referral_earning
