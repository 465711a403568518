import random
import secrets
import string
from typing import Awaitable, Callable, Optional

from src.core.config import settings
from src.core.exceptions import AllocationExhausted
from src.utils.logger import get_logger

logger = get_logger(__name__)

# URL-safe alphabet, same as nanoid's default
SHORT_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_short_id(length: int, rng: Optional[random.Random] = None) -> str:
    choice = rng.choice if rng is not None else secrets.choice
    return "".join(choice(SHORT_ID_ALPHABET) for _ in range(length))


class ShortIdAllocator:
    """
    Выдаёт свободный short_id.

    Args:
        exists: корутина, проверяющая, занят ли идентификатор
        length: длина идентификатора
        max_attempts: сколько кандидатов проверить до AllocationExhausted
        rng: источник случайности (для тестов - random.Random(seed))
    """

    def __init__(
            self,
            exists: Callable[[str], Awaitable[bool]],
            length: int = None,
            max_attempts: int = None,
            rng: Optional[random.Random] = None,
    ) -> None:
        self.exists = exists
        self.length = length or settings.SHORT_ID_LENGTH
        self.max_attempts = max_attempts or settings.SHORT_ID_MAX_ATTEMPTS
        self.rng = rng

    async def allocate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_short_id(self.length, self.rng)
            if not await self.exists(candidate):
                return candidate
            logger.warning(f"Short ID collision on '{candidate}' (attempt {attempt}/{self.max_attempts})")

        logger.error(f"Short ID allocation exhausted after {self.max_attempts} attempts")
        raise AllocationExhausted()
