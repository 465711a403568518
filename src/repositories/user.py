from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from src.core.exceptions import DuplicateObjectException, DatabaseException, ObjectNotFoundException
from src.models.user import User
from src.repositories.sqlalchemy import BaseSQLAlchemyRepository
from src.schemas.user import SUserCreate, SUserUpdate
from src.utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository(BaseSQLAlchemyRepository[User, SUserCreate, SUserUpdate]):
    _model = User
    _join_models = []

    async def create(self, obj_in: SUserCreate) -> User:
        """
        Create a new user with a generated referral code.

        If the payload carries the referral code of an existing user, that
        user becomes the referrer and their referral_count is incremented.
        """
        data = obj_in.model_dump(exclude_unset=True)
        inviter_code = data.pop("referral_code", None)

        generated_code = str(uuid4())[:8]
        # check if the generated referral code already exists
        while await self.f(referral_code=generated_code):
            generated_code = str(uuid4())[:8]
        data["referral_code"] = generated_code

        inviter = None
        if inviter_code:
            logger.debug(f"Processing referral code: {inviter_code}")
            inviter = await self.get(referral_code=inviter_code)
            data["referred_by"] = inviter.id

        db_obj = self._model(**data)
        self.db.add(db_obj)
        try:
            if inviter is not None:
                await self.db.execute(
                    update(User)
                    .where(User.id == inviter.id)
                    .values(referral_count=User.referral_count + 1)
                    .execution_options(synchronize_session=False)
                )
            await self.db.commit()
            await self.db.refresh(db_obj)
            return db_obj
        except IntegrityError as exc:
            await self.db.rollback()
            logger.error(f"IntegrityError during user creation: {exc}")
            raise DuplicateObjectException("User with the given email already exists.") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"SQLAlchemyError during user creation: {exc}")
            raise DatabaseException("An error occurred while creating the user.") from exc

    async def get_cpm_rate(self, user_id: int) -> Optional[Decimal]:
        """
        CPM rate of a link owner, or None when the account does not exist.
        """
        result = await self.db.execute(select(User.cpm_rate).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_referrer(self, user_id: int) -> Optional[Tuple[int, Decimal]]:
        """
        (referrer id, referrer's own referral_commission) for a user, one hop only.
        """
        referred_by = select(User.referred_by).where(User.id == user_id).scalar_subquery()
        result = await self.db.execute(
            select(User.id, User.referral_commission).where(User.id == referred_by)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def increment_earnings(self, user_id: int, amount: Decimal, referral: bool = False) -> bool:
        """
        Atomically add `amount` to total and pending earnings (and to
        referral earnings for referral credits). Does not commit.

        Returns:
            bool: False when the account does not exist.
        """
        values = {
            "total_earnings": User.total_earnings + amount,
            "pending_earnings": User.pending_earnings + amount,
        }
        if referral:
            values["referral_earnings"] = User.referral_earnings + amount

        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def get_referred_users(self, user_id: int) -> List[User]:
        """
        Get a list of users referred by the given user.
        """
        logger.info(f"Fetching referred users for user {user_id}.")

        query = select(User).where(User.referred_by == user_id).order_by(User.id.desc())
        try:
            result = await self.db.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching referred users: {exc}")
            raise DatabaseException("An error occurred while fetching referred users.") from exc

    async def ensure_exists(self, user_id: int) -> None:
        result = await self.db.execute(select(func.count(User.id)).where(User.id == user_id))
        if not result.scalar_one():
            raise ObjectNotFoundException(f"User {user_id} not found.")
