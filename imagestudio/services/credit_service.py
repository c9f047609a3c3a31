"""
Credit ledger service.

Balance is derived from grant rows only: the sum of remaining_credits over a
user's grants. Consumption draws grants down oldest-first and appends a
consume row for the audit trail.
"""
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from imagestudio.logging_config import get_logger
from imagestudio.metrics import track_credits_granted, track_credit_consumed
from imagestudio.models.credit import CreditTransaction, TransactionKind, welcome_bonus_key

DEFAULT_FREE_CREDITS = 5
WELCOME_BONUS_DESCRIPTION = "Welcome bonus - free credits"
CONSUME_DESCRIPTION = "Image generation"


class CreditService:
    """Service for reading and mutating a user's credit ledger."""

    def __init__(self, db: AsyncSession, free_credits: int = DEFAULT_FREE_CREDITS):
        self.db = db
        self.free_credits = free_credits

    async def get_balance(self, user_id: str) -> int:
        """
        Get the spendable balance for a user.

        Args:
            user_id: Owning principal

        Returns:
            Sum of remaining credits over the user's grants (0 if none)
        """
        stmt = select(
            func.coalesce(func.sum(CreditTransaction.remaining_credits), 0)
        ).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.kind == TransactionKind.GRANT,
            CreditTransaction.remaining_credits > 0
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def get_total_granted(self, user_id: str) -> int:
        """Sum of credits ever granted to a user, spent or not."""
        stmt = select(
            func.coalesce(func.sum(CreditTransaction.credits_delta), 0)
        ).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.kind == TransactionKind.GRANT
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    def stage_grant(
        self,
        user_id: str,
        amount: int,
        order_reference: str | None = None,
        description: str | None = None,
        grant_key: str | None = None
    ) -> CreditTransaction:
        """
        Add a grant row to the session without committing.

        The caller owns the transaction; used where the grant must commit
        together with another change.
        """
        if amount <= 0:
            raise ValueError("Amount must be positive for granting credits")

        grant = CreditTransaction(
            user_id=user_id,
            kind=TransactionKind.GRANT,
            credits_delta=amount,
            remaining_credits=amount,
            description=description or f"Granted {amount} credits",
            order_reference=order_reference,
            grant_key=grant_key
        )
        self.db.add(grant)
        return grant

    async def grant(
        self,
        user_id: str,
        amount: int,
        order_reference: str | None = None,
        description: str | None = None
    ) -> CreditTransaction:
        """
        Grant credits to a user.

        Args:
            user_id: Owning principal
            amount: Credits to add (must be positive)
            order_reference: Purchase order number (optional)
            description: Transaction description (optional)

        Returns:
            The committed grant transaction
        """
        grant = self.stage_grant(user_id, amount, order_reference, description)
        await self.db.commit()

        track_credits_granted("purchase" if order_reference else "manual", amount)
        get_logger(user_id=user_id).info(
            "credits_granted",
            amount=amount,
            order_reference=order_reference
        )
        return grant

    async def ensure_free_credits(self, user_id: str) -> bool:
        """
        Grant the welcome bonus to a user who has never received any grant.

        The bonus row carries a unique grant key, so concurrent first
        requests for the same user insert it at most once.

        Returns:
            True if the bonus was granted by this call
        """
        if await self.get_total_granted(user_id) > 0:
            await self.db.rollback()
            return False

        self.stage_grant(
            user_id,
            self.free_credits,
            description=WELCOME_BONUS_DESCRIPTION,
            grant_key=welcome_bonus_key(user_id)
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            get_logger(user_id=user_id).info("welcome_bonus_already_granted")
            return False

        track_credits_granted("welcome_bonus", self.free_credits)
        get_logger(user_id=user_id).info("welcome_bonus_granted", amount=self.free_credits)
        return True

    async def consume(self, user_id: str, description: str = CONSUME_DESCRIPTION) -> bool:
        """
        Deduct exactly one credit from the user's oldest grant.

        The grant row is locked for the rest of the transaction and only
        decremented while it still has credits left, so concurrent calls
        can never spend the same credit twice.

        Args:
            user_id: Owning principal
            description: Description for the consume record

        Returns:
            True if one credit was deducted, False if none was available
        """
        log = get_logger(user_id=user_id)

        balance = await self.get_balance(user_id)
        if balance <= 0:
            await self.db.rollback()
            return False

        # FIFO: oldest grant with credits left
        stmt = (
            select(CreditTransaction)
            .where(
                CreditTransaction.user_id == user_id,
                CreditTransaction.kind == TransactionKind.GRANT,
                CreditTransaction.remaining_credits > 0
            )
            .order_by(CreditTransaction.created_at.asc(), CreditTransaction.id.asc())
            .limit(1)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        grant = result.scalar_one_or_none()

        if grant is None:
            await self.db.rollback()
            log.warning("consume_no_eligible_grant", balance=balance)
            return False

        decrement = (
            update(CreditTransaction)
            .where(
                CreditTransaction.id == grant.id,
                CreditTransaction.remaining_credits > 0
            )
            .values(remaining_credits=CreditTransaction.remaining_credits - 1)
        )
        result = await self.db.execute(decrement)
        if result.rowcount != 1:
            grant_id = grant.id
            await self.db.rollback()
            log.warning("consume_grant_exhausted", grant_id=grant_id)
            return False

        self.db.add(CreditTransaction(
            user_id=user_id,
            kind=TransactionKind.CONSUME,
            credits_delta=-1,
            remaining_credits=0,
            description=description
        ))
        await self.db.commit()

        track_credit_consumed()
        log.info("credit_consumed", grant_id=grant.id, balance_before=balance)
        return True

    async def get_transactions(self, user_id: str, limit: int = 50) -> list[CreditTransaction]:
        """
        Get credit transactions for a user.

        Args:
            user_id: Owning principal
            limit: Maximum number of transactions to return

        Returns:
            List of credit transactions (most recent first)
        """
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
