"""
Purchase order service and payment fulfillment gate.

Status transitions are compare-and-swap updates on (order_number, status),
so redelivered or concurrent payment confirmations apply at most once.
"""
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from imagestudio.exceptions import OrderMismatchError, OrderNotFoundError
from imagestudio.logging_config import get_logger
from imagestudio.metrics import track_credits_granted
from imagestudio.models.base import utcnow
from imagestudio.models.order import OrderStatus, PurchaseOrder
from imagestudio.pricing import PricingPlan
from imagestudio.services.credit_service import CreditService


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of a payment confirmation; applied is False for redeliveries."""
    applied: bool
    order_number: str
    status: OrderStatus


class OrderService:
    """Service for purchase orders and their fulfillment."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(
        self,
        user_id: str,
        plan: PricingPlan,
        order_number: str,
        currency: str = "usd"
    ) -> PurchaseOrder:
        """
        Create a pending order for a plan.

        Args:
            user_id: Buyer
            plan: Pricing plan being purchased
            order_number: Externally unique order number
            currency: ISO currency code

        Returns:
            Newly created PurchaseOrder
        """
        order = PurchaseOrder(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            amount=plan.price_in_cents,
            currency=currency,
            plan_id=plan.id,
            credits_amount=plan.credits
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)
        return order

    async def attach_payment_session(self, order_number: str, session_id: str) -> None:
        """Record the checkout session opened for an order."""
        stmt = (
            update(PurchaseOrder)
            .where(PurchaseOrder.order_number == order_number)
            .values(payment_session_id=session_id)
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def get_by_order_number(self, order_number: str) -> PurchaseOrder | None:
        """Get order by its order number."""
        stmt = select(PurchaseOrder).where(PurchaseOrder.order_number == order_number)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(self, order_number: str, user_id: str) -> PurchaseOrder | None:
        """Get order by order number, only if it belongs to the user."""
        stmt = select(PurchaseOrder).where(
            PurchaseOrder.order_number == order_number,
            PurchaseOrder.user_id == user_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def fulfill(
        self,
        order_number: str,
        user_id: str,
        credits_amount: int,
        payment_session_id: str | None = None
    ) -> FulfillmentResult:
        """
        Apply a payment confirmation exactly once.

        Marks the order paid and grants its credits in one transaction.
        A confirmation for an order that is no longer pending changes
        nothing and reports applied=False.

        Args:
            order_number: Idempotency key from the payment metadata
            user_id: Buyer from the payment metadata
            credits_amount: Credits from the payment metadata
            payment_session_id: Checkout session that was paid (optional)

        Returns:
            FulfillmentResult

        Raises:
            OrderNotFoundError: No order with this number exists
            OrderMismatchError: Metadata disagrees with the stored order
        """
        log = get_logger(order_no=order_number, user_id=user_id)

        order = await self.get_by_order_number(order_number)
        if order is None:
            await self.db.rollback()
            raise OrderNotFoundError(order_number)

        if order.user_id != user_id or order.credits_amount != credits_amount:
            # Rollback expires the order; log its fields first
            log.error(
                "order_metadata_mismatch",
                order_user_id=order.user_id,
                order_credits=order.credits_amount,
                credits_amount=credits_amount
            )
            await self.db.rollback()
            raise OrderMismatchError(f"Payment metadata does not match order {order_number}")

        previous_status = order.status
        values = {"status": OrderStatus.PAID, "paid_at": utcnow()}
        if payment_session_id:
            values["payment_session_id"] = payment_session_id

        transition = (
            update(PurchaseOrder)
            .where(
                PurchaseOrder.order_number == order_number,
                PurchaseOrder.status == OrderStatus.PENDING
            )
            .values(**values)
        )
        result = await self.db.execute(transition)

        if result.rowcount != 1:
            await self.db.rollback()
            current = await self.get_by_order_number(order_number)
            status = current.status if current else previous_status
            await self.db.rollback()
            log.info("order_already_processed", status=status.value)
            return FulfillmentResult(applied=False, order_number=order_number, status=status)

        CreditService(self.db).stage_grant(
            user_id,
            credits_amount,
            order_reference=order_number,
            description=f"Purchased {credits_amount} credits"
        )
        await self.db.commit()

        track_credits_granted("purchase", credits_amount)
        log.info("order_paid", credits_granted=credits_amount)
        return FulfillmentResult(applied=True, order_number=order_number, status=OrderStatus.PAID)

    async def mark_failed(self, order_number: str) -> bool:
        """
        Move a pending order to failed.

        Returns:
            True if the order was pending and is now failed
        """
        stmt = (
            update(PurchaseOrder)
            .where(
                PurchaseOrder.order_number == order_number,
                PurchaseOrder.status == OrderStatus.PENDING
            )
            .values(status=OrderStatus.FAILED)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        failed = result.rowcount == 1
        get_logger(order_no=order_number).info("order_mark_failed", applied=failed)
        return failed
