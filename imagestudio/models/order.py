"""
Purchase order model.

One row per checkout attempt. The order number doubles as the idempotency
key for payment confirmations.
"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from imagestudio.models.base import Base, TimestampMixin, enum_values


class OrderStatus(str, enum.Enum):
    """
    Order status enum.

    pending -> paid and pending -> failed are the only transitions;
    paid and failed are terminal.
    """
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PurchaseOrder(Base, TimestampMixin):
    """Credit purchase order."""
    __tablename__ = "purchase_orders"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    order_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=OrderStatus.PENDING
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # cents
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    plan_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    credits_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<PurchaseOrder(order_number={self.order_number}, user_id={self.user_id}, status={self.status})>"
