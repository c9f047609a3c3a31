"""
Credit ledger model.

Append-only record of every credit-affecting transaction. Grant rows carry a
remaining_credits counter that consumption draws down oldest-first; consume
rows are the audit trail of single-unit deductions.
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Index,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum
from imagestudio.models.base import Base, enum_values, utcnow


class TransactionKind(str, enum.Enum):
    """Credit transaction kind enum."""
    GRANT = "grant"
    CONSUME = "consume"


def welcome_bonus_key(user_id: str) -> str:
    """Unique grant key marking a user's one-time welcome bonus."""
    return f"welcome:{user_id}"


class CreditTransaction(Base):
    """
    Credit transaction model.

    Rows are never deleted. The only column that changes after insert is
    remaining_credits on grant rows, and it only ever goes down.
    """
    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint(
            "remaining_credits >= 0",
            name="ck_credit_transactions_remaining_non_negative"
        ),
        Index(
            "ix_credit_transactions_user_kind_created",
            "user_id",
            "kind",
            "created_at"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[TransactionKind] = mapped_column(
        SQLEnum(TransactionKind, native_enum=False, values_callable=enum_values),
        nullable=False
    )
    credits_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    order_reference: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    # NULL for ordinary grants; set only where a grant must never repeat
    grant_key: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    # Application-side timestamp keeps microsecond resolution for FIFO ordering
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    def __repr__(self):
        return (
            f"<CreditTransaction(id={self.id}, user_id={self.user_id}, kind={self.kind}, "
            f"delta={self.credits_delta}, remaining={self.remaining_credits})>"
        )
