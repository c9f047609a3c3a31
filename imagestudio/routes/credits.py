"""
Credit API routes.

Provides endpoints for credit balance and transactions.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from imagestudio.dependencies.auth import get_current_user, TokenPayload
from imagestudio.dependencies.context import get_credit_service
from imagestudio.logging_config import get_logger
from imagestudio.sentry_config import capture_exception
from imagestudio.services.credit_service import CreditService


router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("/balance", response_model=dict)
async def get_balance(
    current_user: TokenPayload = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service)
):
    """Get the spendable credit balance, granting the welcome bonus on first use."""
    try:
        await credit_service.ensure_free_credits(current_user.sub)
        credits = await credit_service.get_balance(current_user.sub)
    except SQLAlchemyError as e:
        get_logger(user_id=current_user.sub).error("credits_balance_failed", error=str(e))
        capture_exception(e)
        raise HTTPException(
            status_code=500,
            detail="Failed to get credit balance"
        )

    return {"credits": credits}


@router.get("", response_model=dict)
async def get_credits(
    current_user: TokenPayload = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service)
):
    """Get credit balance and recent transactions for the current user."""
    try:
        balance = await credit_service.get_balance(current_user.sub)
        transactions = await credit_service.get_transactions(current_user.sub, limit=50)
    except SQLAlchemyError as e:
        get_logger(user_id=current_user.sub).error("credits_history_failed", error=str(e))
        capture_exception(e)
        raise HTTPException(
            status_code=500,
            detail="Failed to get credit history"
        )

    return {
        "balance": balance,
        "transactions": [
            {
                "id": str(t.id),
                "kind": t.kind.value,
                "credits": t.credits_delta,
                "remaining_credits": t.remaining_credits,
                "description": t.description,
                "order_no": t.order_reference,
                "created_at": t.created_at.isoformat() if t.created_at else None
            }
            for t in transactions
        ]
    }
