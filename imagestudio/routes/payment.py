"""
Payment API routes.

Checkout initiation, order status polling and the Stripe webhook that
fulfils paid orders.
"""
import secrets
import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from imagestudio.config import Settings
from imagestudio.dependencies.auth import get_current_user, TokenPayload
from imagestudio.dependencies.context import get_db, get_payment_gateway, get_settings
from imagestudio.exceptions import (
    InvalidWebhookError,
    OrderMismatchError,
    OrderNotFoundError,
    PaymentConfigError,
    UpstreamError,
)
from imagestudio.logging_config import get_logger
from imagestudio.metrics import track_payment_webhook
from imagestudio.pricing import PLANS, get_plan_by_id
from imagestudio.sentry_config import capture_message
from imagestudio.services.order_service import OrderService
from imagestudio.services.payment_service import PaymentGateway

router = APIRouter(prefix="/api/payment", tags=["payment"])

logger = get_logger(component="payment")

PAID_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
FAILED_EVENTS = {"checkout.session.expired", "checkout.session.async_payment_failed"}


class CheckoutRequest(BaseModel):
    """Request model for starting a checkout."""
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(alias="planId", min_length=1)


def generate_order_number() -> str:
    """ORD-<epoch millis>-<6 random hex chars>."""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


@router.get("/plans", response_model=dict)
async def list_plans():
    """List the available credit plans."""
    return {"plans": [plan.to_dict() for plan in PLANS]}


@router.post("/checkout", response_model=dict)
async def create_checkout(
    request: CheckoutRequest,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings)
):
    """
    Start a hosted checkout for a paid plan.

    The pending order is stored before the checkout session is opened, so a
    payment confirmation can never arrive for an order we do not know.
    """
    plan = get_plan_by_id(request.plan_id)
    if not plan or plan.is_free:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid plan"
        )

    log = get_logger(user_id=current_user.sub, plan_id=plan.id)
    order_service = OrderService(db)
    order_number = generate_order_number()
    await order_service.create_order(current_user.sub, plan, order_number)

    base_url = settings.FRONTEND_URL.rstrip("/")
    try:
        session = await gateway.create_checkout_session(
            order_number=order_number,
            user_id=current_user.sub,
            plan=plan,
            success_url=f"{base_url}/payment/success?order_no={order_number}",
            cancel_url=f"{base_url}/payment/cancel",
        )
    except (PaymentConfigError, UpstreamError) as e:
        await order_service.mark_failed(order_number)
        log.error("checkout_failed", order_no=order_number, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Checkout failed"
        )

    await order_service.attach_payment_session(order_number, session.id)
    log.info("checkout_created", order_no=order_number, session_id=session.id)
    return {"url": session.url}


@router.get("/orders/{order_no}", response_model=dict)
async def get_order(
    order_no: str,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the status of one of the current user's orders."""
    order = await OrderService(db).get_for_user(order_no, current_user.sub)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    return {
        "order_no": order.order_number,
        "status": order.status.value,
        "plan_id": order.plan_id,
        "amount": order.amount,
        "currency": order.currency,
        "credits_amount": order.credits_amount,
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def _parse_credits(raw) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


@router.post("/webhook", response_model=dict)
async def handle_stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """
    Handle Stripe webhooks.

    Stripe delivers at least once; every branch here is safe to repeat.
    Answers 200 for processed and already-processed events alike.
    """
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    payload = await request.body()
    try:
        event = gateway.verify_event(payload, signature)
    except PaymentConfigError as e:
        logger.error("webhook_secret_missing", error=str(e))
        raise HTTPException(status_code=500, detail="Webhook secret not configured")
    except InvalidWebhookError as e:
        logger.warning("webhook_verification_failed", error=str(e))
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    event_type = event["type"]
    session = (event.get("data") or {}).get("object") or {}
    metadata = session.get("metadata") or {}
    log = logger.bind(event_id=event.get("id"), event_type=event_type)

    if event_type in PAID_EVENTS:
        if session.get("payment_status") == "unpaid":
            # Delayed payment method; async_payment_succeeded follows
            log.info("webhook_payment_pending", order_no=metadata.get("order_no"))
            track_payment_webhook(event_type, "payment_pending")
            return {"received": True}

        order_no = metadata.get("order_no")
        user_id = metadata.get("user_id")
        credits_amount = _parse_credits(metadata.get("credits_amount"))

        if not order_no or not user_id or credits_amount <= 0:
            log.error("webhook_missing_metadata", metadata=metadata)
            track_payment_webhook(event_type, "invalid_metadata")
            raise HTTPException(status_code=400, detail="Missing metadata")

        try:
            result = await OrderService(db).fulfill(
                order_number=order_no,
                user_id=user_id,
                credits_amount=credits_amount,
                payment_session_id=session.get("id")
            )
        except OrderNotFoundError:
            log.error("webhook_order_not_found", order_no=order_no)
            capture_message(f"Payment webhook for unknown order {order_no}", level="error")
            track_payment_webhook(event_type, "order_not_found")
            raise HTTPException(status_code=404, detail="Order not found")
        except OrderMismatchError as e:
            track_payment_webhook(event_type, "invalid_metadata")
            raise HTTPException(status_code=400, detail=str(e))

        track_payment_webhook(event_type, "applied" if result.applied else "duplicate")
        log.info("webhook_order_processed", order_no=order_no, applied=result.applied)

    elif event_type in FAILED_EVENTS:
        order_no = metadata.get("order_no")
        if order_no:
            failed = await OrderService(db).mark_failed(order_no)
            track_payment_webhook(event_type, "failed" if failed else "duplicate")
        else:
            track_payment_webhook(event_type, "ignored")

    else:
        log.info("webhook_event_ignored")
        track_payment_webhook("other", "ignored")

    return {"received": True}
