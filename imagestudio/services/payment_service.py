"""
Stripe payment gateway.

Opens hosted checkout sessions for credit purchases and verifies incoming
webhook signatures.
"""
import asyncio
import json
from dataclasses import dataclass

import stripe

from imagestudio.exceptions import InvalidWebhookError, PaymentConfigError, UpstreamError
from imagestudio.logging_config import get_logger
from imagestudio.pricing import PricingPlan

logger = get_logger(component="payments")


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class PaymentGateway:
    """Thin wrapper over the Stripe SDK bound to one set of credentials."""

    def __init__(
        self,
        secret_key: str | None,
        webhook_secret: str | None,
        webhook_tolerance: int = 300,
        currency: str = "usd"
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        self.currency = currency

    async def create_checkout_session(
        self,
        order_number: str,
        user_id: str,
        plan: PricingPlan,
        success_url: str,
        cancel_url: str
    ) -> CheckoutSession:
        """
        Create a one-off payment checkout session for a plan.

        The order number, user and credit amount travel in the session
        metadata and come back on the checkout.session.* webhooks.
        """
        if not self.secret_key:
            raise PaymentConfigError("STRIPE_SECRET_KEY is not configured")

        params = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": plan.price_in_cents,
                        "product_data": {
                            "name": f"{plan.name} - {plan.credits} Credits",
                            "description": plan.description,
                        },
                    },
                    "quantity": 1,
                }
            ],
            "metadata": {
                "order_no": order_number,
                "user_id": user_id,
                "plan_id": plan.id,
                "credits_amount": str(plan.credits),
            },
            "success_url": success_url,
            "cancel_url": cancel_url,
        }

        try:
            # The Stripe SDK call is blocking
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.secret_key,
                **params
            )
        except stripe.StripeError as e:
            logger.error("stripe_checkout_failed", order_no=order_number, error=str(e))
            raise UpstreamError(f"Failed to create checkout session: {e}") from e

        if not session.url:
            raise UpstreamError("Failed to create checkout session")

        return CheckoutSession(id=session.id, url=session.url)

    def verify_event(self, payload: bytes, signature: str) -> dict:
        """
        Verify a webhook signature and decode the event.

        The signature is checked against the raw request bytes before any
        JSON parsing.

        Raises:
            PaymentConfigError: Webhook secret not configured
            InvalidWebhookError: Signature or payload invalid
        """
        if not self.webhook_secret:
            raise PaymentConfigError("STRIPE_WEBHOOK_SECRET is not configured")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self.webhook_secret,
                self.webhook_tolerance
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            raise InvalidWebhookError(f"Invalid signature: {e}") from e
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidWebhookError(f"Invalid payload: {e}") from e

        if not isinstance(event, dict) or "type" not in event:
            raise InvalidWebhookError("Invalid payload: not an event")
        return event
