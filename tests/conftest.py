"""
Shared test fixtures.

Every test gets a fresh SQLite database file, the real FastAPI app wired to
it through an AppContext, and a fake generation backend. Stripe webhook
signatures are produced with the real signing scheme so verification runs
unmodified.
"""
import hashlib
import hmac
import json
import time

import httpx
import pytest
from sqlalchemy import select

from imagestudio.config import Settings
from imagestudio.context import build_context
from imagestudio.database import create_all_tables
from imagestudio.main import create_app
from imagestudio.models.credit import CreditTransaction, TransactionKind
from imagestudio.models.order import PurchaseOrder
from imagestudio.pricing import get_plan_by_id
from imagestudio.services.credit_service import CreditService
from imagestudio.services.jwt_service import JWTService
from imagestudio.services.order_service import OrderService

WEBHOOK_SECRET = "whsec_test_secret"
FAKE_IMAGE = "ZmFrZS1pbWFnZS1ieXRlcw=="


class FakeImageClient:
    """Stands in for the Gemini client; records calls, returns or raises."""

    def __init__(self):
        self.result = FAKE_IMAGE
        self.error = None
        self.calls = []

    async def generate(self, prompt, image=None, style=None):
        self.calls.append({"prompt": prompt, "image": image, "style": style})
        if self.error is not None:
            raise self.error
        return self.result

    async def aclose(self):
        pass


class Ledger:
    """Test-side access to the database, one short session per call."""

    def __init__(self, context):
        self.context = context

    async def balance(self, user_id: str) -> int:
        async with self.context.session_factory() as session:
            return await CreditService(session).get_balance(user_id)

    async def grant(self, user_id: str, amount: int, **kwargs) -> CreditTransaction:
        async with self.context.session_factory() as session:
            return await CreditService(session).grant(user_id, amount, **kwargs)

    async def consume(self, user_id: str) -> bool:
        async with self.context.session_factory() as session:
            return await CreditService(session).consume(user_id)

    async def ensure_free_credits(self, user_id: str) -> bool:
        async with self.context.session_factory() as session:
            return await CreditService(session).ensure_free_credits(user_id)

    async def transactions(self, user_id: str, kind: TransactionKind | None = None) -> list[CreditTransaction]:
        """All of a user's transactions, oldest first."""
        async with self.context.session_factory() as session:
            stmt = select(CreditTransaction).where(CreditTransaction.user_id == user_id)
            if kind is not None:
                stmt = stmt.where(CreditTransaction.kind == kind)
            stmt = stmt.order_by(CreditTransaction.created_at.asc())
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def create_order(self, user_id: str, plan_id: str = "starter", order_number: str = "ORD-1") -> PurchaseOrder:
        async with self.context.session_factory() as session:
            return await OrderService(session).create_order(user_id, get_plan_by_id(plan_id), order_number)

    async def order(self, order_number: str) -> PurchaseOrder | None:
        async with self.context.session_factory() as session:
            return await OrderService(session).get_by_order_number(order_number)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'imagestudio.db'}",
        JWT_SECRET_KEY="test-jwt-secret",
        GEMINI_API_KEY="test-gemini-key",
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        SENTRY_DSN=None,
        FRONTEND_URL="http://studio.test",
        FREE_CREDITS=5,
    )


@pytest.fixture
async def context(settings):
    ctx = build_context(settings)
    await create_all_tables(ctx.engine)
    yield ctx
    await ctx.aclose()


@pytest.fixture
async def session(context):
    async with context.session_factory() as session:
        yield session


@pytest.fixture
def ledger(context):
    return Ledger(context)


@pytest.fixture
async def image_client(context):
    real_client = context.image_client
    fake = FakeImageClient()
    context.image_client = fake
    yield fake
    await real_client.aclose()


@pytest.fixture
def app(context, image_client):
    return create_app(context=context)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(settings):
    def make(user_id: str = "user-1") -> dict:
        token = JWTService(settings).create_token(user_id, email=f"{user_id}@example.com")
        return {"Authorization": f"Bearer {token}"}
    return make


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for a payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_event(
    event_type: str = "checkout.session.completed",
    order_no: str | None = "ORD-1",
    user_id: str | None = "user-1",
    credits_amount: str | None = "100",
    payment_status: str = "paid",
    event_id: str = "evt_1"
) -> bytes:
    metadata = {}
    if order_no is not None:
        metadata["order_no"] = order_no
    if user_id is not None:
        metadata["user_id"] = user_id
    if credits_amount is not None:
        metadata["credits_amount"] = credits_amount
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": "cs_test_1",
                "object": "checkout.session",
                "payment_status": payment_status,
                "metadata": metadata,
            }
        },
    }
    return json.dumps(event).encode()
