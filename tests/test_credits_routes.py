"""
Tests for the credit balance and history endpoints.
"""
import pytest
from sqlalchemy.exc import SQLAlchemyError

from imagestudio.services.credit_service import CreditService


async def test_balance_requires_authentication(client):
    response = await client.get("/api/credits/balance")

    assert response.status_code == 401


async def test_first_balance_read_grants_welcome_bonus(client, auth_headers, ledger):
    first = await client.get("/api/credits/balance", headers=auth_headers())
    second = await client.get("/api/credits/balance", headers=auth_headers())

    assert first.status_code == 200
    assert first.json() == {"credits": 5}
    assert second.json() == {"credits": 5}
    assert len(await ledger.transactions("user-1")) == 1


async def test_balance_reflects_purchases_and_spend(client, auth_headers, ledger):
    await ledger.grant("user-1", 100, order_reference="ORD-1")
    await ledger.consume("user-1")

    response = await client.get("/api/credits/balance", headers=auth_headers())

    assert response.json() == {"credits": 99}


async def test_credit_history(client, auth_headers, ledger):
    await ledger.grant("user-1", 3, order_reference="ORD-7", description="Purchased 3 credits")
    await ledger.consume("user-1")

    response = await client.get("/api/credits", headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["balance"] == 2
    consume, grant = body["transactions"]
    assert consume["kind"] == "consume"
    assert consume["credits"] == -1
    assert grant["kind"] == "grant"
    assert grant["credits"] == 3
    assert grant["remaining_credits"] == 2
    assert grant["order_no"] == "ORD-7"
    assert grant["description"] == "Purchased 3 credits"


async def test_history_is_per_user(client, auth_headers, ledger):
    await ledger.grant("user-2", 10)

    response = await client.get("/api/credits", headers=auth_headers("user-1"))

    assert response.json() == {"balance": 0, "transactions": []}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_metrics_endpoint(client, auth_headers):
    await client.get("/api/credits/balance", headers=auth_headers())

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "credits_granted_total" in response.text


@pytest.mark.parametrize("path, method_name, detail", [
    ("/api/credits/balance", "get_balance", "Failed to get credit balance"),
    ("/api/credits", "get_balance", "Failed to get credit history"),
    ("/api/credits", "get_transactions", "Failed to get credit history"),
])
async def test_storage_errors_answer_500(client, auth_headers, monkeypatch, path, method_name, detail):
    async def unavailable(self, *args, **kwargs):
        raise SQLAlchemyError("storage unavailable")

    monkeypatch.setattr(CreditService, method_name, unavailable)

    response = await client.get(path, headers=auth_headers())

    assert response.status_code == 500
    assert response.json() == {"detail": detail}
