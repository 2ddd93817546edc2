import uuid
import pytest
from httpx import AsyncClient


async def create_transaction(client: AsyncClient, headers, **overrides):
    payload = {
        "kind": "expense",
        "amount": 15.5,
        "category": "Food & Restaurants",
        "description": f"Lunch {uuid.uuid4().hex[:6]}",
        "occurredAt": "2024-01-10T12:30:00",
    }
    payload.update(overrides)
    response = await client.post("/transactions", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_transaction(client: AsyncClient, auth_headers_user):
    data = await create_transaction(
        client, auth_headers_user, tags=["work"], notes="team lunch"
    )

    assert data["kind"] == "expense"
    assert float(data["amount"]) == 15.5
    assert data["category"] == "Food & Restaurants"
    assert data["occurredAt"].startswith("2024-01-10T12:30:00")
    assert data["tags"] == ["work"]
    assert data["notes"] == "team lunch"
    assert "id" in data


@pytest.mark.asyncio
async def test_create_defaults_occurred_at(client: AsyncClient, auth_headers_user):
    payload = {
        "kind": "income",
        "amount": 100,
        "category": "Salary",
        "description": "Paycheck",
    }
    response = await client.post("/transactions", json=payload, headers=auth_headers_user)

    assert response.status_code == 201
    assert response.json()["occurredAt"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": -1},
        {"amount": "abc"},
        {"kind": "transfer"},
        {"category": "   "},
        {"description": ""},
        {"occurredAt": "not-a-date"},
    ],
)
async def test_create_rejects_invalid_input(
    client: AsyncClient, auth_headers_user, overrides
):
    payload = {
        "kind": "expense",
        "amount": 10,
        "category": "Food",
        "description": "Snack",
    }
    payload.update(overrides)
    response = await client.post("/transactions", json=payload, headers=auth_headers_user)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_requires_auth(client: AsyncClient):
    response = await client.post(
        "/transactions",
        json={"kind": "expense", "amount": 1, "category": "x", "description": "y"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_transactions_paginates(client: AsyncClient, auth_headers_user):
    for day in (1, 2, 3):
        await create_transaction(
            client, auth_headers_user, occurredAt=f"2024-01-0{day}T09:00:00"
        )

    response = await client.get(
        "/transactions", params={"limit": 2}, headers=auth_headers_user
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data["transactions"]) == 2
    assert data["transactions"][0]["occurredAt"].startswith("2024-01-03")
    assert data["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalItems": 3,
        "itemsPerPage": 2,
    }

    second = await client.get(
        "/transactions", params={"limit": 2, "page": 2}, headers=auth_headers_user
    )
    assert len(second.json()["transactions"]) == 1


@pytest.mark.asyncio
async def test_list_filters_and_sorting(client: AsyncClient, auth_headers_user):
    await create_transaction(client, auth_headers_user, amount=30, category="Rent")
    await create_transaction(client, auth_headers_user, amount=10, category="Food")
    await create_transaction(
        client, auth_headers_user, kind="income", amount=500, category="Salary"
    )

    expenses = await client.get(
        "/transactions",
        params={"kind": "expense", "sort_by": "amount", "sort_order": "asc"},
        headers=auth_headers_user,
    )
    amounts = [float(t["amount"]) for t in expenses.json()["transactions"]]
    assert amounts == [10, 30]

    rent = await client.get(
        "/transactions", params={"category": "Rent"}, headers=auth_headers_user
    )
    assert [t["category"] for t in rent.json()["transactions"]] == ["Rent"]


@pytest.mark.asyncio
async def test_list_rejects_reversed_dates(client: AsyncClient, auth_headers_user):
    response = await client.get(
        "/transactions",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=auth_headers_user,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_update_delete(client: AsyncClient, auth_headers_user):
    created = await create_transaction(client, auth_headers_user)

    fetched = await client.get(f"/transactions/{created['id']}", headers=auth_headers_user)
    assert fetched.status_code == 200
    assert fetched.json()["description"] == created["description"]

    updated = await client.put(
        f"/transactions/{created['id']}",
        json={"amount": 42, "category": "Groceries", "kind": "expense"},
        headers=auth_headers_user,
    )
    assert updated.status_code == 200
    assert float(updated.json()["amount"]) == 42
    assert updated.json()["category"] == "Groceries"
    assert updated.json()["description"] == created["description"]

    deleted = await client.delete(
        f"/transactions/{created['id']}", headers=auth_headers_user
    )
    assert deleted.status_code == 200

    missing = await client.get(f"/transactions/{created['id']}", headers=auth_headers_user)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Transaction not found"


@pytest.mark.asyncio
async def test_update_rejects_nulls_and_negative(client: AsyncClient, auth_headers_user):
    created = await create_transaction(client, auth_headers_user)

    for body in ({"amount": None}, {"amount": -5}, {"category": ""}):
        response = await client.put(
            f"/transactions/{created['id']}", json=body, headers=auth_headers_user
        )
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_other_users_transactions_are_hidden(
    client: AsyncClient, auth_headers_user, auth_headers_other
):
    created = await create_transaction(client, auth_headers_user)

    assert (
        await client.get(f"/transactions/{created['id']}", headers=auth_headers_other)
    ).status_code == 404
    assert (
        await client.put(
            f"/transactions/{created['id']}",
            json={"amount": 1},
            headers=auth_headers_other,
        )
    ).status_code == 404
    assert (
        await client.delete(f"/transactions/{created['id']}", headers=auth_headers_other)
    ).status_code == 404

    listing = await client.get("/transactions", headers=auth_headers_other)
    assert listing.json()["transactions"] == []


@pytest.mark.asyncio
async def test_transaction_summary(client: AsyncClient, auth_headers_user):
    await create_transaction(
        client, auth_headers_user, kind="income", amount=1000, category="Salary"
    )
    await create_transaction(client, auth_headers_user, amount=200)
    await create_transaction(
        client, auth_headers_user, amount=50, occurredAt="2024-02-01T10:00:00"
    )

    response = await client.get("/transactions/summary", headers=auth_headers_user)
    assert response.status_code == 200
    assert response.json() == {
        "income": {"total": 1000, "count": 1},
        "expense": {"total": 250, "count": 2},
        "net": 750,
    }

    january = await client.get(
        "/transactions/summary",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers_user,
    )
    assert january.json()["expense"] == {"total": 200, "count": 1}
