"""Integration tests for the account CRUD endpoints and tenant isolation."""

import pytest
from httpx import AsyncClient

ACME = {"X-Tenant-ID": "acme"}
GLOBEX = {"X-Tenant-ID": "globex"}
SUPER = {"X-Tenant-ID": "super"}


def account_payload(login: str, **overrides) -> dict:
    payload = {"login": login, "email": f"{login}@example.com", "first_name": "Ana"}
    payload.update(overrides)
    return payload


async def create_account(client: AsyncClient, login: str, headers: dict) -> dict:
    response = await client.post("/api/accounts", json=account_payload(login), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_assigns_tenant_and_code(client: AsyncClient):
    response = await client.post(
        "/api/accounts",
        json=account_payload("ana", email="Ana@Example.com", tenant="globex"),
        headers=ACME,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["tenant"] == "acme"
    assert data["code"] == "ACC000001"
    assert data["email"] == "ana@example.com"
    assert data["check_cancel"] is False


@pytest.mark.asyncio
async def test_codes_are_sequential_per_tenant(client: AsyncClient):
    first = await create_account(client, "ana", ACME)
    second = await create_account(client, "bob", ACME)
    other = await create_account(client, "eve", GLOBEX)

    assert first["code"] == "ACC000001"
    assert second["code"] == "ACC000002"
    assert other["code"] == "ACC000001"


@pytest.mark.asyncio
async def test_tenant_isolation(client: AsyncClient):
    account = await create_account(client, "ana", ACME)
    await create_account(client, "eve", GLOBEX)

    acme_list = await client.get("/api/accounts", headers=ACME)
    assert [a["login"] for a in acme_list.json()] == ["ana"]

    hidden = await client.get(f"/api/accounts/{account['id']}", headers=GLOBEX)
    assert hidden.status_code == 404
    assert hidden.json()["error"] == "object_not_found"

    forbidden = await client.put(
        f"/api/accounts/{account['id']}", json={"first_name": "Mallory"}, headers=GLOBEX
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "tenant_not_allowed"

    super_list = await client.get("/api/accounts", headers=SUPER)
    assert sorted(a["login"] for a in super_list.json()) == ["ana", "eve"]

    count = await client.get("/api/accounts/count", headers=SUPER)
    assert count.json() == 2


@pytest.mark.asyncio
async def test_tenant_matching_ignores_case(client: AsyncClient):
    account = await create_account(client, "ana", ACME)

    response = await client.get(f"/api/accounts/{account['id']}", headers={"X-Tenant-ID": "ACME"})

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_super_tenant_creates_for_named_tenant(client: AsyncClient):
    response = await client.post(
        "/api/accounts", json=account_payload("ana", tenant="initech"), headers=SUPER
    )

    assert response.status_code == 201
    assert response.json()["tenant"] == "initech"


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(client: AsyncClient):
    account = await create_account(client, "ana", ACME)

    response = await client.put(
        f"/api/accounts/{account['id']}", json={"last_name": "Silva"}, headers=ACME
    )

    assert response.status_code == 200
    data = response.json()
    assert data["last_name"] == "Silva"
    assert data["first_name"] == "Ana"
    assert data["code"] == account["code"]


@pytest.mark.asyncio
async def test_delete_cancels_account(client: AsyncClient):
    account = await create_account(client, "ana", ACME)

    response = await client.delete(f"/api/accounts/{account['id']}", headers=ACME)
    assert response.status_code == 204

    fetched = await client.get(f"/api/accounts/{account['id']}", headers=ACME)
    assert fetched.status_code == 200
    assert fetched.json()["check_cancel"] is True
    assert fetched.json()["cancel_date"] is not None


@pytest.mark.asyncio
async def test_duplicate_login_conflicts(client: AsyncClient):
    await create_account(client, "ana", ACME)

    response = await client.post("/api/accounts", json=account_payload("ana"), headers=ACME)

    assert response.status_code == 409
    assert response.json()["error"] == "create_constraint_violation"


@pytest.mark.asyncio
async def test_batch_create_and_pagination(client: AsyncClient):
    batch = [account_payload(login) for login in ("a1", "a2", "a3")]

    created = await client.post("/api/accounts/batch", json=batch, headers=ACME)
    assert created.status_code == 201
    assert len(created.json()) == 3

    page = await client.get("/api/accounts", params={"page": 1, "size": 2}, headers=ACME)
    assert [a["login"] for a in page.json()] == ["a3"]


@pytest.mark.asyncio
async def test_empty_batch_is_rejected(client: AsyncClient):
    response = await client.post("/api/accounts/batch", json=[], headers=ACME)

    assert response.status_code == 400
    assert response.json()["error"] == "empty_list"


@pytest.mark.asyncio
async def test_filter_by_criteria(client: AsyncClient):
    await create_account(client, "ana", ACME)
    await create_account(client, "bob", ACME)
    await create_account(client, "eve", GLOBEX)

    response = await client.get(
        "/api/accounts/filter", params={"criteria": "login = ana | login ~ ev"}, headers=ACME
    )

    assert response.status_code == 200
    assert [a["login"] for a in response.json()] == ["ana"]


@pytest.mark.asyncio
async def test_filter_errors(client: AsyncClient):
    empty = await client.get("/api/accounts/filter", headers=ACME)
    assert empty.status_code == 400
    assert empty.json()["error"] == "empty_criteria_filter"

    wrong = await client.get("/api/accounts/filter", params={"criteria": "code = x"}, headers=ACME)
    assert wrong.status_code == 400
    assert wrong.json()["error"] == "wrong_criteria_filter"


@pytest.mark.asyncio
async def test_criteria_fields(client: AsyncClient):
    response = await client.get("/api/accounts/filter/criteria", headers=ACME)

    assert response.json() == {
        "active": "bool",
        "email": "str",
        "first_name": "str",
        "last_name": "str",
        "login": "str",
    }


@pytest.mark.asyncio
async def test_missing_tenant_header(client: AsyncClient):
    response = await client.get("/api/accounts")

    assert response.status_code == 400
    assert response.json() == {
        "error": "missing_tenant",
        "message": "Header X-Tenant-ID is required",
    }


@pytest.mark.asyncio
async def test_unknown_account(client: AsyncClient):
    response = await client.delete(
        "/api/accounts/00000000-0000-0000-0000-000000000000", headers=ACME
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("tenant", ["../../escaped", "acme/globex", "..", "a\\b"])
async def test_tenant_header_must_be_plain_identifier(client: AsyncClient, tenant: str):
    response = await client.get("/api/accounts", headers={"X-Tenant-ID": tenant})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_tenant"
