"""
tests/api/v1/test_members.py
─────────────────────────────
Integration tests for driver and manager management.

Coverage:
  - GET/PUT/DELETE /drivers/{id}, GET /drivers (paging, status filter)
  - GET/PUT/DELETE /managers/{id}, GET /managers
  - POST /drivers/invite, POST /managers/invite
  - Role and company fields are locked on update
  - Other companies' members are invisible (404)
  - Suspended members are locked out
"""

import pytest
from httpx import AsyncClient

from fleetflow.core.config import settings

API = settings.API_V1_PREFIX


# ─────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────

async def _signin(client: AsyncClient, email: str, password: str) -> dict:
    res = await client.post(f"{API}/auth/signin", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['accessToken']}"}


async def _create_admin(
    client: AsyncClient, email: str = "admin@fleet.com", company: str = "Acme Haulage"
) -> tuple[dict, str]:
    res = await client.post(f"{API}/auth/signup", json={
        "email": email, "password": "adminpass123", "displayName": "Admin", "companyName": company,
    })
    assert res.status_code == 201, res.text
    return await _signin(client, email, "adminpass123"), res.json()["companyId"]


async def _add_member(
    client: AsyncClient, headers: dict, company_id: str, email: str, role: str = "driver"
) -> tuple[dict, str]:
    """Invite through the role route, redeem, sign in. Returns (headers, profile id)."""
    res = await client.post(f"{API}/{role}s/invite", headers=headers, json={
        "inviteeName": email.split("@")[0], "inviteeEmail": email, "companyId": company_id,
    })
    assert res.status_code == 201, res.text
    assert res.json()["role"] == role

    res = await client.post(f"{API}/invites/accept", json={
        "token": res.json()["token"], "email": email, "password": "secret123",
    })
    assert res.status_code == 201, res.text
    return await _signin(client, email, "secret123"), res.json()["id"]


# ─────────────────────────────────────────────────────────────────────────
# Drivers
# ─────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_drivers(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    for name in ("ann", "bob", "cat"):
        await _add_member(client, admin, company_id, f"{name}@x.com")
    await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    res = await client.get(f"{API}/drivers", headers=admin)
    assert res.status_code == 200
    page = res.json()
    assert page["total"] == 3
    assert {d["email"] for d in page["items"]} == {"ann@x.com", "bob@x.com", "cat@x.com"}
    assert all(d["role"] == "driver" for d in page["items"])


@pytest.mark.asyncio
async def test_list_drivers_paging(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    for name in ("ann", "bob", "cat"):
        await _add_member(client, admin, company_id, f"{name}@x.com")

    page = (await client.get(f"{API}/drivers?limit=2&offset=2", headers=admin)).json()
    assert page["total"] == 3
    assert page["limit"] == 2
    assert page["offset"] == 2
    assert len(page["items"]) == 1


@pytest.mark.asyncio
async def test_list_drivers_rejects_oversized_page(client: AsyncClient):
    admin, _ = await _create_admin(client)
    res = await client.get(f"{API}/drivers?limit=101", headers=admin)
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_list_drivers_status_filter(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    _, ann = await _add_member(client, admin, company_id, "ann@x.com")
    await _add_member(client, admin, company_id, "bob@x.com")
    await client.put(f"{API}/drivers/{ann}", headers=admin, json={"status": "inactive"})

    page = (await client.get(f"{API}/drivers?status=active", headers=admin)).json()
    assert [d["email"] for d in page["items"]] == ["bob@x.com"]

    page = (await client.get(f"{API}/drivers?status=inactive", headers=admin)).json()
    assert [d["email"] for d in page["items"]] == ["ann@x.com"]


@pytest.mark.asyncio
async def test_driver_can_view_colleagues(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    driver, _ = await _add_member(client, admin, company_id, "ann@x.com")
    _, bob = await _add_member(client, admin, company_id, "bob@x.com")

    assert (await client.get(f"{API}/drivers", headers=driver)).status_code == 200
    res = await client.get(f"{API}/drivers/{bob}", headers=driver)
    assert res.status_code == 200
    assert res.json()["email"] == "bob@x.com"


@pytest.mark.asyncio
async def test_drivers_of_other_companies_are_not_found(client: AsyncClient):
    admin1, c1 = await _create_admin(client, "admin1@fleet.com", "Company One")
    admin2, _ = await _create_admin(client, "admin2@fleet.com", "Company Two")
    _, ann = await _add_member(client, admin1, c1, "ann@x.com")

    foreign = await client.get(f"{API}/drivers/{ann}", headers=admin2)
    unknown = await client.get(f"{API}/drivers/{'f' * 32}", headers=admin2)
    assert foreign.status_code == unknown.status_code == 404
    assert foreign.json() == unknown.json()
    res = await client.put(f"{API}/drivers/{ann}", headers=admin2, json={"notes": "hi"})
    assert res.status_code == 404
    assert (await client.delete(f"{API}/drivers/{ann}", headers=admin2)).status_code == 404

    page = (await client.get(f"{API}/drivers", headers=admin2)).json()
    assert page["total"] == 0


@pytest.mark.asyncio
async def test_manager_id_is_not_a_driver(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    _, mike = await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    res = await client.get(f"{API}/drivers/{mike}", headers=admin)
    assert res.status_code == 404
    assert res.json()["message"] == "Driver not found"


@pytest.mark.asyncio
async def test_manager_updates_driver(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    manager, _ = await _add_member(client, admin, company_id, "mike@x.com", role="manager")
    _, ann = await _add_member(client, admin, company_id, "ann@x.com")

    res = await client.put(f"{API}/drivers/{ann}", headers=manager, json={
        "licenseNumber": "DK-123456",
        "licenseExpiry": "2030-01-31T00:00:00Z",
        "notes": "Night shifts only",
    })
    assert res.status_code == 200
    data = res.json()
    assert data["licenseNumber"] == "DK-123456"
    assert data["notes"] == "Night shifts only"
    assert data["role"] == "driver"
    assert data["companyId"] == company_id


@pytest.mark.asyncio
@pytest.mark.parametrize("field, value", [("role", "admin"), ("companyId", "elsewhere")])
async def test_driver_role_and_company_are_locked(client: AsyncClient, field, value):
    admin, company_id = await _create_admin(client)
    _, ann = await _add_member(client, admin, company_id, "ann@x.com")

    res = await client.put(f"{API}/drivers/{ann}", headers=admin, json={field: value})
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot change driver company or role"

    driver = (await client.get(f"{API}/drivers/{ann}", headers=admin)).json()
    assert driver["role"] == "driver"
    assert driver["companyId"] == company_id


@pytest.mark.asyncio
async def test_driver_cannot_update_drivers(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    driver, ann = await _add_member(client, admin, company_id, "ann@x.com")

    res = await client.put(f"{API}/drivers/{ann}", headers=driver, json={"notes": "me"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_suspended_driver_is_locked_out(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    driver, ann = await _add_member(client, admin, company_id, "ann@x.com")

    res = await client.put(f"{API}/drivers/{ann}", headers=admin, json={"status": "suspended"})
    assert res.status_code == 200
    assert res.json()["status"] == "suspended"

    res = await client.get(f"{API}/auth/profile", headers=driver)
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_delete_driver(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    _, ann = await _add_member(client, admin, company_id, "ann@x.com")

    res = await client.delete(f"{API}/drivers/{ann}", headers=admin)
    assert res.status_code == 204
    assert (await client.get(f"{API}/drivers/{ann}", headers=admin)).status_code == 404


@pytest.mark.asyncio
async def test_manager_cannot_delete_driver(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    manager, _ = await _add_member(client, admin, company_id, "mike@x.com", role="manager")
    _, ann = await _add_member(client, admin, company_id, "ann@x.com")

    assert (await client.delete(f"{API}/drivers/{ann}", headers=manager)).status_code == 403


@pytest.mark.asyncio
async def test_manager_invites_driver_via_role_route(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    manager, _ = await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    await _add_member(client, manager, company_id, "ann@x.com")

    page = (await client.get(f"{API}/drivers", headers=manager)).json()
    assert [d["email"] for d in page["items"]] == ["ann@x.com"]


# ─────────────────────────────────────────────────────────────────────────
# Managers
# ─────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_and_get_managers(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    _, mike = await _add_member(client, admin, company_id, "mike@x.com", role="manager")
    await _add_member(client, admin, company_id, "ann@x.com")

    page = (await client.get(f"{API}/managers", headers=admin)).json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == mike

    res = await client.get(f"{API}/managers/{mike}", headers=admin)
    assert res.status_code == 200
    assert res.json()["role"] == "manager"


@pytest.mark.asyncio
async def test_managers_are_admin_only(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    manager, mike = await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    assert (await client.get(f"{API}/managers", headers=manager)).status_code == 403
    assert (await client.get(f"{API}/managers/{mike}", headers=manager)).status_code == 403
    res = await client.post(f"{API}/managers/invite", headers=manager, json={
        "inviteeName": "Other", "inviteeEmail": "other@x.com", "companyId": company_id,
    })
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_update_manager(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    _, mike = await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    res = await client.put(f"{API}/managers/{mike}", headers=admin, json={
        "displayName": "Mike M.", "phoneNumber": "+4511112222",
    })
    assert res.status_code == 200
    assert res.json()["displayName"] == "Mike M."

    res = await client.put(f"{API}/managers/{mike}", headers=admin, json={"role": "admin"})
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot change manager company or role"


@pytest.mark.asyncio
async def test_delete_manager(client: AsyncClient):
    admin, company_id = await _create_admin(client)
    manager, mike = await _add_member(client, admin, company_id, "mike@x.com", role="manager")

    assert (await client.delete(f"{API}/managers/{mike}", headers=admin)).status_code == 204
    assert (await client.get(f"{API}/managers/{mike}", headers=admin)).status_code == 404

    # Profile gone: the bearer credential no longer maps to a principal
    assert (await client.get(f"{API}/auth/verify", headers=manager)).status_code == 401


@pytest.mark.asyncio
async def test_managers_of_other_companies_are_not_found(client: AsyncClient):
    admin1, c1 = await _create_admin(client, "admin1@fleet.com", "Company One")
    admin2, _ = await _create_admin(client, "admin2@fleet.com", "Company Two")
    _, mike = await _add_member(client, admin1, c1, "mike@x.com", role="manager")

    assert (await client.get(f"{API}/managers/{mike}", headers=admin2)).status_code == 404
