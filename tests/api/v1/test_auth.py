from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from fleetflow.api.v1.endpoints import auth as auth_endpoints
from fleetflow.core.config import settings
from fleetflow.core.security import create_access_token, create_reset_token
from fleetflow.models.audit import AuditEventType, AuditLog

API = settings.API_V1_PREFIX


async def _signup(client: AsyncClient, email: str = "owner@fleet.com", password: str = "ownerpass123"):
    return await client.post(f"{API}/auth/signup", json={
        "email": email,
        "password": password,
        "displayName": "Owner",
        "companyName": "Acme Haulage",
        "country": "DK",
    })


async def _signin(client: AsyncClient, email: str, password: str) -> dict:
    res = await client.post(f"{API}/auth/signin", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['accessToken']}"}


@pytest.mark.asyncio
async def test_signup_creates_company_and_admin(client: AsyncClient):
    response = await _signup(client)
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "owner@fleet.com"
    assert data["role"] == "admin"
    assert data["status"] == "active"
    assert data["companyId"]


@pytest.mark.asyncio
async def test_signup_duplicate_email_conflicts(client: AsyncClient):
    await _signup(client)
    response = await _signup(client)
    assert response.status_code == 409
    assert response.json()["error"] == "email_taken"


@pytest.mark.asyncio
async def test_signup_weak_password(client: AsyncClient):
    response = await _signup(client, password="abc")
    assert response.status_code == 400
    assert response.json()["error"] == "weak_password"


@pytest.mark.asyncio
async def test_signup_missing_fields(client: AsyncClient):
    response = await client.post(f"{API}/auth/signup", json={"email": "nobody@fleet.com"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert "password" in body["message"]


@pytest.mark.asyncio
async def test_signin_and_verify(client: AsyncClient):
    signup = (await _signup(client)).json()
    headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    response = await client.get(f"{API}/auth/verify", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "id": signup["id"],
        "email": "owner@fleet.com",
        "role": "admin",
        "companyId": signup["companyId"],
    }


@pytest.mark.asyncio
async def test_signin_records_last_login(client: AsyncClient):
    await _signup(client)
    headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    profile = (await client.get(f"{API}/auth/profile", headers=headers)).json()
    assert profile["lastLoginAt"] is not None


@pytest.mark.asyncio
async def test_signin_wrong_password(client: AsyncClient, db_session):
    await _signup(client)
    response = await client.post(f"{API}/auth/signin", json={
        "email": "owner@fleet.com", "password": "wrong-password",
    })
    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"

    failed = await db_session.scalar(
        select(AuditLog).where(AuditLog.event_type == AuditEventType.USER_SIGNIN_FAILED.value)
    )
    assert failed is not None
    assert failed.subject_id == "owner@fleet.com"


@pytest.mark.asyncio
async def test_verify_requires_bearer(client: AsyncClient):
    response = await client.get(f"{API}/auth/verify")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_verify_rejects_garbage_token(client: AsyncClient):
    response = await client.get(
        f"{API}/auth/verify", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_profile(client: AsyncClient):
    await _signup(client)
    headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    response = await client.put(f"{API}/auth/profile", headers=headers, json={
        "displayName": "Big Boss", "phoneNumber": "+4512345678",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["displayName"] == "Big Boss"
    assert data["phoneNumber"] == "+4512345678"
    assert data["role"] == "admin"


@pytest.mark.asyncio
async def test_update_profile_requires_a_field(client: AsyncClient):
    await _signup(client)
    headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    response = await client.put(f"{API}/auth/profile", headers=headers, json={})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.fixture
def sent_resets(monkeypatch) -> list[dict]:
    sent: list[dict] = []

    async def fake_send(**kwargs):
        sent.append(kwargs)
        return {"ok": True, "id": "test"}

    monkeypatch.setattr(auth_endpoints._email, "send_password_reset", fake_send)
    return sent


@pytest.mark.asyncio
async def test_signout_revokes_issued_tokens(client: AsyncClient, db_session):
    await _signup(client)
    headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    response = await client.post(f"{API}/auth/signout", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Signed out successfully."}

    assert (await client.get(f"{API}/auth/verify", headers=headers)).status_code == 401

    fresh = await _signin(client, "owner@fleet.com", "ownerpass123")
    assert (await client.get(f"{API}/auth/verify", headers=fresh)).status_code == 200

    event = await db_session.scalar(
        select(AuditLog).where(AuditLog.event_type == AuditEventType.USER_SIGNOUT.value)
    )
    assert event is not None


@pytest.mark.asyncio
async def test_signout_requires_bearer(client: AsyncClient):
    response = await client.post(f"{API}/auth/signout")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_password_reset_flow(client: AsyncClient, sent_resets):
    await _signup(client)
    old_headers = await _signin(client, "owner@fleet.com", "ownerpass123")

    response = await client.post(
        f"{API}/auth/reset-password", json={"email": "owner@fleet.com"}
    )
    assert response.status_code == 200
    assert response.json()["message"] == auth_endpoints.RESET_REQUESTED_MESSAGE
    assert len(sent_resets) == 1
    assert sent_resets[0]["to_email"] == "owner@fleet.com"
    token = sent_resets[0]["reset_token"]

    response = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": token, "password": "brandnew456",
    })
    assert response.status_code == 200

    wrong = await client.post(f"{API}/auth/signin", json={
        "email": "owner@fleet.com", "password": "ownerpass123",
    })
    assert wrong.status_code == 401
    await _signin(client, "owner@fleet.com", "brandnew456")

    # Sessions from before the reset are gone
    assert (await client.get(f"{API}/auth/verify", headers=old_headers)).status_code == 401

    # Single use
    reused = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": token, "password": "another789",
    })
    assert reused.status_code == 400
    assert reused.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_password_reset_unknown_email_looks_the_same(client: AsyncClient, sent_resets):
    await _signup(client)
    response = await client.post(
        f"{API}/auth/reset-password", json={"email": "nobody@fleet.com"}
    )
    assert response.status_code == 200
    assert response.json()["message"] == auth_endpoints.RESET_REQUESTED_MESSAGE
    assert sent_resets == []


@pytest.mark.asyncio
async def test_password_reset_rejects_malformed_email(client: AsyncClient, sent_resets):
    response = await client.post(f"{API}/auth/reset-password", json={"email": "not-an-email"})
    assert response.status_code == 400
    assert sent_resets == []


@pytest.mark.asyncio
async def test_password_reset_confirm_rejects_bad_tokens(client: AsyncClient):
    signup = (await _signup(client)).json()

    garbage = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": "not-a-jwt", "password": "brandnew456",
    })
    assert garbage.status_code == 400

    expired = create_reset_token(signup["id"], 0, lifetime=timedelta(minutes=-1))
    response = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": expired, "password": "brandnew456",
    })
    assert response.status_code == 400

    # An access token is not a reset token
    access = create_access_token(signup["id"], 0)
    response = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": access, "password": "brandnew456",
    })
    assert response.status_code == 400

    await _signin(client, "owner@fleet.com", "ownerpass123")


@pytest.mark.asyncio
async def test_password_reset_confirm_enforces_strength(client: AsyncClient):
    signup = (await _signup(client)).json()
    token = create_reset_token(signup["id"], 0)
    response = await client.post(f"{API}/auth/reset-password/confirm", json={
        "token": token, "password": "abc",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "weak_password"
